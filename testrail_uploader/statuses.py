"""Mapping of local result statuses onto TestRail status ids.

TestRail ships five system statuses (Passed, Blocked, Untested, Retest,
Failed); accounts may add custom ones. Projects configure which remote
status *name* each local status maps to, and those names are resolved to
ids against the account's statuses once at startup.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from testrail_uploader.errors import StatusMappingError
from testrail_uploader.models import ProjectConfiguration, Status, TestResultStatus

logger = logging.getLogger(__name__)

PASSED_STATUS_ID = 1
BLOCKED_STATUS_ID = 2
UNTESTED_STATUS_ID = 3
RETEST_STATUS_ID = 4
FAILED_STATUS_ID = 5

DEFAULT_STATUS_MAPPING: Mapping[TestResultStatus, int] = {
    TestResultStatus.PASSED: PASSED_STATUS_ID,
    TestResultStatus.FAILED: FAILED_STATUS_ID,
    TestResultStatus.SKIPPED: BLOCKED_STATUS_ID,
    TestResultStatus.CANCELED: BLOCKED_STATUS_ID,
    TestResultStatus.ERROR: BLOCKED_STATUS_ID,
}

STATUS_CODES_MISMATCH_WARNING = (
    "Configured status codes do not match TestRail status codes. "
    "Expect problems adding results to TestRail."
)
UNTESTED_STATUS_WARNING = (
    "TestRail configured for invalid status code 3 (Untested). "
    "Expect problems adding results to TestRail."
)


def get_default_status(status: TestResultStatus) -> int:
    """Get the default TestRail status id for a local status.

    Raises:
        ValueError: If the status is never sent to TestRail
                    (NOT_RUN, IN_PROGRESS).
    """
    try:
        return DEFAULT_STATUS_MAPPING[status]
    except KeyError:
        raise ValueError(f"Unknown default status mapping for {status.name}") from None


def get_status(
    status: TestResultStatus,
    mapping: Optional[Mapping[TestResultStatus, int]] = None,
) -> int:
    """Get the TestRail status id for a local status.

    Falls back to the default mapping when the status has no entry.
    """
    if mapping is not None and status in mapping:
        return mapping[status]
    logger.warning("Using default TestRail status for %s, no mapping configured", status.name)
    return get_default_status(status)


def build_status_mapping(
    overrides: Mapping[TestResultStatus, Optional[int]],
) -> dict[TestResultStatus, int]:
    """Build a complete mapping from partial overrides.

    Args:
        overrides: Status id overrides; missing or None entries use the default.

    Returns:
        A mapping with an id for each of the five complete statuses.
    """
    mapping = {}
    for status, default_id in DEFAULT_STATUS_MAPPING.items():
        override = overrides.get(status)
        mapping[status] = default_id if override is None else override
    return mapping


@dataclass(frozen=True)
class StatusMaps:
    """Resolved TestRail status ids for each complete local status."""

    passed: int = PASSED_STATUS_ID
    failed: int = FAILED_STATUS_ID
    skipped: int = BLOCKED_STATUS_ID
    error: int = BLOCKED_STATUS_ID
    canceled: int = BLOCKED_STATUS_ID

    def __post_init__(self):
        ids = [self.passed, self.failed, self.skipped, self.error, self.canceled]
        shared = sorted({status_id for status_id in ids if ids.count(status_id) > 1})
        if shared:
            logger.warning("Several result statuses share TestRail status ids: %s", shared)

    @property
    def status_map(self) -> dict[TestResultStatus, int]:
        return {
            TestResultStatus.PASSED: self.passed,
            TestResultStatus.FAILED: self.failed,
            TestResultStatus.SKIPPED: self.skipped,
            TestResultStatus.ERROR: self.error,
            TestResultStatus.CANCELED: self.canceled,
        }

    @property
    def status_ids(self) -> set[int]:
        return set(self.status_map.values())

    @classmethod
    def from_overrides(cls, overrides: Mapping[TestResultStatus, Optional[int]]) -> "StatusMaps":
        mapping = build_status_mapping(overrides)
        return cls(
            passed=mapping[TestResultStatus.PASSED],
            failed=mapping[TestResultStatus.FAILED],
            skipped=mapping[TestResultStatus.SKIPPED],
            error=mapping[TestResultStatus.ERROR],
            canceled=mapping[TestResultStatus.CANCELED],
        )


def _normalize(name: str) -> str:
    return name.strip().lower()


def resolve_status_maps(
    account_statuses: Iterable[Status],
    project_config: ProjectConfiguration,
) -> StatusMaps:
    """Resolve the configured status names to TestRail status ids.

    Names are matched case-insensitively, ignoring surrounding whitespace.

    Args:
        account_statuses: Statuses configured on the TestRail account.
        project_config: Project settings holding the status names.

    Returns:
        The resolved StatusMaps.

    Raises:
        StatusMappingError: If the account has two statuses with the same
                            name, or a configured name has no match.
    """
    ids_by_name: dict[str, int] = {}
    for status in account_statuses:
        name = _normalize(status.name)
        if name in ids_by_name and ids_by_name[name] != status.id:
            raise StatusMappingError(
                f"Duplicate TestRail status name '{name}' (ids {ids_by_name[name]} and {status.id})"
            )
        ids_by_name[name] = status.id

    def lookup(configured_name: str) -> int:
        name = _normalize(configured_name)
        if name not in ids_by_name:
            raise StatusMappingError(
                f"Could not find status '{configured_name}' in TestRail. "
                f"Available statuses: {', '.join(sorted(ids_by_name))}"
            )
        return ids_by_name[name]

    return StatusMaps(
        passed=lookup(project_config.status_passed),
        failed=lookup(project_config.status_failed),
        skipped=lookup(project_config.status_skipped),
        error=lookup(project_config.status_error),
        canceled=lookup(project_config.status_canceled),
    )


def verify_status_codes(status_maps: StatusMaps, account_statuses: Iterable[Status]) -> list[str]:
    """Check resolved status ids against the account's statuses.

    Advisory only: problems are reported as warnings, never raised.

    Returns:
        Warning messages, empty when everything checks out.
    """
    account_ids = {status.id for status in account_statuses}
    mapped_ids = status_maps.status_ids

    warnings = []
    if not mapped_ids <= account_ids:
        warnings.append(STATUS_CODES_MISMATCH_WARNING)
    if UNTESTED_STATUS_ID in mapped_ids:
        warnings.append(UNTESTED_STATUS_WARNING)
    return warnings
