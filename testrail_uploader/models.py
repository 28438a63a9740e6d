"""Data models for the TestRail result uploader."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TestResultStatus(Enum):
    """Local result status, mapped onto a TestRail status id before upload."""

    NOT_RUN = "NOT_RUN"
    IN_PROGRESS = "IN_PROGRESS"
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    CANCELED = "CANCELED"
    ERROR = "ERROR"


# Statuses considered "complete"; the only ones ever sent to TestRail
ALL_COMPLETE_STATUSES = frozenset({
    TestResultStatus.PASSED,
    TestResultStatus.FAILED,
    TestResultStatus.SKIPPED,
    TestResultStatus.CANCELED,
    TestResultStatus.ERROR,
})


@dataclass
class TestRailConfig:
    """Connection settings for a TestRail instance."""

    url: str
    email: str
    api_key: str


@dataclass
class ProjectConfiguration:
    """Where results go, and which TestRail status names they map to."""

    project_id: int
    suite_id: int
    add_all_tests_to_plan: bool
    plan_name: str
    run_name: str
    status_passed: str = "passed"
    status_failed: str = "failed"
    status_skipped: str = "blocked"
    status_error: str = "blocked"
    status_canceled: str = "blocked"


@dataclass(frozen=True)
class UploadResult:
    """A single local result to upload.

    Results are identified by their case id token only, so a set of
    UploadResults carries at most one result per case.
    """

    test_case_id: str
    status: TestResultStatus = field(compare=False)
    result_comment: str = field(compare=False)


@dataclass(frozen=True)
class StatusComment:
    """A pending result: the TestRail status id and the comment to post."""

    status_id: int
    comment: str


# run name -> case id -> pending result
ResultTable = dict[str, dict[int, StatusComment]]


@dataclass(frozen=True)
class ValidateRequest:
    """Parameters needed to set up a plan/run and post results."""

    project_id: int
    suite_id: int
    plan_name: str
    plan_id: Optional[int]
    include_all: bool


@dataclass
class Project:
    """A TestRail project."""

    id: int
    name: str
    is_completed: bool = False
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            is_completed=bool(data.get("is_completed", False)),
            url=data.get("url"),
        )


@dataclass
class Suite:
    """A TestRail test suite."""

    id: int
    name: str
    project_id: Optional[int] = None
    is_completed: bool = False
    description: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Suite":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            project_id=data.get("project_id"),
            is_completed=bool(data.get("is_completed", False)),
            description=data.get("description"),
            url=data.get("url"),
        )


@dataclass
class Status:
    """A result status configured on the TestRail account."""

    id: int
    name: str
    label: str = ""
    is_system: bool = False
    is_untested: bool = False
    is_final: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Status":
        return cls(
            id=data["id"],
            name=data["name"],
            label=data.get("label", ""),
            is_system=bool(data.get("is_system", False)),
            is_untested=bool(data.get("is_untested", False)),
            is_final=bool(data.get("is_final", False)),
        )


@dataclass
class Case:
    """A test case definition in a suite."""

    id: int
    title: str = ""
    suite_id: Optional[int] = None
    section_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Case":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            suite_id=data.get("suite_id"),
            section_id=data.get("section_id"),
        )


@dataclass
class Test:
    """The association of one case with one run."""

    id: int
    case_id: int
    run_id: Optional[int] = None
    status_id: Optional[int] = None
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Test":
        return cls(
            id=data["id"],
            case_id=data["case_id"],
            run_id=data.get("run_id"),
            status_id=data.get("status_id"),
            title=data.get("title"),
        )


@dataclass
class Run:
    """A test run inside a plan entry."""

    id: int
    name: str
    suite_id: Optional[int] = None
    entry_id: Optional[str] = None
    plan_id: Optional[int] = None
    is_completed: bool = False
    include_all: Optional[bool] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Run":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            suite_id=data.get("suite_id"),
            entry_id=data.get("entry_id"),
            plan_id=data.get("plan_id"),
            is_completed=bool(data.get("is_completed", False)),
            include_all=data.get("include_all"),
            url=data.get("url"),
        )


@dataclass
class PlanEntry:
    """A group of runs sharing a suite within a plan."""

    id: str
    name: str
    suite_id: Optional[int] = None
    include_all: Optional[bool] = None
    runs: list[Run] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanEntry":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            suite_id=data.get("suite_id"),
            include_all=data.get("include_all"),
            runs=[Run.from_dict(run) for run in data.get("runs") or []],
        )


@dataclass
class Plan:
    """A test plan.

    entries is None when the payload did not include the entries
    collection (plan listings, freshly created plans), and an empty
    list when the plan genuinely has no entries.
    """

    id: int
    name: str
    project_id: Optional[int] = None
    is_completed: bool = False
    created_on: int = 0
    entries: Optional[list[PlanEntry]] = None
    description: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Plan":
        entries = data.get("entries")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            project_id=data.get("project_id"),
            is_completed=bool(data.get("is_completed", False)),
            created_on=int(data.get("created_on") or 0),
            entries=None if entries is None else [PlanEntry.from_dict(e) for e in entries],
            description=data.get("description"),
            url=data.get("url"),
        )


@dataclass
class TestResult:
    """A result recorded against a test."""

    id: int
    test_id: Optional[int] = None
    status_id: Optional[int] = None
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TestResult":
        return cls(
            id=data["id"],
            test_id=data.get("test_id"),
            status_id=data.get("status_id"),
            comment=data.get("comment"),
        )


@dataclass
class RunsAndInvalidCases:
    """Runs resolved for each run name, plus case ids filtered out."""

    runs_by_name: dict[str, Run] = field(default_factory=dict)
    invalid_case_ids: set[int] = field(default_factory=set)
