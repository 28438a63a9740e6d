"""Upload facade: one-time setup, then repeated batch uploads."""

import logging
from typing import Iterable, Optional

import httpx

from testrail_uploader.client import TestRailClient
from testrail_uploader.http_client import build_http_client
from testrail_uploader.models import (
    ProjectConfiguration,
    ResultTable,
    StatusComment,
    TestRailConfig,
    UploadResult,
    ValidateRequest,
)
from testrail_uploader.result_logger import ResultLogger
from testrail_uploader.statuses import (
    StatusMaps,
    get_status,
    resolve_status_maps,
    verify_status_codes,
)
from testrail_uploader.util import extract_case_id
from testrail_uploader.validator import ParamValidator

logger = logging.getLogger(__name__)


class ResultUploader:
    """Uploads batches of results to one TestRail plan and run.

    Create instances with initialize(), which validates the configuration
    and resolves the plan once so later uploads skip the lookup.
    """

    def __init__(
        self,
        project_config: ProjectConfiguration,
        status_maps: StatusMaps,
        result_logger: ResultLogger,
        plan_id: int,
        param_validator: ParamValidator,
        http: Optional[httpx.Client] = None,
    ):
        self.project_config = project_config
        self._status_maps = status_maps
        self.result_logger = result_logger
        self._plan_id = plan_id
        self.param_validator = param_validator
        self._owned_http = http

    @classmethod
    def initialize(
        cls,
        testrail_config: TestRailConfig,
        project_config: ProjectConfiguration,
        proxy: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> "ResultUploader":
        """Validate the configuration and prepare for uploads.

        Args:
            testrail_config: TestRail URL and credentials.
            project_config: Project, suite, plan/run names and status names.
            proxy: Optional proxy URL for all TestRail calls.
            http_client: Pre-built httpx client to use instead of building
                         one; the caller keeps ownership of it.

        Returns:
            A ready ResultUploader.

        Raises:
            TestRailError: If any TestRail call or validation fails.
            StatusMappingError: If the configured status names cannot be
                                resolved on the account.
        """
        owned_http = None
        if http_client is None:
            http_client = owned_http = build_http_client(testrail_config, proxy=proxy)

        try:
            client = TestRailClient(http_client)

            # Status names in config, status ids in the API
            account_statuses = client.get_statuses()
            status_maps = resolve_status_maps(account_statuses, project_config)

            for warning in verify_status_codes(status_maps, account_statuses):
                logger.warning(warning)

            param_validator = ParamValidator(client)
            param_validator.validate_configuration(
                project_config.project_id,
                project_config.suite_id,
                project_config.plan_name,
                project_config.run_name,
            )

            result_logger = ResultLogger(client)
            plan = result_logger.verify_or_create_plan(
                project_config.project_id, None, project_config.plan_name
            )
        except Exception:
            if owned_http is not None:
                owned_http.close()
            raise

        logger.info("Reporting to TestRail plan %s (%s)", plan.id, plan.name)
        return cls(project_config, status_maps, result_logger, plan.id, param_validator, owned_http)

    @property
    def status_maps(self) -> StatusMaps:
        return self._status_maps

    @property
    def plan_id(self) -> int:
        return self._plan_id

    def upload_results(self, results: Iterable[UploadResult]) -> frozenset[int]:
        """Upload a batch of results to the configured run.

        Args:
            results: Results to upload; at most one per case id token.

        Returns:
            Case ids that do not belong to the suite and were not uploaded.

        Raises:
            TestRailError: If a case id is malformed or unknown, or any
                           TestRail call fails.
        """
        results = [result for result in results if result is not None]

        self.param_validator.validate_case_ids(
            self.project_config.project_id,
            self.project_config.suite_id,
            {result.test_case_id for result in results},
        )

        status_map = self._status_maps.status_map
        row: dict[int, StatusComment] = {}
        for result in results:
            if not result.test_case_id or not result.test_case_id.strip():
                continue
            row[extract_case_id(result.test_case_id)] = StatusComment(
                get_status(result.status, status_map), result.result_comment
            )
        table: ResultTable = {self.project_config.run_name: row}

        request = ValidateRequest(
            project_id=self.project_config.project_id,
            suite_id=self.project_config.suite_id,
            plan_name=self.project_config.plan_name,
            plan_id=self._plan_id,
            include_all=self.project_config.add_all_tests_to_plan,
        )
        return frozenset(self.result_logger.execute(table, request))

    def close(self) -> None:
        """Close the HTTP client, if this uploader built it."""
        if self._owned_http is not None:
            self._owned_http.close()

    def __enter__(self) -> "ResultUploader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
