"""Pre-flight validation of upload parameters against TestRail."""

import logging
from typing import Iterable, Optional

from testrail_uploader.client import TestRailClient
from testrail_uploader.errors import TestRailError, TestRailErrorStatus
from testrail_uploader.models import Project, Suite
from testrail_uploader.statuses import StatusMaps, verify_status_codes
from testrail_uploader.util import extract_case_id, validate_case_id

logger = logging.getLogger(__name__)


class ParamValidator:
    """Validates TestRail parameters before any results are uploaded."""

    def __init__(self, client: TestRailClient):
        self.client = client

    def validate_project(self, project_id: int) -> Project:
        """Fetch a project and check it is still open.

        Raises:
            TestRailError: ACCESS_DENIED if the project is completed, or any
                           error from the lookup.
        """
        project = self.client.get_project(project_id)
        if project.is_completed:
            raise TestRailError(TestRailErrorStatus.ACCESS_DENIED, "Test Rail Project is Completed.")
        return project

    def validate_suite(self, suite_id: int, project_id: int) -> Suite:
        """Fetch a suite and check it is open and belongs to the project.

        Raises:
            TestRailError: ACCESS_DENIED if the suite is completed or belongs
                           to another project, or any error from the lookup.
        """
        suite = self.client.get_suite(suite_id)
        if suite.is_completed:
            raise TestRailError(
                TestRailErrorStatus.ACCESS_DENIED, "Test Rail Suite is marked as completed"
            )
        if suite.project_id != project_id:
            raise TestRailError(
                TestRailErrorStatus.ACCESS_DENIED, "Test Rail Suite does not match the given project"
            )
        return suite

    def validate_params(
        self,
        project_id: Optional[int],
        suite_id: Optional[int],
        plan_name: Optional[str],
        run_name: Optional[str],
    ) -> None:
        """Validate the upload parameters.

        Local checks run first and are reported together; the project and
        suite are only looked up once those pass.

        Raises:
            TestRailError: BAD_REQUEST listing every invalid parameter, or
                           the first project/suite failure.
        """
        errors = []
        if not plan_name or not plan_name.strip():
            errors.append(f"Invalid testRailPlanName: {plan_name}")
        if not run_name or not run_name.strip():
            errors.append(f"Invalid testRailRunName: {run_name}")
        if project_id is None or project_id < 0:
            errors.append(f"Invalid testRailProjectId: {project_id}")
        if suite_id is None or suite_id < 0:
            errors.append(f"Invalid testRailSuiteId: {suite_id}")
        if errors:
            raise TestRailError(TestRailErrorStatus.BAD_REQUEST, ", ".join(errors))

        self.validate_project(project_id)
        self.validate_suite(suite_id, project_id)

    def verify_result_status_codes(self, status_maps: StatusMaps) -> list[str]:
        """Check the resolved status ids against the account's statuses."""
        return verify_status_codes(status_maps, self.client.get_statuses())

    def validate_configuration(
        self,
        project_id: Optional[int],
        suite_id: Optional[int],
        plan_name: Optional[str],
        run_name: Optional[str],
        status_maps: Optional[StatusMaps] = None,
    ) -> list[str]:
        """Run validate_params, then status verification when maps are given.

        Returns:
            Status warnings (also logged); empty when none apply.

        Raises:
            TestRailError: If validate_params fails.
        """
        self.validate_params(project_id, suite_id, plan_name, run_name)
        if status_maps is None:
            return []

        warnings = self.verify_result_status_codes(status_maps)
        for warning in warnings:
            logger.warning(warning)
        return warnings

    def validate_case_ids(self, project_id: int, suite_id: int, tokens: Iterable[Optional[str]]) -> None:
        """Check that every case id token is well formed and in the suite.

        Blank tokens are skipped.

        Raises:
            TestRailError: CASE_ID for the first malformed token or the first
                           id with no case in the suite.
        """
        valid_case_ids = {case.id for case in self.client.get_test_cases_for_suite(project_id, suite_id)}

        for token in tokens:
            if token is None or not token.strip():
                continue
            if not validate_case_id(token):
                raise TestRailError(TestRailErrorStatus.CASE_ID, f"Test case ID {token} is invalid")
            case_id = extract_case_id(token)
            if case_id not in valid_case_ids:
                raise TestRailError(
                    TestRailErrorStatus.CASE_ID,
                    f"Test Case ID {case_id} has no matching case in Testrail",
                )
