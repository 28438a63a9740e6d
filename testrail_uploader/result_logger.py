"""Reconciliation of local results with TestRail plans and runs.

ResultLogger.execute() takes pending results grouped by run name and case
id, makes sure the remote side is ready to receive them, then posts them:

1. Drop case ids that are not in the suite (reported back to the caller)
2. Find or create the plan
3. For each run name, find or create the run and add any missing cases
4. Post each run's results in a single batch

Every step is idempotent, so a failed execute() can be repeated with the
same input. Nothing is rolled back on failure.
"""

import logging
from typing import Optional

from testrail_uploader.client import TestRailClient
from testrail_uploader.errors import TestRailError
from testrail_uploader.models import (
    Plan,
    ResultTable,
    Run,
    RunsAndInvalidCases,
    ValidateRequest,
)

logger = logging.getLogger(__name__)


class ResultLogger:
    """Sets up plans and runs in TestRail and reports results to them."""

    def __init__(self, client: TestRailClient):
        self.client = client

    def execute(self, results: ResultTable, request: ValidateRequest) -> set[int]:
        """Reconcile and post a batch of results.

        Args:
            results: Pending results by run name and case id. Invalid case
                     ids are removed from it in place.
            request: Project, suite and plan to report against.

        Returns:
            The requested case ids that do not belong to the suite. Their
            results were not posted.

        Raises:
            TestRailError: If any TestRail call fails. Earlier steps are not
                           undone.
        """
        logger.debug(
            "Starting TestRail reporting for suite %s plan %s planName %s",
            request.suite_id,
            request.plan_id,
            request.plan_name,
        )
        try:
            cases = self.client.get_test_cases_for_suite(request.project_id, request.suite_id)
            setup = self._verify_and_initialize_setup({case.id for case in cases}, results, request)

            for run_name, run in setup.runs_by_name.items():
                self.client.add_results(run.id, results[run_name])
        except TestRailError:
            logger.error(
                "Caught error for Project/Plan [%s/%s]",
                request.project_id,
                request.plan_id,
                exc_info=True,
            )
            raise

        return setup.invalid_case_ids

    def _verify_and_initialize_setup(
        self,
        suite_case_ids: set[int],
        results: ResultTable,
        request: ValidateRequest,
    ) -> RunsAndInvalidCases:
        setup = RunsAndInvalidCases()
        setup.invalid_case_ids = self._filter_out_bad_case_ids(suite_case_ids, results)

        plan = self.verify_or_create_plan(request.project_id, request.plan_id, request.plan_name)

        for run_name, row in results.items():
            if not row:
                logger.debug("No valid results left for run %s, skipping", run_name)
                continue
            run = self._verify_or_create_run(request, row, plan, run_name)
            setup.runs_by_name[run_name] = run
            self._verify_case_ids_are_setup_for_run(row, plan.id, run, run_name)

        return setup

    def _filter_out_bad_case_ids(self, suite_case_ids: set[int], results: ResultTable) -> set[int]:
        requested_case_ids = {case_id for row in results.values() for case_id in row}
        invalid_case_ids = requested_case_ids - suite_case_ids
        if not invalid_case_ids:
            return set()

        logger.debug("Removing invalid caseIds %s", ",".join(str(i) for i in sorted(invalid_case_ids)))
        for row in results.values():
            for case_id in invalid_case_ids:
                row.pop(case_id, None)
        return invalid_case_ids

    def verify_or_create_plan(self, project_id: int, plan_id: Optional[int], plan_name: str) -> Plan:
        """Get the plan by id, or find or create it by name.

        Args:
            project_id: Project containing the plan.
            plan_id: Id of an already known plan, or None to look it up.
            plan_name: Exact name to search for or create.

        Returns:
            The plan. Its entries may not be populated.

        Raises:
            TestRailError: If any TestRail call fails.
        """
        if plan_id is not None:
            return self.client.get_test_plan(plan_id)

        # Plan names are matched and created verbatim
        existing_plan = self.client.find_existing_test_plan(project_id, plan_name)
        if existing_plan is not None:
            return existing_plan
        logger.info("Creating TestRail plan '%s' in project %s", plan_name, project_id)
        return self.client.create_test_plan(plan_name, project_id)

    def _verify_or_create_run(
        self,
        request: ValidateRequest,
        row: dict,
        plan: Plan,
        run_name: str,
    ) -> Run:
        # Plans from listings or fresh creation carry no entries
        if plan.entries is None:
            plan = self.client.get_test_plan(plan.id)

        for entry in plan.entries or []:
            for run in entry.runs:
                if not run.is_completed and run.name == run_name:
                    return run

        logger.info("Creating TestRail run '%s' in plan %s", run_name, plan.id)
        entry = self.client.create_new_plan_entry(
            run_name,
            request.suite_id,
            plan.id,
            request.include_all,
            set(row),
        )
        return entry.runs[0]

    def _verify_case_ids_are_setup_for_run(self, row: dict, plan_id: int, run: Run, run_name: str) -> None:
        logger.debug("Verifying caseIds are setup for run %s", run_name)
        existing_case_ids = {test.case_id for test in self.client.get_tests_for_run(run.id)}

        new_case_ids = set(row) - existing_case_ids
        if not new_case_ids:
            return

        logger.debug(
            "Couldn't find matching test case IDs %s in run %s. Adding test cases to run",
            ", ".join(str(i) for i in sorted(new_case_ids)),
            run.id,
        )
        # Existing cases stay in the entry so their results are kept
        self.client.update_existing_plan_entry(plan_id, run.entry_id, new_case_ids | existing_case_ids)
