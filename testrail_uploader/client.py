"""TestRail API client with error translation.

Wraps an httpx client with one method per TestRail operation the
uploader needs. Each method returns typed models on success and raises
TestRailError otherwise:

- endpoint-specific 400/403 responses become BAD_REQUEST/ACCESS_DENIED
  with a message naming the ids involved
- other unsuccessful responses go through a common mapping
  (409 maintenance, 401 authentication, 429 rate limit, 404 route)
- socket timeouts become SOCKET_TIMEOUT whatever the endpoint
"""

import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

import httpx

from testrail_uploader.errors import TestRailError, TestRailErrorStatus
from testrail_uploader.models import (
    Case,
    Plan,
    PlanEntry,
    Project,
    Status,
    StatusComment,
    Suite,
    Test,
    TestResult,
)

logger = logging.getLogger(__name__)

# Page size for every paginated TestRail listing
PAGE_LIMIT = 250

T = TypeVar("T")


def _read_error_body(response: httpx.Response) -> str:
    try:
        return response.read().decode("utf-8", errors="replace")
    except (httpx.HTTPError, httpx.StreamError):
        logger.warning("Error thrown during attempt to read TestRail error response body", exc_info=True)
        return "[unavailable]"


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        # HTTP-date form is not sent by TestRail
        return None


def raise_for_common_error_statuses(response: httpx.Response, detail_message: str) -> None:
    """Raise a TestRailError for any unsuccessful response.

    These statuses can happen even if all the parameters were correct,
    so they are checked after any endpoint-specific interpretation.

    Args:
        response: The TestRail response.
        detail_message: Call-specific context (operation and ids).

    Raises:
        TestRailError: If the response was not successful.
    """
    if response.is_success:
        return

    error_body = _read_error_body(response)
    error_detail = f"{detail_message} Error from testrail: {error_body}"

    status_code = response.status_code
    if status_code == 409:
        raise TestRailError(TestRailErrorStatus.MAINTENANCE, error_detail)
    if status_code == 401:
        raise TestRailError(TestRailErrorStatus.AUTHENTICATION_FAILED, error_detail)
    if status_code == 429:
        raise TestRailError(
            TestRailErrorStatus.HIT_RATE_LIMIT,
            error_detail,
            retry_after=_retry_after_seconds(response),
        )
    if status_code == 404:
        raise TestRailError(
            TestRailErrorStatus.INVALID_ROUTE,
            f"Invalid Route: {response.request.url.raw_path.decode('ascii')} Error from testrail: {error_body}",
        )
    raise TestRailError(TestRailErrorStatus.UNKNOWN_ERROR, error_detail)


def _read_page(body: Any, items_key: str, parse: Callable[[dict[str, Any]], T]) -> tuple[list[T], bool]:
    """Parse one listing page; the flag is True when another page follows."""
    if isinstance(body, list):
        # Pre-pagination TestRail versions return a bare list
        return [parse(item) for item in body], False

    page_items = body.get(items_key) or []
    next_link = (body.get("_links") or {}).get("next")
    has_more = next_link is not None and bool(body.get("size", len(page_items)))
    return [parse(item) for item in page_items], has_more


class TestRailClient:
    """The TestRail client that wraps the TestRail API with error handling."""

    def __init__(self, http: httpx.Client):
        """Initialize the client.

        Args:
            http: httpx client pointed at the TestRail instance, usually
                  from build_http_client().
        """
        self.http = http

    # --- transport -------------------------------------------------------

    def _call(
        self,
        method: str,
        route: str,
        *,
        params: Optional[dict[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> httpx.Response:
        try:
            response = self.http.request(method, route, params=params, json=body)
        except httpx.TimeoutException as e:
            raise TestRailError(TestRailErrorStatus.SOCKET_TIMEOUT) from e
        except httpx.TransportError as e:
            logger.info("Encountered an error communicating with TestRail", exc_info=True)
            raise TestRailError(TestRailErrorStatus.UNKNOWN_ERROR, str(e)) from e
        logger.debug("Retrieved HTTP %s from TestRail %s request.", response.status_code, route.split("/")[0])
        return response

    @staticmethod
    def _check(
        response: httpx.Response,
        detail_message: str,
        bad_request: Optional[str] = None,
        forbidden: Optional[str] = None,
    ) -> None:
        if bad_request is not None and response.status_code == 400:
            raise TestRailError(TestRailErrorStatus.BAD_REQUEST, bad_request)
        if forbidden is not None and response.status_code == 403:
            raise TestRailError(TestRailErrorStatus.ACCESS_DENIED, forbidden)
        raise_for_common_error_statuses(response, detail_message)

    @staticmethod
    def _parse(response: httpx.Response, detail_message: str, convert: Callable[[Any], T]) -> T:
        """Convert a successful response body, or raise UNKNOWN_ERROR."""
        try:
            return convert(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            body = response.text[:200]
            raise TestRailError(
                TestRailErrorStatus.UNKNOWN_ERROR,
                f"{detail_message} Unreadable response from testrail: {body}",
            ) from e

    def _paginate(
        self,
        route: str,
        items_key: str,
        parse: Callable[[dict[str, Any]], T],
        detail_message: str,
        bad_request: str,
        forbidden: str,
        params: Optional[dict[str, Any]] = None,
    ) -> list[T]:
        """Fetch every page of a TestRail listing, in page order.

        Stops when the page has no "next" link or came back empty.
        """
        items: list[T] = []
        offset = 0
        while True:
            page_params = dict(params or {})
            page_params.update(offset=offset, limit=PAGE_LIMIT)
            response = self._call("GET", route, params=page_params)
            self._check(response, detail_message, bad_request=bad_request, forbidden=forbidden)
            offset += PAGE_LIMIT

            page_items, has_more = self._parse(
                response, detail_message, lambda body: _read_page(body, items_key, parse)
            )
            items.extend(page_items)
            if not has_more:
                return items

    # --- plans -----------------------------------------------------------

    def get_test_plan(self, plan_id: int) -> Plan:
        """Fetch a test plan, including its entries.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug("Request getPlan from TestRail for planId [ %s ]", plan_id)
        response = self._call("GET", f"get_plan/{plan_id}")
        self._check(
            response,
            f"Could not get TestRail test plan: {plan_id}",
            bad_request=f"Invalid or unknown test plan: {plan_id}",
            forbidden=f"No access to TestRail project for planId: {plan_id}",
        )
        return self._parse(response, f"Could not get TestRail test plan: {plan_id}", Plan.from_dict)

    def create_test_plan(self, plan_name: str, project_id: int) -> Plan:
        """Create a test plan in the given project.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug(
            "Request addPlan from TestRail for projectId [ %s ] planName [ %s ]",
            project_id,
            plan_name,
        )
        response = self._call("POST", f"add_plan/{project_id}", body={"name": plan_name})
        self._check(
            response,
            f"Could not add TestRail plan for project id: {project_id}",
            bad_request=f"Invalid or unknown project: {project_id}",
            forbidden="No permission to add test plans or no access to TestRail project.",
        )
        return self._parse(response, f"Could not add TestRail plan for project id: {project_id}", Plan.from_dict)

    def find_existing_test_plan(self, project_id: int, plan_name: str) -> Optional[Plan]:
        """Find the newest open plan with exactly the given name.

        Args:
            project_id: The project to search.
            plan_name: The plan name (case-sensitive, exact match).

        Returns:
            The most recently created non-completed plan with that name,
            or None if there is none.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug(
            "Requesting getPlansForProject from TestRail for projectId [ %s ] planName [ %s ]",
            project_id,
            plan_name,
        )
        plans = self._paginate(
            f"get_plans/{project_id}",
            "plans",
            Plan.from_dict,
            detail_message=f"Could not get TestRail test project: {project_id}",
            bad_request=f"Invalid or unknown project: {project_id}",
            forbidden=f"No access to TestRail project: {project_id}",
        )
        matching = [plan for plan in plans if not plan.is_completed and plan.name == plan_name]
        if not matching:
            return None
        return max(matching, key=lambda plan: plan.created_on)

    # --- plan entries ----------------------------------------------------

    def create_new_plan_entry(
        self,
        run_name: str,
        suite_id: int,
        plan_id: int,
        include_all: bool,
        case_ids: set[int],
    ) -> PlanEntry:
        """Add a plan entry (and so a run) to a plan.

        Args:
            run_name: Name of the new run.
            suite_id: Suite the run executes.
            plan_id: Plan to add the entry to.
            include_all: Whether the run covers every case in the suite.
            case_ids: Cases to include; must not be empty.

        Returns:
            The new plan entry, including its runs.

        Raises:
            TestRailError: BAD_REQUEST (not retryable) if case_ids is empty,
                           or if TestRail returns an error response.
        """
        if not case_ids:
            raise TestRailError(
                TestRailErrorStatus.BAD_REQUEST,
                "TestcaseId invalid. PlanEntry creation must contain at least 1 valid Testcase Id.",
                retryable=False,
            )

        logger.debug(
            "Requesting addPlanEntry from TestRail for plan [%s], suite [%s], run [%s], and test case id count [%s]",
            plan_id,
            suite_id,
            run_name,
            len(case_ids),
        )
        body = {
            "suite_id": suite_id,
            "name": run_name,
            "include_all": include_all,
            "case_ids": sorted(case_ids),
        }
        response = self._call("POST", f"add_plan_entry/{plan_id}", body=body)
        self._check(
            response,
            f"Could not add TestRail plan entry for test plan id: {plan_id}",
            bad_request=f"Invalid or unknown test plan id: {plan_id}",
            forbidden="No permission to modify test plans or no access to TestRail project.",
        )
        return self._parse(
            response, f"Could not add TestRail plan entry for test plan id: {plan_id}", PlanEntry.from_dict
        )

    def update_existing_plan_entry(
        self,
        plan_id: int,
        entry_id: str,
        case_ids: Optional[set[int]] = None,
    ) -> PlanEntry:
        """Update an existing plan entry.

        Partial update: fields left as None are not sent and stay unchanged.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug(
            "Requesting updatePlanEntry from TestRail for planId [ %s ] planEntryId [ %s ] caseId count [ %s ]",
            plan_id,
            entry_id,
            len(case_ids) if case_ids is not None else 0,
        )
        body: dict[str, Any] = {}
        if case_ids is not None:
            body["case_ids"] = sorted(case_ids)
        response = self._call("POST", f"update_plan_entry/{plan_id}/{entry_id}", body=body)
        self._check(
            response,
            f"Could not update TestRail plan entry {entry_id} in plan {plan_id}",
            bad_request=f"Bad request for test plan: {plan_id} of test plan entry: {entry_id}",
            forbidden="No permission to add test result or no access to TestRail project.",
        )
        return self._parse(
            response, f"Could not update TestRail plan entry {entry_id} in plan {plan_id}", PlanEntry.from_dict
        )

    # --- results ---------------------------------------------------------

    def add_result(self, test_id: int, status_id: int, comment: Optional[str] = None) -> TestResult:
        """Add a single result to a test.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug("Sending addResult request to TestRail for test [%s]", test_id)
        body: dict[str, Any] = {"status_id": status_id}
        if comment is not None:
            body["comment"] = comment
        response = self._call("POST", f"add_result/{test_id}", body=body)
        self._check(
            response,
            f"Could not add TestRail result for test id: {test_id}",
            bad_request=f"Invalid or unknown test id: {test_id}",
            forbidden="No permission to add test result or no access to TestRail project.",
        )
        return self._parse(response, f"Could not add TestRail result for test id: {test_id}", TestResult.from_dict)

    def add_results(self, run_id: int, results: Mapping[int, StatusComment]) -> list[TestResult]:
        """Add results for many cases of a run in one call.

        Args:
            run_id: The run to post results to.
            results: Case id to pending status and comment.

        Returns:
            The created results.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        body = {
            "results": [
                {"case_id": case_id, "status_id": result.status_id, "comment": result.comment}
                for case_id, result in results.items()
            ]
        }

        logger.debug(
            "Sending addResultsForCases request to TestRail for run [%s] with test results count [%s]",
            run_id,
            len(results),
        )
        response = self._call("POST", f"add_results_for_cases/{run_id}", body=body)
        self._check(
            response,
            f"Could not add TestRail result for run id: {run_id}",
            bad_request=f"Invalid or unknown run id: {run_id}",
            forbidden="No permission to add test result or no access to TestRail project.",
        )
        return self._parse(
            response,
            f"Could not add TestRail result for run id: {run_id}",
            lambda body: [TestResult.from_dict(item) for item in body or []],
        )

    # --- listings --------------------------------------------------------

    def get_test_cases_for_suite(self, project_id: int, suite_id: int) -> list[Case]:
        """Fetch every case of a suite.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug(
            "Requesting getCasesForSuite from TestRail for project [ %s ] suiteId [ %s ]",
            project_id,
            suite_id,
        )
        return self._paginate(
            f"get_cases/{project_id}",
            "cases",
            Case.from_dict,
            detail_message=f"Could not fetch test case for suite: {suite_id}",
            bad_request=f"Invalid or unknown project [{project_id}] or suite [{suite_id}]",
            forbidden="No permission to get this suite or no access to TestRail project",
            params={"suite_id": suite_id},
        )

    def get_tests_for_run(self, run_id: int, status_ids: Optional[str] = None) -> list[Test]:
        """Fetch every test of a run.

        Args:
            run_id: The run to list.
            status_ids: Optional comma-separated status ids to filter by.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug(
            "Requesting getTests from TestRail for testRailRunId [ %s ] containing statusIds [ %s ]",
            run_id,
            status_ids,
        )
        params = {"status_id": status_ids} if status_ids is not None else None
        return self._paginate(
            f"get_tests/{run_id}",
            "tests",
            Test.from_dict,
            detail_message=f"Could not get TestRail test list for test run id: {run_id}",
            bad_request=f"Invalid or unknown test run id: {run_id}",
            forbidden=f"No access to TestRail project for testRailRunId: {run_id}",
            params=params,
        )

    # --- account ---------------------------------------------------------

    def get_statuses(self) -> list[Status]:
        """Fetch the result statuses configured on the account.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug("Requesting getStatuses from TestRail")
        response = self._call("GET", "get_statuses")
        raise_for_common_error_statuses(response, "Could not get TestRail statuses")
        return self._parse(
            response,
            "Could not get TestRail statuses",
            lambda body: [Status.from_dict(item) for item in body],
        )

    def get_project(self, project_id: int) -> Project:
        """Fetch a project.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug("Requesting getProject from TestRail for projectId [ %s ]", project_id)
        response = self._call("GET", f"get_project/{project_id}")
        self._check(
            response,
            f"Could not get TestRail project: {project_id}",
            bad_request=f"Invalid or unknown project: {project_id}",
            forbidden=f"No access to TestRail project: {project_id}",
        )
        return self._parse(response, f"Could not get TestRail project: {project_id}", Project.from_dict)

    def get_suite(self, suite_id: int) -> Suite:
        """Fetch a test suite.

        Raises:
            TestRailError: If TestRail returns an error response.
        """
        logger.debug("Requesting getSuite from TestRail for suiteId [ %s ]", suite_id)
        response = self._call("GET", f"get_suite/{suite_id}")
        self._check(
            response,
            f"Could not get TestRail test suite: {suite_id}",
            bad_request=f"Invalid or unknown test suite: {suite_id}",
            forbidden=f"No access to TestRail project for suiteId: {suite_id}",
        )
        return self._parse(response, f"Could not get TestRail test suite: {suite_id}", Suite.from_dict)
