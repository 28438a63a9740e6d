"""HTTP client factory for the TestRail API.

Creates httpx clients configured for a TestRail instance, with Basic
authentication, optional proxy, and two event hooks:

- rewrite_api_url moves each route into TestRail's query-based routing
  (``/get_plan/7`` becomes ``/index.php?/api/v2/get_plan/7``)
- log_failed_response logs every unsuccessful response with its body
"""

import logging
from typing import Optional

import httpx

from testrail_uploader.errors import TestRailError, TestRailErrorStatus
from testrail_uploader.models import TestRailConfig

logger = logging.getLogger(__name__)

API_BASE_PATH = "/index.php"
API_QUERY_PREFIX = "/api/v2"

DEFAULT_TIMEOUT = 60.0

# Cap on how much of an error body ends up in the log
MAX_LOGGED_BODY_CHARS = 20_000


def rewrite_api_url(request: httpx.Request, base_path: str = "") -> None:
    """Rewrite a request onto TestRail's ``index.php?/api/v2/`` routing.

    Args:
        request: The outgoing request; its URL is replaced in place.
        base_path: Path prefix of the TestRail installation (from the
                   configured base URL), kept in front of index.php.
    """
    base_path = base_path.rstrip("/")
    route = request.url.path
    if base_path and route.startswith(base_path):
        route = route[len(base_path):]

    query = request.url.query.decode("ascii")
    api_query = API_QUERY_PREFIX + route
    if query:
        api_query += "&" + query

    logger.debug("Rewriting TestRail route %s onto %s", route, API_BASE_PATH)
    request.url = request.url.copy_with(
        path=base_path + API_BASE_PATH,
        query=api_query.encode("ascii"),
    )


def log_failed_response(response: httpx.Response) -> None:
    """Log status, host, path and body of an unsuccessful response."""
    if response.is_success:
        return

    body = response.read().decode("utf-8", errors="replace")
    logger.info(
        "Failed call with response status: '%s' to host: '%s' with path: '%s' and response body '%s'",
        response.status_code,
        response.request.url.host,
        response.request.url.path,
        body[:MAX_LOGGED_BODY_CHARS],
    )


def build_http_client(
    config: TestRailConfig,
    proxy: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an httpx client for the given TestRail configuration.

    Args:
        config: TestRail URL and credentials.
        proxy: Optional proxy URL for all outbound calls.
        timeout: Socket timeout in seconds.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Returns:
        An httpx client whose relative routes (e.g. ``get_plan/7``)
        resolve against the TestRail API.

    Raises:
        TestRailError: NO_CREDENTIALS if the URL, email or API key is blank.
    """
    missing = [
        name
        for name, value in (("url", config.url), ("email", config.email), ("api_key", config.api_key))
        if not value or not value.strip()
    ]
    if missing:
        raise TestRailError(
            TestRailErrorStatus.NO_CREDENTIALS,
            f"Missing TestRail settings: {', '.join(missing)}",
        )

    base_url = httpx.URL(config.url.rstrip("/") + "/")
    base_path = base_url.path

    def _rewrite(request: httpx.Request) -> None:
        rewrite_api_url(request, base_path)

    return httpx.Client(
        base_url=base_url,
        auth=httpx.BasicAuth(config.email, config.api_key),
        headers={"Content-Type": "application/json", "Accept": "application/json"},
        proxy=proxy,
        timeout=timeout,
        transport=transport,
        event_hooks={
            "request": [_rewrite],
            "response": [log_failed_response],
        },
    )
