"""Error taxonomy for TestRail interactions.

Every failure surfaced by the client, validator or result logger is a
TestRailError carrying one TestRailErrorStatus. The status fixes the
human-readable base message and the default retryability:

Retryable:
- Rate limiting, maintenance windows, socket timeouts
- Bad requests, invalid routes and unknown errors (the caller decides)

Not Retryable:
- Access denied (permissions, completed projects/suites)
- Missing credentials
"""

from enum import Enum
from typing import Optional


class TestRailErrorStatus(Enum):
    """Common TestRail failure kinds with their base messages."""

    NO_CREDENTIALS = "TestRail credentials have not been configured."
    CASE_ID = "TestRail invalid case ID."
    BAD_REQUEST = "TestRail rejected your request for invalid input."
    HIT_RATE_LIMIT = "TestRail rejected your request because the rate limit has been reached."
    AUTHENTICATION_FAILED = "TestRail authentication failed."
    ACCESS_DENIED = "TestRail not allowing access to resource."
    INVALID_ROUTE = "The given TestRail endpoint does not exist."
    MAINTENANCE = "TestRail is performing maintenance.  Try again later."
    SOCKET_TIMEOUT = "Timed out waiting for TestRail to respond."
    UNKNOWN_ERROR = "An unknown TestRail error has occurred."

    @property
    def message(self) -> str:
        return self.value


# Kinds that are never worth retrying, whatever the call
NON_RETRYABLE_STATUSES = frozenset({
    TestRailErrorStatus.ACCESS_DENIED,
    TestRailErrorStatus.NO_CREDENTIALS,
})

# Transient kinds a caller may log and continue past
NON_BLOCKING_STATUSES = frozenset({
    TestRailErrorStatus.HIT_RATE_LIMIT,
    TestRailErrorStatus.MAINTENANCE,
    TestRailErrorStatus.UNKNOWN_ERROR,
})


class TestRailError(Exception):
    """Raised when a TestRail call or a TestRail-side validation fails."""

    def __init__(
        self,
        status: TestRailErrorStatus,
        details: Optional[str] = None,
        retryable: Optional[bool] = None,
        retry_after: Optional[float] = None,
    ):
        message = status.message
        if details is not None:
            message += f" Details: {details}"
        super().__init__(message)
        self.status = status
        self.details = details
        if retryable is None:
            retryable = status not in NON_RETRYABLE_STATUSES
        self.retryable = retryable
        # Seconds TestRail asked callers to wait (Retry-After on 429)
        self.retry_after = retry_after

    @property
    def is_blocking(self) -> bool:
        """True unless the failure is a transient, non-blocking kind."""
        return self.status not in NON_BLOCKING_STATUSES


class StatusMappingError(RuntimeError):
    """Raised when configured status names cannot be mapped onto TestRail.

    Not a TestRailError: unusable configuration aborts initialization.
    """

    pass
