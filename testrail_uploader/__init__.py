"""
TestRail Result Uploader.

A typed client over the TestRail API that makes sure plans, runs and
case membership exist before posting batches of test results.
"""

__version__ = "1.0.0"

from testrail_uploader.client import TestRailClient
from testrail_uploader.errors import StatusMappingError, TestRailError, TestRailErrorStatus
from testrail_uploader.models import (
    ProjectConfiguration,
    TestRailConfig,
    TestResultStatus,
    UploadResult,
)
from testrail_uploader.uploader import ResultUploader

__all__ = [
    "ProjectConfiguration",
    "ResultUploader",
    "StatusMappingError",
    "TestRailClient",
    "TestRailConfig",
    "TestRailError",
    "TestRailErrorStatus",
    "TestResultStatus",
    "UploadResult",
    "__version__",
]
