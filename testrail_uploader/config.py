"""Configuration loading for the TestRail result uploader.

Supports two configuration sources:
1. Environment variables (for CI/CD) - takes priority
2. testrail.json file (for local development)

Environment Variable Format:
    TESTRAIL_{KEY}=value, one variable per setting

Example:
    TESTRAIL_URL=https://example.testrail.io
    TESTRAIL_EMAIL=ci@example.com
    TESTRAIL_API_KEY=your-api-key
    TESTRAIL_PROJECT_ID=1
    TESTRAIL_SUITE_ID=2
    TESTRAIL_PLAN_NAME=Nightly
    TESTRAIL_RUN_NAME=chrome
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from testrail_uploader.models import ProjectConfiguration, TestRailConfig


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


@dataclass
class UploaderSettings:
    """Everything needed to initialize a ResultUploader."""

    testrail: TestRailConfig
    project: ProjectConfiguration
    proxy: Optional[str] = None


# Required fields, in the order they are reported
REQUIRED_FIELDS = [
    "url",
    "email",
    "api_key",
    "project_id",
    "suite_id",
    "plan_name",
    "run_name",
]

INT_FIELDS = {"project_id", "suite_id"}

# Remote status name overrides
STATUS_FIELDS = [
    "status_passed",
    "status_failed",
    "status_skipped",
    "status_error",
    "status_canceled",
]

ENV_PREFIX = "TESTRAIL_"

TRUE_VALUES = {"true", "1", "yes"}
FALSE_VALUES = {"false", "0", "no"}


def _build_settings(values: dict[str, Any], source: str) -> UploaderSettings:
    for field in REQUIRED_FIELDS:
        if values.get(field) in (None, ""):
            raise ConfigError(f"Missing required field '{field}' in {source}")

    for field in INT_FIELDS:
        value = values[field]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Field '{field}' in {source} must be an integer, got {value!r}")

    add_all = values.get("add_all_tests_to_plan", False)
    if not isinstance(add_all, bool):
        raise ConfigError(f"Field 'add_all_tests_to_plan' in {source} must be a boolean, got {add_all!r}")

    statuses = {field: values[field] for field in STATUS_FIELDS if values.get(field)}

    return UploaderSettings(
        testrail=TestRailConfig(
            url=values["url"],
            email=values["email"],
            api_key=values["api_key"],
        ),
        project=ProjectConfiguration(
            project_id=values["project_id"],
            suite_id=values["suite_id"],
            add_all_tests_to_plan=add_all,
            plan_name=values["plan_name"],
            run_name=values["run_name"],
            **statuses,
        ),
        proxy=values.get("proxy") or None,
    )


def load_from_json(config_path: str) -> UploaderSettings:
    """Load uploader settings from a JSON file.

    Args:
        config_path: Path to the testrail.json file.

    Returns:
        The parsed UploaderSettings.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON,
                    or is missing or mistypes required fields.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a JSON object: {config_path}")

    return _build_settings(data, config_path)


def _parse_bool(env_key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {env_key}: {raw!r}")


def load_from_env() -> UploaderSettings:
    """Load uploader settings from TESTRAIL_* environment variables.

    Returns:
        The parsed UploaderSettings.

    Raises:
        ConfigError: If a required variable is missing or malformed.
    """
    values: dict[str, Any] = {}
    for field in REQUIRED_FIELDS + STATUS_FIELDS + ["proxy"]:
        env_value = os.environ.get(ENV_PREFIX + field.upper())
        if env_value:
            values[field] = env_value

    for field in INT_FIELDS:
        if field not in values:
            continue
        env_key = ENV_PREFIX + field.upper()
        try:
            values[field] = int(values[field])
        except ValueError as e:
            raise ConfigError(f"Invalid integer for {env_key}: {values[field]!r}") from e

    add_all_key = ENV_PREFIX + "ADD_ALL_TESTS_TO_PLAN"
    if os.environ.get(add_all_key):
        values["add_all_tests_to_plan"] = _parse_bool(add_all_key, os.environ[add_all_key])

    return _build_settings(values, "environment")


def has_env_config() -> bool:
    """Check if the TESTRAIL_URL environment variable exists."""
    return bool(os.environ.get(ENV_PREFIX + "URL"))


def load_settings(config_path: str = "testrail.json") -> UploaderSettings:
    """Load uploader settings with environment priority.

    Priority order:
    1. Environment variables (if TESTRAIL_URL is set)
    2. testrail.json file

    Args:
        config_path: Path to testrail.json (used as fallback).

    Returns:
        The parsed UploaderSettings.

    Raises:
        ConfigError: If neither source is available, or the chosen one
                     is invalid.
    """
    if has_env_config():
        return load_from_env()
    if Path(config_path).exists():
        return load_from_json(config_path)

    raise ConfigError(
        "No TestRail configuration found. Set TESTRAIL_* environment variables "
        f"or create a {config_path} file."
    )
