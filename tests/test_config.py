"""Tests for configuration loading module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from testrail_uploader.config import (
    ConfigError,
    has_env_config,
    load_from_env,
    load_from_json,
    load_settings,
)

VALID_CONFIG = {
    "url": "https://example.testrail.io",
    "email": "ci@example.com",
    "api_key": "json-key",
    "project_id": 1,
    "suite_id": 2,
    "plan_name": "Nightly",
    "run_name": "chrome",
}

VALID_ENV = {
    "TESTRAIL_URL": "https://env.testrail.io",
    "TESTRAIL_EMAIL": "env@example.com",
    "TESTRAIL_API_KEY": "env-key",
    "TESTRAIL_PROJECT_ID": "3",
    "TESTRAIL_SUITE_ID": "4",
    "TESTRAIL_PLAN_NAME": "Release",
    "TESTRAIL_RUN_NAME": "firefox",
}


def clean_env() -> dict[str, str]:
    """Current environment without any TESTRAIL_* variables."""
    return {k: v for k, v in os.environ.items() if not k.startswith("TESTRAIL_")}


def write_config(tmp_path: Path, data) -> Path:
    config_file = tmp_path / "testrail.json"
    config_file.write_text(json.dumps(data))
    return config_file


class TestLoadFromJson:
    """Tests for load_from_json function."""

    def test_valid_config_with_defaults(self, tmp_path: Path):
        """Load a config with only the required fields."""
        settings = load_from_json(str(write_config(tmp_path, VALID_CONFIG)))

        assert settings.testrail.url == "https://example.testrail.io"
        assert settings.testrail.api_key == "json-key"
        assert settings.project.project_id == 1
        assert settings.project.suite_id == 2
        assert settings.project.add_all_tests_to_plan is False
        assert settings.project.status_skipped == "blocked"
        assert settings.proxy is None

    def test_optional_fields(self, tmp_path: Path):
        """Status names, add_all_tests_to_plan and proxy are read when present."""
        data = dict(
            VALID_CONFIG,
            add_all_tests_to_plan=True,
            status_skipped="retest",
            proxy="http://proxy:8080",
        )

        settings = load_from_json(str(write_config(tmp_path, data)))

        assert settings.project.add_all_tests_to_plan is True
        assert settings.project.status_skipped == "retest"
        assert settings.project.status_failed == "failed"
        assert settings.proxy == "http://proxy:8080"

    def test_missing_file_raises_error(self, tmp_path: Path):
        """Raise ConfigError when config file doesn't exist."""
        with pytest.raises(ConfigError, match="Config file not found"):
            load_from_json(str(tmp_path / "nonexistent.json"))

    def test_malformed_json_raises_error(self, tmp_path: Path):
        """Raise ConfigError when config file contains invalid JSON."""
        config_file = tmp_path / "testrail.json"
        config_file.write_text("{ invalid json }")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_from_json(str(config_file))

    def test_non_object_raises_error(self, tmp_path: Path):
        """Raise ConfigError when the file is not a JSON object."""
        with pytest.raises(ConfigError, match="JSON object"):
            load_from_json(str(write_config(tmp_path, [VALID_CONFIG])))

    def test_missing_required_field_raises_error(self, tmp_path: Path):
        """Raise ConfigError naming the missing field."""
        data = {k: v for k, v in VALID_CONFIG.items() if k != "run_name"}

        with pytest.raises(ConfigError, match="Missing required field 'run_name'"):
            load_from_json(str(write_config(tmp_path, data)))

    def test_non_integer_id_raises_error(self, tmp_path: Path):
        """Raise ConfigError when an id is not an integer."""
        with pytest.raises(ConfigError, match="project_id"):
            load_from_json(str(write_config(tmp_path, dict(VALID_CONFIG, project_id="one"))))


class TestLoadFromEnv:
    """Tests for load_from_env function."""

    def test_valid_env_vars_parsed_correctly(self):
        """Parse valid TESTRAIL_* environment variables."""
        with patch.dict(os.environ, VALID_ENV, clear=False):
            settings = load_from_env()

        assert settings.testrail.url == "https://env.testrail.io"
        assert settings.testrail.email == "env@example.com"
        assert settings.project.project_id == 3
        assert settings.project.suite_id == 4
        assert settings.project.run_name == "firefox"

    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("YES", True), ("no", False)])
    def test_add_all_tests_flag(self, raw, expected):
        """The add-all flag accepts common boolean spellings."""
        env = dict(clean_env(), **VALID_ENV, TESTRAIL_ADD_ALL_TESTS_TO_PLAN=raw)

        with patch.dict(os.environ, env, clear=True):
            settings = load_from_env()

        assert settings.project.add_all_tests_to_plan is expected

    def test_invalid_flag_raises_error(self):
        """Raise ConfigError for an unrecognised boolean."""
        env = dict(clean_env(), **VALID_ENV, TESTRAIL_ADD_ALL_TESTS_TO_PLAN="maybe")

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigError, match="TESTRAIL_ADD_ALL_TESTS_TO_PLAN"):
                load_from_env()

    def test_invalid_integer_raises_error(self):
        """Raise ConfigError when an id variable is not a number."""
        env = dict(clean_env(), **dict(VALID_ENV, TESTRAIL_SUITE_ID="abc"))

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigError, match="TESTRAIL_SUITE_ID"):
                load_from_env()

    def test_missing_variable_raises_error(self):
        """Raise ConfigError when a required variable is missing."""
        env = {k: v for k, v in VALID_ENV.items() if k != "TESTRAIL_API_KEY"}

        with patch.dict(os.environ, dict(clean_env(), **env), clear=True):
            with pytest.raises(ConfigError, match="api_key"):
                load_from_env()


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_env_vars_take_priority(self, tmp_path: Path):
        """Environment variables take priority over testrail.json."""
        config_file = write_config(tmp_path, VALID_CONFIG)

        with patch.dict(os.environ, dict(clean_env(), **VALID_ENV), clear=True):
            assert has_env_config() is True
            settings = load_settings(config_path=str(config_file))

        assert settings.testrail.url == "https://env.testrail.io"

    def test_falls_back_to_config_json(self, tmp_path: Path):
        """Fall back to testrail.json when no env vars exist."""
        config_file = write_config(tmp_path, VALID_CONFIG)

        with patch.dict(os.environ, clean_env(), clear=True):
            assert has_env_config() is False
            settings = load_settings(config_path=str(config_file))

        assert settings.testrail.url == "https://example.testrail.io"

    def test_raises_error_when_neither_exists(self, tmp_path: Path):
        """Raise ConfigError when no env vars and no config file."""
        with patch.dict(os.environ, clean_env(), clear=True):
            with pytest.raises(ConfigError, match="No TestRail configuration found"):
                load_settings(config_path=str(tmp_path / "nonexistent.json"))
