"""Tests for configuration settings."""

import os as _os
import unittest.mock as _mock

import pydantic as _pydantic
import pytest as _pytest

import strata.config as config


def clean_env() -> dict[str, str]:
    """Return environment dict without STRATA_ variables."""
    return {k: v for k, v in _os.environ.items() if not k.startswith("STRATA_")}


class TestSettingsDefaults:
    """Default values with a clean environment."""

    def test_defaults(self) -> None:
        with _mock.patch.dict(_os.environ, clean_env(), clear=True):
            settings = config.Settings.construct_without_dotenv()

        assert settings.default_unique_key == "name"
        assert settings.dynamic_module_id == "_defaultDynamicModule"
        assert settings.log_level == "WARNING"


class TestSettingsEnvironment:
    """STRATA_ environment variables."""

    def test_env_overrides(self) -> None:
        env = clean_env() | {
            "STRATA_DEFAULT_UNIQUE_KEY": "id",
            "STRATA_DYNAMIC_MODULE_ID": "user",
        }
        with _mock.patch.dict(_os.environ, env, clear=True):
            settings = config.Settings.construct_without_dotenv()

        assert settings.default_unique_key == "id"
        assert settings.dynamic_module_id == "user"

    def test_log_level_is_normalized(self) -> None:
        with _mock.patch.dict(_os.environ, clean_env() | {"STRATA_LOG_LEVEL": "debug"}, clear=True):
            settings = config.Settings.construct_without_dotenv()
        assert settings.log_level == "DEBUG"

    def test_constructor_beats_environment(self) -> None:
        with _mock.patch.dict(
            _os.environ, clean_env() | {"STRATA_DEFAULT_UNIQUE_KEY": "id"}, clear=True
        ):
            settings = config.Settings.construct_without_dotenv(default_unique_key="key")
        assert settings.default_unique_key == "key"


class TestSettingsValidation:
    def test_unknown_log_level(self) -> None:
        with _pytest.raises(_pydantic.ValidationError):
            config.Settings.construct_without_dotenv(log_level="LOUD")

    def test_empty_module_id(self) -> None:
        with _pytest.raises(_pydantic.ValidationError):
            config.Settings.construct_without_dotenv(dynamic_module_id="")
