"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with STRATA_ prefix
3. .env file (if present)
4. Field defaults

Example:
  STRATA_DEFAULT_UNIQUE_KEY=id
  STRATA_LOG_LEVEL=DEBUG
"""

import logging as _logging
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import strata.constants as constants


class Settings(_pydantic_settings.BaseSettings):
    """
    Strata configuration settings.

    All settings can be overridden via environment variables with the
    STRATA_ prefix.
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix=constants.ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_unique_key: str = _pydantic.Field(
        default=constants.DEFAULT_UNIQUE_KEY,
        min_length=1,
        description="Key field of collections created by a Workspace",
    )

    dynamic_module_id: str = _pydantic.Field(
        default=constants.DEFAULT_DYNAMIC_MODULE_ID,
        min_length=1,
        description="Id of the default dynamic module",
    )

    log_level: str = _pydantic.Field(
        default="WARNING",
        description="Log level used by the command line interface",
    )

    @_pydantic.field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(_logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env."""
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]
