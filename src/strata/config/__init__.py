"""
Configuration module for Strata.

Uses pydantic-settings for environment variable loading.
"""

from strata.config.settings import Settings

__all__ = ["Settings"]
