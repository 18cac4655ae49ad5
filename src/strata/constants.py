"""
Shared constants for Strata.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

DEFAULT_UNIQUE_KEY = "name"
"""Default key field used to enforce uniqueness within a collection."""

DEFAULT_DYNAMIC_MODULE_ID = "_defaultDynamicModule"
"""Module id stamped on items added while no other module is dynamic."""

ENV_PREFIX = "STRATA_"
"""Prefix for environment variables read by Settings."""
