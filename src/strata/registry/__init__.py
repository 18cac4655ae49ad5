"""
Class registries for turning typed records into objects.
"""

from strata.registry._class_registry import (
    ClassRegistry,
    TypedRegistry,
    get_object_from_class_registry,
)
from strata.registry._override_registry import ModuleEntry, OverrideClassRegistry

__all__ = [
    "ClassRegistry",
    "ModuleEntry",
    "OverrideClassRegistry",
    "TypedRegistry",
    "get_object_from_class_registry",
]
