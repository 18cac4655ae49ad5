"""
Exception types raised by Strata.

Most runtime conditions in the collection stack are non-fatal: rejected
insertions return None and broken records are logged and skipped. The
exceptions here cover programmer errors only.
"""

from __future__ import annotations


class StrataError(Exception):
    """Base class for all Strata errors."""

    pass


class CollectionAlreadyWrappedError(StrataError):
    """Raised when wrapping a collection that already has an override layer."""

    def __init__(self) -> None:
        super().__init__(
            "Cannot transform collection, collection already is an OverrideCollection"
        )


class CollectionDestroyedError(StrataError):
    """Raised when a destroyed collection is used again."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: collection has been destroyed")


class MissingUniqueKeyError(StrataError, ValueError):
    """Raised when an override layer is requested for a non-unique collection."""

    def __init__(self) -> None:
        super().__init__("Override collections require a collection with a unique key")


class ModuleNotLoadedError(StrataError, KeyError):
    """Raised when an operation names a module that is not loaded."""

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        super().__init__(f"Module {module_id!r} is not managed by this workspace")

    def __str__(self) -> str:
        return str(self.args[0])


class ClassNotRegisteredError(StrataError, KeyError):
    """Raised when a class name has no registered constructor."""

    def __init__(self, class_name: str) -> None:
        self.class_name = class_name
        super().__init__(f"Could not find constructor {class_name}")

    def __str__(self) -> str:
        return str(self.args[0])


class ModuleConfigError(StrataError):
    """Error loading or parsing a module configuration."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Error in module config {source}: {message}")
