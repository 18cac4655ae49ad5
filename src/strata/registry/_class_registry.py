"""
Class registries: map class names to constructors.

Serialized items carry a "type" field naming their class. Registries turn
such records back into objects, which makes them a natural deserializer
for override collections (see get_object_from_class_registry).
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import typing as _typing

import strata.errors as errors

_logger = _logging.getLogger(__name__)

T = _typing.TypeVar("T")


class TypedRegistry(_typing.Protocol[T]):
    """What get_object_from_class_registry needs from a registry."""

    def create_from_type_options(
        self,
        options: _abc.Mapping[str, _typing.Any],
        *args: _typing.Any,
    ) -> T | None: ...


def _require_type(options: _typing.Any) -> str:
    if not isinstance(options, _abc.Mapping):
        raise TypeError(f"Expected type options mapping, got {type(options).__name__}")
    class_name = options.get("type")
    if not isinstance(class_name, str):
        raise TypeError(f"Expected a string type, got {class_name!r}")
    return class_name


class ClassRegistry(_typing.Generic[T]):
    """
    A name -> constructor registry.

    Registering a name twice replaces the earlier constructor.
    """

    def __init__(self) -> None:
        self._classes: dict[str, _typing.Callable[..., T]] = {}

    def register_class(self, class_name: str, ctor: _typing.Callable[..., T]) -> None:
        if class_name in self._classes:
            _logger.debug("Replacing registered class %s", class_name)
        self._classes[class_name] = ctor

    def unregister_class(self, class_name: str) -> None:
        self._classes.pop(class_name, None)

    def get_class(self, class_name: str) -> _typing.Callable[..., T] | None:
        return self._classes.get(class_name)

    def get_class_strict(self, class_name: str) -> _typing.Callable[..., T]:
        """
        Like get_class, but raises for unknown names.

        Raises:
            ClassNotRegisteredError: If class_name is not registered.
        """
        ctor = self.get_class(class_name)
        if ctor is None:
            raise errors.ClassNotRegisteredError(class_name)
        return ctor

    def has_class(self, class_name: str) -> bool:
        return class_name in self._classes

    def get_class_names(self) -> list[str]:
        return list(self._classes)

    def create(self, class_name: str, *args: _typing.Any, **kwargs: _typing.Any) -> T | None:
        """
        Instantiate a registered class.

        Returns:
            The new object, or None (logged) if class_name is unknown.
        """
        ctor = self.get_class(class_name)
        if ctor is None:
            _logger.error("Could not find constructor %s", class_name)
            return None
        return ctor(*args, **kwargs)

    def create_from_type_options(
        self,
        options: _abc.Mapping[str, _typing.Any],
        *args: _typing.Any,
    ) -> T | None:
        """
        Instantiate options["type"], passing options and args to the constructor.

        Raises:
            TypeError: If options is not a mapping with a string "type".
        """
        class_name = _require_type(options)
        return self.create(class_name, options, *args)


def get_object_from_class_registry(
    registry: TypedRegistry[T],
    options: _abc.Mapping[str, _typing.Any],
    *args: _typing.Any,
) -> T | None:
    """
    Create an object from type options, never raising.

    Unknown types, malformed options and constructor errors are logged and
    produce None.
    """
    try:
        return registry.create_from_type_options(options, *args)
    except Exception as e:
        type_name = options.get("type") if isinstance(options, _abc.Mapping) else None
        _logger.error("Failed to create object of type %s: %s", type_name, e)
        return None
