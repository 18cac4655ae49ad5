"""
Module-aware class registry.

Modules can register classes on top of a shared core registry. As with
override collections, a module registering a class name that is already
registered hides the earlier entry; unregistering restores the most recent
hidden entry, or the core class, in last-in-first-out order.
"""

from __future__ import annotations

import collections.abc as _abc
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import strata.events as events
import strata.registry._class_registry as _class_registry

_logger = _logging.getLogger(__name__)

T = _typing.TypeVar("T")


@_dataclasses.dataclass(frozen=True)
class ModuleEntry(_typing.Generic[T]):
    """A constructor registered by a module."""

    module_id: str
    ctor: _typing.Callable[..., T]


class OverrideClassRegistry(_typing.Generic[T]):
    """
    Layers module registrations over a core ClassRegistry.

    Events:
        replaced: Raised with the class name when the visible constructor
            for that name changes to a different registration.
        removed: Raised with the class name when no constructor is left.
    """

    def __init__(self, core_registry: _class_registry.ClassRegistry[T]) -> None:
        self._core_registry: _class_registry.ClassRegistry[T] | None = core_registry
        self._class_map: dict[str, ModuleEntry[T]] = {}
        self._class_shadows: dict[str, list[ModuleEntry[T]]] = {}

        self.replaced: events.Event[str] = events.Event()
        self.removed: events.Event[str] = events.Event()

    @property
    def _core(self) -> _class_registry.ClassRegistry[T]:
        if self._core_registry is None:
            raise RuntimeError("OverrideClassRegistry has been destroyed")
        return self._core_registry

    def get_class_names(self) -> list[str]:
        names = dict.fromkeys(self._class_map)
        names.update(dict.fromkeys(self._core.get_class_names()))
        return list(names)

    def register_class(
        self,
        module_id: str,
        class_name: str,
        ctor: _typing.Callable[..., T],
    ) -> None:
        """Register ctor for module_id, hiding any visible class of that name."""
        replaced = self.has_class(class_name)

        current = self._class_map.get(class_name)
        if current is not None:
            self._class_shadows.setdefault(class_name, []).append(current)
        self._class_map[class_name] = ModuleEntry(module_id, ctor)

        if replaced:
            self.replaced.raise_event(class_name)

    def unregister_class(self, module_id: str, class_name: str) -> None:
        """
        Unregister a class registered by module_id.

        Classes of the core registry cannot be unregistered here. If the
        module's registration is the visible one, the latest shadow (or the
        core class) becomes visible and replaced is raised; otherwise
        removed is raised.
        """
        shadows = self._class_shadows.get(class_name)
        if shadows is not None:
            kept = [entry for entry in shadows if entry.module_id != module_id]
            if not kept:
                del self._class_shadows[class_name]
            elif len(kept) != len(shadows):
                self._class_shadows[class_name] = kept

        current = self._class_map.get(class_name)
        if current is None or current.module_id != module_id:
            return

        del self._class_map[class_name]
        shadows = self._class_shadows.get(class_name)
        if shadows:
            self._class_map[class_name] = shadows.pop()
            if not shadows:
                del self._class_shadows[class_name]
            self.replaced.raise_event(class_name)
        elif self._core.has_class(class_name):
            self.replaced.raise_event(class_name)
        else:
            self.removed.raise_event(class_name)

    def get_class(self, class_name: str) -> _typing.Callable[..., T] | None:
        entry = self._class_map.get(class_name)
        if entry is not None:
            return entry.ctor
        return self._core.get_class(class_name)

    def has_class(self, class_name: str) -> bool:
        return class_name in self._class_map or self._core.has_class(class_name)

    def create(self, class_name: str, *args: _typing.Any, **kwargs: _typing.Any) -> T | None:
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
        class_name = _class_registry._require_type(options)
        return self.create(class_name, options, *args)

    def remove_module(self, module_id: str) -> None:
        """Unregister every class module_id registered."""
        for class_name in list(self._class_map):
            self.unregister_class(module_id, class_name)

    def destroy(self) -> None:
        self._core_registry = None
        self._class_map.clear()
        self._class_shadows.clear()
        self.replaced.destroy()
        self.removed.destroy()
