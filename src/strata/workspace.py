"""
Workspace: named override collections shared by configuration modules.

A workspace owns a set of override collections that all stamp new items
with the same dynamic module id. Modules are added and removed as a
whole: adding a module parses its records into every collection it names,
removing it retracts them again and resurfaces whatever it overrode.

Module mutations are serialized. A second add_module() or remove_module()
waits until the running one has finished.
"""

from __future__ import annotations

import asyncio as _asyncio
import logging as _logging
import typing as _typing

import strata.collections as strata_collections
import strata.config as config
import strata.errors as errors
import strata.events as events
import strata.modules as strata_modules

_logger = _logging.getLogger(__name__)


class Workspace:
    """
    Manages modules and the override collections they contribute to.

    Example:
        workspace = Workspace()
        layers = workspace.create_collection("layers", indexed=True)
        await workspace.add_module(
            strata_modules.ModuleConfig(id="base", collections={"layers": [{"name": "osm"}]})
        )
        layers.get_module_id(layers.get_by_key("osm"))  # "base"
    """

    def __init__(self, settings: config.Settings | None = None) -> None:
        """
        Initialize the workspace.

        Args:
            settings: Settings to use (defaults to Settings()).
        """
        self._settings = settings or config.Settings()
        self._default_module = strata_modules.ModuleConfig(id=self._settings.dynamic_module_id)
        self._dynamic_module_id = self._default_module.id

        self._modules: strata_collections.IndexedCollection[strata_modules.ModuleConfig] = (
            strata_collections.IndexedCollection("id")
        )
        self._modules.add(self._default_module)

        self._collections: dict[str, strata_collections.OverrideCollection[_typing.Any]] = {}
        self._mutation_lock = _asyncio.Lock()

        self.dynamic_module_id_changed: events.Event[str] = events.Event()
        self.module_added: events.Event[strata_modules.ModuleConfig] = events.Event()
        self.module_removed: events.Event[strata_modules.ModuleConfig] = events.Event()

    @property
    def settings(self) -> config.Settings:
        return self._settings

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    @property
    def collections(self) -> dict[str, strata_collections.OverrideCollection[_typing.Any]]:
        """Registered collections in registration (and parse) order."""
        return dict(self._collections)

    def get_collection(self, name: str) -> strata_collections.OverrideCollection[_typing.Any] | None:
        return self._collections.get(name)

    def add_collection(
        self,
        name: str,
        collection: strata_collections.OverrideCollection[_typing.Any],
    ) -> strata_collections.OverrideCollection[_typing.Any]:
        """
        Register an existing override collection under name.

        Raises:
            ValueError: If name is already taken.
        """
        if name in self._collections:
            raise ValueError(f"Collection {name!r} already exists")
        self._collections[name] = collection
        return collection

    def create_collection(
        self,
        name: str,
        *,
        indexed: bool = False,
        unique_key: str | None = None,
        serialize_item: _typing.Callable[[_typing.Any], _typing.Any] | None = None,
        deserialize_item: _typing.Callable[[_typing.Any], _typing.Any] | None = None,
        validator_type: type | None = None,
        determine_shadow_index: (
            _typing.Callable[[_typing.Any, _typing.Any, int | None], int | None] | None
        ) = None,
    ) -> strata_collections.OverrideCollection[_typing.Any]:
        """
        Create and register an override collection bound to this workspace.

        Args:
            name: Collection name, as used in module configs.
            indexed: Whether to wrap an IndexedCollection.
            unique_key: Key field (defaults to settings.default_unique_key).

        Other arguments are passed to OverrideCollection.
        """
        key = unique_key or self._settings.default_unique_key
        base: strata_collections.Collection[_typing.Any] = (
            strata_collections.IndexedCollection(key) if indexed else strata_collections.Collection(key)
        )
        collection = strata_collections.OverrideCollection(
            base,
            self._get_dynamic_module_id,
            serialize_item=serialize_item,
            deserialize_item=deserialize_item,
            validator_type=validator_type,
            determine_shadow_index=determine_shadow_index,
        )
        return self.add_collection(name, collection)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    @property
    def modules(self) -> list[strata_modules.ModuleConfig]:
        return list(self._modules)

    def get_module(self, module_id: str) -> strata_modules.ModuleConfig | None:
        return self._modules.get_by_key(module_id)

    @property
    def dynamic_module_id(self) -> str:
        return self._dynamic_module_id

    def _get_dynamic_module_id(self) -> str:
        return self._dynamic_module_id

    def set_dynamic_module(self, module_id: str) -> None:
        """
        Make module_id the module new items are attributed to.

        Raises:
            ModuleNotLoadedError: If the module has not been added.
        """
        if not self._modules.has_key(module_id):
            raise errors.ModuleNotLoadedError(module_id)
        if self._dynamic_module_id != module_id:
            self._dynamic_module_id = module_id
            self.dynamic_module_id_changed.raise_event(module_id)

    def reset_dynamic_module(self) -> None:
        """Make the default dynamic module current again."""
        self.set_dynamic_module(self._default_module.id)

    async def _parse_module(self, module: strata_modules.ModuleConfig) -> None:
        for name, collection in self._collections.items():
            await collection.parse_items(module.items_for(name), module.id)

        for name in module.collections:
            if name not in self._collections:
                _logger.warning(
                    "Module %s contributes to unknown collection %s", module.id, name
                )

    async def _remove_module_items(self, module_id: str) -> None:
        for collection in self._collections.values():
            collection.remove_module(module_id)
        # Restores with async deserializers finish before anyone is notified
        for collection in self._collections.values():
            await collection.settled()

    async def add_module(self, module: strata_modules.ModuleConfig) -> None:
        """
        Parse module into the workspace collections.

        Adding a module id that is already loaded is a no-op. If parsing
        fails, everything the module contributed so far is removed and the
        error is re-raised.
        """
        async with self._mutation_lock:
            if self._modules.has_key(module.id):
                _logger.info("Module with id %s already loaded", module.id)
                return

            try:
                await self._parse_module(module)
                self._modules.add(module)
            except Exception:
                await self._remove_module_items(module.id)
                raise

        _logger.debug("Added module %s", module.id)
        self.module_added.raise_event(module)

    async def remove_module(self, module_id: str) -> None:
        """
        Retract everything module_id contributed.

        Removing an unknown module is a no-op. If the removed module was the
        dynamic module, the default dynamic module becomes current.

        Raises:
            ValueError: If module_id is the default dynamic module.
        """
        if module_id == self._default_module.id:
            raise ValueError("Cannot remove the default dynamic module")

        async with self._mutation_lock:
            module = self._modules.get_by_key(module_id)
            if module is None:
                _logger.info("Module with id %s has already been removed", module_id)
                return

            await self._remove_module_items(module_id)
            self._modules.remove(module)
            if self._dynamic_module_id == module_id:
                self.reset_dynamic_module()

        _logger.debug("Removed module %s", module_id)
        self.module_removed.raise_event(module)

    def serialize_module(self, module_id: str) -> strata_modules.ModuleConfig:
        """
        Reconstruct the configuration module_id contributes to the current state.

        Raises:
            ModuleNotLoadedError: If the module has not been added.
        """
        module = self._modules.get_by_key(module_id)
        if module is None:
            raise errors.ModuleNotLoadedError(module_id)

        serialized: dict[str, list[dict[str, _typing.Any]]] = {}
        for name, collection in self._collections.items():
            records = collection.serialize_module(module_id)
            if records:
                serialized[name] = records
        return module.model_copy(update={"collections": serialized})

    def destroy(self) -> None:
        """Destroy all collections, their items and the workspace events."""
        for collection in self._collections.values():
            strata_collections.destroy_collection(collection)
        self._collections.clear()
        self._modules.destroy()
        self.dynamic_module_id_changed.destroy()
        self.module_added.destroy()
        self.module_removed.destroy()
