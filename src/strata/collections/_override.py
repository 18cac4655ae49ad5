"""
OverrideCollection: module-scoped overrides on top of a unique collection.

Configuration modules contribute items to shared collections. When a
module overrides an item another module already contributed, the previous
item is serialized and pushed onto a per-key shadow stack. Removing the
override (directly or by removing the whole module) reincarnates the most
recent shadow, so the collection returns to what it looked like before.

Event flow differs from a plain collection:

1. override() does not raise removed for the item it replaces. It raises
   replaced with ReplacedEvent(old, new) first, then added for the new item.
2. added can be raised more than once for the same key.
3. Reincarnation happens after the removed dispatch that triggered it has
   finished, so every removed listener sees the key absent before the
   reincarnated item is added.

Module ownership is tracked in an identity map owned by the override
collection; items themselves are never modified.
"""

from __future__ import annotations

import asyncio as _asyncio
import collections as _collections
import collections.abc as _abc
import copy as _copy
import dataclasses as _dataclasses
import inspect as _inspect
import logging as _logging
import typing as _typing

import pydantic as _pydantic

import strata.collections._collection as _collection
import strata.collections._indexed as _indexed
import strata.errors as errors
import strata.events as events

_logger = _logging.getLogger(__name__)

T = _typing.TypeVar("T")

ModuleIdProvider: _typing.TypeAlias = _typing.Callable[[], str]
Serializer: _typing.TypeAlias = _typing.Callable[[_typing.Any], _typing.Any]
Deserializer: _typing.TypeAlias = _typing.Callable[[_typing.Any], _typing.Any]
ShadowIndexResolver: _typing.TypeAlias = _typing.Callable[
    [_typing.Any, _typing.Any, int | None], int | None
]


@_dataclasses.dataclass(frozen=True)
class ReplacedEvent(_typing.Generic[T]):
    """Payload of OverrideCollection.replaced."""

    old: T
    """The item that was replaced."""

    new: T
    """The item that replaced it."""


@_dataclasses.dataclass(frozen=True)
class ShadowEntry:
    """A serialized item waiting to be reincarnated."""

    module_id: str | None
    """Module that owned the item when it was overridden."""

    record: _typing.Any
    """Serialized form of the item."""


def serialize_default(item: _typing.Any) -> _typing.Any:
    """
    Default item serializer.

    Uses item.to_dict() if available, model_dump() for pydantic models,
    asdict() for dataclasses and a shallow copy for mappings. Anything
    else is returned as is.
    """
    to_dict = getattr(item, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(item, _pydantic.BaseModel):
        return item.model_dump()
    if _dataclasses.is_dataclass(item) and not isinstance(item, type):
        return _dataclasses.asdict(item)
    if isinstance(item, _abc.Mapping):
        return dict(item)
    return item


def deserialize_default(record: _typing.Any) -> _typing.Any:
    return record


def keep_known_index(
    _shadow: _typing.Any,
    _item: _typing.Any,
    known_index: int | None,
) -> int | None:
    """Default shadow placement: wherever the replaced item was."""
    return known_index


def destroy_item(item: _typing.Any) -> None:
    """Call item.destroy() if present, logging failures."""
    destroy = getattr(item, "destroy", None)
    if not callable(destroy):
        return
    try:
        destroy()
    except Exception as e:
        _logger.warning("Failed to destroy item %r: %s", item, e)


class OverrideCollection(_typing.Generic[T]):
    """
    Wraps a Collection (or IndexedCollection) with module-scoped overrides.

    The override collection owns the wrapped collection: all mutation has to
    go through the override collection so reincarnations are processed.

    Example:
        >>> current = {"module": "a"}
        >>> styles = OverrideCollection(Collection("id"), lambda: current["module"])
        >>> styles.override({"id": 1, "v": "a1"})
        {'id': 1, 'v': 'a1'}
        >>> current["module"] = "b"
        >>> styles.override({"id": 1, "v": "b1"})
        {'id': 1, 'v': 'b1'}
        >>> styles.remove_module("b")
        >>> list(styles)
        [{'id': 1, 'v': 'a1'}]

    Args:
        collection: The collection to wrap. Must have a unique key and must
            not be wrapped already.
        get_dynamic_module_id: Returns the id of the currently active module.
        serialize_item: Turns a live item into a plain record.
        deserialize_item: Turns a record back into an item. May return an
            awaitable or None (failure).
        validator_type: If given, parse_items() only accepts instances of it.
        determine_shadow_index: (shadow_item, new_item, known_index) -> index
            or None. Controls where replacing items and reincarnated shadows
            are inserted in indexed collections.

    Raises:
        CollectionAlreadyWrappedError: If collection is already wrapped.
        MissingUniqueKeyError: If collection has no unique key.
    """

    def __init__(
        self,
        collection: _collection.Collection[T],
        get_dynamic_module_id: ModuleIdProvider,
        *,
        serialize_item: Serializer | None = None,
        deserialize_item: Deserializer | None = None,
        validator_type: type | None = None,
        determine_shadow_index: ShadowIndexResolver | None = None,
    ) -> None:
        if not isinstance(collection, _collection.Collection):
            raise TypeError(
                f"Expected a Collection, got {type(collection).__name__}"
            )
        if collection._override_owned:
            raise errors.CollectionAlreadyWrappedError()
        if collection.unique_key is None:
            raise errors.MissingUniqueKeyError()

        collection._override_owned = True
        self._collection = collection
        self._get_dynamic_module_id = get_dynamic_module_id
        self._serialize = serialize_item or serialize_default
        self._deserialize = deserialize_item or deserialize_default
        self._validator_type = validator_type
        self._determine_shadow_index = determine_shadow_index or keep_known_index

        self._shadow_map: dict[_typing.Any, list[ShadowEntry]] = {}
        # id(item) -> (item, module_id); the item reference keeps the id valid
        self._module_ids: dict[int, tuple[T, str]] = {}
        self._pending_removals: _collections.deque[tuple[T, int | None]] = (
            _collections.deque()
        )
        self._tasks: set[_asyncio.Task[None]] = set()
        # key -> shadow entry whose async deserialization is still running
        self._pending_restores: dict[_typing.Any, ShadowEntry] = {}

        self.replaced: events.Event[ReplacedEvent[T]] = events.Event()
        """Raised when override() or replace() swaps a live item."""

        for item in collection:
            self._module_ids[id(item)] = (item, get_dynamic_module_id())

        collection.added.add_listener(self._on_added)
        collection.removed.add_listener(self._on_removed)
        collection._after_removed = self._process_removals
        _logger.debug("Wrapped %r as override collection", collection)

    # ------------------------------------------------------------------
    # Wrapped collection contract
    # ------------------------------------------------------------------

    @property
    def collection(self) -> _collection.Collection[T]:
        """The wrapped collection. Removing items from it restores shadows as remove() does."""
        return self._collection

    @property
    def unique_key(self) -> _typing.Any:
        return self._collection.unique_key

    @property
    def is_indexed(self) -> bool:
        return isinstance(self._collection, _indexed.IndexedCollection)

    @property
    def added(self) -> events.Event[T]:
        return self._collection.added

    @property
    def removed(self) -> events.Event[T]:
        return self._collection.removed

    @property
    def moved(self) -> events.Event[T]:
        return self._indexed().moved

    @property
    def size(self) -> int:
        return self._collection.size

    @property
    def destroyed(self) -> bool:
        return self._collection.destroyed

    def __len__(self) -> int:
        return len(self._collection)

    def __iter__(self) -> _abc.Iterator[T]:
        return iter(self._collection)

    def __contains__(self, item: object) -> bool:
        return self._collection.has(item)

    def __repr__(self) -> str:
        return f"OverrideCollection({self._collection!r}, shadows={len(self._shadow_map)})"

    def _indexed(self) -> _indexed.IndexedCollection[T]:
        if not isinstance(self._collection, _indexed.IndexedCollection):
            raise TypeError("Operation requires an IndexedCollection")
        return self._collection

    def get_key(self, item: _typing.Any) -> _typing.Any:
        return self._collection.get_key(item)

    def has(self, item: object) -> bool:
        return self._collection.has(item)

    def has_key(self, value: _typing.Any) -> bool:
        return self._collection.has_key(value)

    def get_by_key(self, value: _typing.Any) -> T | None:
        return self._collection.get_by_key(value)

    def get(self, index: int) -> T | None:
        return self._indexed().get(index)

    def index_of(self, item: object) -> int | None:
        return self._indexed().index_of(item)

    def index_of_key(self, value: _typing.Any) -> int | None:
        return self._indexed().index_of_key(value)

    def previous_index(self, item: object) -> int | None:
        return self._indexed().previous_index(item)

    def move_to(self, item: T, target_index: int) -> int | None:
        return self._indexed().move_to(item, target_index)

    def raise_item(self, item: T, steps: int = 1) -> int | None:
        return self._indexed().raise_item(item, steps)

    def lower_item(self, item: T, steps: int = 1) -> int | None:
        return self._indexed().lower_item(item, steps)

    def add(self, item: T, index: int | None = None) -> int | None:
        """Add an item without override semantics. See Collection.add."""
        self._claim_pending_restore(self.get_key(item))
        result = self._base_add(item, index)
        if result is None and not self._collection.has(item):
            self._drop_module_id(item)
        return result

    def remove(self, item: T) -> None:
        """
        Remove a live item.

        If a shadow exists for the item's key, the latest one is
        reincarnated once the removed event has been raised.
        """
        self._collection.remove(item)

    def clear(self) -> None:
        """Drop all shadows, then remove every live item."""
        self._collection._ensure_alive("clear")
        self._shadow_map.clear()
        self._pending_restores.clear()
        self._collection.clear()

    # ------------------------------------------------------------------
    # Module tags
    # ------------------------------------------------------------------

    def get_module_id(self, item: object) -> str | None:
        """Return the id of the module owning item, if tagged."""
        entry = self._module_ids.get(id(item))
        if entry is None or entry[0] is not item:
            return None
        return entry[1]

    def set_module_id(self, item: T, module_id: str) -> None:
        """
        Tag item as owned by module_id.

        Tagging an item before adding it prevents the dynamic module id from
        being stamped on it.
        """
        self._module_ids[id(item)] = (item, module_id)

    def _drop_module_id(self, item: object) -> str | None:
        module_id = self.get_module_id(item)
        if module_id is not None:
            del self._module_ids[id(item)]
        return module_id

    @property
    def shadow_map(self) -> dict[_typing.Any, list[ShadowEntry]]:
        """Copy of the shadow stacks, keyed by unique key value."""
        return {key: list(stack) for key, stack in self._shadow_map.items()}

    # ------------------------------------------------------------------
    # Listeners on the wrapped collection
    # ------------------------------------------------------------------

    def _on_added(self, item: T) -> None:
        if self.get_module_id(item) is None:
            self.set_module_id(item, self._get_dynamic_module_id())

    def _on_removed(self, item: T) -> None:
        previous_index = None
        if isinstance(self._collection, _indexed.IndexedCollection):
            previous_index = self._collection.previous_index(item)
        self._pending_removals.append((item, previous_index))

    def _process_removals(self) -> None:
        if self._collection.dispatching_removal:
            return
        while self._pending_removals:
            item, previous_index = self._pending_removals.popleft()
            if not self._collection.has(item):
                self._drop_module_id(item)
            self._reincarnate(self._collection.get_key(item), item, previous_index)

    # ------------------------------------------------------------------
    # Shadow handling
    # ------------------------------------------------------------------

    def _base_add(self, item: T, index: int | None) -> int | None:
        if isinstance(self._collection, _indexed.IndexedCollection):
            return self._collection.add(item, index)
        return self._collection.add(item)

    def _push_shadow(self, key: _typing.Any, module_id: str | None, record: _typing.Any) -> None:
        self._shadow_map.setdefault(key, []).append(ShadowEntry(module_id, record))

    def _pop_shadow(self, key: _typing.Any) -> ShadowEntry | None:
        stack = self._shadow_map.get(key)
        if stack is None:
            return None
        entry = stack.pop() if stack else None
        if not stack:
            del self._shadow_map[key]
        return entry

    def _reincarnate(self, key: _typing.Any, removed_item: T, previous_index: int | None) -> None:
        if self._collection.destroyed:
            return
        entry = self._pop_shadow(key)
        if entry is None:
            return

        try:
            reincarnation = self._deserialize(entry.record)
        except Exception as e:
            _logger.error("Failed to deserialize shadow of %r: %s", key, e)
            return

        if _inspect.isawaitable(reincarnation):
            self._schedule_reincarnation(reincarnation, key, entry, removed_item, previous_index)
            return

        self._insert_reincarnation(reincarnation, key, entry, removed_item, previous_index)

    def _schedule_reincarnation(
        self,
        awaitable: _typing.Awaitable[_typing.Any],
        key: _typing.Any,
        entry: ShadowEntry,
        removed_item: T,
        previous_index: int | None,
    ) -> None:
        async def _await() -> None:
            try:
                reincarnation = await awaitable
            except Exception as e:
                _logger.error("Failed to deserialize shadow of %r: %s", key, e)
                self._release_pending_restore(key, entry)
                return
            if not self._release_pending_restore(key, entry):
                # Claimed by a later write; the entry is back on its shadow stack
                if reincarnation is not None:
                    destroy_item(reincarnation)
                return
            self._insert_reincarnation(reincarnation, key, entry, removed_item, previous_index)

        try:
            loop = _asyncio.get_running_loop()
        except RuntimeError:
            _asyncio.run(_await())
            return

        self._pending_restores[key] = entry
        task = loop.create_task(_await())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _release_pending_restore(self, key: _typing.Any, entry: ShadowEntry) -> bool:
        """Forget the pending restore of key. False if it was claimed or dropped meanwhile."""
        if self._pending_restores.get(key) is not entry:
            return False
        del self._pending_restores[key]
        return True

    def _claim_pending_restore(self, key: _typing.Any) -> None:
        """Put a still deserializing shadow of key back on its stack before key is written."""
        entry = self._pending_restores.pop(key, None)
        if entry is not None:
            self._shadow_map.setdefault(key, []).append(entry)

    def _insert_reincarnation(
        self,
        reincarnation: _typing.Any,
        key: _typing.Any,
        entry: ShadowEntry,
        removed_item: T,
        previous_index: int | None,
    ) -> None:
        if reincarnation is None:
            _logger.error("Failed to deserialize shadow of %r", key)
            return
        if self._collection.destroyed:
            return

        if entry.module_id is not None:
            self.set_module_id(reincarnation, entry.module_id)
        index = self._determine_shadow_index(reincarnation, removed_item, previous_index)
        if self._base_add(reincarnation, index) is None:
            self._drop_module_id(reincarnation)
            if self.has_key(key):
                # Shadowed by whatever took the key
                self._shadow_map.setdefault(key, []).append(entry)
                destroy_item(reincarnation)
                _logger.debug("Key %r taken again, shadow of %r kept", key, entry.module_id)
            else:
                _logger.warning("Could not reinsert shadow of %r", key)
            return
        _logger.debug("Reincarnated %r from module %s", key, entry.module_id)

    async def settled(self) -> None:
        """Wait for reincarnations whose deserialization is still pending."""
        while self._tasks:
            await _asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Override operations
    # ------------------------------------------------------------------

    def _insert(self, item: T, index: int | None) -> T | None:
        if self._base_add(item, index) is None:
            if not self._collection.has(item):
                self._drop_module_id(item)
            return None
        return item

    def override(self, item: T) -> T | None:
        """
        Insert item, shadowing any live item with the same key.

        The replaced item is removed without raising removed, serialized
        onto the shadow stack of its key, announced via replaced and then
        destroyed.

        Returns:
            The item, or None if it could not be inserted.
        """
        self._collection._ensure_alive("override")
        key = self.get_key(item)
        self._claim_pending_restore(key)
        previous = self.get_by_key(key)
        if previous is None:
            return self._insert(item, None)

        # Serialize first so a failing serializer leaves the collection intact
        record = self._serialize(previous)
        index = self._collection._remove(previous)
        if previous is item:
            module_id = self.get_module_id(previous)
        else:
            module_id = self._drop_module_id(previous)
        self._push_shadow(key, module_id, record)

        used_index = self._determine_shadow_index(previous, item, index)
        self.replaced.raise_event(ReplacedEvent(old=previous, new=item))
        if previous is not item:
            destroy_item(previous)
        return self._insert(item, used_index)

    def replace(self, item: T) -> T | None:
        """
        Replace the live item with the same key in place.

        Only succeeds if the live item is owned by the current dynamic
        module. The previous item is discarded, not shadowed.

        Returns:
            The item, or None if nothing was replaced.
        """
        self._collection._ensure_alive("replace")
        key = self.get_key(item)
        previous = self.get_by_key(key)
        if previous is None or previous is item:
            return None
        if self.get_module_id(previous) != self._get_dynamic_module_id():
            return None

        index = self._collection._remove(previous)
        self._drop_module_id(previous)
        used_index = self._determine_shadow_index(previous, item, index)
        self.replaced.raise_event(ReplacedEvent(old=previous, new=item))
        destroy_item(previous)
        return self._insert(item, used_index)

    async def _parse_record(self, record: _typing.Any) -> T | None:
        try:
            item = self._deserialize(record)
            if _inspect.isawaitable(item):
                item = await item
        except Exception as e:
            _logger.warning("Could not load item %s: %s", self._describe_record(record), e)
            return None

        if item is None or (
            self._validator_type is not None and not isinstance(item, self._validator_type)
        ):
            _logger.warning("Could not load item %s", self._describe_record(record))
            return None
        return _typing.cast(T, item)

    def _describe_record(self, record: _typing.Any) -> str:
        key = _collection.read_key(record, self.unique_key)
        item_type = _collection.read_key(record, "type")
        return f"{key} of type {item_type}"

    async def parse_items(
        self,
        records: _abc.Sequence[_typing.Any] | None,
        module_id: str,
    ) -> None:
        """
        Deserialize records and override them into the collection.

        Records are deserialized concurrently; invalid ones are logged and
        skipped. Valid items are tagged with module_id and overridden in
        input order once all deserializations have finished.
        """
        if not records:
            return
        if isinstance(records, (str, bytes)) or not isinstance(records, _abc.Sequence):
            _logger.warning("Expected a list of items for module %s", module_id)
            return

        items = await _asyncio.gather(*(self._parse_record(record) for record in records))
        for item in items:
            if item is None:
                continue
            self.set_module_id(item, module_id)
            self.override(item)

    def get_serialized_by_key(self, key: _typing.Any) -> _typing.Any:
        """Serialize the live item for key, or None if absent."""
        item = self.get_by_key(key)
        if item is None:
            return None
        return self._serialize(item)

    def remove_module(self, module_id: str) -> None:
        """
        Retract everything module_id contributed.

        Shadows of the module are discarded, then its live items are removed
        (reincarnating older shadows of other modules) and destroyed.
        """
        self._collection._ensure_alive("remove module")
        for key, entry in list(self._pending_restores.items()):
            if entry.module_id == module_id:
                del self._pending_restores[key]
        for key, stack in list(self._shadow_map.items()):
            kept = [entry for entry in stack if entry.module_id != module_id]
            if not kept:
                del self._shadow_map[key]
            elif len(kept) != len(stack):
                self._shadow_map[key] = kept

        owned = [item for item in self._collection if self.get_module_id(item) == module_id]
        for item in owned:
            self.remove(item)
            destroy_item(item)
        _logger.debug("Removed %d items of module %s", len(owned), module_id)

    def serialize_module(self, module_id: str) -> list[_typing.Any]:
        """
        Serialize what module_id contributes to the current state.

        Live items owned by the module are serialized; for keys owned by
        another module, the module's shadow record is emitted instead.
        Shadows still being deserialized count as records of their module.
        """
        serialized: list[_typing.Any] = []
        for item in list(self._collection):
            if self.get_module_id(item) == module_id:
                serialized.append(self._serialize(item))
                continue
            stack = self._shadow_map.get(self.get_key(item), [])
            entry = next((e for e in stack if e.module_id == module_id), None)
            if entry is not None:
                serialized.append(_copy.deepcopy(entry.record))
        for entry in self._pending_restores.values():
            if entry.module_id == module_id:
                serialized.append(_copy.deepcopy(entry.record))
        return serialized

    def destroy(self) -> None:
        """Clear shadows, disable replaced and destroy the wrapped collection."""
        self._shadow_map.clear()
        self._module_ids.clear()
        self._pending_removals.clear()
        self._pending_restores.clear()
        self.replaced.destroy()
        self._collection.destroy()
