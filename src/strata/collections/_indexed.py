"""
IndexedCollection: a Collection with explicit, caller-controlled order.
"""

from __future__ import annotations

import typing as _typing

import strata.collections._collection as _collection
import strata.constants as constants
import strata.events as events

T = _typing.TypeVar("T")


class IndexedCollection(_collection.Collection[T]):
    """
    An ordered collection supporting positional insertion and reordering.

    Index 0 is the bottom of the collection; raising an item moves it
    towards the end.
    """

    def __init__(
        self,
        unique_key: _collection.UniqueKey = constants.DEFAULT_UNIQUE_KEY,
    ) -> None:
        super().__init__(unique_key)
        self._previous_indices: dict[int, int] = {}

        self.moved: events.Event[T] = events.Event()
        """Raised with the item after its index changed."""

    def get(self, index: int) -> T | None:
        """Return the item at index, or None if index is out of range."""
        if 0 <= index < len(self._array):
            return self._array[index]
        return None

    def index_of(self, item: object) -> int | None:
        """Identity lookup of an item's index."""
        index = self._position(item)
        return index if index >= 0 else None

    def index_of_key(self, value: _typing.Any) -> int | None:
        item = self.get_by_key(value)
        if item is None:
            return None
        return self.index_of(item)

    def previous_index(self, item: object) -> int | None:
        """
        Index item had before it was removed.

        Only available while the removed event for item is being raised.
        """
        return self._previous_indices.get(id(item))

    def add(self, item: T, index: int | None = None) -> int | None:  # type: ignore[override]
        """
        Insert an item.

        Args:
            item: The item to insert.
            index: Target position. Negative values insert at the front;
                None or values past the end append.

        Returns:
            The index the item was inserted at, or None if it was rejected.
        """
        self._ensure_alive("add")
        if not self._accepts(item):
            return None

        if index is not None and index < len(self._array):
            target = max(index, 0)
            self._array.insert(target, item)
        else:
            self._array.append(item)
            target = len(self._array) - 1

        self.added.raise_event(item)
        return target

    def remove(self, item: T) -> None:
        self._ensure_alive("remove")
        index = self._position(item)
        if index < 0:
            return

        self._previous_indices[id(item)] = index
        try:
            super().remove(item)
        finally:
            self._previous_indices.pop(id(item), None)

    def _move(self, item: T, target_index: int) -> int | None:
        self._ensure_alive("move")
        current_index = self._position(item)
        if current_index < 0:
            return None

        target_index = min(max(target_index, 0), len(self._array) - 1)
        if target_index != current_index:
            del self._array[current_index]
            self._array.insert(target_index, item)
            self.moved.raise_event(item)
        return target_index

    def move_to(self, item: T, target_index: int) -> int | None:
        """
        Move item to target_index (clamped to the collection bounds).

        Returns:
            The new index, or None if item is not a member.
        """
        return self._move(item, target_index)

    def raise_item(self, item: T, steps: int = 1) -> int | None:
        """Move item steps positions towards the end. Negative steps lower it."""
        current_index = self.index_of(item)
        if current_index is None:
            return None
        return self._move(item, current_index + steps)

    def lower_item(self, item: T, steps: int = 1) -> int | None:
        """Move item steps positions towards the front. Negative steps raise it."""
        current_index = self.index_of(item)
        if current_index is None:
            return None
        return self._move(item, current_index - steps)

    def destroy(self) -> None:
        super().destroy()
        self._previous_indices.clear()
        self.moved.destroy()
