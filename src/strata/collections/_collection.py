"""
Collection: a sequence container with optional uniqueness by key.

Items are kept in insertion order. When a unique key is configured, every
member must expose a non-None value for that key (as a mapping entry or
an attribute) and no two members may share it.
"""

from __future__ import annotations

import collections.abc as _abc
import typing as _typing

import strata.constants as constants
import strata.errors as errors
import strata.events as events

T = _typing.TypeVar("T")

UniqueKey: _typing.TypeAlias = _abc.Hashable | bool | None


def read_key(item: _typing.Any, key: _abc.Hashable) -> _typing.Any:
    """
    Read the value of key from item.

    Mappings are read by entry, everything else by attribute. Non-string
    keys can only be read from mappings.

    Returns:
        The key value, or None if item does not carry the key.
    """
    if item is None:
        return None
    if isinstance(item, _abc.Mapping):
        return item.get(key)
    if isinstance(key, str):
        return getattr(item, key, None)
    return None


def _normalize_unique_key(unique_key: UniqueKey) -> _abc.Hashable | None:
    if unique_key is False or unique_key is None:
        return None
    if unique_key is True:
        return constants.DEFAULT_UNIQUE_KEY
    return unique_key


class Collection(_typing.Generic[T]):
    """
    A sequence of items with add/remove notifications.

    Example:
        >>> layers = Collection()
        >>> layers.add({"name": "osm"})
        0
        >>> layers.add({"name": "osm"}) is None  # duplicate key
        True
        >>> layers.get_by_key("osm")
        {'name': 'osm'}

    Args:
        unique_key: Key field enforcing uniqueness. Pass False to allow
            duplicates and arbitrary values (including None).
    """

    def __init__(self, unique_key: UniqueKey = constants.DEFAULT_UNIQUE_KEY) -> None:
        self._unique_key = _normalize_unique_key(unique_key)
        self._array: list[T] = []
        self._destroyed = False
        # Set once an OverrideCollection takes ownership
        self._override_owned = False
        # Called once the outermost removed dispatch has finished
        self._after_removed: _abc.Callable[[], None] | None = None
        self._removal_depth = 0

        self.added: events.Event[T] = events.Event()
        """Raised with the item after it was added."""

        self.removed: events.Event[T] = events.Event()
        """Raised with the item after it was removed."""

    @classmethod
    def from_iterable(
        cls,
        iterable: _abc.Iterable[T],
        unique_key: UniqueKey = constants.DEFAULT_UNIQUE_KEY,
    ) -> _typing.Self:
        """
        Create a collection from an iterable.

        Elements violating uniqueness are dropped.
        """
        collection = cls(unique_key)
        for item in iterable:
            collection.add(item)
        return collection

    @property
    def unique_key(self) -> _abc.Hashable | None:
        """The key field, or None if uniqueness is disabled."""
        return self._unique_key

    @property
    def size(self) -> int:
        return len(self._array)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def __len__(self) -> int:
        return len(self._array)

    def __iter__(self) -> _abc.Iterator[T]:
        # Bound is fixed when iteration starts
        length = len(self._array)
        index = 0
        while index < length and index < len(self._array):
            yield self._array[index]
            index += 1

    def __contains__(self, item: object) -> bool:
        return self.has(item)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(unique_key={self._unique_key!r}, size={len(self._array)})"

    def get_key(self, item: _typing.Any) -> _typing.Any:
        """Return the unique key value of item, or None without a unique key."""
        if self._unique_key is None:
            return None
        return read_key(item, self._unique_key)

    def has(self, item: object) -> bool:
        """Identity membership test."""
        return self._position(item) >= 0

    def has_key(self, value: _typing.Any) -> bool:
        """Whether a member has the given key value. False without a unique key."""
        return self.get_by_key(value) is not None

    def get_by_key(self, value: _typing.Any) -> T | None:
        """Return the member with the given key value, if any."""
        if self._unique_key is None or value is None:
            return None
        for item in self._array:
            if read_key(item, self._unique_key) == value:
                return item
        return None

    def _accepts(self, item: _typing.Any) -> bool:
        if self._unique_key is None:
            return True
        key = read_key(item, self._unique_key)
        if key is None:
            return False
        return not self.has_key(key)

    def _ensure_alive(self, operation: str) -> None:
        if self._destroyed:
            raise errors.CollectionDestroyedError(operation)

    def _position(self, item: object) -> int:
        for index, member in enumerate(self._array):
            if member is item:
                return index
        return -1

    def add(self, item: T) -> int | None:
        """
        Append an item.

        Returns:
            The index the item was inserted at, or None if the item was
            rejected (missing key or key already present).
        """
        self._ensure_alive("add")
        if not self._accepts(item):
            return None

        self._array.append(item)
        index = len(self._array) - 1
        self.added.raise_event(item)
        return index

    def _remove(self, item: T) -> int:
        """
        Unlink item without raising removed.

        Returns:
            The index item was removed from, or -1 if it was not a member.
        """
        index = self._position(item)
        if index >= 0:
            del self._array[index]
        return index

    def _raise_removed(self, items: _abc.Iterable[T]) -> None:
        self._removal_depth += 1
        try:
            for item in items:
                self.removed.raise_event(item)
        finally:
            self._removal_depth -= 1

    def _finish_removal(self) -> None:
        if self._removal_depth == 0 and self._after_removed is not None:
            self._after_removed()

    @property
    def dispatching_removal(self) -> bool:
        """Whether a removed event is currently being raised."""
        return self._removal_depth > 0

    def remove(self, item: T) -> None:
        """Remove item (by identity) and raise removed. No-op for non-members."""
        self._ensure_alive("remove")
        if self._remove(item) >= 0:
            self._raise_removed([item])
            self._finish_removal()

    def clear(self) -> None:
        """Raise removed for every member, then empty the collection."""
        self._ensure_alive("clear")
        self._raise_removed(list(self._array))
        self._array.clear()
        self._finish_removal()

    def destroy(self) -> None:
        """
        Empty the collection without notifications and disable its events.

        A destroyed collection must not be used again.
        """
        self._array.clear()
        self._after_removed = None
        self.added.destroy()
        self.removed.destroy()
        self._destroyed = True
