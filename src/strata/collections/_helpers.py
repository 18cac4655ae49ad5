"""Helpers shared by all collection types."""

from __future__ import annotations

import typing as _typing

import strata.collections._collection as _collection
import strata.collections._override as _override


def destroy_collection(
    collection: _collection.Collection[_typing.Any] | _override.OverrideCollection[_typing.Any],
) -> None:
    """Destroy every member (failures are logged), then the collection itself."""
    for item in list(collection):
        _override.destroy_item(item)
    collection.destroy()
