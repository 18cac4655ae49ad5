"""
Collections: uniqueness-constrained, ordered and override-aware containers.

Three layers build on each other:

- Collection: a sequence with optional uniqueness by key and added/removed
  events.
- IndexedCollection: adds positional insertion and reordering (moved event).
- OverrideCollection: wraps either of the above so configuration modules
  can override items and later retract them, restoring what was there
  before.

Example:
    >>> from strata.collections import IndexedCollection, OverrideCollection
    >>> layers = OverrideCollection(IndexedCollection(), lambda: "base")
    >>> layers.add({"name": "osm"})
    0
"""

from strata.collections._collection import Collection, read_key
from strata.collections._helpers import destroy_collection
from strata.collections._indexed import IndexedCollection
from strata.collections._override import (
    OverrideCollection,
    ReplacedEvent,
    ShadowEntry,
    serialize_default,
)

__all__ = [
    "Collection",
    "IndexedCollection",
    "OverrideCollection",
    "ReplacedEvent",
    "ShadowEntry",
    "destroy_collection",
    "read_key",
    "serialize_default",
]
