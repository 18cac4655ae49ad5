"""
Strata - layered configuration collections.

Collections of uniquely keyed items that configuration modules can
override and retract again, restoring whatever they shadowed.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml
_raw_version = _metadata.version("strata")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from strata.collections import (  # noqa: E402
    Collection,
    IndexedCollection,
    OverrideCollection,
    ReplacedEvent,
)
from strata.config import Settings  # noqa: E402
from strata.events import Event  # noqa: E402
from strata.workspace import Workspace  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "Collection",
    "Event",
    "IndexedCollection",
    "OverrideCollection",
    "ReplacedEvent",
    "Settings",
    "Workspace",
]
