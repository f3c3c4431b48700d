"""
Snapshot Storage Layer

RESPONSIBILITY: Whole-collection persistence as a versioned JSON snapshot
ALLOWED INPUTS: UserCollection
OUTPUTS: UserCollection (on load)

WHAT THIS LAYER MUST NOT DO:
============================
- Reconcile or filter user values
- Perform partial writes (saves replace the whole snapshot atomically)
- Silently discard unreadable snapshots
"""

from __future__ import annotations
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..contracts.base import InvalidDataPathError
from ..core.store import UserCollection
from .serialization import (
    LATEST_SNAPSHOT_VERSION, SnapshotEncoder,
    collection_from_dict, collection_to_dict,
    dumps_collection, loads_collection,
)


logger = logging.getLogger(__name__)


# =============================================================================
# STORAGE INTERFACE
# =============================================================================

class CollectionStorage:
    """
    Abstract snapshot store.

    Implementations hold at most one snapshot and replace it on save.
    """

    def load(self) -> Optional[UserCollection]:
        """Return the stored collection, or None if nothing was saved yet."""
        raise NotImplementedError

    def save(self, collection: UserCollection) -> None:
        raise NotImplementedError

    def exists(self) -> bool:
        raise NotImplementedError


class InMemoryCollectionStorage(CollectionStorage):
    """Keeps the serialized snapshot in memory. Used in tests."""

    def __init__(self, document: Optional[str] = None):
        self._document = document

    def load(self) -> Optional[UserCollection]:
        if self._document is None:
            return None
        return loads_collection(self._document)

    def save(self, collection: UserCollection) -> None:
        self._document = dumps_collection(collection)

    def exists(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> Optional[str]:
        return self._document


class FileCollectionStorage(CollectionStorage):
    """
    Snapshot stored in one JSON file.

    Saves write a temporary file in the same directory and rename it over
    the target, so readers never observe a half-written snapshot.
    """

    def __init__(self, path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Optional[UserCollection]:
        if not self.exists():
            if self._path.exists():
                raise InvalidDataPathError(self._path)
            return None
        logger.info("loading snapshot from %s", self._path)
        return loads_collection(self._path.read_text(encoding="utf-8"))

    def save(self, collection: UserCollection) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=self._path.name + ".", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(dumps_collection(collection))
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.info("saved %d users to %s", collection.user_count(), self._path)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class StorageConfig:
    """Configuration for snapshot storage."""
    backend_type: str = "memory"  # "memory" or "file"
    path: Optional[str] = None


def create_storage(config: Optional[StorageConfig] = None) -> CollectionStorage:
    config = config or StorageConfig()
    if config.backend_type == "file":
        if not config.path:
            raise ValueError("file storage requires a path")
        return FileCollectionStorage(config.path)
    if config.backend_type == "memory":
        return InMemoryCollectionStorage()
    raise ValueError(f"unknown storage backend {config.backend_type!r}")


__all__ = [
    "CollectionStorage", "InMemoryCollectionStorage", "FileCollectionStorage",
    "StorageConfig", "create_storage",
    "LATEST_SNAPSHOT_VERSION", "SnapshotEncoder",
    "collection_to_dict", "collection_from_dict",
    "dumps_collection", "loads_collection",
]
