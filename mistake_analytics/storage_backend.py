"""
Storage Backends

Key/value text storage media for the Instance Store.

A backend only moves strings in and out. It knows nothing about versions,
instances or students; the Instance Store owns the record layout and all
recovery logic.

Backends provided:
1. InMemoryStorageBackend - process-local dict (tests, embedded hosts)
2. FileStorageBackend - one JSON file per key, fsync'd writes
"""

import os
import re
from pathlib import Path
from typing import Dict, Optional, Union


class StorageUnavailableError(Exception):
    """Raised by a backend when no persistent medium is present."""


class StorageBackend:
    """
    Interface for a key/value text store.

    get_item returns None for a missing key.
    Implementations raise StorageUnavailableError or OSError on failure.
    """

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


# -----------------------------------------------------------------------------
# In-Memory Backend
# -----------------------------------------------------------------------------
class InMemoryStorageBackend(StorageBackend):
    """Dict-backed storage. Contents live as long as the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._items


# -----------------------------------------------------------------------------
# File Backend
# -----------------------------------------------------------------------------
_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileStorageBackend(StorageBackend):
    """
    One file per key under a base directory.

    Writes go to a temporary file that is fsync'd and then renamed over the
    target, so a reader never sees a half-written record.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._base_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> None:
        path = self.path_for(key)
        if path.exists():
            path.unlink()
