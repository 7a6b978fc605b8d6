"""
Persistent dataset cache.

Entries are stored under the key "formData_<datasetName>" with the value
{"data": <dataset>, "timestamp": <epoch milliseconds>}.

An absent, unreadable or expired entry is a cache miss. Expired entries are
removed when they are read. Storage failures are logged and never raised:
the cache is an optimization, the network is the source of truth.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "formData_"
MS_PER_HOUR = 60 * 60 * 1000


def cache_key(dataset: str) -> str:
    return f"{CACHE_KEY_PREFIX}{dataset}"


def now_ms() -> int:
    return int(time.time() * 1000)


class MemoryCacheStore:
    """Key/value storage kept in a dict. Lives as long as the process."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._items.keys()))


class FileCacheStore:
    """
    Key/value storage with one JSON file per key.

    Args:
        directory: Folder holding the cache files (created on first write)
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in key)
        return self.directory / f"{safe}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self) -> Iterator[str]:
        if not self.directory.exists():
            return iter([])
        return iter(sorted(p.stem for p in self.directory.glob("*.json")))


class DatasetCache:
    """
    Expiring dataset cache on top of a key/value storage.

    Args:
        storage: MemoryCacheStore, FileCacheStore or anything with the same methods
        expiration_hours: Entry lifetime measured from write time
        clock: Returns the current time in epoch milliseconds
    """

    def __init__(
        self,
        storage=None,
        expiration_hours: float = 12,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage if storage is not None else MemoryCacheStore()
        self.expiration_hours = expiration_hours
        self.clock = clock

    def get(self, dataset: str) -> Optional[Any]:
        key = cache_key(dataset)
        try:
            raw = self.storage.get_item(key)
            if raw is None:
                return None
            entry = json.loads(raw)
            data = entry["data"]
            timestamp = entry["timestamp"]
            if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
                raise TypeError(f"timestamp is {timestamp!r}")
            age = self.clock() - timestamp
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Unreadable cache entry {key}: {e}")
            self.remove(dataset)
            return None

        if age > self.expiration_hours * MS_PER_HOUR:
            logger.debug(f"Cache entry {key} expired ({age} ms old)")
            self.remove(dataset)
            return None
        return data

    def set(self, dataset: str, data: Any) -> None:
        key = cache_key(dataset)
        entry = {"data": data, "timestamp": self.clock()}
        try:
            self.storage.set_item(key, json.dumps(entry))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Cannot write cache entry {key}: {e}")

    def remove(self, dataset: str) -> None:
        try:
            self.storage.remove_item(cache_key(dataset))
        except OSError as e:
            logger.error(f"Cannot remove cache entry for {dataset}: {e}")

    def clear(self) -> None:
        """Remove every entry of this namespace."""
        for key in list(self.storage.keys()):
            if key.startswith(CACHE_KEY_PREFIX):
                try:
                    self.storage.remove_item(key)
                except OSError as e:
                    logger.error(f"Cannot remove cache entry {key}: {e}")
        logger.info("Dataset cache cleared")
