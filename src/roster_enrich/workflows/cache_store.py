"""Expiring cache over a byte-limited, file-backed key/value store.

``LocalStore`` behaves like a browser's local storage: string keys, string
values, a size ceiling, and writes that are rejected (not truncated) when the
ceiling would be crossed. ``ExpiringCache`` layers ``{data, timestamp}``
entries on top and leaves freshness decisions to the caller, so a stale entry
can still serve as a fallback.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.keys import K_DATA, K_TIMESTAMP
from ..exceptions import CacheCorruptError, StorageError, StorageQuotaError
from .enrich_config import CACHE_MAX_BYTES, CACHE_TTL_MS

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class LocalStore:
    """Persistent string store with a byte ceiling.

    ``path=None`` keeps everything in memory (used when caching is disabled
    on disk, and in tests). ``max_bytes <= 0`` disables the ceiling.
    """

    def __init__(self, path: Optional[Path] = None, max_bytes: int = CACHE_MAX_BYTES) -> None:
        self.path = path
        self.max_bytes = max_bytes
        self._items: Dict[str, str] = {}
        if path is not None and path.exists():
            try:
                loaded = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("cache store %s unreadable (%s); starting empty", path, exc)
                loaded = {}
            if isinstance(loaded, dict):
                self._items = {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def size_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._items.items())

    def keys(self) -> List[str]:
        return sorted(self._items)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        current = self._items.get(key)
        projected = self.size_bytes() + _entry_size(key, value)
        if current is not None:
            projected -= _entry_size(key, current)
        if self.max_bytes > 0 and projected > self.max_bytes:
            raise StorageQuotaError(key, projected, self.max_bytes)
        self._items[key] = value
        try:
            self._flush()
        except OSError as exc:
            if current is None:
                self._items.pop(key, None)
            else:
                self._items[key] = current
            raise StorageError(f"writing {self.path} failed: {exc}") from exc

    def remove_item(self, key: str) -> bool:
        if key not in self._items:
            return False
        self._items.pop(key)
        self._flush()
        return True

    def clear(self) -> int:
        count = len(self._items)
        self._items = {}
        self._flush()
        return count

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._items, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    timestamp: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp


def decode_entry(raw: str) -> CacheEntry:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CacheCorruptError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict) or K_DATA not in payload or K_TIMESTAMP not in payload:
        raise CacheCorruptError("entry lacks data/timestamp")
    timestamp = payload[K_TIMESTAMP]
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise CacheCorruptError(f"timestamp is not numeric: {timestamp!r}")
    return CacheEntry(data=payload[K_DATA], timestamp=int(timestamp))


class ExpiringCache:
    """TTL-aware ``{data, timestamp}`` entries on a :class:`LocalStore`."""

    def __init__(
        self,
        store: LocalStore,
        ttl_ms: int = CACHE_TTL_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.store = store
        self.ttl_ms = ttl_ms
        self._clock = clock

    def now_ms(self) -> int:
        return self._clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` whether fresh or stale.

        Corrupt values are evicted and reported as a miss.
        """
        raw = self.store.get_item(key)
        if raw is None:
            return None
        try:
            return decode_entry(raw)
        except CacheCorruptError as exc:
            logger.warning("evicting corrupt cache entry %s: %s", key, exc)
            self.evict(key)
            return None

    def set(self, key: str, data: Any) -> bool:
        """Store ``data`` under ``key``; False when the store refused the write."""

        timestamp = self.now_ms()
        previous = self.store.get_item(key)
        if previous is not None:
            try:
                prior = decode_entry(previous)
            except CacheCorruptError:
                prior = None
            if prior is not None and prior.timestamp >= timestamp:
                timestamp = prior.timestamp + 1
        try:
            raw = json.dumps({K_DATA: data, K_TIMESTAMP: timestamp}, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.warning("cache value for %s is not JSON-serializable: %s", key, exc)
            return False
        try:
            self.store.set_item(key, raw)
        except StorageError as exc:
            logger.warning("cache write skipped for %s: %s", key, exc)
            return False
        return True

    def evict(self, key: str) -> None:
        try:
            self.store.remove_item(key)
        except OSError as exc:
            logger.warning("cache eviction failed for %s: %s", key, exc)

    def is_fresh(self, entry: CacheEntry, now_ms: Optional[int] = None) -> bool:
        now = self.now_ms() if now_ms is None else now_ms
        return entry.age_ms(now) < self.ttl_ms


__all__ = [
    "CacheEntry",
    "ExpiringCache",
    "LocalStore",
    "decode_entry",
]
