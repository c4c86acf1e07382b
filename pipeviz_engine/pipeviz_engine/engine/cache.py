"""Per-snapshot result cache with SHA-256 keys and LRU eviction.

Each :class:`~pipeviz_engine.engine.estate.EstateEngine` owns one cache.
Keys hash the snapshot fingerprint together with the operation name and
its parameters, so a result can never be served for a different snapshot
even if the cache were shared by mistake.

Design notes:
    * ``OrderedDict`` in insertion/access order; the least recently used
      entry is evicted once ``max_entries`` is reached.
    * Thread-safe via a threading lock.  No lock is held while a result is
      being computed.
    * ``None`` is a legitimate cached result ("no impact"), so lookups
      distinguish a miss from a cached ``None``.
    * ``invalidate_all()`` flushes everything, e.g. on reload.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class SnapshotCache:
    """SHA-256 keyed LRU cache of analysis results.

    Parameters
    ----------
    max_entries:
        Maximum number of entries to store.
    enabled:
        If ``False``, lookups always miss and nothing is stored.  Allows
        disabling via settings without changing call sites.
    """

    def __init__(self, *, max_entries: int = 256, enabled: bool = True) -> None:
        self._store: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()
        self._enabled = enabled
        self._max_entries = max_entries
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(fingerprint: str, operation: str, params: dict[str, Any] | None = None) -> str:
        """Build a deterministic SHA-256 cache key."""
        canonical = json.dumps(
            {"snapshot": fingerprint, "operation": operation, "params": params or {}},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a cached result, returning *default* on a miss."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def _lookup(self, key: str) -> Any:
        if not self._enabled:
            return _MISSING
        with self._lock:
            if key not in self._store:
                self._misses += 1
                return _MISSING
            self._store.move_to_end(key)
            self._hits += 1
            return self._store[key]

    def put(self, key: str, value: Any) -> None:
        if not self._enabled:
            return
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            elif len(self._store) >= self._max_entries:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Cache evict: key=%s", evicted[:12])
            self._store[key] = value

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """Return the cached value for *key*, computing and storing it on a miss."""
        value = self._lookup(key)
        if value is not _MISSING:
            logger.debug("Cache hit: key=%s", key[:12])
            return value  # type: ignore[no-any-return]
        result = compute()
        self.put(key, result)
        return result

    def invalidate_all(self) -> int:
        """Flush the entire cache.  Returns count removed."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Full cache invalidation: removed %d entries", count)
        return count

    @property
    def stats(self) -> dict[str, Any]:
        """Return cache hit/miss statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 4) if total > 0 else 0.0,
                "max_entries": self._max_entries,
                "enabled": self._enabled,
            }

    @property
    def size(self) -> int:
        return len(self._store)
