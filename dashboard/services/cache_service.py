import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger("cache_service")

# Default lifetimes (seconds) per category of dashboard data.
CACHE_TTL: Mapping[str, int] = MappingProxyType({
    "KPIs": 300,
    "SprintData": 600,
    "StaticData": 3600,
})

# Key prefixes to drop when a row in the given table changes.
INVALIDATION_PATTERNS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "sprints": ("sprint-", "sprintData-", "kpi-"),
    "issues": ("issue-", "sprint-", "kpi-"),
    "squad_capacity": ("capacity-", "sprint-", "kpi-"),
    "developers": ("developer-", "kpi-"),
    "teams": ("team-", "kpi-"),
})

Listener = Callable[[str], Any]


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    created_at: float


def _ttl_to_seconds(ttl_seconds: Any) -> float:
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, (int, float)):
        return 0.0
    if math.isnan(ttl_seconds) or ttl_seconds <= 0:
        return 0.0
    return float(ttl_seconds)


class CacheService:
    """In-process TTL cache with lazy expiry and invalidation hooks.

    Expiry is checked when a key is read; expired entries stay resident until
    then (or until ``purge_expired``/``clear``). ``clock`` must be monotonic.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        invalidation_patterns: Optional[Mapping[str, Tuple[str, ...]]] = None,
    ):
        self._clock = clock
        self._lock = Lock()
        self._store: Dict[str, CacheEntry] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._patterns = invalidation_patterns if invalidation_patterns is not None else INVALIDATION_PATTERNS
        self._hits = 0
        self._misses = 0
        # bumped by every invalidation; read-through loads only store if unchanged
        self._epoch = 0

    def set(self, key: str, value: Any, ttl_seconds: Any) -> bool:
        if not isinstance(key, str) or not key:
            logger.warning("Ignoring cache set for invalid key %r", key)
            return False
        now = self._clock()
        entry = CacheEntry(value=value, expires_at=now + _ttl_to_seconds(ttl_seconds), created_at=now)
        with self._lock:
            self._store[key] = entry
        return True

    def get(self, key: str) -> Optional[Any]:
        if not isinstance(key, str):
            return None
        expired = False
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and self._clock() >= entry.expires_at:
                del self._store[key]
                entry = None
                expired = True
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
        if expired:
            self._notify([key])
            return None
        return entry.value if entry is not None else None

    def invalidate(self, key: str) -> bool:
        if not isinstance(key, str):
            return True
        with self._lock:
            self._store.pop(key, None)
            self._epoch += 1
        self._notify([key])
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        if not isinstance(prefix, str) or not prefix:
            return 0
        with self._lock:
            removed = [k for k in self._store if k.startswith(prefix)]
            for k in removed:
                del self._store[k]
            self._epoch += 1
        self._notify(removed)
        return len(removed)

    def clear(self) -> bool:
        with self._lock:
            self._store.clear()
            self._epoch += 1
            watched = list(self._listeners.keys())
        self._notify(watched)
        return True

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl_seconds: Any) -> Any:
        """Read-through lookup: return the cached value or load, store and return it.

        Loader errors propagate and nothing is cached. ``None`` results are
        returned as-is but never stored, since ``None`` means "miss". A result
        is also not stored when an invalidation happened while it was loading.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            epoch = self._epoch
        value = loader()
        if value is None or not isinstance(key, str) or not key:
            return value
        now = self._clock()
        entry = CacheEntry(value=value, expires_at=now + _ttl_to_seconds(ttl_seconds), created_at=now)
        with self._lock:
            if self._epoch == epoch:
                self._store[key] = entry
            else:
                logger.debug("Skipping cache fill for %s: invalidated during load", key)
        return value

    def handle_realtime_event(self, payload: Dict[str, Any]) -> int:
        table = (payload or {}).get("table")
        patterns = self._patterns.get(table) if isinstance(table, str) else None
        if not patterns:
            return 0
        removed = 0
        for prefix in patterns:
            removed += self.invalidate_prefix(prefix)
        logger.info(
            "Invalidated %d cache keys for table=%s event=%s",
            removed, table, payload.get("eventType"),
        )
        return removed

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._store.items() if now >= e.expires_at]
            for k in expired:
                del self._store[k]
        self._notify(expired)
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        now = self._clock()
        with self._lock:
            total = len(self._store)
            expired = sum(1 for e in self._store.values() if now >= e.expires_at)
            hits, misses = self._hits, self._misses
        lookups = hits + misses
        return {
            "total_entries": total,
            "expired_entries": expired,
            "active_entries": total - expired,
            "hits": hits,
            "misses": misses,
            "hit_rate": (hits / lookups) if lookups else 0.0,
        }

    def add_invalidation_listener(self, key: str, callback: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(key, []).append(callback)

    def remove_invalidation_listener(self, key: str, callback: Listener) -> None:
        with self._lock:
            callbacks = self._listeners.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._listeners[key]

    def _notify(self, keys: List[str]) -> None:
        if not keys:
            return
        with self._lock:
            pending = [(k, list(self._listeners.get(k, ()))) for k in keys]
        for key, callbacks in pending:
            for cb in callbacks:
                try:
                    cb(key)
                except Exception:
                    logger.warning("Invalidation listener failed for key %s", key, exc_info=True)


cache_service = CacheService()


def set(key: str, value: Any, ttl_seconds: Any) -> bool:
    return cache_service.set(key, value, ttl_seconds)


def get(key: str) -> Optional[Any]:
    return cache_service.get(key)


def invalidate(key: str) -> bool:
    return cache_service.invalidate(key)


def clear() -> bool:
    return cache_service.clear()
