"""
In-process memoization cache for calculation results.

Purpose
-------
Keep recently computed calculation results in memory so identical
(selection, context) requests skip the engine entirely.

Features
--------
- Size-bounded store with least-recently-used eviction
- Per-entry TTL; expired entries count as misses and are purged on access
- Thread-safe: every operation runs under a single re-entrant lock
- Hit/miss/eviction metrics and a health snapshot

Key Design Decisions
--------------------
- Recency is tracked by a monotonic access tick rather than dict order, so a
  read promotes an entry without reshuffling the store.
- Values are stored whole and are expected to be immutable. `clear()` only
  affects future lookups; a caller already holding a value keeps it.
- The clock is injectable so expiry can be tested without sleeping.

Usage
-----
>>> cache = MemoizationCache(max_size=100, default_ttl=600)
>>> cache.set("a,b|{}", result)
>>> cache.get("a,b|{}") is result
True
"""

from __future__ import annotations

import functools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from relic_calculator.core.cache.metrics import CacheMetrics
from relic_calculator.core.exceptions import CacheError
from relic_calculator.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 300.0

_MISSING = object()


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    expires_at: float
    access_count: int = 0
    last_access: int = 0  # Monotonic tick, not wall time

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoizationCache:
    """
    Key-addressed, time-expiring, size-bounded result store.

    Parameters
    ----------
    max_size : int
        Maximum number of live entries before LRU eviction
    default_ttl : float
        Lifetime in seconds for entries stored without an explicit TTL
    clock : Callable[[], float]
        Monotonic time source
    max_errors : int
        Error count above which `health_check` reports "degraded"
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_errors: int = 100,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")

        self.max_size = max_size
        self.default_ttl = float(default_ttl)
        self._clock = clock
        self._max_errors = max_errors
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._tick = 0
        self._metrics = CacheMetrics()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ========================================================================
    # INTERNALS (caller holds the lock)
    # ========================================================================

    def _next_tick(self) -> int:
        self._tick += 1
        return self._tick

    def _lookup(self, key: str) -> Any:
        start_time = time.perf_counter()
        entry = self._store.get(key)

        if entry is not None and entry.is_expired(self._clock()):
            del self._store[key]
            self._metrics.record_expiration()
            entry = None

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if entry is None:
            self._metrics.record_miss(elapsed_ms)
            logger.debug(f"Cache MISS: {key} time={elapsed_ms:.2f}ms")
            return _MISSING

        entry.access_count += 1
        entry.last_access = self._next_tick()
        self._metrics.record_hit(elapsed_ms)
        logger.debug(f"Cache HIT: {key} time={elapsed_ms:.2f}ms")
        return entry.value

    def _resolve_ttl(self, key: str, ttl: Optional[float]) -> float:
        if ttl is None:
            return self.default_ttl
        if ttl <= 0:
            self._metrics.record_error()
            raise CacheError("set", key, ValueError(f"ttl must be positive, got {ttl}"))
        return float(ttl)

    def _evict_lru(self) -> None:
        victim = min(self._store.values(), key=lambda entry: entry.last_access)
        del self._store[victim.key]
        self._metrics.record_eviction()
        logger.debug(
            "Cache entry evicted",
            extra={"cache_key": victim.key, "access_count": victim.access_count},
        )

    def _store_entry(self, key: str, value: Any, ttl: Optional[float]) -> None:
        start_time = time.perf_counter()
        lifetime = self._resolve_ttl(key, ttl)

        if key not in self._store and len(self._store) >= self.max_size:
            self._purge_expired_locked()
            if len(self._store) >= self.max_size:
                self._evict_lru()

        now = self._clock()
        self._store[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + lifetime,
            last_access=self._next_tick(),
        )
        self._metrics.record_set((time.perf_counter() - start_time) * 1000)

    def _purge_expired_locked(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._store.items() if entry.is_expired(now)]
        for key in expired:
            del self._store[key]
        if expired:
            self._metrics.record_expiration(len(expired))
        return len(expired)

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or an expired entry."""
        with self._lock:
            value = self._lookup(key)
            return None if value is _MISSING else value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store `value` under `key`.

        Raises
        ------
        CacheError
            If `ttl` is zero or negative
        """
        with self._lock:
            self._store_entry(key, value, ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._store.pop(key, None) is not None
            if removed:
                self._metrics.record_delete()
            return removed

    def has(self, key: str) -> bool:
        """Membership test that honours expiry without counting a hit or miss."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._store[key]
                self._metrics.record_expiration()
                return False
            return True

    def clear(self) -> int:
        """Drop every entry. Returns the number of entries removed."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
        logger.info("Memoization cache cleared", extra={"entries_removed": count})
        return count

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Return the live subset of `keys`; misses are omitted."""
        found: Dict[str, Any] = {}
        with self._lock:
            for key in keys:
                value = self._lookup(key)
                if value is not _MISSING:
                    found[key] = value
        return found

    def set_many(self, items: Mapping[str, Any], ttl: Optional[float] = None) -> int:
        with self._lock:
            for key, value in items.items():
                self._store_entry(key, value, ttl)
        return len(items)

    def purge_expired(self) -> int:
        """Remove all expired entries eagerly. Returns the number removed."""
        with self._lock:
            return self._purge_expired_locked()

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: Optional[float] = None) -> T:
        """
        Return the cached value for `key`, computing and storing it on a miss.

        The factory runs while the lock is held, so concurrent callers for the
        same key never compute twice and never observe a partial entry.
        """
        with self._lock:
            value = self._lookup(key)
            if value is not _MISSING:
                return value
            value = factory()
            self._store_entry(key, value, ttl)
            return value

    def memoize(
        self,
        key_func: Optional[Callable[..., str]] = None,
        ttl: Optional[float] = None,
    ) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """
        Decorator caching a function's return value.

        Parameters
        ----------
        key_func : Optional[Callable[..., str]]
            Builds the cache key from the call arguments. Defaults to the
            function's qualified name plus the repr of its arguments.
        ttl : Optional[float]
            Entry lifetime; defaults to the cache TTL

        Example
        -------
        >>> @cache.memoize(key_func=lambda relic_id: f"relic:{relic_id}")
        ... def load(relic_id): ...
        """

        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> T:
                if key_func is not None:
                    key = key_func(*args, **kwargs)
                else:
                    key = f"{func.__qualname__}:{args!r}:{sorted(kwargs.items())!r}"
                return self.get_or_set(key, lambda: func(*args, **kwargs), ttl)

            return wrapper

        return decorator

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._store.keys())

    # ========================================================================
    # METRICS & HEALTH
    # ========================================================================

    def get_metrics(self) -> Dict[str, Any]:
        metrics = self._metrics.get_metrics()
        with self._lock:
            metrics["size"] = len(self._store)
        metrics["max_size"] = self.max_size
        metrics["default_ttl"] = self.default_ttl
        return metrics

    def reset_metrics(self) -> None:
        self._metrics.reset()

    def is_healthy(self) -> bool:
        metrics = self._metrics.get_metrics()
        return metrics["errors"] < self._max_errors and len(self) <= self.max_size

    def health_check(self) -> Dict[str, Any]:
        """
        Cache health snapshot.

        Example
        -------
        >>> health = cache.health_check()
        >>> if health["status"] == "degraded":
        ...     logger.warning("Cache experiencing issues")
        """
        metrics = self.get_metrics()
        is_healthy = self.is_healthy()
        return {
            "size": metrics["size"],
            "max_size": metrics["max_size"],
            "hit_rate": metrics["hit_rate"],
            "evictions": metrics["evictions"],
            "expirations": metrics["expirations"],
            "errors": metrics["errors"],
            "avg_get_time_ms": metrics["avg_get_time_ms"],
            "is_healthy": is_healthy,
            "status": "healthy" if is_healthy else "degraded",
        }
