"""
Cache performance metrics tracking.

Provides thread-safe counters for the in-process memoization cache: hits,
misses, sets, evictions, expirations, deletions and lookup latency.
"""

from __future__ import annotations

import threading
from typing import Any, Dict


class CacheMetrics:
    """
    Per-cache operational counters.

    Each cache owns its own metrics object; counters are guarded by a lock so
    calculations running on worker threads can record safely.

    Example
    -------
    >>> metrics = CacheMetrics()
    >>> metrics.record_hit(0.4)
    >>> metrics.get_metrics()["hit_rate"]
    100.0
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: Dict[str, float] = self._empty()

    @staticmethod
    def _empty() -> Dict[str, float]:
        return {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "evictions": 0,
            "expirations": 0,
            "errors": 0,
            "total_get_time_ms": 0.0,
            "total_set_time_ms": 0.0,
        }

    # ========================================================================
    # RECORDING
    # ========================================================================

    def record_hit(self, duration_ms: float = 0.0) -> None:
        with self._lock:
            self._metrics["hits"] += 1
            self._metrics["total_get_time_ms"] += duration_ms

    def record_miss(self, duration_ms: float = 0.0) -> None:
        with self._lock:
            self._metrics["misses"] += 1
            self._metrics["total_get_time_ms"] += duration_ms

    def record_set(self, duration_ms: float = 0.0) -> None:
        with self._lock:
            self._metrics["sets"] += 1
            self._metrics["total_set_time_ms"] += duration_ms

    def record_delete(self) -> None:
        with self._lock:
            self._metrics["deletes"] += 1

    def record_eviction(self) -> None:
        with self._lock:
            self._metrics["evictions"] += 1

    def record_expiration(self, count: int = 1) -> None:
        with self._lock:
            self._metrics["expirations"] += count

    def record_error(self) -> None:
        with self._lock:
            self._metrics["errors"] += 1

    # ========================================================================
    # REPORTING
    # ========================================================================

    def get_metrics(self) -> Dict[str, Any]:
        """
        Snapshot of raw counters plus derived rates.

        Returns
        -------
        Dict[str, Any]
            Raw counters, `hit_rate` as a percentage (0-100), average get/set
            latency in milliseconds and `total_operations`.
        """
        with self._lock:
            m = dict(self._metrics)

        total_gets = m["hits"] + m["misses"]
        hit_rate = (m["hits"] / total_gets * 100) if total_gets > 0 else 0.0
        avg_get_time = m["total_get_time_ms"] / total_gets if total_gets > 0 else 0.0
        avg_set_time = m["total_set_time_ms"] / m["sets"] if m["sets"] > 0 else 0.0

        return {
            "hits": int(m["hits"]),
            "misses": int(m["misses"]),
            "sets": int(m["sets"]),
            "deletes": int(m["deletes"]),
            "evictions": int(m["evictions"]),
            "expirations": int(m["expirations"]),
            "errors": int(m["errors"]),
            "hit_rate": round(hit_rate, 2),
            "avg_get_time_ms": round(avg_get_time, 4),
            "avg_set_time_ms": round(avg_set_time, 4),
            "total_operations": int(total_gets + m["sets"]),
        }

    def reset(self) -> None:
        """Reset every counter to zero."""
        with self._lock:
            self._metrics = self._empty()
