"""
Caching subsystem.

In-process memoization of calculation results with TTL expiry, LRU
eviction and per-cache metrics.
"""

from relic_calculator.core.cache.memoization import CacheEntry, MemoizationCache
from relic_calculator.core.cache.metrics import CacheMetrics

__all__ = [
    "MemoizationCache",
    "CacheEntry",
    "CacheMetrics",
]
