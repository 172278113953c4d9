"""
Core infrastructure layer for the relic calculator.

Purpose
-------
Provide a single import surface for the infrastructure subsystems:

- Configuration management (Config, ConfigManager)
- Logging (structured logging, logger factory, log context)
- Memoization cache (MemoizationCache, CacheMetrics)
- Infrastructure exceptions (RelicInfrastructureException hierarchy)

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- Public API is explicit via __all__.
- Feature modules import from the concrete submodules, not from here.
"""

from __future__ import annotations

# Config must load before logging and cache: the logger reads Config at import.
from relic_calculator.core.config import Config, ConfigManager
from relic_calculator.core.cache import CacheMetrics, MemoizationCache
from relic_calculator.core.exceptions import (
    CacheError,
    ConfigurationError,
    ErrorSeverity,
    RelicInfrastructureException,
    RemoteUnavailableError,
    ValidationTimeoutError,
)
from relic_calculator.core.logging import LogContext, get_logger

__all__ = [
    # Config
    "Config",
    "ConfigManager",
    # Cache
    "MemoizationCache",
    "CacheMetrics",
    # Logging
    "get_logger",
    "LogContext",
    # Exceptions
    "RelicInfrastructureException",
    "ErrorSeverity",
    "ConfigurationError",
    "RemoteUnavailableError",
    "ValidationTimeoutError",
    "CacheError",
]
