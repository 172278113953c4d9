"""
Base Service Foundation

Purpose
-------
Provides the foundational class for the calculation and validation services.
Services hold pure calculation logic, read their tunables from ConfigManager
and raise domain exceptions.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Common error logging

What this class does NOT do:
- Perform I/O (remote clients are injected collaborators)
- Own caches or catalogs (injected by the ServiceContainer)

Usage
-----
    class CalculationEngine(BaseService):
        def __init__(self, config_manager, cache, logger=None):
            super().__init__(config_manager, logger or get_logger(__name__))
            self._cache = cache
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from relic_calculator.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from logging import Logger

    from relic_calculator.core.config.manager import ConfigManager


class BaseService:
    """
    Base class for all calculation-side services.

    Args:
        config_manager: Tunable configuration
        logger: Structured logger instance
    """

    def __init__(self, config_manager: ConfigManager, logger: Logger) -> None:
        self._config = config_manager
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key not found
            required: If True, raise exception if key missing

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log a service operation with structured context.

        Args:
            operation: Name of the operation being performed
            **context: Additional context data
        """
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a service error with full context, including the traceback.

        Args:
            operation: Name of the operation that failed
            error: The exception that occurred
            **context: Additional context data
        """
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=error,
        )
