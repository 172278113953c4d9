"""
Infrastructure exceptions for the relic calculator.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
configuration errors, remote calculation service failures, validation
timeouts, and cache faults.

Design Notes
------------
- All infrastructure exceptions inherit from `RelicInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Helper functions (`is_transient_error`, `get_error_severity`, `should_alert`)
  centralize common exception handling patterns.
- Domain rule violations (oversized selections, malformed input) live in
  `relic_calculator.modules.shared.exceptions`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning
    INFO = "info"  # Normal operation (e.g., rejected input)
    WARNING = "warning"  # Concerning but handled (e.g., remote fell back)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class RelicInfrastructureException(Exception):
    """
    Base exception for all infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise RelicInfrastructureException(
        ...     "Remote calculator misbehaved",
        ...     {"status": 502}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(RelicInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class RemoteUnavailableError(RelicInfrastructureException):
    """
    Raised when the authoritative remote calculator cannot produce a result.

    Covers network failures, non-2xx responses and payloads that do not
    decode into a calculation result. Callers fall back to the local path.

    Args:
        operation: What was being attempted (e.g. "calculate")
        reason: Short description of the failure
        status_code: HTTP status when the server answered
        original_error: The underlying exception, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        reason: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.original_error = original_error
        # A 4xx other than 429 means the request itself was rejected
        client_error = status_code is not None and 400 <= status_code < 500 and status_code != 429
        super().__init__(
            f"Remote calculator unavailable during {operation}: {reason}",
            details={
                "operation": operation,
                "reason": reason,
                "status_code": status_code,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="REMOTE_UNAVAILABLE",
            severity=ErrorSeverity.ERROR if client_error else None,
            is_retryable=False if client_error else None,
        )


class ValidationTimeoutError(RelicInfrastructureException):
    """
    Raised when the remote path exceeds its time budget.

    The validator converts this into a critical discrepancy instead of
    propagating it; the service raises it only to drive its fallback chain.

    Args:
        timeout_seconds: The budget that was exceeded
        operation: What was being attempted
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, timeout_seconds: float, operation: str = "remote_calculation") -> None:
        self.timeout_seconds = timeout_seconds
        self.operation = operation
        super().__init__(
            f"{operation} exceeded {timeout_seconds:.2f}s",
            details={"timeout_seconds": timeout_seconds, "operation": operation},
            error_code="VALIDATION_TIMEOUT",
        )


class CacheError(RelicInfrastructureException):
    """
    Raised when a cache operation cannot be completed.

    Args:
        operation: Description of the cache operation that failed
        cache_key: The cache key involved in the failure
        original_error: The underlying exception (if any)
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(
        self,
        operation: str,
        cache_key: str,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.cache_key = cache_key
        self.original_error = original_error
        error_msg = str(original_error) if original_error else "Cache operation failed"
        super().__init__(
            f"Cache error during {operation} for key '{cache_key}': {error_msg}",
            details={
                "operation": operation,
                "cache_key": cache_key,
                "error": error_msg,
            },
            error_code="CACHE_ERROR",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """
    Check if an exception represents a transient error that can be retried.

    Args:
        exc: Exception to check

    Returns:
        True if error is retryable, False otherwise.
    """
    if isinstance(exc, RelicInfrastructureException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Domain exceptions carry their own severity; anything unknown is ERROR.
    """
    severity = getattr(exc, "severity", None)
    if isinstance(severity, ErrorSeverity):
        return severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
