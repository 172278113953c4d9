"""
Domain exceptions for the relic calculator.

Purpose
-------
Define the domain-specific exception hierarchy raised by calculation services
for caller mistakes: oversized selections, malformed relics or contexts, and
lookups of relics that do not exist. These are fatal to the call and never
retried.

Design Notes
------------
- All domain exceptions inherit from `RelicDomainException`.
- Each exception carries `message`, `details`, `severity`, `is_retryable`
  and `error_code`, mirroring the infrastructure hierarchy so both can be
  logged through the same helpers.
- Infrastructure failures (remote service, timeouts) live in
  `relic_calculator.core.exceptions`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from relic_calculator.core.exceptions import ErrorSeverity


class RelicDomainException(Exception):
    """
    Base exception for all domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
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
            f"severity={self.severity.value!r}"
            ")"
        )


class LimitExceededError(RelicDomainException):
    """
    Raised when a relic selection is larger than the allowed maximum.

    Args:
        limit: Maximum number of relics allowed
        actual: Number of relics supplied
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, limit: int, actual: int) -> None:
        self.limit = limit
        self.actual = actual
        super().__init__(
            f"Relic selection too large: {actual} supplied, maximum is {limit}",
            details={"limit": limit, "actual": actual},
            error_code="LIMIT_EXCEEDED",
        )


class InvalidInputError(RelicDomainException):
    """
    Raised when a relic list or calculation context is missing or malformed.

    Args:
        field: Name of the argument that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Invalid input for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"INVALID_{field.upper()}",
        )


class NotFoundError(RelicDomainException):
    """
    Raised when a single, explicitly requested relic does not exist.

    Bulk resolution never raises this; unknown ids are skipped there.

    Args:
        resource_type: Type of resource (e.g., "Relic")
        identifier: Identifier of the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Any) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(
            f"{resource_type} not found: {identifier}",
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )
