"""
Base validation helpers for domain models.

Purpose
-------
Provide the shared validation vocabulary used by the immutable value objects
(relics, effects, contexts, results). Value objects validate themselves in
`__post_init__` and raise `DomainValidationError` with the offending field.

Non-Responsibilities
--------------------
- Calculation rules (handled by the calculation module)
- Caller-facing error translation (services wrap these in InvalidInputError)
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


class DomainValidationError(Exception):
    """
    Exception raised when domain model validation fails.

    This is the base exception for all rule violations in value objects.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        """
        Initialize validation error.

        Parameters
        ----------
        message : str
            Human-readable error message
        field : Optional[str]
            Field name that failed validation (if applicable)
        """
        super().__init__(message)
        self.field = field


def validate_number(value: Any, field_name: str) -> float:
    """
    Coerce a value to a finite float.

    Raises
    ------
    DomainValidationError
        If value is not numeric, is a bool, or is NaN/infinite
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DomainValidationError(
            f"{field_name} must be a number, got {type(value).__name__}",
            field=field_name,
        )
    number = float(value)
    if not math.isfinite(number):
        raise DomainValidationError(f"{field_name} must be finite, got {value}", field=field_name)
    return number


def validate_non_negative(value: float, field_name: str) -> None:
    """
    Validate that a value is non-negative.

    Parameters
    ----------
    value : float
        Value to validate
    field_name : str
        Name of the field (for error messages)

    Raises
    ------
    DomainValidationError
        If value is negative
    """
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    """
    Validate that a value is within a range.

    Parameters
    ----------
    value : float
        Value to validate
    min_val : float
        Minimum allowed value (inclusive)
    max_val : float
        Maximum allowed value (inclusive)
    field_name : str
        Name of the field (for error messages)

    Raises
    ------
    DomainValidationError
        If value is outside the range
    """
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_not_empty(value: Any, field_name: str) -> None:
    """
    Validate that a string is not empty.

    Raises
    ------
    DomainValidationError
        If value is not a string, or is empty or whitespace-only
    """
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(
            f"{field_name} cannot be empty",
            field=field_name,
        )


def parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    """
    Parse a raw value into a member of `enum_cls`.

    Accepts an existing member or its value (case-insensitive for strings).

    Raises
    ------
    DomainValidationError
        If value does not name a member; the message lists allowed values
    """
    if isinstance(value, enum_cls):
        return value
    raw = value.lower() if isinstance(value, str) else value
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_cls)
        raise DomainValidationError(
            f"{field_name} must be one of [{allowed}], got {value!r}",
            field=field_name,
        ) from None
