"""
Shared building blocks for feature modules: the service base class and the
domain exception hierarchy.
"""

from relic_calculator.modules.shared.base_service import BaseService
from relic_calculator.modules.shared.exceptions import (
    InvalidInputError,
    LimitExceededError,
    NotFoundError,
    RelicDomainException,
)

__all__ = [
    "BaseService",
    "RelicDomainException",
    "LimitExceededError",
    "InvalidInputError",
    "NotFoundError",
]
