"""
Validation value objects produced by the dual-path validator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from relic_calculator.domain.models.result import CalculationResult


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def weight(self) -> float:
        return SEVERITY_WEIGHTS[self]

    @classmethod
    def from_percentage(cls, percentage: float) -> "Severity":
        if percentage < 2:
            return cls.LOW
        if percentage < 5:
            return cls.MEDIUM
        if percentage < 10:
            return cls.HIGH
        return cls.CRITICAL


SEVERITY_WEIGHTS = {
    Severity.LOW: 0.1,
    Severity.MEDIUM: 0.3,
    Severity.HIGH: 0.6,
    Severity.CRITICAL: 1.0,
}
MAX_SEVERITY_WEIGHT = SEVERITY_WEIGHTS[Severity.CRITICAL]


class RecommendedAction(str, Enum):
    USE_LOCAL = "use_local"
    USE_REMOTE = "use_remote"
    MANUAL_REVIEW = "manual_review"


class FallbackStrategy(str, Enum):
    PREFER_REMOTE = "prefer_remote"
    PREFER_LOCAL = "prefer_local"
    CONSERVATIVE = "conservative"


@dataclass(frozen=True)
class Discrepancy:
    field: str
    client_value: float
    server_value: float
    absolute_difference: float
    percentage_difference: float
    severity: Severity


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of comparing a local result against the remote one.

    `completed` is False when the remote path timed out or failed; in that
    case `remote_result` is None and `discrepancies` holds one synthetic
    critical entry naming the failure. `local_result` is None only when the
    local calculation itself raised during a batch.
    """

    local_result: Optional[CalculationResult]
    remote_result: Optional[CalculationResult]
    discrepancies: Tuple[Discrepancy, ...]
    confidence: float
    recommended_action: RecommendedAction
    validation_time_ms: float
    validated_at: str
    completed: bool = True
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.completed and not self.discrepancies

    @property
    def has_critical(self) -> bool:
        return any(d.severity is Severity.CRITICAL for d in self.discrepancies)

    @property
    def average_discrepancy(self) -> float:
        if not self.discrepancies:
            return 0.0
        return sum(d.percentage_difference for d in self.discrepancies) / len(self.discrepancies)


@dataclass(frozen=True)
class ValidatedCalculation:
    result: CalculationResult
    validated: bool
    validation: Optional[ValidationResult] = None
