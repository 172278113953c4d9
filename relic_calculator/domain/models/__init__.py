"""
Domain models for the relic calculator.

All models are frozen dataclasses. They validate themselves on construction
and never change afterwards, which keeps calculations pure and lets results be
shared through the cache.
"""

from relic_calculator.domain.models.base import DomainValidationError
from relic_calculator.domain.models.context import CalculationContext, EnemyCategory
from relic_calculator.domain.models.relic import (
    EFFECT_PRIORITY,
    Comparison,
    Condition,
    ConditionKind,
    Effect,
    EffectKind,
    Relic,
    RelicCategory,
    RelicRarity,
    StackingRule,
)
from relic_calculator.domain.models.result import (
    CalculationResult,
    CalculationStep,
    EffectBreakdownEntry,
    MultiplierBreakdown,
    PerformanceCounters,
    RelicDetail,
    ResultMetadata,
)
from relic_calculator.domain.models.validation import (
    Discrepancy,
    FallbackStrategy,
    RecommendedAction,
    Severity,
    ValidatedCalculation,
    ValidationResult,
)

__all__ = [
    "DomainValidationError",
    # Relics
    "Relic",
    "Effect",
    "Condition",
    "EffectKind",
    "StackingRule",
    "ConditionKind",
    "Comparison",
    "RelicCategory",
    "RelicRarity",
    "EFFECT_PRIORITY",
    # Context
    "CalculationContext",
    "EnemyCategory",
    # Results
    "CalculationResult",
    "MultiplierBreakdown",
    "RelicDetail",
    "EffectBreakdownEntry",
    "CalculationStep",
    "PerformanceCounters",
    "ResultMetadata",
    # Validation
    "Discrepancy",
    "Severity",
    "RecommendedAction",
    "FallbackStrategy",
    "ValidationResult",
    "ValidatedCalculation",
]
