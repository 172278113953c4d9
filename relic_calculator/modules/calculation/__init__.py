"""
Relic calculation module.

Local detailed engine, its condition and synergy collaborators, the naive
fallback, the relic catalog and the identifier-based calculation service.
"""

from relic_calculator.modules.calculation.catalog import RelicCatalog, ResolvedSelection
from relic_calculator.modules.calculation.conditions import ConditionEvaluator
from relic_calculator.modules.calculation.engine import (
    CalculationEngine,
    CalculationOptions,
    build_cache_key,
)
from relic_calculator.modules.calculation.fallback import FallbackCalculator
from relic_calculator.modules.calculation.service import CalculationService
from relic_calculator.modules.calculation.synergy import SynergyCalculator, SynergyGroup

__all__ = [
    "CalculationEngine",
    "CalculationOptions",
    "CalculationService",
    "ConditionEvaluator",
    "SynergyCalculator",
    "SynergyGroup",
    "FallbackCalculator",
    "RelicCatalog",
    "ResolvedSelection",
    "build_cache_key",
]
