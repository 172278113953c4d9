"""
Condition evaluation for conditional effects.

Purpose
-------
Decide whether an effect is active under a calculation context and, for
numeric conditions, how far its value scales.

Rules
-----
- Only the primary (first) condition of an effect is evaluated.
- Unconditional effects are always active at their declared value.
- `health_threshold` and `count_threshold` compare the observed value
  (player health, combo count) against the threshold. `at_least` is active
  when observed >= threshold and scales by observed / threshold; `at_most` is
  active when observed <= threshold and scales by threshold / observed.
  Scaled values are clipped to the effect's declared range, which defaults
  to (value, value).
- `weapon_type`, `combat_style` and `enemy_type` are case-insensitive
  equality gates.
- `chain_position` is active when the context's chain position equals the
  condition value.

The evaluator is stateless; one instance may be shared freely.
"""

from __future__ import annotations

import math
from typing import Optional

from relic_calculator.domain.models.context import CalculationContext
from relic_calculator.domain.models.relic import Comparison, Condition, ConditionKind, Effect


class ConditionEvaluator:
    """Pure predicate and scaling logic for effect conditions."""

    def is_active(self, effect: Effect, context: CalculationContext) -> bool:
        condition = effect.condition
        if condition is None:
            return True
        return self._evaluate(condition, context)

    def scaled_value(self, effect: Effect, context: CalculationContext) -> float:
        """
        Value contributed by `effect` under `context`.

        Returns 0.0 for inactive effects.
        """
        condition = effect.condition
        if condition is None:
            return effect.value
        if not self._evaluate(condition, context):
            return 0.0
        if not condition.kind.is_numeric:
            return effect.value

        ratio = self._scale_ratio(condition, context)
        low, high = effect.bounds
        if math.isfinite(ratio):
            scaled = effect.value * ratio
        else:
            scaled = high if effect.value > 0 else low if effect.value < 0 else 0.0
        return min(max(scaled, low), high)

    def describe(self, effect: Effect) -> Optional[str]:
        """Condition kind label for breakdown entries."""
        condition = effect.condition
        return condition.kind.value if condition else None

    # ========================================================================
    # DISPATCH
    # ========================================================================

    def _evaluate(self, condition: Condition, context: CalculationContext) -> bool:
        kind = condition.kind

        if kind is ConditionKind.HEALTH_THRESHOLD:
            return self._compare(context.player_health, condition)
        if kind is ConditionKind.COUNT_THRESHOLD:
            return self._compare(float(context.combo_count), condition)
        if kind is ConditionKind.WEAPON_TYPE:
            return context.weapon_type is not None and context.weapon_type == condition.value
        if kind is ConditionKind.COMBAT_STYLE:
            return context.combat_style is not None and context.combat_style == condition.value
        if kind is ConditionKind.ENEMY_TYPE:
            return context.enemy_category.value == condition.value
        if kind is ConditionKind.CHAIN_POSITION:
            return context.chain_position == int(condition.threshold)

        raise ValueError(f"Unhandled condition kind: {kind!r}")

    @staticmethod
    def _observed(condition: Condition, context: CalculationContext) -> float:
        if condition.kind is ConditionKind.HEALTH_THRESHOLD:
            return context.player_health
        return float(context.combo_count)

    @staticmethod
    def _compare(observed: float, condition: Condition) -> bool:
        if condition.comparison is Comparison.AT_MOST:
            return observed <= condition.threshold
        return observed >= condition.threshold

    def _scale_ratio(self, condition: Condition, context: CalculationContext) -> float:
        observed = self._observed(condition, context)
        threshold = condition.threshold

        if condition.comparison is Comparison.AT_MOST:
            # Observed of 0 sits infinitely far below the cap; the clip bounds it.
            return threshold / observed if observed > 0 else float("inf")
        # A zero threshold is always met and gives no scaling reference.
        return observed / threshold if threshold > 0 else 1.0
