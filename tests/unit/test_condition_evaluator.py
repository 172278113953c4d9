"""
Unit tests for ConditionEvaluator.

Tests activation of every condition kind and value scaling for numeric
thresholds, including the clipping edge cases.
"""

import pytest

from relic_calculator.domain.models import CalculationContext
from relic_calculator.modules.calculation.conditions import ConditionEvaluator


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


@pytest.mark.unit
class TestActivation:
    """Test boolean activation per condition kind."""

    def test_unconditional_effect_always_active(self, evaluator, make_effect):
        effect = make_effect(value=7)

        assert evaluator.is_active(effect, CalculationContext())
        assert evaluator.scaled_value(effect, CalculationContext()) == 7

    def test_weapon_type_matches_case_insensitively(self, evaluator, make_effect):
        # Arrange
        effect = make_effect(
            kind="weapon_specific",
            conditions=[{"type": "weapon_type", "value": "straight_sword"}],
        )

        # Act & Assert
        assert evaluator.is_active(effect, CalculationContext(weapon_type="Straight_Sword"))
        assert not evaluator.is_active(effect, CalculationContext(weapon_type="bow"))
        assert not evaluator.is_active(effect, CalculationContext())

    def test_combat_style_gate(self, evaluator, make_effect):
        effect = make_effect(conditions=[{"type": "combat_style", "value": "critical_strike"}])

        assert evaluator.is_active(effect, CalculationContext(combat_style="critical_strike"))
        assert not evaluator.is_active(effect, CalculationContext(combat_style="parry"))

    def test_enemy_type_gate(self, evaluator, make_effect):
        effect = make_effect(conditions=[{"type": "enemy_type", "value": "Boss"}])

        assert evaluator.is_active(effect, CalculationContext(enemy_category="boss"))
        assert not evaluator.is_active(effect, CalculationContext(enemy_category="elite"))

    def test_chain_position_first_hit(self, evaluator, make_effect):
        """Position 1 matches an opening hit."""
        effect = make_effect(conditions=[{"type": "chain_position", "value": 1}])

        assert evaluator.is_active(effect, CalculationContext(is_first_hit=True))
        assert not evaluator.is_active(effect, CalculationContext(combo_count=3))

    def test_chain_position_uses_combo_count(self, evaluator, make_effect):
        effect = make_effect(conditions=[{"type": "chain_position", "value": 3}])

        assert evaluator.is_active(effect, CalculationContext(combo_count=3))
        assert not evaluator.is_active(effect, CalculationContext(combo_count=2))

    def test_inactive_effect_contributes_zero(self, evaluator, make_effect):
        effect = make_effect(value=13, conditions=[{"type": "enemy_type", "value": "boss"}])

        assert evaluator.scaled_value(effect, CalculationContext()) == 0.0

    def test_only_primary_condition_is_evaluated(self, evaluator, make_effect):
        """A failing secondary condition does not block the effect."""
        effect = make_effect(
            conditions=[
                {"type": "enemy_type", "value": "normal"},
                {"type": "enemy_type", "value": "boss"},
            ]
        )

        assert evaluator.is_active(effect, CalculationContext())

    def test_describe(self, evaluator, make_effect):
        gated = make_effect(conditions=[{"type": "combat_style", "value": "parry"}])

        assert evaluator.describe(gated) == "combat_style"
        assert evaluator.describe(make_effect()) is None


@pytest.mark.unit
class TestNumericScaling:
    """Test threshold comparisons and value scaling."""

    def test_count_threshold_at_least_scales_up(self, evaluator, make_effect):
        """observed / threshold, clipped to the declared range."""
        # Arrange
        effect = make_effect(
            value=10,
            conditions=[{"type": "count_threshold", "value": 4}],
            value_range=(10, 20),
        )

        # Act
        at_threshold = evaluator.scaled_value(effect, CalculationContext(combo_count=4))
        above = evaluator.scaled_value(effect, CalculationContext(combo_count=6))
        far_above = evaluator.scaled_value(effect, CalculationContext(combo_count=40))

        # Assert
        assert at_threshold == pytest.approx(10)
        assert above == pytest.approx(15)
        assert far_above == pytest.approx(20)

    def test_count_threshold_below_is_inactive(self, evaluator, make_effect):
        effect = make_effect(value=10, conditions=[{"type": "count_threshold", "value": 3}])

        assert not evaluator.is_active(effect, CalculationContext(combo_count=2))

    def test_without_range_value_is_fixed(self, evaluator, make_effect):
        """No declared range means (value, value): scaling is a no-op."""
        effect = make_effect(value=10, conditions=[{"type": "count_threshold", "value": 2}])

        assert evaluator.scaled_value(effect, CalculationContext(combo_count=8)) == 10

    def test_health_at_most_scales_with_missing_health(self, evaluator, make_effect):
        """threshold / observed: lower health gives a larger value."""
        # Arrange
        effect = make_effect(
            value=10,
            conditions=[{"type": "health_threshold", "value": 0.5, "comparison": "at_most"}],
            value_range=(5, 30),
        )

        # Act
        at_threshold = evaluator.scaled_value(effect, CalculationContext(player_health=0.5))
        quarter = evaluator.scaled_value(effect, CalculationContext(player_health=0.25))
        healthy = evaluator.scaled_value(effect, CalculationContext(player_health=0.9))

        # Assert
        assert at_threshold == pytest.approx(10)
        assert quarter == pytest.approx(20)
        assert healthy == 0.0

    def test_zero_health_clips_to_range_maximum(self, evaluator, make_effect):
        """An infinite ratio never leaks out; it lands on the range bound."""
        effect = make_effect(
            value=10,
            conditions=[{"type": "health_threshold", "value": 0.5, "comparison": "at_most"}],
            value_range=(5, 30),
        )

        assert evaluator.scaled_value(effect, CalculationContext(player_health=0.0)) == 30

    def test_zero_threshold_does_not_scale(self, evaluator, make_effect):
        effect = make_effect(
            value=10,
            conditions=[{"type": "count_threshold", "value": 0}],
            value_range=(0, 50),
        )

        assert evaluator.scaled_value(effect, CalculationContext(combo_count=9)) == 10

    def test_health_at_least(self, evaluator, make_effect):
        effect = make_effect(
            value=10,
            conditions=[{"type": "health_threshold", "value": 0.8}],
            value_range=(10, 12),
        )

        assert evaluator.is_active(effect, CalculationContext(player_health=1.0))
        assert evaluator.scaled_value(
            effect, CalculationContext(player_health=1.0)
        ) == pytest.approx(12)
        assert not evaluator.is_active(effect, CalculationContext(player_health=0.5))
