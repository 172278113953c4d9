"""
Unit tests for SynergyCalculator.

Tests category and effect-kind grouping, the minimum group size and
configuration overrides.
"""

import pytest

from relic_calculator.modules.calculation.synergy import SynergyCalculator, SynergyGroup


@pytest.mark.unit
class TestSynergyGroups:
    """Test group detection."""

    def test_single_relic_has_no_synergy(self, make_relic, make_effect):
        calculator = SynergyCalculator()
        relic = make_relic("solo", [make_effect()])

        assert calculator.synergy_groups([relic]) == []
        assert calculator.synergy_bonus([relic]) == 0.0

    def test_category_pair(self, make_relic, make_effect):
        """Two relics of one category: 0.15 per relic."""
        # Arrange
        calculator = SynergyCalculator()
        relics = [
            make_relic("a", [make_effect("a1", "attack_flat", 0.1)]),
            make_relic("b", [make_effect("b1", "attack_percentage", 5)]),
        ]

        # Act
        groups = calculator.synergy_groups(relics)

        # Assert
        assert groups == [SynergyGroup("category", "attack", 2, pytest.approx(0.30))]

    def test_effect_kind_group_spans_relics(self, make_relic, make_effect):
        """Effects of one kind count across relics of different categories."""
        # Arrange
        calculator = SynergyCalculator()
        relics = [
            make_relic("a", [make_effect("a1", value=5)], category="attack"),
            make_relic("b", [make_effect("b1", value=5)], category="defense"),
            make_relic("c", [make_effect("c1", value=5)], category="utility"),
        ]

        # Act
        bonus = calculator.synergy_bonus(relics)

        # Assert
        assert bonus == pytest.approx(0.30)

    def test_effects_within_one_relic_count(self, make_relic, make_effect):
        calculator = SynergyCalculator()
        relic = make_relic(
            "tiered",
            [
                make_effect("t1", "critical_multiplier", 12),
                make_effect("t2", "critical_multiplier", 18),
            ],
        )

        groups = calculator.synergy_groups([relic])

        assert [(g.source, g.label, g.size) for g in groups] == [
            ("effect_kind", "critical_multiplier", 2)
        ]

    def test_category_and_kind_bonuses_add(self, make_relic, make_effect):
        # Arrange
        calculator = SynergyCalculator()
        relics = [
            make_relic("a", [make_effect("a1", value=5)]),
            make_relic("b", [make_effect("b1", value=5)]),
        ]

        # Act
        bonus = calculator.synergy_bonus(relics)

        # Assert
        assert bonus == pytest.approx(0.15 * 2 + 0.10 * 2)


@pytest.mark.unit
class TestSynergyConfiguration:
    """Test tunables read from ConfigManager."""

    def test_weights_from_config(self, empty_config, make_relic, make_effect):
        # Arrange
        empty_config.set("calculation.synergy.category_weight", 0.5)
        empty_config.set("calculation.synergy.effect_weight", 0.0)
        calculator = SynergyCalculator(empty_config)
        relics = [make_relic("a", [make_effect("a1")]), make_relic("b", [make_effect("b1")])]

        # Act & Assert
        assert calculator.synergy_bonus(relics) == pytest.approx(1.0)

    def test_min_group_size_from_config(self, empty_config, make_relic, make_effect):
        empty_config.set("calculation.synergy.min_group_size", 3)
        calculator = SynergyCalculator(empty_config)
        relics = [make_relic("a", [make_effect("a1")]), make_relic("b", [make_effect("b1")])]

        assert calculator.synergy_bonus(relics) == 0.0

    def test_shipped_yaml_matches_defaults(self, config_manager):
        calculator = SynergyCalculator(config_manager)

        assert calculator.category_weight == pytest.approx(0.15)
        assert calculator.effect_weight == pytest.approx(0.10)
        assert calculator.min_group_size == 2
