"""
Unit tests for FallbackCalculator.

The naive path must always produce a result flagged `fallback`, whatever
it is handed.
"""

import pytest

from relic_calculator.modules.calculation.fallback import FallbackCalculator


@pytest.mark.unit
class TestFallbackCalculation:
    """Test the naive totals."""

    def test_empty_selection(self):
        # Act
        result = FallbackCalculator().fallback([])

        # Assert
        assert result.total == 1.0
        assert result.efficiency == 0.0
        assert result.obtainment_difficulty == 0.0
        assert result.metadata.fallback is True
        assert result.metadata.client_side is True
        assert result.metadata.source == "fallback"

    def test_uses_attack_contribution(self, make_relic):
        # Arrange
        relics = [
            make_relic("a", attack_contribution=0.2),
            make_relic("b", attack_contribution=0.3),
        ]

        # Act
        result = FallbackCalculator().fallback(relics)

        # Assert
        assert result.total == pytest.approx(1.5)
        assert result.multipliers.base == pytest.approx(1.5)
        assert result.obtainment_difficulty == pytest.approx(1.0)
        assert result.efficiency == pytest.approx(1.5)
        assert [d.contribution for d in result.relic_details] == [20.0, 30.0]

    def test_default_contribution_when_missing(self, make_relic):
        result = FallbackCalculator().fallback([make_relic("a"), make_relic("b"), make_relic("c")])

        assert result.total == pytest.approx(1.3)

    def test_difficulty_is_capped(self, make_relic):
        relics = [make_relic(f"r{i}") for i in range(12)]

        result = FallbackCalculator().fallback(relics)

        assert result.obtainment_difficulty == 5.0

    def test_malformed_entries_are_skipped_with_warning(self, make_relic):
        # Arrange
        relics = [make_relic("a", attack_contribution=0.1), "not-a-relic", None]

        # Act
        result = FallbackCalculator().fallback(relics)

        # Assert
        assert result.total == pytest.approx(1.1)
        assert len(result.relic_details) == 1
        assert sum("malformed" in w for w in result.warnings) == 2

    def test_passes_through_caller_warnings(self):
        result = FallbackCalculator().fallback([], warnings=["remote down"])

        assert result.warnings == ("remote down",)

    def test_never_raises(self, mocker, make_relic):
        """An internal failure still returns the identity result."""
        # Arrange
        calculator = FallbackCalculator()
        mocker.patch.object(calculator, "_calculate", side_effect=RuntimeError("boom"))

        # Act
        result = calculator.fallback([make_relic("a")])

        # Assert
        assert result.total == 1.0
        assert result.metadata.fallback is True
        assert any("boom" in w for w in result.warnings)

    def test_tunables_from_config(self, empty_config, make_relic):
        empty_config.set("fallback.default_contribution", 0.5)
        empty_config.set("fallback.max_difficulty", 1.0)

        result = FallbackCalculator(empty_config).fallback([make_relic("a"), make_relic("b")])

        assert result.total == pytest.approx(2.0)
        assert result.obtainment_difficulty == 1.0
