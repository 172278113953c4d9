"""
Integration Tests for the Calculation Flow
==========================================

Purpose
-------
Wire the full service graph through the ServiceContainer over the shipped
`config/` tunables and `data/relics.yaml` catalog, then exercise the public
calculation API end to end.

Test Coverage
-------------
- Container lifecycle (initialize, health, shutdown, access before init)
- Conditional, scaled and synergy effects from the real catalog
- Conflict handling between catalog relics
- Validation against an injected remote calculator

Testing Strategy
----------------
- No network: the remote calculator is an in-process fake
- AAA pattern (Arrange, Act, Assert)
"""

import pytest
import pytest_asyncio

from relic_calculator.core.services.container import ServiceContainer
from tests.conftest import FakeRemote


@pytest_asyncio.fixture
async def container():
    """
    Initialized container over the shipped data.

    Scope: function (fresh cache and statistics per test)
    """
    container = ServiceContainer()
    await container.initialize()
    yield container
    await container.shutdown()


@pytest.mark.integration
@pytest.mark.asyncio
class TestContainerLifecycle:
    """Test service container wiring."""

    async def test_services_unavailable_before_initialize(self):
        container = ServiceContainer()

        with pytest.raises(RuntimeError, match="not initialized"):
            _ = container.calculation

    async def test_initialize_builds_every_service(self, container):
        # Act
        health = await container.health_check()

        # Assert
        assert health["initialized"] is True
        assert health["calculation"]["status"] == "healthy"
        assert health["calculation"]["catalog_size"] == len(container.catalog)
        assert health["calculation"]["remote_configured"] is False
        assert health["config"]["loaded"] is True

    async def test_second_initialize_is_noop(self, container):
        engine = container.engine

        await container.initialize()

        assert container.engine is engine

    async def test_shutdown(self):
        container = ServiceContainer()
        await container.initialize()

        await container.shutdown()

        with pytest.raises(RuntimeError):
            _ = container.engine


@pytest.mark.integration
@pytest.mark.asyncio
class TestCatalogCalculations:
    """Test calculations over the shipped relic catalog."""

    async def test_weapon_specific_bonus_needs_matching_weapon(self, container):
        # Arrange
        relic_ids = ["physical-attack-up", "improved-straight-sword"]

        # Act
        with_sword = await container.calculation.calculate(
            relic_ids, {"weaponType": "straight_sword"}
        )
        without = await container.calculation.calculate(relic_ids)

        # Assert
        assert with_sword.total == pytest.approx(1.09 + 0.30)
        assert with_sword.multipliers.conditional == pytest.approx(0.07)
        assert with_sword.obtainment_difficulty == 2.0
        assert without.total == pytest.approx(1.02 + 0.30)
        assert without.multipliers.conditional == 0.0

    async def test_tiered_critical_hits(self, container):
        result = await container.calculation.calculate(
            ["improved-critical-hits"], {"combatStyle": "critical_strike"}
        )

        assert result.total == pytest.approx(1.54 + 0.30)
        assert result.relic_details[0].active_effect_ids == (
            "critical-tier-1",
            "critical-tier-2",
            "critical-tier-3",
        )

    async def test_conflicting_catalog_relics(self, container):
        # Act
        result = await container.calculation.calculate(
            ["improved-critical-hits", "steady-hand"], {"combatStyle": "critical_strike"}
        )

        # Assert
        steady = result.relic_details[1]
        assert steady.relic_id == "steady-hand"
        assert steady.conflicted is True
        assert result.obtainment_difficulty == 8.0

    async def test_low_health_scaling(self, container):
        at_threshold = await container.calculation.calculate(
            ["desperate-fury"], {"playerHealth": 0.5}
        )
        critical = await container.calculation.calculate(
            ["desperate-fury"], {"playerHealth": 0.25}
        )
        healthy = await container.calculation.calculate(["desperate-fury"], {"playerHealth": 0.9})

        assert at_threshold.total == pytest.approx(1.10)
        assert critical.total == pytest.approx(1.20)
        assert healthy.total == pytest.approx(1.0)

    async def test_boss_seal_multiplies(self, container):
        boss = await container.calculation.calculate(["boss-slayer-seal"], {"enemyType": "boss"})
        normal = await container.calculation.calculate(["boss-slayer-seal"])

        assert boss.total == pytest.approx(1.15)
        assert normal.total == pytest.approx(1.0)

    async def test_chain_opener_and_environment(self, container):
        result = await container.calculation.calculate(
            ["initial-attack-buff", "iron-grip"],
            {"isFirstHit": True, "environmentEffects": ["rain"]},
        )

        # (1 + 0.05) x 1.13, category synergy 0.30, one environment tag 0.03
        assert result.total == pytest.approx(1.05 * 1.13 + 0.30 + 0.03, abs=0.01)
        m = result.multipliers
        assert m.base + m.conditional + m.synergy + m.environmental == pytest.approx(
            m.total, abs=0.02
        )

    async def test_repeat_calculation_hits_cache(self, container):
        await container.calculation.calculate(["physical-attack-up"])
        cached = await container.calculation.calculate(["physical-attack-up"])

        assert cached.metadata.cached is True
        assert container.cache.get_metrics()["hits"] == 1


@pytest.mark.integration
@pytest.mark.asyncio
class TestRemoteValidationFlow:
    """Test validation with an injected remote calculator."""

    async def test_validation_against_matching_remote(self):
        # Arrange
        remote = FakeRemote()
        injected = ServiceContainer(remote=remote)
        await injected.initialize()
        remote.engine = injected.engine
        remote.catalog = injected.catalog

        # Act
        outcome = await injected.calculation.calculate_with_validation(
            ["physical-attack-up", "iron-grip"], force=True
        )
        report = await injected.validator.generate_report()

        # Assert
        assert outcome.validated is True
        assert outcome.validation.is_valid
        assert report["summary"]["passed_validations"] == 1
        assert report["recommendations"] == []

        assert remote.calls == [["physical-attack-up", "iron-grip"]]
        await injected.shutdown()
