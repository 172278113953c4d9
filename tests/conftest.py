"""
Pytest Configuration and Fixtures for Relic Calculator Tests
============================================================

Purpose
-------
Centralized test fixtures and configuration for the relic calculator test
suite. Provides reusable fixtures for configuration, domain model factories,
services and remote calculator fakes.

Responsibilities
----------------
- Test environment flags
- ConfigManager built from the shipped YAML tunables
- Relic / context factories for test data
- Engine, validator and service wiring with injected fakes
- Fake remote calculators (fixed result, slow, failing)

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- Real network access (remote calls are faked or use httpx.MockTransport)

Architecture Notes
------------------
- Unit tests build services directly with explicit collaborators
- Integration tests use the ServiceContainer over the shipped data files
- The memoization cache gets a manual clock so expiry needs no sleeping
"""

from __future__ import annotations

import asyncio
import os
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from relic_calculator.core.cache.memoization import MemoizationCache
from relic_calculator.core.config.config import Config
from relic_calculator.core.config.manager import ConfigManager
from relic_calculator.core.exceptions import RemoteUnavailableError
from relic_calculator.domain.models import (
    CalculationContext,
    CalculationResult,
    Effect,
    Relic,
)
from relic_calculator.modules.calculation.catalog import RelicCatalog
from relic_calculator.modules.calculation.engine import CalculationEngine
from relic_calculator.modules.calculation.fallback import FallbackCalculator
from relic_calculator.modules.calculation.service import CalculationService
from relic_calculator.modules.validation.validator import DualPathValidator, ValidationConfig

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


@pytest.fixture
def config_manager() -> ConfigManager:
    """
    ConfigManager loaded from the shipped `config/` directory.

    Scope: function (overrides never leak between tests)
    """
    return ConfigManager(config_dir=Config.PROJECT_ROOT / "config")


@pytest.fixture
def empty_config() -> ConfigManager:
    """ConfigManager with no YAML; every call site falls back to its default."""
    return ConfigManager()


# ============================================================================
# CLOCK / CACHE FIXTURES
# ============================================================================


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache(clock: ManualClock) -> MemoizationCache:
    return MemoizationCache(max_size=100, default_ttl=600, clock=clock)


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


@pytest.fixture
def make_effect() -> Callable[..., Effect]:
    """
    Factory for effects.

    Usage:
        effect = make_effect("atk", "attack_percentage", 10)
    """

    def _make(
        effect_id: str = "effect",
        kind: str = "attack_percentage",
        value: float = 10.0,
        stacking: str = "additive",
        conditions: Sequence[Dict[str, Any]] = (),
        value_range: Optional[Sequence[float]] = None,
    ) -> Effect:
        data: Dict[str, Any] = {
            "id": effect_id,
            "type": kind,
            "value": value,
            "stackingRule": stacking,
            "conditions": list(conditions),
        }
        if value_range is not None:
            data["valueRange"] = list(value_range)
        return Effect.from_dict(data)

    return _make


@pytest.fixture
def make_relic(make_effect) -> Callable[..., Relic]:
    """
    Factory for relics.

    Usage:
        relic = make_relic("r1", effects=[make_effect()], category="attack")
    """

    def _make(
        relic_id: str = "relic",
        effects: Sequence[Effect] = (),
        category: str = "attack",
        difficulty: float = 1.0,
        conflicts: Sequence[str] = (),
        attack_contribution: Optional[float] = None,
        name: Optional[str] = None,
    ) -> Relic:
        return Relic(
            relic_id=relic_id,
            name=name or relic_id.replace("-", " ").title(),
            category=category,
            effects=tuple(effects),
            difficulty=difficulty,
            conflicts=frozenset(conflicts),
            attack_contribution=attack_contribution,
        )

    return _make


@pytest.fixture
def default_context() -> CalculationContext:
    return CalculationContext()


@pytest.fixture
def sample_relics(make_relic, make_effect) -> List[Relic]:
    """Three small relics with unconditional percentage effects."""
    return [
        make_relic("alpha", [make_effect("alpha-atk", value=10)], difficulty=2),
        make_relic("beta", [make_effect("beta-atk", value=5)], category="defense", difficulty=4),
        make_relic(
            "gamma",
            [make_effect("gamma-mult", "attack_multiplier", 20, stacking="multiplicative")],
            category="utility",
            difficulty=6,
        ),
    ]


@pytest.fixture
def catalog(sample_relics) -> RelicCatalog:
    return RelicCatalog(sample_relics)


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def engine(config_manager, cache) -> CalculationEngine:
    return CalculationEngine(config_manager, cache=cache)


@pytest.fixture
def fallback(config_manager) -> FallbackCalculator:
    return FallbackCalculator(config_manager)


@pytest.fixture
def validation_config() -> ValidationConfig:
    return ValidationConfig(max_validation_time=0.2)


@pytest.fixture
def make_validator(engine, validation_config) -> Callable[..., DualPathValidator]:
    """
    Factory for validators with a fixed RNG.

    Usage:
        validator = make_validator(remote=FakeRemote(result))
    """

    def _make(remote=None, config: Optional[ValidationConfig] = None) -> DualPathValidator:
        return DualPathValidator(
            engine,
            remote=remote,
            config=config or validation_config,
            rng=random.Random(7),
        )

    return _make


@pytest.fixture
def make_service(config_manager, catalog, engine, fallback) -> Callable[..., CalculationService]:
    def _make(remote=None, validator: Optional[DualPathValidator] = None) -> CalculationService:
        return CalculationService(
            config_manager,
            catalog=catalog,
            engine=engine,
            fallback=fallback,
            validator=validator,
            remote=remote,
        )

    return _make


# ============================================================================
# REMOTE FAKES
# ============================================================================


class FakeRemote:
    """
    Remote calculator returning a prepared result, or one derived from the
    local engine with the total scaled by `drift`.
    """

    def __init__(
        self,
        result: Optional[CalculationResult] = None,
        engine: Optional[CalculationEngine] = None,
        catalog: Optional[RelicCatalog] = None,
        drift: float = 1.0,
    ) -> None:
        self.result = result
        self.engine = engine
        self.catalog = catalog
        self.drift = drift
        self.calls: List[List[str]] = []

    async def calculate(self, relic_ids, context) -> CalculationResult:
        self.calls.append(list(relic_ids))
        if self.result is not None:
            return self.result

        relics = list(self.catalog.resolve(relic_ids).relics)
        local = self.engine.calculate(relics, context)
        data = local.to_dict()
        data["attackMultipliers"]["total"] = round(local.total * self.drift, 4)
        data["metadata"]["source"] = "remote"
        return CalculationResult.from_dict(data)


class SlowRemote:
    """Remote calculator that never answers within a test timeout."""

    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay
        self.cancelled = False

    async def calculate(self, relic_ids, context) -> CalculationResult:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise AssertionError("SlowRemote should have been cancelled")


class FailingRemote:
    """Remote calculator that is always unavailable."""

    def __init__(self, status_code: Optional[int] = 503) -> None:
        self.status_code = status_code
        self.calls = 0

    async def calculate(self, relic_ids, context) -> CalculationResult:
        self.calls += 1
        raise RemoteUnavailableError(
            "calculate", "service unavailable", status_code=self.status_code
        )


@pytest.fixture
def drifting_remote(engine, catalog) -> Callable[[float], FakeRemote]:
    """Factory: FakeRemote echoing the local engine with its total scaled by `drift`."""

    def _make(drift: float = 1.0) -> FakeRemote:
        return FakeRemote(engine=engine, catalog=catalog, drift=drift)

    return _make
