"""
Unit tests for CalculationService.

Tests id resolution, context coercion, the remote -> local -> fallback chain,
validation pass-through and health reporting.
"""

import asyncio
import logging

import pytest

from relic_calculator.core.exceptions import ValidationTimeoutError
from relic_calculator.domain.models import CalculationContext, CalculationResult
from relic_calculator.modules.calculation.engine import CalculationOptions
from relic_calculator.modules.shared.exceptions import InvalidInputError, LimitExceededError
from tests.conftest import FailingRemote, FakeRemote, SlowRemote


# ============================================================================
# INPUT HANDLING
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestInputHandling:
    """Test id validation, resolution and context coercion."""

    async def test_calculates_known_ids(self, make_service):
        result = await make_service().calculate(["alpha", "beta", "gamma"])

        assert result.metadata.source == "local"
        assert [d.relic_id for d in result.relic_details] == ["alpha", "beta", "gamma"]

    async def test_unknown_ids_are_ignored_with_warning(self, make_service):
        # Act
        result = await make_service().calculate(["alpha", "nope"])

        # Assert
        assert [d.relic_id for d in result.relic_details] == ["alpha"]
        assert "Unknown relic id 'nope' ignored" in result.warnings

    async def test_all_unknown_ids_give_empty_result(self, make_service):
        result = await make_service().calculate(["nope", "nada"])

        assert result.total == 1.0
        assert result.efficiency == 0.0
        assert len(result.warnings) == 2

    async def test_too_many_ids(self, make_service):
        with pytest.raises(LimitExceededError):
            await make_service().calculate([f"id-{i}" for i in range(10)])

    @pytest.mark.parametrize("relic_ids", ["alpha", ["alpha", ""], ["alpha", 3], None])
    async def test_malformed_ids(self, make_service, relic_ids):
        with pytest.raises(InvalidInputError) as exc_info:
            await make_service().calculate(relic_ids)

        assert exc_info.value.field == "relic_ids"

    async def test_context_mapping_is_coerced(self, make_service):
        result = await make_service().calculate(
            ["alpha"], {"environmentEffects": ["rain"], "comboCount": 2}
        )

        assert result.multipliers.environmental == pytest.approx(0.03)

    async def test_invalid_context_mapping(self, make_service):
        with pytest.raises(InvalidInputError) as exc_info:
            await make_service().calculate(["alpha"], {"playerHealth": 3})

        assert exc_info.value.field == "context"

    async def test_environment_string_in_context_mapping(self, make_service):
        """A bare tag string is rejected rather than split into characters."""
        with pytest.raises(InvalidInputError) as exc_info:
            await make_service().calculate(["alpha"], {"environmentEffects": "rain"})

        assert exc_info.value.field == "context"

    async def test_context_of_wrong_type(self, make_service):
        with pytest.raises(InvalidInputError):
            await make_service().calculate(["alpha"], "boss")


# ============================================================================
# FALLBACK CHAIN
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestFallbackChain:
    """Test remote -> local -> naive fallback."""

    async def test_remote_not_tried_by_default(self, make_service, drifting_remote):
        remote = drifting_remote()

        result = await make_service(remote=remote).calculate(["alpha"])

        assert remote.calls == []
        assert result.metadata.source == "local"

    async def test_remote_first_when_preferred(self, make_service, drifting_remote):
        # Arrange
        remote = drifting_remote()
        service = make_service(remote=remote)

        # Act
        result = await service.calculate(["alpha"], options=CalculationOptions(prefer_remote=True))

        # Assert
        assert remote.calls == [["alpha"]]
        assert result.metadata.source == "remote"

    async def test_remote_result_is_shaped_by_options(self, make_service, drifting_remote):
        # Arrange
        options = CalculationOptions(
            prefer_remote=True, include_breakdown=False, include_performance=False
        )

        # Act
        result = await make_service(remote=drifting_remote()).calculate(
            ["alpha", "beta"], options=options
        )

        # Assert
        assert result.metadata.source == "remote"
        assert result.relic_details == ()
        assert result.effect_breakdown == ()
        assert result.calculation_steps == ()
        assert result.metadata.performance is None

    async def test_remote_first_from_config(self, config_manager, make_service, drifting_remote):
        config_manager.set("calculation.remote_first", True)
        remote = drifting_remote()

        result = await make_service(remote=remote).calculate(["alpha"])

        assert result.metadata.source == "remote"

    async def test_remote_failure_falls_back_offline(self, make_service):
        # Act
        result = await make_service(remote=FailingRemote()).calculate(
            ["alpha"], options=CalculationOptions(prefer_remote=True)
        )

        # Assert
        assert result.metadata.source == "local"
        assert result.metadata.offline is True
        assert result.metadata.fallback is False

    async def test_remote_timeout_falls_back_offline(self, make_service):
        remote = SlowRemote()

        result = await make_service(remote=remote).calculate(
            ["alpha"], options=CalculationOptions(prefer_remote=True, timeout_ms=50)
        )

        assert result.metadata.offline is True
        assert remote.cancelled is True

    async def test_remote_timeout_raises_typed_error_internally(self, make_service):
        service = make_service(remote=SlowRemote())

        with pytest.raises(ValidationTimeoutError) as exc_info:
            await service._calculate_remotely(
                service._remote,
                [],
                CalculationContext(),
                CalculationOptions(timeout_ms=20),
            )

        assert exc_info.value.timeout_seconds == pytest.approx(0.02)

    @pytest.mark.parametrize(
        ("status_code", "level"), [(503, logging.WARNING), (401, logging.ERROR)]
    )
    async def test_remote_fallback_log_level_follows_error_severity(
        self, make_service, mocker, status_code, level
    ):
        # Arrange
        service = make_service(remote=FailingRemote(status_code=status_code))
        log_spy = mocker.patch.object(service.log, "log")

        # Act
        result = await service.calculate(["alpha"], options=CalculationOptions(prefer_remote=True))

        # Assert
        assert result.metadata.offline is True
        args, kwargs = log_spy.call_args
        assert args[0] == level
        assert kwargs["extra"]["retryable"] is (status_code == 503)

    async def test_engine_failure_uses_naive_fallback(self, make_service, engine, mocker):
        # Arrange
        mocker.patch.object(engine, "calculate", side_effect=RuntimeError("engine exploded"))
        service = make_service()

        # Act
        result = await service.calculate(["alpha", "unknown"])

        # Assert
        assert result.metadata.fallback is True
        assert result.metadata.source == "fallback"
        assert "Unknown relic id 'unknown' ignored" in result.warnings
        assert "Detailed calculation failed; naive fallback used" in result.warnings

    async def test_remote_result_keeps_resolution_warnings(self, make_service, drifting_remote):
        result = await make_service(remote=drifting_remote()).calculate(
            ["alpha", "ghost"], options=CalculationOptions(prefer_remote=True)
        )

        assert "Unknown relic id 'ghost' ignored" in result.warnings

    async def test_remote_receives_resolved_ids_only(self, make_service):
        remote = FakeRemote(
            result=CalculationResult.from_dict(
                {
                    "attackMultipliers": {"total": 1.1, "base": 1.1},
                    "efficiency": 0.55,
                    "obtainmentDifficulty": 2,
                }
            )
        )

        await make_service(remote=remote).calculate(
            ["ghost", "alpha"], options=CalculationOptions(prefer_remote=True)
        )

        assert remote.calls == [["alpha"]]


# ============================================================================
# VALIDATION & MAINTENANCE
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestValidationAndMaintenance:
    """Test validation pass-through, cache maintenance and health."""

    async def test_calculate_with_validation(self, make_service, drifting_remote):
        service = make_service(remote=drifting_remote())

        outcome = await service.calculate_with_validation(["alpha", "ghost"], force=True)

        assert outcome.validated is True
        assert outcome.validation.is_valid
        assert "Unknown relic id 'ghost' ignored" in outcome.result.warnings

    async def test_batch_validate(self, make_service, drifting_remote):
        service = make_service(remote=drifting_remote())

        results = await service.batch_validate(
            [(["alpha"], None), (["beta", "gamma"], {"comboCount": 1})]
        )

        assert len(results) == 2
        assert all(r.is_valid for r in results)

    async def test_batch_validate_checks_inputs_up_front(self, make_service, drifting_remote):
        remote = drifting_remote()

        with pytest.raises(InvalidInputError):
            await make_service(remote=remote).batch_validate([(["alpha"], None), ("beta", None)])

        assert remote.calls == []

    async def test_clear_cache_and_metrics(self, make_service):
        service = make_service()
        await service.calculate(["alpha"])
        await service.calculate(["alpha"])

        assert service.get_cache_metrics()["hits"] == 1
        assert service.clear_cache() == 1

    async def test_validation_stats(self, make_service):
        service = make_service()
        await service.calculate_with_validation(["alpha"], force=True)

        stats = await service.get_validation_stats()

        assert stats["total_validations"] == 1
        assert stats["failed_validations"] == 1

    async def test_health_check(self, make_service, drifting_remote):
        health = await make_service(remote=drifting_remote()).health_check()

        assert health["status"] == "healthy"
        assert health["catalog_size"] == 3
        assert health["remote_configured"] is True
        assert health["validation"]["total_validations"] == 0

    async def test_concurrent_calculations_share_cache(self, make_service):
        service = make_service()

        results = await asyncio.gather(*(service.calculate(["alpha", "beta"]) for _ in range(5)))

        assert len({r.total for r in results}) == 1
        assert sum(r.metadata.cached for r in results) == 4

    async def test_default_context(self, make_service):
        with_none = await make_service().calculate(["alpha"])
        explicit = await make_service().calculate(["alpha"], CalculationContext())

        assert with_none.total == explicit.total
