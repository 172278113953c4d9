"""
Dual-Path Validator
===================

Purpose
-------
Cross-check the fast local calculation against the authoritative remote
calculator, score how far they disagree, and recommend which result to
trust.

Protocol
--------
1. Produce (or reuse) the local result
2. Request the remote result under a hard timeout (`asyncio.wait_for`
   cancels the remote call when the budget runs out)
3. Compare total, efficiency and obtainment difficulty against relative
   tolerances; each field beyond tolerance becomes a Discrepancy
4. Score confidence from discrepancy severities and pick an action

Failures of the remote path never propagate: a timeout or an unavailable
remote becomes a single critical discrepancy with zero confidence and a
manual-review recommendation.

Statistics
----------
Running totals, pass/fail counts, average discrepancy and time, client
accuracy and server reliability are kept under an asyncio.Lock together with
a bounded history of recent validations.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections import deque
from dataclasses import dataclass, fields, replace
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Deque,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from relic_calculator.core.exceptions import (
    ConfigurationError,
    RemoteUnavailableError,
    ValidationTimeoutError,
)
from relic_calculator.core.logging.logger import LogContext, get_logger
from relic_calculator.domain.models.base import DomainValidationError, parse_enum
from relic_calculator.domain.models.context import CalculationContext
from relic_calculator.domain.models.relic import Relic
from relic_calculator.domain.models.result import CalculationResult, utc_now_iso
from relic_calculator.domain.models.validation import (
    MAX_SEVERITY_WEIGHT,
    Discrepancy,
    FallbackStrategy,
    RecommendedAction,
    Severity,
    ValidatedCalculation,
    ValidationResult,
)

if TYPE_CHECKING:
    from relic_calculator.core.config.manager import ConfigManager
    from relic_calculator.modules.calculation.engine import CalculationEngine
    from relic_calculator.modules.validation.remote_client import RemoteCalculator

logger = get_logger(__name__)

ValidationRequest = Tuple[Sequence[Relic], CalculationContext]
ProgressCallback = Callable[[int, int], Any]

TIMEOUT_FIELD = "validation_timeout"
UNAVAILABLE_FIELD = "remote_unavailable"
ERROR_FIELD = "validation_error"


# ============================================================================
# CONFIGURATION
# ============================================================================


@dataclass(frozen=True)
class ValidationConfig:
    """
    Validator tunables.

    Tolerances are relative (0.01 == 1%).
    """

    total_tolerance: float = 0.01
    efficiency_tolerance: float = 0.05
    difficulty_tolerance: float = 0.02
    enable_auto_fallback: bool = True
    fallback_strategy: FallbackStrategy = FallbackStrategy.PREFER_REMOTE
    frequency: float = 0.1
    max_validation_time: float = 5.0  # Seconds
    batch_concurrency: int = 3
    history_size: int = 100
    reliability_window: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "fallback_strategy",
            parse_enum(FallbackStrategy, self.fallback_strategy, "validation.fallback_strategy"),
        )
        if not 0.0 <= self.frequency <= 1.0:
            raise DomainValidationError(
                f"validation.frequency must be between 0 and 1, got {self.frequency}",
                field="validation.frequency",
            )
        if self.max_validation_time <= 0:
            raise DomainValidationError(
                "validation.max_validation_time must be positive",
                field="validation.max_validation_time",
            )
        if self.batch_concurrency < 1:
            raise DomainValidationError(
                "validation.batch_concurrency must be at least 1",
                field="validation.batch_concurrency",
            )

    @classmethod
    def from_config_manager(cls, config: ConfigManager) -> "ValidationConfig":
        defaults = cls()
        return cls(
            total_tolerance=float(
                config.get("validation.tolerances.total", defaults.total_tolerance)
            ),
            efficiency_tolerance=float(
                config.get("validation.tolerances.efficiency", defaults.efficiency_tolerance)
            ),
            difficulty_tolerance=float(
                config.get("validation.tolerances.difficulty", defaults.difficulty_tolerance)
            ),
            enable_auto_fallback=bool(
                config.get("validation.enable_auto_fallback", defaults.enable_auto_fallback)
            ),
            fallback_strategy=config.get(
                "validation.fallback_strategy", defaults.fallback_strategy
            ),
            frequency=float(config.get("validation.frequency", defaults.frequency)),
            max_validation_time=float(
                config.get("validation.max_validation_time_seconds", defaults.max_validation_time)
            ),
            batch_concurrency=int(
                config.get("validation.batch_concurrency", defaults.batch_concurrency)
            ),
            history_size=int(config.get("validation.history_size", defaults.history_size)),
            reliability_window=int(
                config.get("validation.reliability_window", defaults.reliability_window)
            ),
        )


@dataclass
class ValidationStats:
    total_validations: int = 0
    passed_validations: int = 0
    failed_validations: int = 0
    average_discrepancy: float = 0.0
    average_validation_time_ms: float = 0.0
    client_accuracy: float = 0.0
    server_reliability: float = 0.0


# ============================================================================
# PURE SCORING HELPERS
# ============================================================================


def percentage_difference(local: float, remote: float) -> float:
    """|local - remote| / |remote| x 100; a zero remote gives 0 or 100."""
    if remote == 0:
        return 0.0 if local == 0 else 100.0
    return abs(local - remote) / abs(remote) * 100


def compare_results(
    local: CalculationResult,
    remote: CalculationResult,
    config: ValidationConfig,
) -> Tuple[Discrepancy, ...]:
    checks = (
        ("total", local.total, remote.total, config.total_tolerance),
        ("efficiency", local.efficiency, remote.efficiency, config.efficiency_tolerance),
        (
            "obtainment_difficulty",
            local.obtainment_difficulty,
            remote.obtainment_difficulty,
            config.difficulty_tolerance,
        ),
    )

    discrepancies = []
    for field_name, client_value, server_value, tolerance in checks:
        pct = percentage_difference(client_value, server_value)
        if pct > tolerance * 100:
            discrepancies.append(
                Discrepancy(
                    field=field_name,
                    client_value=client_value,
                    server_value=server_value,
                    absolute_difference=abs(client_value - server_value),
                    percentage_difference=pct,
                    severity=Severity.from_percentage(pct),
                )
            )
    return tuple(discrepancies)


def confidence_score(discrepancies: Sequence[Discrepancy]) -> float:
    if not discrepancies:
        return 1.0
    penalty = sum(d.severity.weight for d in discrepancies)
    return max(0.0, 1.0 - penalty / (len(discrepancies) * MAX_SEVERITY_WEIGHT))


def recommend_action(
    confidence: float,
    discrepancies: Sequence[Discrepancy],
    strategy: FallbackStrategy,
) -> RecommendedAction:
    if confidence > 0.95:
        return RecommendedAction.USE_LOCAL
    if confidence < 0.5 or any(d.severity is Severity.CRITICAL for d in discrepancies):
        return RecommendedAction.MANUAL_REVIEW
    if strategy is FallbackStrategy.PREFER_REMOTE:
        return RecommendedAction.USE_REMOTE
    if strategy is FallbackStrategy.PREFER_LOCAL:
        return RecommendedAction.USE_LOCAL
    return RecommendedAction.USE_LOCAL if confidence > 0.8 else RecommendedAction.USE_REMOTE


def _discrepancy_to_dict(discrepancy: Discrepancy) -> Dict[str, Any]:
    return {
        "field": discrepancy.field,
        "client_value": discrepancy.client_value,
        "server_value": discrepancy.server_value,
        "absolute_difference": round(discrepancy.absolute_difference, 4),
        "percentage_difference": round(discrepancy.percentage_difference, 2),
        "severity": discrepancy.severity.value,
    }


# ============================================================================
# DualPathValidator
# ============================================================================


class DualPathValidator:
    """
    Compares local and remote calculations.

    Public Methods
    --------------
    - validate(relics, context, local_result) -> ValidationResult
    - calculate_with_validation(relics, context, force) -> ValidatedCalculation
    - batch_validate(requests, concurrency, on_progress) -> List[ValidationResult]
    - get_stats() / get_history(limit) / generate_report()
    - update_config(**changes) / reset_stats()
    """

    def __init__(
        self,
        engine: CalculationEngine,
        remote: Optional[RemoteCalculator] = None,
        config: Optional[ValidationConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._engine = engine
        self._remote = remote
        self.config = config or ValidationConfig()
        self._rng = rng or random.Random()
        self._stats = ValidationStats()
        self._history: Deque[ValidationResult] = deque(maxlen=self.config.history_size)
        self._lock = asyncio.Lock()

        logger.info(
            "DualPathValidator initialized",
            extra={
                "remote_configured": remote is not None,
                "fallback_strategy": self.config.fallback_strategy.value,
                "frequency": self.config.frequency,
                "max_validation_time": self.config.max_validation_time,
            },
        )

    # ========================================================================
    # PUBLIC API - Validation
    # ========================================================================

    async def validate(
        self,
        relics: Sequence[Relic],
        context: CalculationContext,
        local_result: Optional[CalculationResult] = None,
    ) -> ValidationResult:
        """
        Compare the local and remote results for one selection.

        Never raises for remote failures; domain errors from the local
        calculation (oversized or malformed selections) do propagate.
        """
        start_time = time.perf_counter()

        async with LogContext(
            component="dual_path_validator", operation="validate", relic_count=len(relics)
        ):
            local = (
                local_result
                if local_result is not None
                else self._engine.calculate(relics, context)
            )
            relic_ids = [relic.relic_id for relic in relics]

            if self._remote is None:
                validation = self._failed(
                    local, UNAVAILABLE_FIELD, "no remote calculator configured", start_time
                )
            else:
                try:
                    remote = await self._fetch_remote(relic_ids, context)
                except ValidationTimeoutError as exc:
                    logger.warning(
                        "Remote validation timed out",
                        extra={"timeout_seconds": exc.timeout_seconds},
                    )
                    validation = self._failed(local, TIMEOUT_FIELD, exc.message, start_time)
                except RemoteUnavailableError as exc:
                    logger.warning(
                        "Remote calculator unavailable during validation",
                        extra={"error": str(exc), "status_code": exc.status_code},
                    )
                    validation = self._failed(local, UNAVAILABLE_FIELD, exc.message, start_time)
                else:
                    validation = self._score(local, remote, start_time)

            if validation.discrepancies:
                logger.warning(
                    "Validation discrepancies detected",
                    extra={
                        "discrepancies": [
                            _discrepancy_to_dict(d) for d in validation.discrepancies
                        ],
                        "confidence": round(validation.confidence, 3),
                        "recommended_action": validation.recommended_action.value,
                    },
                )

        await self._record(validation)
        return validation

    async def calculate_with_validation(
        self,
        relics: Sequence[Relic],
        context: CalculationContext,
        force: bool = False,
    ) -> ValidatedCalculation:
        """
        Calculate locally and, when sampled (or forced), validate remotely.

        The returned result follows the validator's recommendation when
        auto-fallback is enabled, otherwise it is always the local result.
        """
        local = self._engine.calculate(relics, context)

        if not (force or self._rng.random() < self.config.frequency):
            return ValidatedCalculation(result=local, validated=False)

        validation = await self.validate(relics, context, local_result=local)
        return ValidatedCalculation(
            result=self._select(validation, local),
            validated=True,
            validation=validation,
        )

    async def batch_validate(
        self,
        requests: Sequence[ValidationRequest],
        concurrency: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ValidationResult]:
        """
        Validate many selections in waves of `concurrency`.

        Each wave settles fully before the next one starts. A failing item
        becomes a failed ValidationResult and never aborts its siblings.
        Results are returned in request order.
        """
        width = self.config.batch_concurrency if concurrency is None else concurrency
        if width < 1:
            raise ValueError(f"concurrency must be at least 1, got {width}")

        results: List[ValidationResult] = []
        total = len(requests)

        for offset in range(0, total, width):
            wave = requests[offset:offset + width]
            settled = await asyncio.gather(
                *(self.validate(relics, context) for relics, context in wave),
                return_exceptions=True,
            )
            for outcome in settled:
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(
                        "Batch validation item failed",
                        extra={"error_type": type(outcome).__name__, "error": str(outcome)},
                    )
                    failed = self._failed(
                        None,
                        ERROR_FIELD,
                        str(outcome) or type(outcome).__name__,
                        time.perf_counter(),
                    )
                    await self._record(failed)
                    results.append(failed)
                else:
                    results.append(outcome)

            if on_progress is not None:
                on_progress(len(results), total)

        return results

    # ========================================================================
    # PUBLIC API - Statistics & Reporting
    # ========================================================================

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock:
            stats = {
                "total_validations": self._stats.total_validations,
                "passed_validations": self._stats.passed_validations,
                "failed_validations": self._stats.failed_validations,
                "average_discrepancy": round(self._stats.average_discrepancy, 4),
                "average_validation_time_ms": round(self._stats.average_validation_time_ms, 3),
                "client_accuracy": round(self._stats.client_accuracy, 4),
                "server_reliability": round(self._stats.server_reliability, 4),
                "recent_validations": len(self._history),
            }
        stats["configured_tolerances"] = {
            "total": self.config.total_tolerance,
            "efficiency": self.config.efficiency_tolerance,
            "difficulty": self.config.difficulty_tolerance,
        }
        stats["validation_frequency"] = self.config.frequency
        return stats

    async def get_history(self, limit: int = 20) -> List[ValidationResult]:
        async with self._lock:
            history = list(self._history)
        return history[-limit:] if limit > 0 else []

    async def reset_stats(self) -> None:
        async with self._lock:
            self._stats = ValidationStats()
            self._history.clear()
        logger.info("Validation statistics reset")

    def update_config(self, **changes: Any) -> ValidationConfig:
        """
        Replace selected config fields.

        Raises
        ------
        ConfigurationError
            If a field name is unknown or a value is invalid
        """
        known = {f.name for f in fields(ValidationConfig)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError("validation", f"unknown settings: {', '.join(unknown)}")

        try:
            updated = replace(self.config, **changes)
        except DomainValidationError as exc:
            raise ConfigurationError(exc.field or "validation", str(exc)) from exc

        if updated.history_size != self.config.history_size:
            self._history = deque(self._history, maxlen=updated.history_size)
        self.config = updated

        logger.info("Validation config updated", extra={"changes": sorted(changes)})
        return updated

    async def generate_report(self) -> Dict[str, Any]:
        """Summary stats, the discrepancies of recent failures, and recommendations."""
        summary = await self.get_stats()
        history = await self.get_history(10)

        recent_failures = [
            {
                "validated_at": validation.validated_at,
                "confidence": round(validation.confidence, 3),
                "recommended_action": validation.recommended_action.value,
                "error": validation.error,
                "discrepancies": [_discrepancy_to_dict(d) for d in validation.discrepancies],
            }
            for validation in history
            if not validation.is_valid
        ]

        recommendations: List[str] = []
        if summary["total_validations"] > 0:
            if summary["client_accuracy"] < 0.9:
                recommendations.append("Consider updating client calculation logic")
            if summary["server_reliability"] < 0.95:
                recommendations.append("Server calculation reliability is below threshold")
            if summary["average_discrepancy"] > 5:
                recommendations.append(
                    "High average discrepancy detected - review calculation methods"
                )
            if summary["average_validation_time_ms"] > 2000:
                recommendations.append(
                    "Validation times are high - consider optimizing server response"
                )

        return {
            "summary": summary,
            "recent_failures": recent_failures,
            "recommendations": recommendations,
        }

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _score(
        self,
        local: CalculationResult,
        remote: CalculationResult,
        start_time: float,
    ) -> ValidationResult:
        discrepancies = compare_results(local, remote, self.config)
        confidence = confidence_score(discrepancies)
        return ValidationResult(
            local_result=local,
            remote_result=remote,
            discrepancies=discrepancies,
            confidence=confidence,
            recommended_action=recommend_action(
                confidence, discrepancies, self.config.fallback_strategy
            ),
            validation_time_ms=(time.perf_counter() - start_time) * 1000,
            validated_at=utc_now_iso(),
        )

    async def _fetch_remote(
        self, relic_ids: List[str], context: CalculationContext
    ) -> CalculationResult:
        timeout = self.config.max_validation_time
        try:
            return await asyncio.wait_for(self._remote.calculate(relic_ids, context), timeout)
        except asyncio.TimeoutError as exc:
            raise ValidationTimeoutError(timeout, "remote_validation") from exc

    @staticmethod
    def _failed(
        local: Optional[CalculationResult],
        field_name: str,
        reason: str,
        start_time: float,
    ) -> ValidationResult:
        client_value = local.total if local is not None else 0.0
        synthetic = Discrepancy(
            field=field_name,
            client_value=client_value,
            server_value=0.0,
            absolute_difference=client_value,
            percentage_difference=100.0,
            severity=Severity.CRITICAL,
        )
        return ValidationResult(
            local_result=local,
            remote_result=None,
            discrepancies=(synthetic,),
            confidence=0.0,
            recommended_action=RecommendedAction.MANUAL_REVIEW,
            validation_time_ms=(time.perf_counter() - start_time) * 1000,
            validated_at=utc_now_iso(),
            completed=False,
            error=reason,
        )

    def _select(self, validation: ValidationResult, local: CalculationResult) -> CalculationResult:
        if not self.config.enable_auto_fallback:
            return local

        remote = validation.remote_result
        action = validation.recommended_action
        if action is RecommendedAction.USE_REMOTE and remote is not None:
            return remote
        if action is RecommendedAction.MANUAL_REVIEW and remote is not None:
            # Conservative pick: the lower multiplier
            return local if local.total <= remote.total else remote
        return local

    def _server_reliability(self) -> float:
        window = list(self._history)[-self.config.reliability_window:]
        if not window:
            return 1.0
        reliable = sum(1 for v in window if v.confidence > 0.8 and not v.has_critical)
        return reliable / len(window)

    async def _record(self, validation: ValidationResult) -> None:
        async with self._lock:
            self._history.append(validation)
            stats = self._stats
            stats.total_validations += 1
            if validation.is_valid:
                stats.passed_validations += 1
            else:
                stats.failed_validations += 1

            n = stats.total_validations
            stats.client_accuracy = stats.passed_validations / n
            stats.server_reliability = self._server_reliability()
            stats.average_discrepancy = (
                stats.average_discrepancy * (n - 1) + validation.average_discrepancy
            ) / n
            stats.average_validation_time_ms = (
                stats.average_validation_time_ms * (n - 1) + validation.validation_time_ms
            ) / n
