"""
Relic Calculation Engine
========================

Purpose
-------
Turn a relic selection plus a calculation context into a deterministic
attack multiplier with a structured breakdown.

Pipeline
--------
1. Validate the selection (size bound, element types, context type)
2. Consult the memoization cache by (sorted relic ids, canonical context)
3. Resolve relic conflicts: a relic conflicting with an earlier selected
   relic is skipped with a warning
4. Flatten effects and order them by kind priority, then relic order, then
   effect order
5. Apply each effect through its condition and stacking rule into one of
   three buckets: base (flat), additive (percent) and multiplicative
6. Aggregate: core = base x (1 + additive/100) x multiplicative, then add
   synergy and environmental bonuses
7. Build the breakdown and trace, store the full result, return the view
   shaped by the options

Design Decisions
----------------
- Pure and synchronous: relics and contexts are frozen, the engine keeps no
  per-call state on the instance.
- The cache always holds the full result. Options only shape the returned
  view, so a cached call with different options still sees every section.
- `conditional` is reported as the share of the core multiplier that came
  from condition-gated effects. It is part of the core, never added twice.
  The reported `base` is the remainder, so
  total == base + conditional + synergy + environmental.

Dependencies
------------
- ConditionEvaluator: activation and scaling
- SynergyCalculator: selection-wide bonuses
- MemoizationCache: result reuse
- ConfigManager: tunables under `calculation.*` and `cache.*`
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Set, Tuple

from relic_calculator.core.cache.memoization import MemoizationCache
from relic_calculator.core.logging.logger import LogContext, get_logger
from relic_calculator.domain.models.context import CalculationContext
from relic_calculator.domain.models.relic import Effect, EffectKind, Relic, StackingRule
from relic_calculator.domain.models.result import (
    CalculationResult,
    CalculationStep,
    EffectBreakdownEntry,
    MultiplierBreakdown,
    PerformanceCounters,
    RelicDetail,
    ResultMetadata,
    utc_now_iso,
)
from relic_calculator.modules.calculation import constants
from relic_calculator.modules.calculation.conditions import ConditionEvaluator
from relic_calculator.modules.calculation.synergy import SynergyCalculator
from relic_calculator.modules.shared.base_service import BaseService
from relic_calculator.modules.shared.exceptions import InvalidInputError, LimitExceededError

if TYPE_CHECKING:
    from logging import Logger

    from relic_calculator.core.config.manager import ConfigManager

logger = get_logger(__name__)

ADDITIVE_KINDS = frozenset(
    {EffectKind.PERCENTAGE, EffectKind.WEAPON_SPECIFIC, EffectKind.CONDITIONAL_DAMAGE}
)
MULTIPLICATIVE_KINDS = frozenset({EffectKind.MULTIPLIER, EffectKind.CRITICAL_MULTIPLIER})


@dataclass(frozen=True)
class CalculationOptions:
    """
    Per-call switches.

    Attributes
    ----------
    use_cache : bool
        Read from and write to the memoization cache
    include_breakdown : bool
        Keep effect breakdown and relic details in the returned view
    include_trace : bool
        Keep the step-by-step trace in the returned view
    include_performance : bool
        Keep performance counters in the metadata
    timeout_ms : Optional[float]
        Budget for the remote path; ignored by the local engine
    prefer_remote : Optional[bool]
        Try the remote calculator first; None defers to configuration
    """

    use_cache: bool = True
    include_breakdown: bool = True
    include_trace: bool = False
    include_performance: bool = True
    timeout_ms: Optional[float] = None
    prefer_remote: Optional[bool] = None

    def shape(self, result: CalculationResult) -> CalculationResult:
        """Drop the parts of `result` these options leave out of the returned view."""
        changes: Dict[str, Any] = {}
        if not self.include_breakdown:
            changes["relic_details"] = ()
            changes["effect_breakdown"] = ()
        if not self.include_trace:
            changes["calculation_steps"] = ()
        if not self.include_performance and result.metadata.performance is not None:
            changes["metadata"] = replace(result.metadata, performance=None)
        return replace(result, **changes) if changes else result


@dataclass(frozen=True)
class _AppliedEffect:
    relic: Relic
    effect: Effect
    value: float  # After condition scaling


def build_cache_key(relic_ids: Sequence[str], context: CalculationContext) -> str:
    """Sorted relic ids joined by commas, a pipe, then the canonical context JSON."""
    return ",".join(sorted(relic_ids)) + "|" + context.canonical_json()


def _aggregate(
    applied: Sequence[_AppliedEffect], base_multiplier: float
) -> Tuple[float, float, float]:
    """Return (base, additive percent, multiplicative factor) for applied effects."""
    base = base_multiplier
    additive = 0.0
    stacked_multiplier = 0.0
    multiplicative = 1.0

    for item in applied:
        kind = item.effect.kind
        if kind is EffectKind.FLAT:
            base += item.value
        elif kind in ADDITIVE_KINDS:
            additive += item.value
        elif kind in MULTIPLICATIVE_KINDS:
            if item.effect.stacking is StackingRule.ADDITIVE:
                stacked_multiplier += item.value
            else:
                multiplicative *= 1 + item.value / 100
        else:
            raise ValueError(f"Unhandled effect kind: {kind!r}")

    multiplicative *= 1 + stacked_multiplier / 100
    return base, additive, multiplicative


def _core(base: float, additive: float, multiplicative: float) -> float:
    return base * (1 + additive / 100) * multiplicative


# ============================================================================
# CalculationEngine
# ============================================================================


class CalculationEngine(BaseService):
    """
    Local, detailed calculation path.

    Public Methods
    --------------
    - calculate(relics, context, options) -> Full calculation with caching
    - cache_key(relics, context) -> Cache key for a selection
    - clear_cache() -> Drop every memoized result
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        cache: Optional[MemoizationCache] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        synergy: Optional[SynergyCalculator] = None,
        log: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, log or logger)
        self._evaluator = evaluator or ConditionEvaluator()
        self._synergy = synergy or SynergyCalculator(config_manager)

        self.max_selection = int(
            self.get_config("calculation.max_relics", constants.MAX_RELIC_SELECTION)
        )
        self.base_multiplier = float(
            self.get_config("calculation.base_multiplier", constants.BASE_MULTIPLIER)
        )
        self.environment_bonus = float(
            self.get_config(
                "calculation.environment_bonus_per_tag", constants.ENVIRONMENT_BONUS_PER_TAG
            )
        )
        self.multiplier_precision = int(
            self.get_config("calculation.precision.multiplier", constants.MULTIPLIER_PRECISION)
        )
        self.difficulty_precision = int(
            self.get_config("calculation.precision.difficulty", constants.DIFFICULTY_PRECISION)
        )
        self.cache_ttl = float(
            self.get_config("cache.result_ttl_seconds", constants.RESULT_CACHE_TTL_SECONDS)
        )
        self._cache = cache if cache is not None else MemoizationCache(
            max_size=int(self.get_config("cache.max_size", constants.RESULT_CACHE_MAX_SIZE)),
            default_ttl=self.cache_ttl,
        )

        self.log.info(
            "CalculationEngine initialized",
            extra={
                "max_selection": self.max_selection,
                "environment_bonus": self.environment_bonus,
                "cache_ttl": self.cache_ttl,
                "category_weight": self._synergy.category_weight,
                "effect_weight": self._synergy.effect_weight,
            },
        )

    @property
    def cache(self) -> MemoizationCache:
        return self._cache

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def calculate(
        self,
        relics: Sequence[Relic],
        context: CalculationContext,
        options: Optional[CalculationOptions] = None,
    ) -> CalculationResult:
        """
        Calculate the attack multiplier for a relic selection.

        Parameters
        ----------
        relics : Sequence[Relic]
            Selected relics, in selection order
        context : CalculationContext
            Combat situation
        options : Optional[CalculationOptions]
            View and cache switches

        Raises
        ------
        LimitExceededError
            If more relics are supplied than the selection maximum
        InvalidInputError
            If `relics` is not a sequence of Relic or `context` is malformed
        """
        options = options or CalculationOptions()
        self._validate(relics, context)
        key = self.cache_key(relics, context)

        if options.use_cache:
            cached = self._cache.get(key)
            if cached is not None:
                self.log.debug("Calculation served from cache", extra={"cache_key": key})
                return options.shape(cached.with_metadata(cached=True))

        with LogContext(
            component="calculation_engine",
            operation="calculate",
            relic_count=len(relics),
        ):
            result = self._compute(list(relics), context, key)

        if options.use_cache:
            self._cache.set(key, result, ttl=self.cache_ttl)

        return options.shape(result)

    def cache_key(self, relics: Sequence[Relic], context: CalculationContext) -> str:
        return build_cache_key([relic.relic_id for relic in relics], context)

    def clear_cache(self) -> int:
        return self._cache.clear()

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def _validate(self, relics: Any, context: Any) -> None:
        if isinstance(relics, (str, bytes)) or not isinstance(relics, (list, tuple)):
            raise InvalidInputError("relics", "must be a list of relics")
        if len(relics) > self.max_selection:
            raise LimitExceededError(self.max_selection, len(relics))
        for index, relic in enumerate(relics):
            if not isinstance(relic, Relic):
                raise InvalidInputError(
                    "relics", f"item {index} is {type(relic).__name__}, expected Relic"
                )
        if not isinstance(context, CalculationContext):
            raise InvalidInputError(
                "context", f"expected CalculationContext, got {type(context).__name__}"
            )

    # ========================================================================
    # CALCULATION
    # ========================================================================

    def _resolve_conflicts(
        self, relics: List[Relic], warnings: List[str]
    ) -> Tuple[List[Relic], Set[str]]:
        accepted: List[Relic] = []
        conflicted: Set[str] = set()

        for relic in relics:
            clash = next((kept for kept in accepted if relic.conflicts_with(kept)), None)
            if clash is None:
                accepted.append(relic)
                continue
            conflicted.add(relic.relic_id)
            warnings.append(
                f"Relic '{relic.name}' conflicts with '{clash.name}' and was skipped"
            )
            self.log.warning(
                "Conflicting relic skipped",
                extra={"relic_id": relic.relic_id, "conflicts_with": clash.relic_id},
            )

        return accepted, conflicted

    def _apply_effects(
        self, relics: List[Relic], context: CalculationContext
    ) -> List[_AppliedEffect]:
        ordered = sorted(
            (
                (relic_index, effect_index, relic, effect)
                for relic_index, relic in enumerate(relics)
                for effect_index, effect in enumerate(relic.effects)
            ),
            key=lambda item: (-item[3].kind.priority, item[0], item[1]),
        )

        slots: List[Optional[_AppliedEffect]] = []
        unique_kinds: Set[EffectKind] = set()
        overwrite_slot: Dict[EffectKind, int] = {}

        for _, _, relic, effect in ordered:
            if not self._evaluator.is_active(effect, context):
                continue
            if effect.kind in unique_kinds:
                self.log.debug(
                    "Effect blocked by unique stacking",
                    extra={"relic_id": relic.relic_id, "effect_id": effect.effect_id},
                )
                continue

            applied = _AppliedEffect(relic, effect, self._evaluator.scaled_value(effect, context))

            if effect.stacking is StackingRule.OVERWRITE and effect.kind in overwrite_slot:
                slots[overwrite_slot[effect.kind]] = None
            slots.append(applied)

            if effect.stacking is StackingRule.UNIQUE:
                unique_kinds.add(effect.kind)
            elif effect.stacking is StackingRule.OVERWRITE:
                overwrite_slot[effect.kind] = len(slots) - 1

        return [slot for slot in slots if slot is not None]

    def _compute(
        self,
        relics: List[Relic],
        context: CalculationContext,
        key: str,
    ) -> CalculationResult:
        start_time = time.perf_counter()
        warnings: List[str] = []

        accepted, conflicted = self._resolve_conflicts(relics, warnings)
        applied = self._apply_effects(accepted, context)

        base, additive, multiplicative = _aggregate(applied, self.base_multiplier)
        core = _core(base, additive, multiplicative)
        core_unconditional = _core(
            *_aggregate(
                [item for item in applied if not item.effect.is_conditional],
                self.base_multiplier,
            )
        )
        conditional = core - core_unconditional
        synergy = self._synergy.synergy_bonus(accepted)
        environmental = (
            self.environment_bonus * len(context.environment_tags) if accepted else 0.0
        )
        total = core + synergy + environmental

        difficulty = (
            sum(relic.difficulty for relic in accepted) / len(accepted) if accepted else 0.0
        )
        efficiency = total / max(1.0, difficulty) if relics else 0.0

        precision = self.multiplier_precision
        multipliers = MultiplierBreakdown(
            total=round(total, precision),
            base=round(core - conditional, precision),
            synergy=round(synergy, precision),
            conditional=round(conditional, precision),
            environmental=round(environmental, precision),
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        result = CalculationResult(
            multipliers=multipliers,
            efficiency=round(efficiency, precision),
            obtainment_difficulty=round(difficulty, self.difficulty_precision),
            relic_details=self._relic_details(relics, applied, conflicted),
            effect_breakdown=self._effect_breakdown(applied, context),
            calculation_steps=self._trace(base, additive, multiplicative, synergy, environmental),
            metadata=ResultMetadata(
                calculated_at=utc_now_iso(),
                client_side=True,
                cache_key=key,
                source="local",
                performance=PerformanceCounters(
                    duration_ms=round(duration_ms, 3),
                    relic_count=len(relics),
                    active_effects=len(applied),
                ),
            ),
            warnings=tuple(warnings),
        )

        self.log.info(
            "Calculation completed",
            extra={
                "relic_count": len(relics),
                "active_effects": len(applied),
                "total_multiplier": multipliers.total,
                "duration_ms": round(duration_ms, 3),
            },
        )
        return result

    # ========================================================================
    # RESULT ASSEMBLY
    # ========================================================================

    @staticmethod
    def _percent_points(item: _AppliedEffect) -> float:
        # Flat values are multiplier units; report them as percent points too.
        if item.effect.kind is EffectKind.FLAT:
            return item.value * 100
        return item.value

    def _relic_details(
        self,
        relics: List[Relic],
        applied: List[_AppliedEffect],
        conflicted: Set[str],
    ) -> Tuple[RelicDetail, ...]:
        details = []
        for relic in relics:
            own = [item for item in applied if item.relic is relic]
            details.append(
                RelicDetail(
                    relic_id=relic.relic_id,
                    name=relic.name,
                    contribution=round(sum(self._percent_points(item) for item in own), 2),
                    effect_ids=tuple(effect.effect_id for effect in relic.effects),
                    active_effect_ids=tuple(item.effect.effect_id for item in own),
                    conflicted=relic.relic_id in conflicted,
                )
            )
        return tuple(details)

    def _effect_breakdown(
        self, applied: List[_AppliedEffect], context: CalculationContext
    ) -> Tuple[EffectBreakdownEntry, ...]:
        return tuple(
            EffectBreakdownEntry(
                effect_id=item.effect.effect_id,
                effect_name=item.effect.name or item.effect.effect_id,
                source_id=item.relic.relic_id,
                source_name=item.relic.name,
                kind=item.effect.kind,
                stacking=item.effect.stacking,
                value=item.effect.value,
                calculated_value=round(item.value, 4),
                is_active=True,
                condition=self._evaluator.describe(item.effect),
            )
            for item in applied
        )

    def _trace(
        self,
        base: float,
        additive: float,
        multiplicative: float,
        synergy: float,
        environmental: float,
    ) -> Tuple[CalculationStep, ...]:
        start = self.base_multiplier
        after_additive = base * (1 + additive / 100)
        core = after_additive * multiplicative
        stages = (
            ("Base multiplier", "base", start, start),
            ("Flat bonuses", "add", base - start, base),
            ("Additive percentage bonuses", "multiply", additive, after_additive),
            ("Multiplicative bonuses", "multiply", multiplicative, core),
            ("Synergy bonuses", "synergy", synergy, core + synergy),
            ("Environmental bonuses", "environment", environmental, core + synergy + environmental),
        )

        precision = self.multiplier_precision + 2
        return tuple(
            CalculationStep(
                step=index,
                description=description,
                operation=operation,
                value=round(value, precision),
                running_total=round(running, precision),
            )
            for index, (description, operation, value, running) in enumerate(stages, start=1)
        )

