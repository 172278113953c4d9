"""
Naive fallback calculation.

Used when neither the detailed local engine nor the remote calculator can
produce a result. It needs nothing but the relics themselves: each relic
contributes its flat attack contribution (or a fixed default) to the base.
It never raises.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from relic_calculator.core.logging.logger import get_logger
from relic_calculator.domain.models.relic import Relic
from relic_calculator.domain.models.result import (
    CalculationResult,
    MultiplierBreakdown,
    RelicDetail,
    ResultMetadata,
    utc_now_iso,
)
from relic_calculator.modules.calculation import constants

if TYPE_CHECKING:
    from relic_calculator.core.config.manager import ConfigManager

logger = get_logger(__name__)


class FallbackCalculator:
    """Dependency-free calculation flagged `fallback=True`."""

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        def tunable(key: str, default: float) -> float:
            if config_manager is None:
                return default
            return float(config_manager.get(key, default))

        self.default_contribution = tunable(
            "fallback.default_contribution", constants.FALLBACK_CONTRIBUTION_PER_RELIC
        )
        self.difficulty_per_relic = tunable(
            "fallback.difficulty_per_relic", constants.FALLBACK_DIFFICULTY_PER_RELIC
        )
        self.max_difficulty = tunable("fallback.max_difficulty", constants.FALLBACK_MAX_DIFFICULTY)

    def fallback(self, relics: Sequence[Any], warnings: Sequence[str] = ()) -> CalculationResult:
        """
        Compute the naive result for `relics`.

        Non-Relic entries and relics with a non-finite contribution are
        skipped with a warning.
        """
        collected: List[str] = list(warnings)
        try:
            return self._calculate(relics, collected)
        except Exception as exc:  # Must never raise
            logger.error(
                "Fallback calculation failed; returning identity result",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            collected.append(f"Fallback calculation failed: {exc}")
            return self._build([], 0.0, collected)

    def _contribution(self, relic: Relic) -> float:
        if relic.attack_contribution is not None:
            return relic.attack_contribution
        return self.default_contribution

    def _calculate(self, relics: Sequence[Any], warnings: List[str]) -> CalculationResult:
        valid: List[Relic] = []
        contributions = 0.0

        for index, relic in enumerate(relics or ()):
            if not isinstance(relic, Relic):
                warnings.append(f"Skipped malformed relic entry at position {index}")
                continue
            contribution = self._contribution(relic)
            if not math.isfinite(contribution):
                warnings.append(f"Skipped relic '{relic.relic_id}' with invalid contribution")
                continue
            valid.append(relic)
            contributions += contribution

        return self._build(valid, contributions, warnings)

    def _build(
        self, relics: List[Relic], contributions: float, warnings: List[str]
    ) -> CalculationResult:
        total = constants.BASE_MULTIPLIER + contributions
        difficulty = min(self.max_difficulty, len(relics) * self.difficulty_per_relic)
        efficiency = total / max(1.0, difficulty) if relics else 0.0

        logger.warning(
            "Fallback calculation used",
            extra={"relic_count": len(relics), "total_multiplier": round(total, 2)},
        )

        return CalculationResult(
            multipliers=MultiplierBreakdown(total=round(total, 2), base=round(total, 2)),
            efficiency=round(efficiency, 2),
            obtainment_difficulty=round(difficulty, 1),
            relic_details=tuple(
                RelicDetail(
                    relic_id=relic.relic_id,
                    name=relic.name,
                    contribution=round(self._contribution(relic) * 100, 2),
                    effect_ids=tuple(effect.effect_id for effect in relic.effects),
                )
                for relic in relics
            ),
            metadata=ResultMetadata(
                calculated_at=utc_now_iso(),
                client_side=True,
                fallback=True,
                source="fallback",
            ),
            warnings=tuple(warnings),
        )
