"""
Synergy detection across a relic selection.

Two kinds of groups earn a bonus once they reach the minimum group size:

- relics sharing a category, weighted per matching relic
- effects sharing a kind (across all selected relics), weighted per
  matching effect

Synergy depends only on the selection as a whole. Conditions and stacking
rules do not affect it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

from relic_calculator.core.logging.logger import get_logger
from relic_calculator.domain.models.relic import Relic
from relic_calculator.modules.calculation import constants

if TYPE_CHECKING:
    from relic_calculator.core.config.manager import ConfigManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class SynergyGroup:
    source: str  # "category" | "effect_kind"
    label: str
    size: int
    bonus: float


class SynergyCalculator:
    """
    Category and effect-kind synergy bonuses.

    Weights come from `calculation.synergy.*` when a ConfigManager is given.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        def tunable(key: str, default: float) -> float:
            if config_manager is None:
                return default
            return config_manager.get(key, default)

        self.category_weight = float(
            tunable("calculation.synergy.category_weight", constants.CATEGORY_SYNERGY_WEIGHT)
        )
        self.effect_weight = float(
            tunable("calculation.synergy.effect_weight", constants.EFFECT_SYNERGY_WEIGHT)
        )
        self.min_group_size = int(
            tunable("calculation.synergy.min_group_size", constants.MIN_SYNERGY_GROUP_SIZE)
        )

    def synergy_groups(self, relics: Sequence[Relic]) -> List[SynergyGroup]:
        """Every qualifying group, categories first, in first-seen order."""
        groups: List[SynergyGroup] = []

        categories = Counter(relic.category for relic in relics)
        for category, count in categories.items():
            if count >= self.min_group_size:
                groups.append(
                    SynergyGroup("category", category.value, count, self.category_weight * count)
                )

        kinds = Counter(effect.kind for relic in relics for effect in relic.effects)
        for kind, count in kinds.items():
            if count >= self.min_group_size:
                groups.append(
                    SynergyGroup("effect_kind", kind.value, count, self.effect_weight * count)
                )

        return groups

    def synergy_bonus(self, relics: Sequence[Relic]) -> float:
        groups = self.synergy_groups(relics)
        bonus = sum(group.bonus for group in groups)
        if groups:
            logger.debug(
                "Synergy groups detected",
                extra={
                    "groups": [f"{g.source}:{g.label}x{g.size}" for g in groups],
                    "synergy_bonus": round(bonus, 4),
                },
            )
        return bonus
