"""
Calculation context value object.

A snapshot of the combat situation at calculation time. It is supplied fresh
for every calculation and never mutated by the engine. Its canonical JSON form
is part of the cache key, so two equal contexts always serialize identically.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from relic_calculator.domain.models.base import (
    DomainValidationError,
    parse_enum,
    validate_non_negative,
    validate_number,
    validate_range,
)


class EnemyCategory(str, Enum):
    NORMAL = "normal"
    ELITE = "elite"
    BOSS = "boss"
    WEAK = "weak"


@dataclass(frozen=True)
class CalculationContext:
    """
    Situational snapshot used to activate and scale conditional effects.

    Attributes
    ----------
    enemy_category : EnemyCategory
        Category of the current target
    player_health : float
        Remaining health as a fraction in [0, 1]
    combo_count : int
        Hits landed in the current chain
    is_first_hit : bool
        Whether this is the opening hit of a chain
    environment_tags : FrozenSet[str]
        Active environment effects
    weapon_type : Optional[str]
        Equipped weapon type, lowercase
    combat_style : Optional[str]
        Current combat style, lowercase
    """

    enemy_category: EnemyCategory = EnemyCategory.NORMAL
    player_health: float = 1.0
    combo_count: int = 0
    is_first_hit: bool = False
    environment_tags: FrozenSet[str] = field(default_factory=frozenset)
    weapon_type: Optional[str] = None
    combat_style: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "enemy_category",
            parse_enum(EnemyCategory, self.enemy_category, "context.enemy_category"),
        )

        health = validate_number(self.player_health, "context.player_health")
        validate_range(health, 0.0, 1.0, "context.player_health")
        object.__setattr__(self, "player_health", health)

        if isinstance(self.combo_count, bool) or not isinstance(self.combo_count, int):
            raise DomainValidationError(
                f"context.combo_count must be an integer, got {self.combo_count!r}",
                field="context.combo_count",
            )
        validate_non_negative(self.combo_count, "context.combo_count")

        if not isinstance(self.is_first_hit, bool):
            raise DomainValidationError(
                "context.is_first_hit must be a boolean", field="context.is_first_hit"
            )

        tags = self.environment_tags
        if isinstance(tags, (str, bytes, Mapping)) or not isinstance(tags, Iterable):
            raise DomainValidationError(
                f"context.environment_tags must be a collection of tags, got {tags!r}",
                field="context.environment_tags",
            )
        object.__setattr__(self, "environment_tags", frozenset(str(tag) for tag in tags))

        for name in ("weapon_type", "combat_style"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, str(value).strip().lower() or None)

    @property
    def chain_position(self) -> int:
        """1 on an opening hit, otherwise the combo counter (0 means no chain)."""
        return 1 if self.is_first_hit else self.combo_count

    # ========================================================================
    # Serialization
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, as sent to the remote calculator under `conditionalEffects`."""
        return {
            "enemyType": self.enemy_category.value,
            "playerHealth": self.player_health,
            "comboCount": self.combo_count,
            "isFirstHit": self.is_first_hit,
            "environmentEffects": sorted(self.environment_tags),
            "weaponType": self.weapon_type,
            "combatStyle": self.combat_style,
        }

    def canonical_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalculationContext":
        """Build from wire form; snake_case keys are accepted as well."""

        def pick(camel: str, snake: str, default: Any) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        tags = pick("environmentEffects", "environment_tags", None)

        return cls(
            enemy_category=pick("enemyType", "enemy_category", EnemyCategory.NORMAL),
            player_health=pick("playerHealth", "player_health", 1.0),
            combo_count=pick("comboCount", "combo_count", 0),
            is_first_hit=pick("isFirstHit", "is_first_hit", False),
            environment_tags=frozenset() if tags is None else tags,
            weapon_type=pick("weaponType", "weapon_type", None),
            combat_style=pick("combatStyle", "combat_style", None),
        )
