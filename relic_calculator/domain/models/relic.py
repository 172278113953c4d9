"""
Relic Domain Model.

Purpose
-------
Immutable description of a relic and its effects. Relics are pure data: they
never evaluate their own conditions or compute contributions. That work
belongs to the calculation module, so the same relic can be evaluated under
any number of contexts without risk of mutation.

Responsibilities
----------------
- Define the closed vocabularies (effect kinds, stacking rules, condition
  kinds, categories, rarities) as enums
- Validate relic data at load time so calculations never see malformed input
- Convert to and from the camelCase mapping form used by catalogs and the
  remote calculator

Usage Example
-------------
>>> relic = Relic.from_dict({
...     "id": "physical-attack-up",
...     "name": "Physical Attack Up",
...     "category": "attack",
...     "effects": [{"id": "phys", "type": "attack_percentage", "value": 2}],
... })
>>> relic.effects[0].kind
<EffectKind.PERCENTAGE: 'attack_percentage'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from relic_calculator.domain.models.base import (
    DomainValidationError,
    parse_enum,
    validate_non_negative,
    validate_not_empty,
    validate_number,
    validate_range,
)

# ============================================================================
# CONSTANTS
# ============================================================================

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0


# ============================================================================
# ENUMERATIONS
# ============================================================================


class EffectKind(str, Enum):
    """Closed set of effect kinds, listed in application priority order."""

    FLAT = "attack_flat"
    MULTIPLIER = "attack_multiplier"
    PERCENTAGE = "attack_percentage"
    CRITICAL_MULTIPLIER = "critical_multiplier"
    WEAPON_SPECIFIC = "weapon_specific"
    CONDITIONAL_DAMAGE = "conditional_damage"

    @property
    def priority(self) -> int:
        return EFFECT_PRIORITY[self]


# Higher runs first
EFFECT_PRIORITY: Dict[EffectKind, int] = {
    EffectKind.FLAT: 100,
    EffectKind.MULTIPLIER: 90,
    EffectKind.PERCENTAGE: 80,
    EffectKind.CRITICAL_MULTIPLIER: 70,
    EffectKind.WEAPON_SPECIFIC: 60,
    EffectKind.CONDITIONAL_DAMAGE: 50,
}


class StackingRule(str, Enum):
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"
    OVERWRITE = "overwrite"
    UNIQUE = "unique"


class ConditionKind(str, Enum):
    WEAPON_TYPE = "weapon_type"
    COMBAT_STYLE = "combat_style"
    HEALTH_THRESHOLD = "health_threshold"
    CHAIN_POSITION = "chain_position"
    ENEMY_TYPE = "enemy_type"
    COUNT_THRESHOLD = "count_threshold"

    @property
    def is_numeric(self) -> bool:
        """Numeric conditions scale values; the rest are boolean gates."""
        return self in (ConditionKind.HEALTH_THRESHOLD, ConditionKind.COUNT_THRESHOLD)


class Comparison(str, Enum):
    AT_LEAST = "at_least"
    AT_MOST = "at_most"


class RelicCategory(str, Enum):
    ATTACK = "attack"
    DEFENSE = "defense"
    UTILITY = "utility"
    CRITICAL = "critical"
    ELEMENTAL = "elemental"


class RelicRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class Condition:
    """
    A single activation predicate attached to an effect.

    Attributes
    ----------
    kind : ConditionKind
        What the predicate inspects
    value : str | float
        Comparison value. Numeric for health/count thresholds and chain
        position, a lowercase label for the enumerated kinds.
    comparison : Comparison
        Direction for numeric thresholds
    condition_id : Optional[str]
        Identifier from the source data, if any
    """

    kind: ConditionKind
    value: Union[str, float]
    comparison: Comparison = Comparison.AT_LEAST
    condition_id: Optional[str] = None

    def __post_init__(self) -> None:
        kind = parse_enum(ConditionKind, self.kind, "condition.kind")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(
            self, "comparison", parse_enum(Comparison, self.comparison, "condition.comparison")
        )

        if kind is ConditionKind.HEALTH_THRESHOLD:
            threshold = validate_number(self.value, "condition.value")
            validate_range(threshold, 0.0, 1.0, "condition.value")
            object.__setattr__(self, "value", threshold)
        elif kind is ConditionKind.COUNT_THRESHOLD:
            threshold = validate_number(self.value, "condition.value")
            validate_non_negative(threshold, "condition.value")
            object.__setattr__(self, "value", threshold)
        elif kind is ConditionKind.CHAIN_POSITION:
            position = validate_number(self.value, "condition.value")
            if position < 1 or position != int(position):
                raise DomainValidationError(
                    f"condition.value must be a positive whole chain position, got {self.value}",
                    field="condition.value",
                )
            object.__setattr__(self, "value", float(position))
        else:
            validate_not_empty(self.value, "condition.value")
            object.__setattr__(self, "value", str(self.value).strip().lower())

    @property
    def threshold(self) -> float:
        """Numeric comparison value; only meaningful for numeric kinds."""
        return float(self.value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        return cls(
            kind=data.get("type", data.get("kind")),
            value=data.get("value"),
            comparison=data.get("comparison", Comparison.AT_LEAST),
            condition_id=data.get("id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.kind.value,
            "value": self.value,
            "comparison": self.comparison.value,
        }
        if self.condition_id:
            payload["id"] = self.condition_id
        return payload


@dataclass(frozen=True)
class Effect:
    """
    A single numeric modifier granted by a relic.

    Values are percentages for every kind except `attack_flat`, which adds
    directly to the base multiplier.

    Attributes
    ----------
    effect_id : str
        Identifier, unique within its relic
    kind : EffectKind
        Which bucket the effect feeds
    value : float
        Base value before condition scaling
    stacking : StackingRule
        Combination policy with other effects of the same kind
    conditions : Tuple[Condition, ...]
        Activation predicates; only the first one is evaluated
    damage_types : Tuple[str, ...]
        Damage categories the effect applies to (opaque labels)
    name : str
        Display name
    value_range : Optional[Tuple[float, float]]
        Declared (min, max) for scaled values; None means no scaling
    """

    effect_id: str
    kind: EffectKind
    value: float
    stacking: StackingRule = StackingRule.ADDITIVE
    conditions: Tuple[Condition, ...] = ()
    damage_types: Tuple[str, ...] = ()
    name: str = ""
    value_range: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.effect_id, "effect.id")
        object.__setattr__(self, "kind", parse_enum(EffectKind, self.kind, "effect.kind"))
        object.__setattr__(self, "value", validate_number(self.value, "effect.value"))
        object.__setattr__(
            self, "stacking", parse_enum(StackingRule, self.stacking, "effect.stacking")
        )
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "damage_types", tuple(self.damage_types))

        if self.value_range is not None:
            low, high = self.value_range
            low = validate_number(low, "effect.value_range")
            high = validate_number(high, "effect.value_range")
            if low > high:
                raise DomainValidationError(
                    f"effect.value_range minimum {low} exceeds maximum {high}",
                    field="effect.value_range",
                )
            object.__setattr__(self, "value_range", (low, high))

    @property
    def condition(self) -> Optional[Condition]:
        """The primary condition, or None for unconditional effects."""
        return self.conditions[0] if self.conditions else None

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)

    @property
    def bounds(self) -> Tuple[float, float]:
        return self.value_range if self.value_range is not None else (self.value, self.value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Effect":
        value_range = data.get("valueRange")
        if value_range is None and ("minValue" in data or "maxValue" in data):
            value_range = (
                data.get("minValue", data.get("value")),
                data.get("maxValue", data.get("value")),
            )
        return cls(
            effect_id=data.get("id", ""),
            kind=data.get("type", data.get("kind")),
            value=data.get("value"),
            stacking=data.get("stackingRule", data.get("stacking", StackingRule.ADDITIVE)),
            conditions=tuple(Condition.from_dict(c) for c in data.get("conditions") or ()),
            damage_types=tuple(data.get("damageTypes") or ()),
            name=data.get("name", ""),
            value_range=tuple(value_range) if value_range is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.effect_id,
            "type": self.kind.value,
            "value": self.value,
            "stackingRule": self.stacking.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "damageTypes": list(self.damage_types),
            "name": self.name,
        }
        if self.value_range is not None:
            payload["valueRange"] = list(self.value_range)
        return payload


@dataclass(frozen=True)
class Relic:
    """
    Immutable relic: a bundle of effects with selection metadata.

    Attributes
    ----------
    relic_id : str
        Stable identifier used in selections and cache keys
    name : str
        Display name
    category : RelicCategory
        Grouping used for synergy detection
    rarity : RelicRarity
        Rarity tier
    effects : Tuple[Effect, ...]
        Ordered effects
    difficulty : float
        Obtainment difficulty (1-10)
    conflicts : FrozenSet[str]
        Relic ids that cannot be combined with this one
    attack_contribution : Optional[float]
        Flat attack contribution used by the fallback path
    """

    relic_id: str
    name: str
    category: RelicCategory
    rarity: RelicRarity = RelicRarity.COMMON
    effects: Tuple[Effect, ...] = ()
    difficulty: float = MIN_DIFFICULTY
    conflicts: FrozenSet[str] = field(default_factory=frozenset)
    attack_contribution: Optional[float] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.relic_id, "relic.id")
        validate_not_empty(self.name, "relic.name")
        object.__setattr__(
            self, "category", parse_enum(RelicCategory, self.category, "relic.category")
        )
        object.__setattr__(self, "rarity", parse_enum(RelicRarity, self.rarity, "relic.rarity"))
        object.__setattr__(self, "effects", tuple(self.effects))

        difficulty = validate_number(self.difficulty, "relic.difficulty")
        validate_range(difficulty, MIN_DIFFICULTY, MAX_DIFFICULTY, "relic.difficulty")
        object.__setattr__(self, "difficulty", difficulty)

        conflicts = frozenset(self.conflicts)
        if self.relic_id in conflicts:
            raise DomainValidationError(
                f"relic {self.relic_id} cannot conflict with itself", field="relic.conflicts"
            )
        object.__setattr__(self, "conflicts", conflicts)

        if self.attack_contribution is not None:
            object.__setattr__(
                self,
                "attack_contribution",
                validate_number(self.attack_contribution, "relic.attack_contribution"),
            )

        effect_ids = [effect.effect_id for effect in self.effects]
        if len(effect_ids) != len(set(effect_ids)):
            raise DomainValidationError(
                f"relic {self.relic_id} has duplicate effect ids", field="relic.effects"
            )

    def conflicts_with(self, other: "Relic") -> bool:
        """Conflicts are symmetric: either side may declare them."""
        return other.relic_id in self.conflicts or self.relic_id in other.conflicts

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Relic":
        return cls(
            relic_id=data.get("id", ""),
            name=data.get("name", ""),
            category=data.get("category"),
            rarity=data.get("rarity", RelicRarity.COMMON),
            effects=tuple(Effect.from_dict(e) for e in data.get("effects") or ()),
            difficulty=data.get("obtainmentDifficulty", data.get("difficulty", MIN_DIFFICULTY)),
            conflicts=frozenset(data.get("conflicts") or ()),
            attack_contribution=data.get("attackMultiplier", data.get("attack_contribution")),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.relic_id,
            "name": self.name,
            "category": self.category.value,
            "rarity": self.rarity.value,
            "effects": [effect.to_dict() for effect in self.effects],
            "obtainmentDifficulty": self.difficulty,
            "conflicts": sorted(self.conflicts),
        }
        if self.attack_contribution is not None:
            payload["attackMultiplier"] = self.attack_contribution
        return payload


def relic_ids(relics: Iterable[Relic]) -> Tuple[str, ...]:
    return tuple(relic.relic_id for relic in relics)
