"""
Calculation result value objects.

Results are immutable so a cached result can be handed to any number of
callers. Provenance changes (cached, offline, fallback) produce new objects via
`with_metadata`. The wire form (`to_dict` / `from_dict`) is shared by the
local engine and the remote calculator so both can be compared field by field.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from relic_calculator.domain.models.relic import EffectKind, StackingRule


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class MultiplierBreakdown:
    total: float
    base: float
    synergy: float = 0.0
    conditional: float = 0.0
    environmental: float = 0.0


@dataclass(frozen=True)
class RelicDetail:
    relic_id: str
    name: str
    contribution: float  # Percent points contributed by applied effects
    effect_ids: Tuple[str, ...] = ()
    active_effect_ids: Tuple[str, ...] = ()
    conflicted: bool = False


@dataclass(frozen=True)
class EffectBreakdownEntry:
    effect_id: str
    effect_name: str
    source_id: str
    source_name: str
    kind: EffectKind
    stacking: StackingRule
    value: float  # Declared value
    calculated_value: float  # After condition scaling
    is_active: bool = True
    condition: Optional[str] = None  # Condition kind that gated it, if any


@dataclass(frozen=True)
class CalculationStep:
    step: int
    description: str
    operation: str  # base | add | multiply | synergy | environment
    value: float
    running_total: float


@dataclass(frozen=True)
class PerformanceCounters:
    duration_ms: float
    relic_count: int
    active_effects: int


@dataclass(frozen=True)
class ResultMetadata:
    calculated_at: str
    client_side: bool = True
    cache_key: Optional[str] = None
    cached: bool = False
    offline: bool = False
    fallback: bool = False
    source: str = "local"
    performance: Optional[PerformanceCounters] = None


@dataclass(frozen=True)
class CalculationResult:
    multipliers: MultiplierBreakdown
    efficiency: float
    obtainment_difficulty: float
    relic_details: Tuple[RelicDetail, ...] = ()
    effect_breakdown: Tuple[EffectBreakdownEntry, ...] = ()
    calculation_steps: Tuple[CalculationStep, ...] = ()
    metadata: ResultMetadata = ResultMetadata(calculated_at="")
    warnings: Tuple[str, ...] = ()

    @property
    def total(self) -> float:
        return self.multipliers.total

    def with_metadata(self, **changes: Any) -> "CalculationResult":
        return replace(self, metadata=replace(self.metadata, **changes))

    # ========================================================================
    # Wire format
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        performance = self.metadata.performance
        return {
            "attackMultipliers": {
                "total": self.multipliers.total,
                "base": self.multipliers.base,
                "synergy": self.multipliers.synergy,
                "conditional": self.multipliers.conditional,
                "environmental": self.multipliers.environmental,
            },
            "efficiency": self.efficiency,
            "obtainmentDifficulty": self.obtainment_difficulty,
            "relicDetails": [
                {
                    "relicId": d.relic_id,
                    "name": d.name,
                    "contribution": d.contribution,
                    "effects": list(d.effect_ids),
                    "activeEffects": list(d.active_effect_ids),
                    "conflicted": d.conflicted,
                }
                for d in self.relic_details
            ],
            "effectBreakdown": [
                {
                    "id": e.effect_id,
                    "name": e.effect_name,
                    "sourceId": e.source_id,
                    "sourceName": e.source_name,
                    "kind": e.kind.value,
                    "type": e.stacking.value,
                    "value": e.value,
                    "calculatedValue": e.calculated_value,
                    "isActive": e.is_active,
                    "condition": e.condition,
                }
                for e in self.effect_breakdown
            ],
            "calculationSteps": [
                {
                    "step": s.step,
                    "description": s.description,
                    "operation": s.operation,
                    "value": s.value,
                    "result": s.running_total,
                }
                for s in self.calculation_steps
            ],
            "warnings": list(self.warnings),
            "metadata": {
                "calculatedAt": self.metadata.calculated_at,
                "clientSide": self.metadata.client_side,
                "cacheKey": self.metadata.cache_key,
                "cached": self.metadata.cached,
                "offline": self.metadata.offline,
                "fallback": self.metadata.fallback,
                "source": self.metadata.source,
                "performance": (
                    {
                        "duration": performance.duration_ms,
                        "relicCount": performance.relic_count,
                        "activeEffects": performance.active_effects,
                    }
                    if performance
                    else None
                ),
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalculationResult":
        """
        Decode the wire form.

        Only `attackMultipliers.total`, `attackMultipliers.base`, `efficiency`
        and `obtainmentDifficulty` are required; everything else defaults.
        Raises KeyError, TypeError or ValueError on malformed payloads.
        """
        multipliers = data["attackMultipliers"]
        meta = data.get("metadata") or {}
        perf = meta.get("performance")

        return cls(
            multipliers=MultiplierBreakdown(
                total=float(multipliers["total"]),
                base=float(multipliers["base"]),
                synergy=float(multipliers.get("synergy") or 0.0),
                conditional=float(multipliers.get("conditional") or 0.0),
                environmental=float(multipliers.get("environmental") or 0.0),
            ),
            efficiency=float(data["efficiency"]),
            obtainment_difficulty=float(data["obtainmentDifficulty"]),
            relic_details=tuple(
                RelicDetail(
                    relic_id=str(d["relicId"]),
                    name=str(d.get("name", "")),
                    contribution=float(d.get("contribution") or 0.0),
                    effect_ids=tuple(str(e) for e in d.get("effects") or () if isinstance(e, str)),
                    active_effect_ids=tuple(d.get("activeEffects") or ()),
                    conflicted=bool(d.get("conflicted", False)),
                )
                for d in data.get("relicDetails") or ()
            ),
            effect_breakdown=tuple(
                EffectBreakdownEntry(
                    effect_id=str(e["id"]),
                    effect_name=str(e.get("name", "")),
                    source_id=str(e.get("sourceId", "")),
                    source_name=str(e.get("sourceName", "")),
                    kind=EffectKind(e.get("kind", EffectKind.PERCENTAGE.value)),
                    stacking=StackingRule(e.get("type", StackingRule.ADDITIVE.value)),
                    value=float(e.get("value") or 0.0),
                    calculated_value=float(e.get("calculatedValue") or 0.0),
                    is_active=bool(e.get("isActive", True)),
                    condition=e.get("condition"),
                )
                for e in data.get("effectBreakdown") or ()
            ),
            calculation_steps=tuple(
                CalculationStep(
                    step=int(s["step"]),
                    description=str(s.get("description", "")),
                    operation=str(s.get("operation", "")),
                    value=float(s.get("value") or 0.0),
                    running_total=float(s.get("result") or 0.0),
                )
                for s in data.get("calculationSteps") or ()
            ),
            metadata=ResultMetadata(
                calculated_at=str(meta.get("calculatedAt") or utc_now_iso()),
                client_side=bool(meta.get("clientSide", False)),
                cache_key=meta.get("cacheKey"),
                cached=bool(meta.get("cached", False)),
                offline=bool(meta.get("offline", False)),
                fallback=bool(meta.get("fallback", False)),
                source=str(meta.get("source") or "remote"),
                performance=(
                    PerformanceCounters(
                        duration_ms=float(perf.get("duration") or 0.0),
                        relic_count=int(perf.get("relicCount") or 0),
                        active_effects=int(perf.get("activeEffects") or 0),
                    )
                    if isinstance(perf, Mapping)
                    else None
                ),
            ),
            warnings=tuple(str(w) for w in data.get("warnings") or ()),
        )
