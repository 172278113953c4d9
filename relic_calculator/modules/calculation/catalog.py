"""
Relic catalog: identifier lookup over loaded relic data.

Relic data is supplied externally and treated as opaque. The catalog loads
it once (from YAML or plain mappings), validates every entry through the
domain model, and resolves selections of identifiers into Relic objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

import yaml

from relic_calculator.core.exceptions import ConfigurationError
from relic_calculator.core.logging.logger import get_logger
from relic_calculator.domain.models.base import DomainValidationError
from relic_calculator.domain.models.relic import Relic
from relic_calculator.modules.shared.exceptions import NotFoundError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedSelection:
    relics: Tuple[Relic, ...]
    unknown_ids: Tuple[str, ...]

    @property
    def all_unknown(self) -> bool:
        return not self.relics and bool(self.unknown_ids)


class RelicCatalog:
    """
    Immutable id -> Relic index.

    Examples
    --------
    >>> catalog = RelicCatalog.from_yaml(Path("data/relics.yaml"))
    >>> selection = catalog.resolve(["physical-attack-up", "missing"])
    >>> selection.unknown_ids
    ('missing',)
    """

    def __init__(self, relics: Iterable[Relic]) -> None:
        self._relics: Dict[str, Relic] = {}
        for relic in relics:
            if relic.relic_id in self._relics:
                raise DomainValidationError(
                    f"duplicate relic id in catalog: {relic.relic_id}", field="relic.id"
                )
            self._relics[relic.relic_id] = relic

    def __len__(self) -> int:
        return len(self._relics)

    def __contains__(self, relic_id: object) -> bool:
        return relic_id in self._relics

    # ========================================================================
    # LOADING
    # ========================================================================

    @classmethod
    def from_dicts(cls, items: Iterable[Mapping[str, Any]]) -> "RelicCatalog":
        """
        Build from camelCase relic mappings.

        Raises
        ------
        DomainValidationError
            If any entry is malformed or an id repeats
        """
        return cls(Relic.from_dict(item) for item in items)

    @classmethod
    def from_yaml(cls, path: Path) -> "RelicCatalog":
        """
        Load a catalog file whose root is either a list of relics or a
        mapping with a `relics` list.

        Raises
        ------
        ConfigurationError
            If the file cannot be read or parsed
        DomainValidationError
            If any relic entry is malformed
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError("RELIC_CATALOG_PATH", f"cannot load {path}: {exc}") from exc

        items = data.get("relics") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ConfigurationError(
                "RELIC_CATALOG_PATH", f"{path} must contain a list of relics"
            )

        catalog = cls.from_dicts(items)
        logger.info(
            "Relic catalog loaded",
            extra={"path": str(path), "relic_count": len(catalog)},
        )
        return catalog

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def get(self, relic_id: str) -> Relic:
        """
        Raises
        ------
        NotFoundError
            If no relic has this id
        """
        try:
            return self._relics[relic_id]
        except KeyError:
            raise NotFoundError("Relic", relic_id) from None

    def resolve(self, relic_ids: Iterable[str]) -> ResolvedSelection:
        """Resolve ids in order; unknown ids are collected, never raised."""
        relics: List[Relic] = []
        unknown: List[str] = []
        for relic_id in relic_ids:
            relic = self._relics.get(relic_id)
            if relic is None:
                unknown.append(relic_id)
            else:
                relics.append(relic)
        return ResolvedSelection(tuple(relics), tuple(unknown))

    def ids(self) -> List[str]:
        return list(self._relics.keys())

    def all(self) -> List[Relic]:
        return list(self._relics.values())
