"""
ConfigManager: tunable calculation parameters with dot-notation access.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable values such as synergy
  weights, cache TTLs and validation tolerances.
- Back configuration with YAML defaults plus in-memory overrides.
- Keep read metrics so operators can see fallback-to-default behavior.

Responsibilities
----------------
- Load and deep-merge every YAML file found in the config directory.
- Overlay runtime overrides (`set`) on top of YAML defaults.
- Run registered validators on writes.
- Expose metrics and a health snapshot.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory only.
- Call sites always pass their own fallback: `get("cache.ttl_seconds", 300)`.
  A missing YAML file therefore never breaks a service.
- One instance is built by the ServiceContainer and handed to every service.
  There is no class-level shared state.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional

import yaml

from relic_calculator.core.exceptions import ConfigurationError
from relic_calculator.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    fallback_to_defaults: int = 0
    overrides_set: int = 0
    errors: int = 0
    total_get_time_ms: float = 0.0


class ConfigManager:
    """
    Tunable configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> config = ConfigManager(config_dir=Path("config"))
    >>> config.get("calculation.synergy.category_weight", 0.15)
    0.15
    >>> config.set("validation.frequency", 0.5)
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, Any]] = None,
        config_dir: Optional[Path] = None,
    ) -> None:
        self._defaults: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}
        self._validators: Dict[str, Callable[[Any], Any]] = {}
        self._metrics = ConfigMetrics()
        self._loaded_at: Optional[float] = None

        if config_dir is not None:
            self.load_directory(config_dir)
        if defaults:
            self._deep_merge_dict(self._defaults, copy.deepcopy(dict(defaults)))

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    def load_directory(self, config_dir: Path) -> int:
        """
        Load and deep-merge all YAML files under `config_dir`.

        Files are merged in sorted path order so later files win on
        conflicting keys deterministically. Returns the number of files
        loaded.
        """
        config_dir = Path(config_dir)
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using call-site defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                self._metrics.errors += 1
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                self._deep_merge_dict(self._defaults, data)
                loaded_count += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

        self._loaded_at = time.time()
        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": loaded_count,
                "top_level_keys": sorted(self._defaults.keys()),
            },
        )
        return loaded_count

    # =========================================================================
    # VALIDATION HOOKS
    # =========================================================================

    def register_validator(self, key: str, validator: Callable[[Any], Any]) -> None:
        """
        Register a validator for a dot-notation key.

        Validators run on `set` and must return the (possibly transformed)
        value or raise to block the write.
        """
        self._validators[key] = validator
        logger.debug(
            "ConfigManager validator registered",
            extra={
                "config_key": key,
                "validator": getattr(validator, "__name__", "anonymous"),
            },
        )

    def _apply_validator(self, key: str, value: Any) -> Any:
        validator = self._validators.get(key)
        if not validator:
            return value

        try:
            return validator(value)
        except (TypeError, ValueError) as exc:
            self._metrics.errors += 1
            logger.error(
                "Config validation failed",
                extra={"config_key": key, "error": str(exc)},
            )
            raise ConfigurationError(key, f"rejected value {value!r}: {exc}") from exc

    # =========================================================================
    # READ API
    # =========================================================================

    @staticmethod
    def _traverse(tree: Mapping[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Overrides win over YAML defaults; `default` is returned when neither
        layer defines the key.

        Parameters
        ----------
        key:
            Dot-notation config path (e.g. `"validation.tolerances.total"`).
        default:
            Value to return if the key is not found.
        """
        start_time = time.perf_counter()
        self._metrics.gets += 1
        try:
            if key in self._overrides:
                self._metrics.cache_hits += 1
                return self._overrides[key]

            value = self._traverse(self._defaults, key)
            if value is _MISSING or value is None:
                self._metrics.cache_misses += 1
                self._metrics.fallback_to_defaults += 1
                return default

            self._metrics.cache_hits += 1
            return value
        finally:
            self._metrics.total_get_time_ms += (time.perf_counter() - start_time) * 1000

    def get_section(self, key: str) -> Dict[str, Any]:
        """Return a deep copy of a nested section, with overrides applied."""
        section = self._traverse(self._defaults, key)
        result: Dict[str, Any] = copy.deepcopy(section) if isinstance(section, dict) else {}

        prefix = f"{key}."
        for override_key, value in self._overrides.items():
            if not override_key.startswith(prefix):
                continue
            node = result
            parts = override_key[len(prefix):].split(".")
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = value
        return result

    # =========================================================================
    # WRITE API
    # =========================================================================

    def set(self, key: str, value: Any) -> None:
        """Set an in-memory override for `key` after running its validator."""
        final_value = self._apply_validator(key, value)
        self._overrides[key] = final_value
        self._metrics.overrides_set += 1
        logger.info(
            "Config override applied",
            extra={"config_key": key, "value": final_value},
        )

    def clear_overrides(self) -> None:
        self._overrides.clear()

    # =========================================================================
    # METRICS
    # =========================================================================

    def get_metrics(self) -> Dict[str, Any]:
        snapshot = asdict(self._metrics)
        gets = self._metrics.gets
        snapshot["avg_get_time_ms"] = round(self._metrics.total_get_time_ms / gets, 4) if gets else 0.0
        snapshot["override_count"] = len(self._overrides)
        return snapshot

    def reset_metrics(self) -> None:
        self._metrics = ConfigMetrics()

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "loaded": self._loaded_at is not None,
            "loaded_at": self._loaded_at,
            "top_level_keys": len(self._defaults),
            "override_count": len(self._overrides),
            "errors": self._metrics.errors,
        }
