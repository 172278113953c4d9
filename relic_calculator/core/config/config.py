"""
Static configuration for the relic calculator.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles settings that are fixed at process startup (logging, file locations,
remote calculation endpoint).

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Tunable calculation parameters (handled by ConfigManager)
- Secrets management (use environment variables)

Architecture Notes
------------------
- Class-level attributes with classmethod loaders (no instantiation)
- Auto-loads on module import via Config.validate()
- Validation never raises outside production; bad values fall back to defaults
- Directory paths are relative to the project root

Environment Variables
---------------------
- ENVIRONMENT: development | testing | staging | production (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: production only)
- LOG_COLORS: Colored console logs on a TTY (default: True)
- LOG_TO_FILE: Enable the rotating JSON file handler (default: False)
- CONFIG_DIR: Directory holding YAML tunables (default: <root>/config)
- RELIC_CATALOG_PATH: YAML relic catalog (default: <root>/data/relics.yaml)
- REMOTE_CALCULATION_URL: Base URL of the authoritative calculator (optional)
- REMOTE_API_KEY: Bearer token for the remote calculator (optional)
- REMOTE_TIMEOUT_SECONDS: HTTP timeout for remote calls (default: 5.0)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Parameters
        ----------
        value:
            Environment string to parse.

        Returns
        -------
        Environment
            Parsed environment enum value, DEVELOPMENT when unknown.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("nope") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self) -> None:
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any) -> None:
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str) -> None:
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the relic calculator.

    Usage
    -----
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> Config.REMOTE_CALCULATION_URL
    'https://calc.example.net/api'
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    RELIC_CATALOG_PATH: Path = PROJECT_ROOT / "data" / "relics.yaml"

    # =========================================================================
    # Remote Calculation Service
    # =========================================================================

    REMOTE_CALCULATION_URL: Optional[str] = None
    REMOTE_API_KEY: Optional[str] = None
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls) -> None:
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _reject(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_float(
        cls,
        key: str,
        default: float,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
    ) -> float:
        """
        Safely parse float from environment with validation.

        Parameters
        ----------
        key:
            Environment variable name.
        default:
            Default value if not set, unparsable or out of bounds.
        min_val:
            Minimum allowed value (inclusive).
        max_val:
            Maximum allowed value (inclusive).

        Returns
        -------
        float
            Validated value, e.g. a timeout in seconds.
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default)
            return default

        try:
            value = float(raw_value)
        except ValueError:
            cls._reject(key, f"{key}='{raw_value}' is not a valid number, using default {default}")
            return default

        if min_val is not None and value < min_val:
            cls._reject(key, f"{key}={value} is below minimum {min_val}, using default {default}")
            return default
        if max_val is not None and value > max_val:
            cls._reject(key, f"{key}={value} exceeds maximum {max_val}, using default {default}")
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).

        Parameters
        ----------
        key:
            Environment variable name.
        default:
            Default value if not set or invalid.

        Returns
        -------
        Optional[bool]
            Parsed boolean value, or `default` (which may be None).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._reject(key, f"{key}='{raw_value}' is not a valid boolean, using default {default}")
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: Optional[str]) -> Optional[str]:
        """Get a string from the environment; empty strings count as unset."""
        cls._init_metrics()

        raw_value = os.getenv(key)
        from_env = bool(raw_value)
        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, default)
        return raw_value if from_env else default

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        raw_value = cls._safe_str(key, None)
        return Path(raw_value).expanduser() if raw_value else default

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again to pick up
        environment changes (tests use this after monkeypatching).
        """
        cls._init_metrics()

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development") or "development"
        ).value
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = (cls._safe_str("LOG_LEVEL", "INFO") or "INFO").upper()
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOG_TO_FILE = bool(cls._safe_bool("LOG_TO_FILE", False))

        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.CONFIG_DIR = cls._safe_path("CONFIG_DIR", cls.PROJECT_ROOT / "config")
        cls.RELIC_CATALOG_PATH = cls._safe_path(
            "RELIC_CATALOG_PATH", cls.PROJECT_ROOT / "data" / "relics.yaml"
        )

        cls.REMOTE_CALCULATION_URL = cls._safe_str("REMOTE_CALCULATION_URL", None)
        cls.REMOTE_API_KEY = cls._safe_str("REMOTE_API_KEY", None)
        cls.REMOTE_TIMEOUT_SECONDS = cls._safe_float(
            "REMOTE_TIMEOUT_SECONDS", 5.0, min_val=0.1, max_val=120.0
        )

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ValueError:
            Only in production, when the remote endpoint URL is malformed.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        try:
            valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
            if cls.LOG_LEVEL not in valid_log_levels:
                logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
                cls.LOG_LEVEL = "INFO"

            url = cls.REMOTE_CALCULATION_URL
            if url and not url.startswith(("http://", "https://")):
                raise ValueError(f"REMOTE_CALCULATION_URL must be an http(s) URL, got {url!r}")

            if cls.is_production() and cls.DEBUG:
                logger.warning("DEBUG mode enabled in production!")

            cls._validated = True

            if cls._metrics and cls._metrics.validation_errors:
                logger.warning(f"Configuration warnings: {cls._metrics.validation_errors}")

        except ValueError as e:
            logger.warning(f"Config validation warning: {e}")
            if cls.is_production():
                raise
            cls.REMOTE_CALCULATION_URL = None

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Get non-sensitive configuration summary for debugging.

        Example
        -------
        >>> Config.get_config_summary()["remote_api_key_set"]
        False
        """
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "log_to_file": cls.LOG_TO_FILE,
            "config_dir": str(cls.CONFIG_DIR),
            "relic_catalog_path": str(cls.RELIC_CATALOG_PATH),
            "remote_calculation_url": cls.REMOTE_CALCULATION_URL,
            "remote_timeout_seconds": cls.REMOTE_TIMEOUT_SECONDS,
            "remote_api_key_set": bool(cls.REMOTE_API_KEY),
            "load_metrics": cls._metrics.get_summary() if cls._metrics else None,
        }


# Auto-validate on import
Config.validate()
