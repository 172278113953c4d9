"""
Service Container
=================

Purpose
-------
Build the calculation service graph once from configuration and hand out
explicit service objects. Nothing in the package relies on module-level
singletons; everything a service needs is passed in here.

Responsibilities
----------------
- Load tunable config (YAML under `Config.CONFIG_DIR`)
- Load the relic catalog (`Config.RELIC_CATALOG_PATH`)
- Create the memoization cache, engine, fallback calculator, remote client
  (when `REMOTE_CALCULATION_URL` is set), validator and service
- Manage lifecycle: initialize, shutdown (closes the HTTP client), health

Architecture Notes
------------------
- Any collaborator can be injected through the constructor; injected
  objects are used as-is and never closed by the container.
- Initialization is fail-fast: a broken catalog or config aborts startup.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, TypeVar

from relic_calculator.core.cache.memoization import DEFAULT_TTL_SECONDS, MemoizationCache
from relic_calculator.core.config.config import Config
from relic_calculator.core.config.manager import ConfigManager
from relic_calculator.core.logging.logger import get_logger
from relic_calculator.modules.calculation import constants
from relic_calculator.modules.calculation.catalog import RelicCatalog
from relic_calculator.modules.calculation.engine import CalculationEngine
from relic_calculator.modules.calculation.fallback import FallbackCalculator
from relic_calculator.modules.calculation.service import CalculationService
from relic_calculator.modules.validation.remote_client import HttpRemoteCalculator
from relic_calculator.modules.validation.validator import DualPathValidator, ValidationConfig

if TYPE_CHECKING:
    from logging import Logger

    from relic_calculator.modules.validation.remote_client import RemoteCalculator

logger = get_logger(__name__)

T = TypeVar("T")

_NOT_INITIALIZED = "ServiceContainer not initialized. Call initialize() first."


class ServiceContainer:
    """
    Dependency injection container for the calculation services.

    Usage:
        container = ServiceContainer()
        await container.initialize()

        result = await container.calculation.calculate(["physical-attack-up"])

        await container.shutdown()
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        catalog: Optional[RelicCatalog] = None,
        remote: Optional[RemoteCalculator] = None,
        config_dir: Optional[Path] = None,
        catalog_path: Optional[Path] = None,
        log: Optional[Logger] = None,
    ) -> None:
        self._config_manager = config_manager
        self._catalog = catalog
        self._remote = remote
        self._owns_remote = False
        self._config_dir = config_dir or Config.CONFIG_DIR
        self._catalog_path = catalog_path or Config.RELIC_CATALOG_PATH
        self._logger = log or logger

        self._cache: Optional[MemoizationCache] = None
        self._engine: Optional[CalculationEngine] = None
        self._fallback: Optional[FallbackCalculator] = None
        self._validator: Optional[DualPathValidator] = None
        self._calculation: Optional[CalculationService] = None

        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Build every service. Safe to call twice; the second call is a no-op."""
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            if self._config_manager is None:
                self._config_manager = self._create_service(
                    "config_manager", lambda: ConfigManager(config_dir=self._config_dir)
                )
            config = self._config_manager

            if self._catalog is None:
                self._catalog = self._create_service(
                    "catalog", lambda: RelicCatalog.from_yaml(self._catalog_path)
                )

            self._cache = self._create_service(
                "cache",
                lambda: MemoizationCache(
                    max_size=int(config.get("cache.max_size", constants.RESULT_CACHE_MAX_SIZE)),
                    default_ttl=float(
                        config.get("cache.default_ttl_seconds", DEFAULT_TTL_SECONDS)
                    ),
                ),
            )

            self._engine = self._create_service(
                "engine", lambda: CalculationEngine(config, cache=self._cache)
            )
            self._fallback = self._create_service("fallback", lambda: FallbackCalculator(config))

            if self._remote is None and Config.REMOTE_CALCULATION_URL:
                self._remote = self._create_service(
                    "remote",
                    lambda: HttpRemoteCalculator(
                        Config.REMOTE_CALCULATION_URL,
                        api_key=Config.REMOTE_API_KEY,
                        timeout=Config.REMOTE_TIMEOUT_SECONDS,
                    ),
                )
                self._owns_remote = True

            self._validator = self._create_service(
                "validator",
                lambda: DualPathValidator(
                    self._engine, self._remote, ValidationConfig.from_config_manager(config)
                ),
            )

            self._calculation = self._create_service(
                "calculation",
                lambda: CalculationService(
                    config,
                    catalog=self._catalog,
                    engine=self._engine,
                    fallback=self._fallback,
                    validator=self._validator,
                    remote=self._remote,
                ),
            )

            self._init_end = time.perf_counter()
            self._initialized = True

            extra_data: Dict[str, Any] = {
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "service_count": len(self._service_init_times),
                "remote_configured": self._remote is not None,
            }
            if self._service_init_times:
                slowest = max(self._service_init_times, key=self._service_init_times.__getitem__)
                extra_data["slowest_service"] = slowest
                extra_data["slowest_duration"] = round(self._service_init_times[slowest], 3)

            self._logger.info("Service container initialized successfully", extra=extra_data)

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _create_service(self, name: str, factory: Callable[[], T]) -> T:
        """Run `factory`, recording how long it took."""
        start = time.perf_counter()

        try:
            instance = factory()
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        """Release owned resources. The HTTP client is closed only if the container created it."""
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")

        if self._owns_remote and isinstance(self._remote, HttpRemoteCalculator):
            await self._remote.aclose()
            self._remote = None
            self._owns_remote = False

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
        }
        if self._initialized and self._calculation is not None:
            snapshot["calculation"] = await self._calculation.health_check()
        if self._config_manager is not None:
            snapshot["config"] = self._config_manager.health_snapshot()
        return snapshot

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def config_manager(self) -> ConfigManager:
        if not self._initialized or self._config_manager is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._config_manager

    @property
    def catalog(self) -> RelicCatalog:
        if not self._initialized or self._catalog is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._catalog

    @property
    def cache(self) -> MemoizationCache:
        if not self._initialized or self._cache is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._cache

    @property
    def engine(self) -> CalculationEngine:
        if not self._initialized or self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine

    @property
    def fallback(self) -> FallbackCalculator:
        if not self._initialized or self._fallback is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._fallback

    @property
    def validator(self) -> DualPathValidator:
        if not self._initialized or self._validator is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._validator

    @property
    def calculation(self) -> CalculationService:
        if not self._initialized or self._calculation is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._calculation
