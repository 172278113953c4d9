"""
Calculation Service
===================

Purpose
-------
Identifier-based entry point for relic calculations. Callers pass relic ids
and a context (object or wire-form mapping); the service resolves ids
through the catalog and runs the fallback chain:

    remote (optional, when preferred)
      -> local detailed engine (flagged offline when remote failed)
        -> naive fallback calculator (flagged fallback)

Every step down the chain is logged. Caller mistakes (oversized or
malformed input) are raised as domain exceptions before any computation.

Dependencies
------------
- RelicCatalog: id resolution
- CalculationEngine: local detailed path (owns the memoization cache)
- FallbackCalculator: naive path
- DualPathValidator: sampled and batch validation against the remote
- RemoteCalculator: authoritative remote path (optional)
- ConfigManager: `calculation.remote_first`, `calculation.max_relics`
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence, Tuple, Union

from relic_calculator.core.config.config import Config
from relic_calculator.core.exceptions import (
    RemoteUnavailableError,
    ValidationTimeoutError,
    is_transient_error,
    should_alert,
)
from relic_calculator.core.logging.logger import LogContext, get_logger
from relic_calculator.domain.models.base import DomainValidationError
from relic_calculator.domain.models.context import CalculationContext
from relic_calculator.domain.models.result import CalculationResult
from relic_calculator.domain.models.validation import ValidatedCalculation, ValidationResult
from relic_calculator.modules.calculation import constants
from relic_calculator.modules.calculation.engine import CalculationOptions
from relic_calculator.modules.shared.base_service import BaseService
from relic_calculator.modules.shared.exceptions import InvalidInputError, LimitExceededError
from relic_calculator.modules.validation.validator import (
    DualPathValidator,
    ProgressCallback,
    ValidationConfig,
)

if TYPE_CHECKING:
    from logging import Logger

    from relic_calculator.core.config.manager import ConfigManager
    from relic_calculator.domain.models.relic import Relic
    from relic_calculator.modules.calculation.catalog import RelicCatalog, ResolvedSelection
    from relic_calculator.modules.calculation.engine import CalculationEngine
    from relic_calculator.modules.calculation.fallback import FallbackCalculator
    from relic_calculator.modules.validation.remote_client import RemoteCalculator

logger = get_logger(__name__)

ContextInput = Union[CalculationContext, Mapping[str, Any], None]


class CalculationService(BaseService):
    """
    Public calculation API.

    Public Methods
    --------------
    - calculate(relic_ids, context, options) -> CalculationResult
    - calculate_with_validation(relic_ids, context, force) -> ValidatedCalculation
    - batch_validate(requests, on_progress) -> List[ValidationResult]
    - clear_cache() / get_cache_metrics()
    - get_validation_stats() / health_check()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        catalog: RelicCatalog,
        engine: CalculationEngine,
        fallback: FallbackCalculator,
        validator: Optional[DualPathValidator] = None,
        remote: Optional[RemoteCalculator] = None,
        log: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, log or logger)
        self._catalog = catalog
        self._engine = engine
        self._fallback = fallback
        self._remote = remote
        if validator is None:
            validator = DualPathValidator(
                engine, remote, ValidationConfig.from_config_manager(config_manager)
            )
        self._validator = validator

        self.max_selection = int(
            self.get_config("calculation.max_relics", constants.MAX_RELIC_SELECTION)
        )
        self.remote_first = bool(self.get_config("calculation.remote_first", False))
        self.remote_timeout = float(
            self.get_config("calculation.remote_timeout_seconds", Config.REMOTE_TIMEOUT_SECONDS)
        )

        self.log.info(
            "CalculationService initialized",
            extra={
                "catalog_size": len(catalog),
                "remote_configured": remote is not None,
                "remote_first": self.remote_first,
            },
        )

    @property
    def validator(self) -> DualPathValidator:
        return self._validator

    # ========================================================================
    # PUBLIC API - Calculation
    # ========================================================================

    async def calculate(
        self,
        relic_ids: Sequence[str],
        context: ContextInput = None,
        options: Optional[CalculationOptions] = None,
    ) -> CalculationResult:
        """
        Calculate the multiplier for a selection of relic ids.

        Unknown ids are ignored with a warning; when every id is unknown the
        empty-selection result is returned.

        Raises
        ------
        InvalidInputError
            If `relic_ids` is not a list of strings or `context` is malformed
        LimitExceededError
            If more ids are supplied than the selection maximum
        """
        options = options or CalculationOptions()
        self._validate_ids(relic_ids)
        ctx = self._coerce_context(context)
        selection, warnings = self._resolve(relic_ids)
        relics = list(selection.relics)

        async with LogContext(
            component="calculation_service", operation="calculate", relic_count=len(relics)
        ):
            offline = False
            if self._remote is not None and self._should_try_remote(options):
                try:
                    remote_result = await self._calculate_remotely(
                        self._remote, relics, ctx, options
                    )
                except (RemoteUnavailableError, ValidationTimeoutError) as exc:
                    offline = True
                    self.log.log(
                        logging.ERROR if should_alert(exc) else logging.WARNING,
                        "Remote calculation failed; falling back to local engine",
                        extra={
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                            "retryable": is_transient_error(exc),
                        },
                    )
                else:
                    return self._with_warnings(options.shape(remote_result), warnings)

            try:
                result = self._engine.calculate(relics, ctx, options)
            except (LimitExceededError, InvalidInputError):
                raise
            except Exception as exc:
                self.log_error("calculate", exc, relic_count=len(relics))
                return self._fallback.fallback(
                    relics, warnings + ["Detailed calculation failed; naive fallback used"]
                )

            if offline:
                result = result.with_metadata(offline=True)
            return self._with_warnings(result, warnings)

    async def calculate_with_validation(
        self,
        relic_ids: Sequence[str],
        context: ContextInput = None,
        force: bool = False,
    ) -> ValidatedCalculation:
        self._validate_ids(relic_ids)
        ctx = self._coerce_context(context)
        selection, warnings = self._resolve(relic_ids)

        validated = await self._validator.calculate_with_validation(
            list(selection.relics), ctx, force=force
        )
        if not warnings:
            return validated
        return replace(validated, result=self._with_warnings(validated.result, warnings))

    async def batch_validate(
        self,
        requests: Sequence[Tuple[Sequence[str], ContextInput]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ValidationResult]:
        """
        Validate many (relic_ids, context) pairs in bounded waves.

        Input errors are raised up front, before any validation starts.
        """
        resolved = []
        for relic_ids, context in requests:
            self._validate_ids(relic_ids)
            selection, _ = self._resolve(relic_ids)
            resolved.append((list(selection.relics), self._coerce_context(context)))

        self.log_operation("batch_validate", request_count=len(resolved))
        return await self._validator.batch_validate(resolved, on_progress=on_progress)

    # ========================================================================
    # PUBLIC API - Maintenance & Health
    # ========================================================================

    def clear_cache(self) -> int:
        removed = self._engine.clear_cache()
        self.log_operation("clear_cache", entries_removed=removed)
        return removed

    def get_cache_metrics(self) -> dict:
        return self._engine.cache.get_metrics()

    async def get_validation_stats(self) -> dict:
        return await self._validator.get_stats()

    async def health_check(self) -> dict:
        cache_health = self._engine.cache.health_check()
        validation = await self._validator.get_stats()
        return {
            "status": cache_health["status"],
            "catalog_size": len(self._catalog),
            "remote_configured": self._remote is not None,
            "cache": cache_health,
            "validation": {
                "total_validations": validation["total_validations"],
                "client_accuracy": validation["client_accuracy"],
                "server_reliability": validation["server_reliability"],
            },
        }

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _validate_ids(self, relic_ids: Any) -> None:
        if isinstance(relic_ids, (str, bytes)) or not isinstance(relic_ids, (list, tuple)):
            raise InvalidInputError("relic_ids", "must be a list of relic id strings")
        if len(relic_ids) > self.max_selection:
            raise LimitExceededError(self.max_selection, len(relic_ids))
        for index, relic_id in enumerate(relic_ids):
            if not isinstance(relic_id, str) or not relic_id.strip():
                raise InvalidInputError(
                    "relic_ids", f"item {index} must be a non-empty string, got {relic_id!r}"
                )

    @staticmethod
    def _coerce_context(context: ContextInput) -> CalculationContext:
        if context is None:
            return CalculationContext()
        if isinstance(context, CalculationContext):
            return context
        if isinstance(context, Mapping):
            try:
                return CalculationContext.from_dict(context)
            except DomainValidationError as exc:
                raise InvalidInputError("context", str(exc)) from exc
        raise InvalidInputError(
            "context", f"expected CalculationContext or mapping, got {type(context).__name__}"
        )

    def _resolve(self, relic_ids: Sequence[str]) -> Tuple[ResolvedSelection, List[str]]:
        selection = self._catalog.resolve(relic_ids)
        warnings = [f"Unknown relic id '{relic_id}' ignored" for relic_id in selection.unknown_ids]

        if selection.unknown_ids:
            self.log.warning(
                "Unknown relic ids ignored",
                extra={"unknown_ids": list(selection.unknown_ids)},
            )
        if selection.all_unknown:
            self.log.warning(
                "No known relic ids supplied; returning empty-selection result",
                extra={"relic_count": len(relic_ids)},
            )
        return selection, warnings

    def _should_try_remote(self, options: CalculationOptions) -> bool:
        if options.prefer_remote is not None:
            return options.prefer_remote
        return self.remote_first

    async def _calculate_remotely(
        self,
        remote: RemoteCalculator,
        relics: List[Relic],
        context: CalculationContext,
        options: CalculationOptions,
    ) -> CalculationResult:
        timeout = options.timeout_ms / 1000 if options.timeout_ms else self.remote_timeout
        try:
            return await asyncio.wait_for(
                remote.calculate([relic.relic_id for relic in relics], context),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ValidationTimeoutError(timeout) from exc

    @staticmethod
    def _with_warnings(result: CalculationResult, warnings: List[str]) -> CalculationResult:
        if not warnings:
            return result
        return replace(result, warnings=result.warnings + tuple(warnings))
