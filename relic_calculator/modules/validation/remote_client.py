"""
Remote calculator client.

The remote calculator is the authoritative implementation of the same
calculation. It is reached over HTTP:

    POST {base_url}/calculate
    {"relicIds": [...], "conditionalEffects": {...context wire form...}}

and answers with a CalculationResult in wire form. Every failure (network,
non-2xx status, undecodable payload) surfaces as RemoteUnavailableError so
callers have a single exception to fall back on.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from relic_calculator.core.exceptions import RemoteUnavailableError
from relic_calculator.core.logging.logger import get_logger
from relic_calculator.domain.models.base import DomainValidationError
from relic_calculator.domain.models.context import CalculationContext
from relic_calculator.domain.models.result import CalculationResult

logger = get_logger(__name__)


class RemoteCalculator(Protocol):
    """Anything that can compute a result remotely for a selection of ids."""

    async def calculate(
        self, relic_ids: Sequence[str], context: CalculationContext
    ) -> CalculationResult:
        ...


class HttpRemoteCalculator:
    """Remote calculator backed by `httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
        )

    async def calculate(
        self, relic_ids: Sequence[str], context: CalculationContext
    ) -> CalculationResult:
        """
        Request an authoritative calculation.

        Raises
        ------
        RemoteUnavailableError
            On transport errors, non-2xx responses or malformed payloads
        """
        payload: Dict[str, Any] = {
            "relicIds": list(relic_ids),
            "conditionalEffects": context.to_dict(),
        }

        try:
            response = await self.client.post("/calculate", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteUnavailableError(
                "calculate",
                f"server answered {exc.response.status_code}",
                status_code=exc.response.status_code,
                original_error=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(
                "calculate", str(exc) or type(exc).__name__, original_error=exc
            ) from exc
        except ValueError as exc:
            raise RemoteUnavailableError(
                "calculate", "response is not JSON", original_error=exc
            ) from exc

        # Some deployments wrap the result as {"data": {...}}
        if (
            isinstance(data, dict)
            and "attackMultipliers" not in data
            and isinstance(data.get("data"), dict)
        ):
            data = data["data"]

        try:
            result = CalculationResult.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError, DomainValidationError) as exc:
            raise RemoteUnavailableError(
                "calculate", f"malformed result payload: {exc}", original_error=exc
            ) from exc

        logger.debug(
            "Remote calculation received",
            extra={"relic_count": len(relic_ids), "total_multiplier": result.total},
        )
        return result.with_metadata(client_side=False, source="remote")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpRemoteCalculator":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
