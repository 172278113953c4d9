"""
Unit tests for HttpRemoteCalculator.

Uses httpx.MockTransport so no network is involved. Every failure mode must
surface as RemoteUnavailableError.
"""

import json

import httpx
import pytest

from relic_calculator.core.exceptions import RemoteUnavailableError
from relic_calculator.domain.models import CalculationContext
from relic_calculator.modules.validation.remote_client import HttpRemoteCalculator

RESULT_PAYLOAD = {
    "attackMultipliers": {"total": 1.42, "base": 1.3, "synergy": 0.12},
    "efficiency": 0.71,
    "obtainmentDifficulty": 2.0,
    "relicDetails": [{"relicId": "alpha", "name": "Alpha", "contribution": 10}],
    "metadata": {"calculatedAt": "2025-01-01T00:00:00+00:00"},
}


def make_client(handler) -> HttpRemoteCalculator:
    client = httpx.AsyncClient(
        base_url="https://calc.test/api", transport=httpx.MockTransport(handler)
    )
    return HttpRemoteCalculator("https://calc.test/api", client=client)


@pytest.mark.unit
@pytest.mark.asyncio
class TestHttpRemoteCalculator:
    """Test request shape and response decoding."""

    async def test_posts_ids_and_context(self):
        # Arrange
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=RESULT_PAYLOAD)

        remote = make_client(handler)

        # Act
        result = await remote.calculate(["alpha"], CalculationContext(combo_count=3))

        # Assert
        assert seen["path"] == "/api/calculate"
        assert seen["body"]["relicIds"] == ["alpha"]
        assert seen["body"]["conditionalEffects"]["comboCount"] == 3
        assert result.total == 1.42
        assert result.multipliers.synergy == 0.12
        assert result.metadata.client_side is False
        assert result.metadata.source == "remote"

    async def test_unwraps_data_envelope(self):
        remote = make_client(lambda request: httpx.Response(200, json={"data": RESULT_PAYLOAD}))

        result = await remote.calculate(["alpha"], CalculationContext())

        assert result.efficiency == 0.71

    async def test_http_error_status(self):
        remote = make_client(lambda request: httpx.Response(503, json={"error": "down"}))

        with pytest.raises(RemoteUnavailableError) as exc_info:
            await remote.calculate(["alpha"], CalculationContext())

        assert exc_info.value.status_code == 503
        assert exc_info.value.is_retryable is True

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteUnavailableError) as exc_info:
            await make_client(handler).calculate(["alpha"], CalculationContext())

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    async def test_non_json_body(self):
        remote = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(RemoteUnavailableError) as exc_info:
            await remote.calculate(["alpha"], CalculationContext())

        assert "not JSON" in str(exc_info.value)

    async def test_malformed_payload(self):
        remote = make_client(lambda request: httpx.Response(200, json={"efficiency": 1}))

        with pytest.raises(RemoteUnavailableError) as exc_info:
            await remote.calculate(["alpha"], CalculationContext())

        assert "malformed result payload" in str(exc_info.value)

    async def test_injected_client_is_not_closed(self):
        remote = make_client(lambda request: httpx.Response(200, json=RESULT_PAYLOAD))

        await remote.aclose()

        assert remote.client.is_closed is False
        await remote.client.aclose()

    async def test_owned_client_sets_bearer_header(self):
        async with HttpRemoteCalculator("https://calc.test/api/", api_key="secret") as remote:
            assert remote.base_url == "https://calc.test/api"
            assert remote.client.headers["Authorization"] == "Bearer secret"

        assert remote.client.is_closed is True
