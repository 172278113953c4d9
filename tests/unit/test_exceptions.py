"""
Unit tests for the infrastructure exception hierarchy.

Tests retryability and severity of remote failures and the shared
error-classification helpers used when the service falls back.
"""

import pytest

from relic_calculator.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    RemoteUnavailableError,
    ValidationTimeoutError,
    get_error_severity,
    is_transient_error,
    should_alert,
)
from relic_calculator.modules.shared.exceptions import InvalidInputError


@pytest.mark.unit
class TestRemoteUnavailableError:
    """Test status-dependent classification."""

    @pytest.mark.parametrize("status_code", [None, 429, 500, 503])
    def test_server_side_failures_are_transient(self, status_code):
        exc = RemoteUnavailableError("calculate", "down", status_code=status_code)

        assert is_transient_error(exc) is True
        assert get_error_severity(exc) is ErrorSeverity.WARNING
        assert should_alert(exc) is False

    @pytest.mark.parametrize("status_code", [400, 401, 404, 422])
    def test_rejected_requests_alert(self, status_code):
        exc = RemoteUnavailableError("calculate", "rejected", status_code=status_code)

        assert is_transient_error(exc) is False
        assert get_error_severity(exc) is ErrorSeverity.ERROR
        assert should_alert(exc) is True

    def test_to_dict(self):
        data = RemoteUnavailableError("calculate", "bad key", status_code=401).to_dict()

        assert data["error_code"] == "REMOTE_UNAVAILABLE"
        assert data["details"]["status_code"] == 401
        assert data["is_retryable"] is False


@pytest.mark.unit
class TestClassificationHelpers:
    """Test is_transient_error, get_error_severity and should_alert."""

    def test_timeout(self):
        exc = ValidationTimeoutError(0.5)

        assert str(exc).startswith("[VALIDATION_TIMEOUT] remote_calculation exceeded 0.50s")
        assert is_transient_error(exc) is True
        assert should_alert(exc) is False

    def test_configuration_error_is_critical(self):
        exc = ConfigurationError("RELIC_CATALOG_PATH", "missing")

        assert get_error_severity(exc) is ErrorSeverity.CRITICAL
        assert should_alert(exc) is True
        assert is_transient_error(exc) is False

    def test_unknown_exceptions(self):
        exc = RuntimeError("boom")

        assert is_transient_error(exc) is False
        assert get_error_severity(exc) is ErrorSeverity.ERROR

    def test_domain_exception_severity_is_read(self):
        exc = InvalidInputError("relic_ids", "must be a list")

        assert get_error_severity(exc) is ErrorSeverity.INFO
        assert should_alert(exc) is False
