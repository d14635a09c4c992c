"""Tests for prediction_dashboard.clients.remote."""

from __future__ import annotations

import httpx
import pytest

from prediction_dashboard.clients.remote import RemoteResult, RemoteState, run_remote
from prediction_dashboard.exceptions import AuthRequiredError, RequestFailedError


class TestRemoteResult:
    def test_idle_by_default(self) -> None:
        result = RemoteResult()
        assert result.state == RemoteState.IDLE
        assert not result.ok
        assert result.error_message is None

    def test_loading(self) -> None:
        assert RemoteResult.loading().is_loading

    def test_success_holds_value(self) -> None:
        result = RemoteResult.success({"prediction": 1})
        assert result.ok
        assert result.value == {"prediction": 1}
        assert result.error is None

    def test_failure_message_from_dashboard_error(self) -> None:
        result = RemoteResult.failure(RequestFailedError("Token expired", status_code=401))
        assert result.state == RemoteState.FAILURE
        assert result.error_message == "Token expired"
        assert result.value is None

    def test_failure_message_fallback(self) -> None:
        assert RemoteResult.failure(RuntimeError()).error_message == "An error occurred"

    def test_frozen(self) -> None:
        result = RemoteResult.success(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]


class TestRunRemote:
    def test_success(self) -> None:
        assert run_remote(lambda: 42).value == 42

    def test_dashboard_error_becomes_failure(self) -> None:
        def _fail():
            raise AuthRequiredError("Authentication required. Please log in.")

        result = run_remote(_fail)
        assert not result.ok
        assert isinstance(result.error, AuthRequiredError)
        assert result.error_message == "Authentication required. Please log in."

    def test_transport_error_becomes_failure(self) -> None:
        def _fail():
            raise httpx.ConnectError("connection refused")

        result = run_remote(_fail)
        assert result.state == RemoteState.FAILURE
        assert "connection refused" in result.error_message

    def test_programming_errors_propagate(self) -> None:
        def _bug():
            raise ZeroDivisionError

        with pytest.raises(ZeroDivisionError):
            run_remote(_bug)
