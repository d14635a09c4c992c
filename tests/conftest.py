"""
Shared pytest fixtures for the ML Prediction Dashboard test suite.

Provides:
  - ``app_config``: An ``AppConfig`` with a token and user email set.
  - ``mock_backend``: A recording ``httpx.MockTransport`` factory. Tests
    register canned responses per (method, path) and inspect the requests
    that reached the "network".
  - CSV helpers for building uploads in memory or on disk.

No test touches the real network.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from prediction_dashboard.catalog.model_requirements import (
    CAR_PRICE_COLUMNS,
    TITANIC_COLUMNS,
)
from prediction_dashboard.config import AppConfig, AuthConfig
from prediction_dashboard.validation.csv_header import UploadedFile


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Default config with credentials filled in."""
    return AppConfig(auth=AuthConfig(token="test-token", user_email="ada@example.com"))


@pytest.fixture(autouse=True)
def _clear_dashboard_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's PREDICTION_DASHBOARD_* variables out of the tests."""
    import os

    for name in list(os.environ):
        if name.startswith("PREDICTION_DASHBOARD_"):
            monkeypatch.delenv(name, raising=False)


# ── Mock HTTP backend ─────────────────────────────────────────────────────────

class MockBackend:
    """Canned-response router around ``httpx.MockTransport``.

    Usage::

        backend.add("POST", "/titanic/logistic-predict",
                    json={"prediction": 1, "confidence": 0.9})
        client = InferenceClient(BASE, token="t", transport=backend.transport)
        ...
        backend.requests[0].headers["Authorization"]
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], httpx.Response] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        text: str | None = None,
    ) -> None:
        if text is not None:
            response = httpx.Response(status_code, text=text)
        else:
            response = httpx.Response(status_code, json=json)
        self.routes[(method.upper(), path)] = response

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"detail": f"No route for {key}"})
        return self.routes[key]

    def body(self, index: int = -1) -> Any:
        """Decoded JSON body of a recorded request."""
        return json.loads(self.requests[index].content)


@pytest.fixture
def mock_backend() -> MockBackend:
    return MockBackend()


# ── CSV helpers ───────────────────────────────────────────────────────────────

def make_upload(header: list[str] | tuple[str, ...], filename: str = "data.csv",
                rows: int = 1) -> UploadedFile:
    """Build an in-memory CSV upload with ``header`` and ``rows`` dummy lines."""
    lines = [",".join(header)]
    lines += [",".join("x" for _ in header) for _ in range(rows)]
    return UploadedFile(filename=filename, content=("\n".join(lines) + "\n").encode("utf-8"))


@pytest.fixture
def upload_factory() -> Callable[..., UploadedFile]:
    return make_upload


@pytest.fixture
def car_price_upload() -> UploadedFile:
    return make_upload(CAR_PRICE_COLUMNS, filename="cars.csv")


@pytest.fixture
def titanic_upload() -> UploadedFile:
    return make_upload(TITANIC_COLUMNS, filename="passengers.csv")


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write ``content`` to ``tmp_path/name`` and return the path."""
    def _write(content: str, name: str = "upload.csv") -> Path:
        p = tmp_path / name
        p.write_text(content, encoding="utf-8")
        return p
    return _write
