"""
Trading / monitoring backend client.

API:   ``TradingConfig.base_url`` (default http://127.0.0.1:3000)

All responses use the envelope ``{"success": bool, "data": ..., "error": str}``.
A non-2xx status or ``success: false`` raises ``RequestFailedError``; a body
that is not a JSON envelope raises ``DecodeFailureError``. The bearer token
is sent when configured; the trading backend owns its own access control.

Read endpoints::

    GET /api/oanda/account            account summary
    GET /api/realtime/status          streaming / connection status
    GET /api/oanda/positions          open positions
    GET /api/oanda/orders             pending orders
    GET /api/oanda/trades/history     closed trades (?count=N)
    GET /api/risk                     portfolio risk report
    GET /api/system/health            component health (falls back to realtime status)
    GET /api/news/intelligence        news + sentiment (falls back to paginated news)

Write endpoints::

    POST   /api/oanda/trades          open a market trade
    DELETE /api/oanda/trades          close a trade   {"tradeId": ...}
    DELETE /api/oanda/orders          cancel an order {"orderId": ...}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from prediction_dashboard.clients.inference_client import error_detail
from prediction_dashboard.exceptions import DecodeFailureError, RequestFailedError
from prediction_dashboard.models.trading import ApiEnvelope, TradeRequest

logger = logging.getLogger(__name__)


class TradingClient:
    """Client for the trading backend's monitoring and order endpoints.

    Usage::

        with TradingClient.from_config(cfg) as client:
            risk = client.risk()
            risk["overallRisk"]["level"]
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.BaseTransport] = None):
        """Build a client from an ``AppConfig``."""
        return cls(
            base_url=config.trading.base_url,
            token=config.auth.token,
            timeout_s=config.trading.request_timeout_s,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TradingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Account & positions ───────────────────────────────────────────────────

    def account(self) -> dict[str, Any]:
        return self._get("/api/oanda/account")

    def realtime_status(self) -> dict[str, Any]:
        return self._get("/api/realtime/status")

    def positions(self) -> list[dict[str, Any]]:
        data = self._get("/api/oanda/positions")
        return _list_field(data, "positions")

    def orders(self) -> list[dict[str, Any]]:
        data = self._get("/api/oanda/orders")
        return _list_field(data, "orders")

    def trade_history(self, count: int = 10) -> list[dict[str, Any]]:
        data = self._get("/api/oanda/trades/history", params={"count": count})
        return _list_field(data, "trades")

    # ── Monitoring ────────────────────────────────────────────────────────────

    def risk(self) -> dict[str, Any]:
        return self._get("/api/risk")

    def system_health(self) -> dict[str, Any]:
        """Return component health, or the realtime status if health is down."""
        try:
            return self._get("/api/system/health")
        except RequestFailedError as exc:
            if exc.status_code is None:
                raise
            logger.info("System health unavailable (%s); using realtime status", exc.status_code)
            return self.realtime_status()

    def news_intelligence(self, limit: int = 20) -> dict[str, Any]:
        """Return news with sentiment; falls back to the plain paginated feed."""
        try:
            return self._get("/api/news/intelligence", params={"limit": limit})
        except RequestFailedError as exc:
            logger.info("News intelligence unavailable (%s); using paginated feed", exc.message)
            data = self._get("/api/news/paginated", params={"page": 1, "limit": limit})
            articles = data.get("articles", data.get("news", [])) if isinstance(data, dict) else data
            return {"articles": articles or [], "sentiment": {"overall": "neutral", "score": 0}}

    # ── Orders ────────────────────────────────────────────────────────────────

    def create_trade(self, ticket: TradeRequest) -> dict[str, Any]:
        logger.info("Opening %s %s x%s", ticket.type, ticket.symbol, ticket.volume)
        return self._request("POST", "/api/oanda/trades", json=ticket.payload())

    def close_trade(self, trade_id: str) -> dict[str, Any]:
        logger.info("Closing trade %s", trade_id)
        return self._request("DELETE", "/api/oanda/trades", json={"tradeId": trade_id})

    def cancel_order(self, order_id: str) -> dict[str, Any]:
        logger.info("Cancelling order %s", order_id)
        return self._request("DELETE", "/api/oanda/orders", json={"orderId": order_id})

    # ── Internals ─────────────────────────────────────────────────────────────

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Perform one request and unwrap the ``{success, data}`` envelope."""
        # httpx.Client.delete() takes no body, so go through request().
        response = self._http.request(method, path, **kwargs)

        if not response.is_success:
            message = error_detail(response) or _envelope_error(response)
            raise RequestFailedError(
                message or f"Request to {path} failed ({response.status_code})",
                status_code=response.status_code,
                details={"path": path, "method": method},
            )

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise DecodeFailureError(
                f"Response from {path} is not a valid envelope.",
                details={"path": path},
            ) from exc

        if not envelope.success:
            raise RequestFailedError(
                envelope.error or f"Request to {path} was rejected",
                details={"path": path, "method": method},
            )
        return envelope.data if envelope.data is not None else {}


def _envelope_error(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("error") if isinstance(body, dict) else None


def _list_field(data: Any, key: str) -> list[dict[str, Any]]:
    """Return ``data[key]`` for envelopes like ``{"positions": [...]}``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        value = data.get(key, [])
        if isinstance(value, list):
            return value
    raise DecodeFailureError(f"Expected a list under '{key}'.")
