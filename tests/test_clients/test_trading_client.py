"""Tests for prediction_dashboard.clients.trading_client."""

from __future__ import annotations

import pytest

from prediction_dashboard.clients.trading_client import TradingClient
from prediction_dashboard.exceptions import DecodeFailureError, RequestFailedError
from prediction_dashboard.models.trading import TradeRequest

BASE = "http://trading.test"


def _ok(data) -> dict:
    return {"success": True, "data": data}


@pytest.fixture
def client(mock_backend):
    with TradingClient(BASE, token="tok", transport=mock_backend.transport) as c:
        yield c


# ── Envelope handling ─────────────────────────────────────────────────────────


class TestEnvelope:
    def test_unwraps_data(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/account", json=_ok({"balance": 1000.5}))
        assert client.account() == {"balance": 1000.5}

    def test_success_false_raises_with_error(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/risk", json={"success": False, "error": "Risk engine offline"})
        with pytest.raises(RequestFailedError, match="Risk engine offline") as exc_info:
            client.risk()
        assert exc_info.value.status_code is None

    def test_non_2xx_uses_envelope_error(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/risk", status_code=503,
                         json={"success": False, "error": "Maintenance"})
        with pytest.raises(RequestFailedError, match="Maintenance") as exc_info:
            client.risk()
        assert exc_info.value.status_code == 503

    def test_non_2xx_generic_message(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/account", status_code=500, text="")
        with pytest.raises(RequestFailedError, match=r"/api/oanda/account failed \(500\)"):
            client.account()

    def test_not_an_envelope(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/account", json=[1, 2, 3])
        with pytest.raises(DecodeFailureError):
            client.account()

    def test_missing_data_becomes_empty_dict(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/realtime/status", json={"success": True})
        assert client.realtime_status() == {}

    def test_bearer_header(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/account", json=_ok({}))
        client.account()
        assert mock_backend.requests[0].headers["Authorization"] == "Bearer tok"

    def test_no_token_no_header(self, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/account", json=_ok({}))
        with TradingClient(BASE, transport=mock_backend.transport) as c:
            c.account()
        assert "Authorization" not in mock_backend.requests[0].headers


# ── Lists ─────────────────────────────────────────────────────────────────────


class TestLists:
    def test_positions_from_wrapped_list(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/positions",
                         json=_ok({"positions": [{"id": "1", "symbol": "EUR_USD"}]}))
        assert client.positions() == [{"id": "1", "symbol": "EUR_USD"}]

    def test_orders_from_bare_list(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/orders", json=_ok([{"id": "9"}]))
        assert client.orders() == [{"id": "9"}]

    def test_trade_history_count_param(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/trades/history", json=_ok({"trades": []}))
        assert client.trade_history(count=25) == []
        assert mock_backend.requests[0].url.params["count"] == "25"

    def test_bad_list_field(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/oanda/positions", json=_ok({"positions": "none"}))
        with pytest.raises(DecodeFailureError, match="positions"):
            client.positions()


# ── Fallbacks ─────────────────────────────────────────────────────────────────


class TestFallbacks:
    def test_system_health_primary(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/system/health", json=_ok({"overall": {"status": "ok"}}))
        assert client.system_health()["overall"]["status"] == "ok"
        assert len(mock_backend.requests) == 1

    def test_system_health_falls_back_on_http_error(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/system/health", status_code=500, json={})
        mock_backend.add("GET", "/api/realtime/status", json=_ok({"connected": True}))
        assert client.system_health() == {"connected": True}
        assert [r.url.path for r in mock_backend.requests] == [
            "/api/system/health", "/api/realtime/status",
        ]

    def test_system_health_rejection_is_not_masked(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/system/health", json={"success": False, "error": "denied"})
        with pytest.raises(RequestFailedError, match="denied"):
            client.system_health()

    def test_news_intelligence_primary(self, client, mock_backend) -> None:
        data = {"articles": [{"title": "ECB holds"}], "sentiment": {"overall": "bullish"}}
        mock_backend.add("GET", "/api/news/intelligence", json=_ok(data))
        assert client.news_intelligence(limit=5) == data
        assert mock_backend.requests[0].url.params["limit"] == "5"

    def test_news_falls_back_to_paginated(self, client, mock_backend) -> None:
        mock_backend.add("GET", "/api/news/paginated",
                         json=_ok({"articles": [{"title": "NFP beats"}]}))
        news = client.news_intelligence()
        assert news["articles"] == [{"title": "NFP beats"}]
        assert news["sentiment"] == {"overall": "neutral", "score": 0}
        fallback = mock_backend.requests[-1]
        assert fallback.url.params["page"] == "1"
        assert fallback.url.params["limit"] == "20"


# ── Orders ────────────────────────────────────────────────────────────────────


class TestOrders:
    def test_create_trade_body(self, client, mock_backend) -> None:
        mock_backend.add("POST", "/api/oanda/trades", json=_ok({"tradeId": "42"}))
        ticket = TradeRequest(symbol="GBP_USD", type="sell", volume=500, stop_loss=1.3)
        assert client.create_trade(ticket) == {"tradeId": "42"}
        assert mock_backend.body() == {
            "symbol": "GBP_USD", "type": "sell", "volume": 500, "stopLoss": 1.3,
        }

    def test_close_trade_sends_delete_with_body(self, client, mock_backend) -> None:
        mock_backend.add("DELETE", "/api/oanda/trades", json=_ok({}))
        client.close_trade("42")
        assert mock_backend.requests[0].method == "DELETE"
        assert mock_backend.body() == {"tradeId": "42"}

    def test_cancel_order(self, client, mock_backend) -> None:
        mock_backend.add("DELETE", "/api/oanda/orders", json=_ok({}))
        client.cancel_order("7")
        assert mock_backend.body() == {"orderId": "7"}

    def test_rejected_trade(self, client, mock_backend) -> None:
        mock_backend.add("POST", "/api/oanda/trades",
                         json={"success": False, "error": "Insufficient margin"})
        with pytest.raises(RequestFailedError, match="Insufficient margin"):
            client.create_trade(TradeRequest())


def test_from_config(app_config, mock_backend) -> None:
    with TradingClient.from_config(app_config, transport=mock_backend.transport) as c:
        assert c.base_url == "http://127.0.0.1:3000"
        assert c.token == "test-token"
