"""
Models for the trading / monitoring backend.

Every trading endpoint wraps its payload in an envelope::

    {"success": true,  "data": {...}}
    {"success": false, "error": "Insufficient margin"}

``data`` shapes (risk report, system health, news intelligence) are large and
owned by the backend, so they are kept as dicts and read defensively by the
formatters. Only the order ticket sent *to* the backend is fully typed.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TradeSide = Literal["buy", "sell"]

CURRENCY_PAIRS: tuple[str, ...] = (
    "EUR_USD", "GBP_USD", "USD_JPY", "USD_CHF", "AUD_USD", "USD_CAD", "NZD_USD",
    "EUR_GBP", "EUR_JPY", "GBP_JPY", "CHF_JPY", "AUD_JPY", "CAD_JPY", "NZD_JPY",
)


class ApiEnvelope(BaseModel):
    """``{success, data, error}`` wrapper returned by the trading backend."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    success: bool
    data: Any = None
    error: Optional[str] = None


class TradeRequest(BaseModel):
    """Market order ticket for ``POST /api/oanda/trades``.

    Serialise with ``payload()``: optional stops are omitted when unset, and
    ``stopLoss``/``takeProfit`` use the backend's camelCase names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str = "EUR_USD"
    type: TradeSide = "buy"
    volume: float = Field(1000, gt=0)
    stop_loss: Optional[float] = Field(None, alias="stopLoss", gt=0)
    take_profit: Optional[float] = Field(None, alias="takeProfit", gt=0)

    @model_validator(mode="after")
    def validate_symbol(self) -> "TradeRequest":
        if "_" not in self.symbol or len(self.symbol) != 7:
            raise ValueError(
                f"symbol must look like 'EUR_USD', got '{self.symbol}'."
            )
        return self

    def payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
