"""Tests for prediction_dashboard.models (request/response models)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from prediction_dashboard.catalog.model_requirements import (
    CAR_PRICE_COLUMNS,
    MOVIE_RATING_COLUMNS,
    TITANIC_COLUMNS,
)
from prediction_dashboard.models.prediction import (
    BatchPredictionResponse,
    CarPriceInput,
    ClassificationPrediction,
    ModelSummary,
    MovieRatingInput,
    PredictionHistory,
    TitanicPassengerInput,
)
from prediction_dashboard.models.trading import CURRENCY_PAIRS, ApiEnvelope, TradeRequest


# ── Input forms ───────────────────────────────────────────────────────────────


class TestInputPayloads:
    def test_car_price_keys_match_csv_columns(self) -> None:
        assert tuple(CarPriceInput().payload()) == CAR_PRICE_COLUMNS

    def test_movie_rating_keys_match_csv_columns(self) -> None:
        assert tuple(MovieRatingInput().payload()) == MOVIE_RATING_COLUMNS

    def test_titanic_keys_match_csv_columns(self) -> None:
        assert tuple(TitanicPassengerInput().payload()) == TITANIC_COLUMNS

    def test_car_price_accepts_alias_and_name(self) -> None:
        by_alias = CarPriceInput.model_validate({"Prod. year": 2001})
        by_name = CarPriceInput(prod_year=2001)
        assert by_alias == by_name

    def test_car_price_defaults(self) -> None:
        form = CarPriceInput()
        assert form.manufacturer == "LEXUS"
        assert form.model == "RX 450"
        assert form.airbags == 12


class TestInputValidation:
    def test_prod_year_range(self) -> None:
        with pytest.raises(ValidationError, match="Prod. year"):
            CarPriceInput(prod_year=1850)

    def test_negative_budget(self) -> None:
        with pytest.raises(ValidationError):
            MovieRatingInput(budget=-1)

    @pytest.mark.parametrize("field, value", [
        ("pclass", 4),
        ("sex", "unknown"),
        ("embarked", "X"),
        ("age", -1),
        ("fare", -0.5),
    ])
    def test_titanic_rejects(self, field: str, value) -> None:
        with pytest.raises(ValidationError):
            TitanicPassengerInput(**{field: value})

    def test_forms_are_frozen(self) -> None:
        form = TitanicPassengerInput()
        with pytest.raises(ValidationError):
            form.age = 30  # type: ignore[misc]


# ── Responses ─────────────────────────────────────────────────────────────────


class TestResponses:
    def test_classification_survival_probability(self) -> None:
        survived = ClassificationPrediction(prediction=1, confidence=0.9)
        died = ClassificationPrediction(prediction=0, confidence=0.9)
        assert survived.survival_probability == pytest.approx(0.9)
        assert died.survival_probability == pytest.approx(0.1)
        assert not died.survived

    def test_confidence_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            ClassificationPrediction(prediction=1, confidence=1.5)

    def test_extra_keys_ignored(self) -> None:
        resp = BatchPredictionResponse.model_validate(
            {"message": "ok", "predictions": [], "elapsed_ms": 12}
        )
        assert resp.message == "ok"

    def test_history_defaults(self) -> None:
        history = PredictionHistory.model_validate({})
        assert history.data == []
        assert history.total_records == 0

    def test_summary_model_name_field(self) -> None:
        row = ModelSummary(dataset="Car Price", model_name="knn", avg_output=1.0, records=2)
        assert row.model_name == "knn"


# ── Trading ───────────────────────────────────────────────────────────────────


class TestTradeRequest:
    def test_payload_omits_unset_stops(self) -> None:
        assert TradeRequest().payload() == {"symbol": "EUR_USD", "type": "buy", "volume": 1000}

    def test_payload_camel_case(self) -> None:
        payload = TradeRequest(stop_loss=1.05, take_profit=1.2).payload()
        assert payload["stopLoss"] == 1.05
        assert payload["takeProfit"] == 1.2

    @pytest.mark.parametrize("symbol", ["EURUSD", "EUR-USD", "EUR_USDX"])
    def test_bad_symbol(self, symbol: str) -> None:
        with pytest.raises(ValidationError, match="EUR_USD"):
            TradeRequest(symbol=symbol)

    def test_volume_positive(self) -> None:
        with pytest.raises(ValidationError):
            TradeRequest(volume=0)

    def test_side_literal(self) -> None:
        with pytest.raises(ValidationError):
            TradeRequest(type="hold")

    def test_currency_pairs_are_valid_symbols(self) -> None:
        for pair in CURRENCY_PAIRS:
            TradeRequest(symbol=pair)


def test_envelope_defaults() -> None:
    env = ApiEnvelope.model_validate({"success": True})
    assert env.data is None
    assert env.error is None
