"""
Request and response models for the ML inference backend.

Input models mirror the forms of the original dashboard: each field carries
the default value the form was pre-filled with, and field names that contain
spaces (car-price columns such as ``"Prod. year"``) are exposed as snake_case
attributes with the backend's column name as alias. Always serialise with
``model_dump(by_alias=True)`` — see ``payload()``.

Response models validate the JSON the backend returns. Extra keys are
ignored so backend additions do not break the client.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _PredictionInput(BaseModel):
    """Shared config for single-row prediction forms."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def payload(self) -> dict[str, Any]:
        """Return the JSON body the backend expects (column names as keys)."""
        return self.model_dump(by_alias=True, mode="json")


class CarPriceInput(_PredictionInput):
    """One used-car listing for the car-price regressors."""

    id: int = Field(45654403, alias="ID")
    levy: float = Field(1399, alias="Levy")
    manufacturer: str = Field("LEXUS", alias="Manufacturer")
    model: str = Field("RX 450", alias="Model")
    prod_year: int = Field(2010, alias="Prod. year")
    category: str = Field("Jeep", alias="Category")
    leather_interior: str = Field("Yes", alias="Leather interior")
    fuel_type: str = Field("Hybrid", alias="Fuel type")
    engine_volume: float = Field(3.5, alias="Engine volume")
    mileage: str = Field("186005 km", alias="Mileage")
    cylinders: float = Field(6.0, alias="Cylinders")
    gear_box_type: str = Field("Automatic", alias="Gear box type")
    drive_wheels: str = Field("4x4", alias="Drive wheels")
    doors: str = Field("04-May", alias="Doors")
    wheel: str = Field("Left wheel", alias="Wheel")
    color: str = Field("Silver", alias="Color")
    airbags: int = Field(12, alias="Airbags")

    @field_validator("prod_year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        if not 1900 <= v <= 2100:
            raise ValueError(f"Prod. year must be between 1900 and 2100, got {v}.")
        return v


class MovieRatingInput(_PredictionInput):
    """One movie for the rating regressors."""

    rank: int = 1
    name: str = ""
    year: int = Field(default_factory=lambda: datetime.now().year)
    genre: str = ""
    certificate: str = "R"
    run_time: str = ""
    tagline: str = ""
    budget: float = 0
    box_office: float = 0
    casts: str = ""
    directors: str = ""
    writers: str = ""

    @field_validator("budget", "box_office")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("budget and box_office must be non-negative.")
        return v


class TitanicPassengerInput(_PredictionInput):
    """One passenger for the survival classifiers.

    ``email`` is not a form field: the dispatcher fills it from the session
    before sending.
    """

    passenger_id: int = 1
    pclass: Literal[1, 2, 3] = 3
    name: str = "Braund, Mr. Owen Harris"
    sex: Literal["male", "female"] = "male"
    age: float = 22
    sibsp: int = 1
    parch: int = 0
    ticket: str = "A/5 21171"
    fare: float = 7.25
    cabin: str = "C85"
    embarked: Literal["S", "C", "Q"] = "S"
    email: Optional[str] = None

    @field_validator("age", "fare", "sibsp", "parch")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("age, fare, sibsp and parch must be non-negative.")
        return v


# ── Responses ─────────────────────────────────────────────────────────────────


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, protected_namespaces=())


class RegressionPrediction(_Response):
    """``{"prediction": <number>}`` from car-price and movie-rating endpoints."""

    prediction: float


class ClassificationPrediction(_Response):
    """``{"prediction": 0|1, "confidence": <0..1>}`` from Titanic endpoints."""

    prediction: Literal[0, 1]
    confidence: float

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {v}.")
        return v

    @property
    def survived(self) -> bool:
        return self.prediction == 1

    @property
    def survival_probability(self) -> float:
        """Probability of survival regardless of which class was predicted."""
        return self.confidence if self.survived else 1.0 - self.confidence


class BatchPredictionResponse(_Response):
    """Response of the CSV batch-upload endpoint.

    ``predictions`` rows have a backend-defined shape (e.g. ``name``,
    ``Survived``, ``probability`` for Titanic), so they stay plain dicts.
    """

    message: str = ""
    predictions: list[dict[str, Any]] = []


class PredictionRecord(_Response):
    """One row of the user's prediction history."""

    dataset: str
    model_name: str
    output: float
    confidence: Optional[float] = None
    created_at: str


class PredictionHistory(_Response):
    """Response of ``/common/all-predictions``."""

    success: bool = True
    total_records: int = 0
    data: list[PredictionRecord] = []


class ModelSummary(_Response):
    """One row of ``/common/get-all-models-data`` (per-model aggregates)."""

    dataset: str
    model_name: str
    avg_output: float
    records: int
    status: str = ""
    created_at: str = ""
    updated_at: str = ""
