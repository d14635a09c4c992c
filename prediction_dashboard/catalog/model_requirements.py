"""
Static model-requirements table for batch (CSV) predictions.

Maps a model-selector key (e.g. ``"car-price-linear"``) to the dataset/model
identifier pair sent with the upload and the ordered list of CSV columns the
backend expects for that model.

The table is built once at import time and is read-only: the mapping is a
``MappingProxyType`` and each ``ModelRequirement`` is a frozen model whose
column list is a tuple.

Usage example::

    from prediction_dashboard.catalog.model_requirements import get_requirement

    req = get_requirement("titanic-logistic")
    req.dataset   # Dataset.TITANIC
    req.columns   # ("passenger_id", "pclass", ...)

This module has NO imports from other ``prediction_dashboard`` packages
except the exception hierarchy.
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from prediction_dashboard.exceptions import UnknownModelError


class Dataset(StrEnum):
    """Dataset identifiers understood by the inference backend."""

    CAR_PRICE = "car-price"
    """Used-car listings; target is the sale price in USD."""

    MOVIE_RATING = "movie-rating"
    """Movie metadata; target is an IMDb-style rating out of 10."""

    TITANIC = "titanic"
    """Titanic passenger manifest; target is survival (0/1)."""

    @property
    def display_name(self) -> str:
        """Name the backend uses for this dataset in history/summary payloads."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Dataset, str] = {
    Dataset.CAR_PRICE: "Car Price",
    Dataset.MOVIE_RATING: "Movie Rating",
    Dataset.TITANIC: "Titanic Survival",
}


CAR_PRICE_COLUMNS: tuple[str, ...] = (
    "ID",
    "Levy",
    "Manufacturer",
    "Model",
    "Prod. year",
    "Category",
    "Leather interior",
    "Fuel type",
    "Engine volume",
    "Mileage",
    "Cylinders",
    "Gear box type",
    "Drive wheels",
    "Doors",
    "Wheel",
    "Color",
    "Airbags",
)

MOVIE_RATING_COLUMNS: tuple[str, ...] = (
    "rank",
    "name",
    "year",
    "genre",
    "certificate",
    "run_time",
    "tagline",
    "budget",
    "box_office",
    "casts",
    "directors",
    "writers",
)

TITANIC_COLUMNS: tuple[str, ...] = (
    "passenger_id",
    "pclass",
    "name",
    "sex",
    "age",
    "sibsp",
    "parch",
    "ticket",
    "fare",
    "cabin",
    "embarked",
    "email",
)


class ModelRequirement(BaseModel):
    """Upload identifiers and required CSV columns for one model key.

    Attributes:
        key: Model-selector key, e.g. ``"car-price-knn"``.
        label: Human-readable selector label.
        dataset: Dataset identifier sent as the ``dataset`` form field.
        model: Model identifier sent as the ``model_name`` form field.
        columns: Required header columns, in canonical order.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    dataset: Dataset
    model: str
    columns: tuple[str, ...]

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("columns must be non-empty.")
        if len(set(v)) != len(v):
            raise ValueError(f"columns must be unique, got {list(v)}.")
        return v


def _req(key: str, label: str, dataset: Dataset, model: str, columns: tuple[str, ...]):
    return key, ModelRequirement(
        key=key, label=label, dataset=dataset, model=model, columns=columns
    )


MODEL_REQUIREMENTS: Mapping[str, ModelRequirement] = MappingProxyType(dict([
    _req("car-price-linear", "Car Price - Linear Regression",
         Dataset.CAR_PRICE, "linear", CAR_PRICE_COLUMNS),
    _req("car-price-knn", "Car Price - K-Nearest Neighbors",
         Dataset.CAR_PRICE, "knn", CAR_PRICE_COLUMNS),
    _req("car-price-random-forest", "Car Price - Random Forest",
         Dataset.CAR_PRICE, "random-forest", CAR_PRICE_COLUMNS),
    _req("car-price-svr", "Car Price - Support Vector Regression",
         Dataset.CAR_PRICE, "svr", CAR_PRICE_COLUMNS),
    _req("car-price-decision", "Car Price - Decision Tree",
         Dataset.CAR_PRICE, "decision", CAR_PRICE_COLUMNS),
    _req("movie-rating-linear", "Movie Rating - Linear Regression",
         Dataset.MOVIE_RATING, "linear", MOVIE_RATING_COLUMNS),
    _req("movie-rating-decision", "Movie Rating - Decision Tree",
         Dataset.MOVIE_RATING, "decision", MOVIE_RATING_COLUMNS),
    _req("movie-rating-random-forest", "Movie Rating - Random Forest",
         Dataset.MOVIE_RATING, "random-forest", MOVIE_RATING_COLUMNS),
    _req("movie-rating-svr", "Movie Rating - SVR",
         Dataset.MOVIE_RATING, "svr", MOVIE_RATING_COLUMNS),
    _req("movie-rating-knn", "Movie Rating - K-Nearest Neighbors",
         Dataset.MOVIE_RATING, "knn", MOVIE_RATING_COLUMNS),
    _req("titanic-logistic", "Titanic Survival - Logistic Regression",
         Dataset.TITANIC, "logistic", TITANIC_COLUMNS),
]))


def get_requirement(key: str) -> ModelRequirement:
    """Return the ``ModelRequirement`` for ``key``.

    Raises:
        UnknownModelError: If ``key`` is not in the table.
    """
    try:
        return MODEL_REQUIREMENTS[key]
    except KeyError:
        raise UnknownModelError(
            f"Unknown model '{key}'. Valid models: {sorted(MODEL_REQUIREMENTS)}",
            details={"model_key": key},
        ) from None


def model_keys() -> list[str]:
    """Return all model keys in selector order."""
    return list(MODEL_REQUIREMENTS)
