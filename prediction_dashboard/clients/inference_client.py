"""
ML inference backend client — single-row predictions, CSV batch uploads,
prediction history and per-model summaries.

API:   ``InferenceConfig.base_url`` (default http://127.0.0.1:8000)

Auth:
  Every endpoint expects ``Authorization: Bearer <token>``. The token comes
  from the external session provider via config/.env
  (``PREDICTION_DASHBOARD_TOKEN``). Titanic endpoints also need the user's
  email (``PREDICTION_DASHBOARD_USER_EMAIL``), which is added to the body.

Error contract (one network call per invocation, no retries, no caching):
  - token absent            → ``AuthRequiredError``, nothing is sent
  - non-2xx response        → ``RequestFailedError`` carrying the server's
                              ``detail`` if present, else a status-code message
  - body not JSON / bad shape → ``DecodeFailureError``

Endpoints::

    POST /car-price/linear-predict
    POST /movie-rating/linear-predict
    POST /movie-rating/svr-predict-rating
    POST /titanic/{logistic,naive-bayse,neighbour,random-forest,
                   support-vector-classifier}-predict
    POST /common/csv-batch-upload          (multipart: file, model_name, dataset)
    GET  /common/all-predictions
    GET  /common/get-all-models-data
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Type

import httpx
from pydantic import BaseModel, ValidationError

from prediction_dashboard.catalog.model_requirements import Dataset, get_requirement
from prediction_dashboard.exceptions import (
    AuthRequiredError,
    DecodeFailureError,
    RequestFailedError,
    UnknownModelError,
    ValidationFailedError,
)
from prediction_dashboard.models.prediction import (
    BatchPredictionResponse,
    CarPriceInput,
    ClassificationPrediction,
    ModelSummary,
    MovieRatingInput,
    PredictionHistory,
    RegressionPrediction,
    TitanicPassengerInput,
)
from prediction_dashboard.validation.csv_header import (
    HeaderValidationResult,
    UploadedFile,
    validate_csv,
)

logger = logging.getLogger(__name__)


# ── Endpoint registry ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PredictionEndpoint:
    """A single-row prediction endpoint and the models it speaks."""

    key: str
    label: str
    path: str
    dataset: Dataset
    input_model: Type[BaseModel]
    response_model: Type[BaseModel]
    needs_email: bool = False


def _endpoint(
    key: str,
    label: str,
    path: str,
    dataset: Dataset,
) -> tuple[str, PredictionEndpoint]:
    if dataset == Dataset.CAR_PRICE:
        input_model, response_model = CarPriceInput, RegressionPrediction
    elif dataset == Dataset.MOVIE_RATING:
        input_model, response_model = MovieRatingInput, RegressionPrediction
    else:
        input_model, response_model = TitanicPassengerInput, ClassificationPrediction
    return key, PredictionEndpoint(
        key=key,
        label=label,
        path=path,
        dataset=dataset,
        input_model=input_model,
        response_model=response_model,
        needs_email=dataset == Dataset.TITANIC,
    )


PREDICTION_ENDPOINTS: Mapping[str, PredictionEndpoint] = MappingProxyType(dict([
    _endpoint("car-price-linear", "Car Price - Linear Regression",
              "/car-price/linear-predict", Dataset.CAR_PRICE),
    _endpoint("movie-rating-linear", "Movie Rating - Linear Regression",
              "/movie-rating/linear-predict", Dataset.MOVIE_RATING),
    _endpoint("movie-rating-svr", "Movie Rating - Support Vector Regression",
              "/movie-rating/svr-predict-rating", Dataset.MOVIE_RATING),
    _endpoint("titanic-logistic", "Titanic Survival - Logistic Regression",
              "/titanic/logistic-predict", Dataset.TITANIC),
    _endpoint("titanic-naive-bayes", "Titanic Survival - Naive Bayes",
              "/titanic/naive-bayse-predict", Dataset.TITANIC),
    _endpoint("titanic-knn", "Titanic Survival - K-Nearest Neighbors",
              "/titanic/neighbour-predict", Dataset.TITANIC),
    _endpoint("titanic-random-forest", "Titanic Survival - Random Forest",
              "/titanic/random-forest-predict", Dataset.TITANIC),
    _endpoint("titanic-svc", "Titanic Survival - Support Vector Classifier",
              "/titanic/support-vector-classifier-predict", Dataset.TITANIC),
]))

BATCH_UPLOAD_PATH = "/common/csv-batch-upload"
HISTORY_PATH = "/common/all-predictions"
MODELS_SUMMARY_PATH = "/common/get-all-models-data"


def get_endpoint(key: str) -> PredictionEndpoint:
    """Return the prediction endpoint for ``key``.

    Raises:
        UnknownModelError: If ``key`` is not registered.
    """
    try:
        return PREDICTION_ENDPOINTS[key]
    except KeyError:
        raise UnknownModelError(
            f"Unknown prediction endpoint '{key}'. "
            f"Valid endpoints: {sorted(PREDICTION_ENDPOINTS)}",
            details={"endpoint": key},
        ) from None


# ── Client ─────────────────────────────────────────────────────────────────────

class InferenceClient:
    """Client for the ML inference backend.

    Usage::

        with InferenceClient(base_url, token=cfg.auth.token,
                             user_email=cfg.auth.user_email) as client:
            result = client.predict("titanic-logistic", TitanicPassengerInput())
            result.confidence

    Attributes:
        base_url: Backend root URL, without trailing slash.
        token: Bearer token; ``None`` makes every call fail with
            ``AuthRequiredError`` before any request is built.
        user_email: Session email; required by Titanic endpoints.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        user_email: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_email = user_email
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.BaseTransport] = None):
        """Build a client from an ``AppConfig``."""
        return cls(
            base_url=config.inference.base_url,
            token=config.auth.token,
            user_email=config.auth.user_email,
            timeout_s=config.inference.request_timeout_s,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "InferenceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Single-row predictions ────────────────────────────────────────────────

    def predict(self, endpoint_key: str, form: Optional[BaseModel] = None) -> BaseModel:
        """Send one form to a prediction endpoint.

        Args:
            endpoint_key: Key in ``PREDICTION_ENDPOINTS``.
            form: Instance of the endpoint's input model. ``None`` sends the
                form's default values.

        Returns:
            ``RegressionPrediction`` or ``ClassificationPrediction``.

        Raises:
            UnknownModelError, AuthRequiredError, RequestFailedError,
            DecodeFailureError.
        """
        endpoint = get_endpoint(endpoint_key)
        if form is None:
            form = endpoint.input_model()
        elif not isinstance(form, endpoint.input_model):
            raise TypeError(
                f"{endpoint.key} expects {endpoint.input_model.__name__}, "
                f"got {type(form).__name__}."
            )

        self._require_token()
        body = form.payload()
        if endpoint.needs_email:
            if not self.user_email:
                raise AuthRequiredError(
                    "User email not found in session. Please log in again."
                )
            body["email"] = self.user_email

        data = self._send("POST", endpoint.path, json=body)
        return _parse(endpoint.response_model, data)

    # ── Batch upload ──────────────────────────────────────────────────────────

    def upload_batch(
        self,
        upload: UploadedFile,
        model_key: str,
        validation: Optional[HeaderValidationResult] = None,
    ) -> BatchPredictionResponse:
        """Upload a validated CSV for batch predictions.

        The upload is only sent when the header validates for ``model_key``.
        Pass the result the user already saw as ``validation`` to avoid
        re-parsing; otherwise the file is validated here.

        Raises:
            ValidationFailedError: If the CSV header does not validate.
            AuthRequiredError, RequestFailedError, DecodeFailureError.
        """
        requirement = get_requirement(model_key)
        if validation is None:
            validation = validate_csv(upload, model_key)
        if not validation.is_valid:
            raise ValidationFailedError(
                "CSV file validation failed. Please fix the errors and try again.",
                details={"findings": [f.kind.value for f in validation.findings]},
            )

        self._require_token()
        data = self._send(
            "POST",
            BATCH_UPLOAD_PATH,
            files={"file": (upload.filename, upload.content, "text/csv")},
            data={"model_name": requirement.model, "dataset": requirement.dataset.value},
            failure_label="Failed to get predictions from backend",
        )
        response = _parse(BatchPredictionResponse, data)
        logger.info(
            "Batch upload %s (%s): %d prediction(s)",
            upload.filename, model_key, len(response.predictions),
        )
        return response

    # ── History / comparison ──────────────────────────────────────────────────

    def prediction_history(self) -> PredictionHistory:
        """Return every prediction the current user has made."""
        self._require_token()
        data = self._send("GET", HISTORY_PATH, failure_label="Failed to fetch predictions")
        return _parse(PredictionHistory, data)

    def models_summary(self) -> list[ModelSummary]:
        """Return per-model aggregate output for all datasets."""
        self._require_token()
        data = self._send(
            "GET", MODELS_SUMMARY_PATH, failure_label="Failed to fetch models data"
        )
        if not isinstance(data, list):
            raise DecodeFailureError(
                "Unexpected response from models summary endpoint (expected a list)."
            )
        return [_parse(ModelSummary, row) for row in data]

    # ── Internals ─────────────────────────────────────────────────────────────

    def _require_token(self) -> None:
        if not self.token:
            raise AuthRequiredError("Authentication required. Please log in.")

    def _send(
        self,
        method: str,
        path: str,
        failure_label: str = "Failed to get prediction",
        **kwargs: Any,
    ) -> Any:
        """Perform exactly one request and decode the JSON body."""
        headers = {"Authorization": f"Bearer {self.token}"}
        logger.debug("%s %s%s", method, self.base_url, path)
        response = self._http.request(method, path, headers=headers, **kwargs)

        if not response.is_success:
            detail = error_detail(response)
            message = detail or f"{failure_label} ({response.status_code})"
            logger.warning("%s %s -> %d: %s", method, path, response.status_code, message)
            raise RequestFailedError(
                message,
                status_code=response.status_code,
                details={"path": path, "method": method},
            )

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeFailureError(
                f"Response from {path} is not valid JSON.",
                details={"path": path, "body": response.text[:200]},
            ) from exc


def error_detail(response: httpx.Response) -> Optional[str]:
    """Extract the server's ``detail`` message from an error response.

    Handles FastAPI's two shapes: a plain string, or a list of validation
    errors ``[{"loc": [...], "msg": "..."}]``. Returns ``None`` when the body
    is not JSON or has no ``detail``.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    detail = body.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        parts = []
        for item in detail:
            if isinstance(item, dict):
                loc = ".".join(str(p) for p in item.get("loc", []) if p != "body")
                msg = item.get("msg", "")
                parts.append(f"{loc}: {msg}" if loc else msg)
            else:
                parts.append(str(item))
        return "; ".join(parts)
    return None


def _parse(model: Type[BaseModel], data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeFailureError(
            f"Unexpected response shape for {model.__name__}: "
            f"{exc.error_count()} validation error(s).",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
