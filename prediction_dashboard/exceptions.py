"""
Exception hierarchy for the prediction dashboard.

Every error a view can surface derives from ``DashboardError`` so the CLI and
the Streamlit app can catch one type and render ``message``. ``details`` holds
structured context (status code, endpoint, missing field) for logging.

CSV validation never raises — it reports findings instead (see
``prediction_dashboard.validation.csv_header``).
"""

from __future__ import annotations

from typing import Any, Optional


class DashboardError(Exception):
    """Base exception for all dashboard errors.

    Attributes:
        message: Human-readable error description, shown to the user as-is.
        details: Optional structured error context.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(DashboardError):
    """Raised when configuration is invalid or a config file is missing."""


class UnknownModelError(DashboardError, KeyError):
    """Raised when a model key is not in the requirements table."""

    def __str__(self) -> str:
        # KeyError.__str__ would wrap the message in quotes.
        return self.message


class AuthRequiredError(DashboardError):
    """Raised when a request needs a bearer token (or user email) that is absent.

    The request is never sent.
    """


class RequestFailedError(DashboardError):
    """Raised on a non-2xx response or a ``success: false`` envelope.

    Attributes:
        status_code: HTTP status, or ``None`` when the failure came from an
            envelope on a 2xx response.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class DecodeFailureError(DashboardError):
    """Raised when a response body is not valid JSON or has the wrong shape."""


class ValidationFailedError(DashboardError):
    """Raised when a batch upload is attempted with an invalid CSV."""
