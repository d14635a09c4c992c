"""
Generic state of one remote request: idle → loading → success | failure.

Every view used to keep three pieces of state per request (data, loading,
error). ``RemoteResult`` holds all three in one immutable value, and
``run_remote()`` turns a client call into a terminal result without letting
dashboard or transport errors escape::

    result = run_remote(lambda: client.predict(endpoint, form))
    if result.ok:
        render(result.value)
    else:
        show_error(result.error_message)

Exceptions that are not ``DashboardError`` or ``httpx.HTTPError`` are
programming errors and propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Generic, Optional, TypeVar

import httpx

from prediction_dashboard.exceptions import DashboardError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RemoteState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class RemoteResult(Generic[T]):
    """Immutable snapshot of a remote request.

    Attributes:
        state: Current lifecycle state.
        value: Decoded response; set only when ``state`` is SUCCESS.
        error: The exception; set only when ``state`` is FAILURE.
    """

    state: RemoteState = RemoteState.IDLE
    value: Optional[T] = None
    error: Optional[Exception] = None

    # ── Constructors ──────────────────────────────────────────────────────────

    @classmethod
    def idle(cls) -> "RemoteResult[T]":
        return cls()

    @classmethod
    def loading(cls) -> "RemoteResult[T]":
        return cls(state=RemoteState.LOADING)

    @classmethod
    def success(cls, value: T) -> "RemoteResult[T]":
        return cls(state=RemoteState.SUCCESS, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "RemoteResult[T]":
        return cls(state=RemoteState.FAILURE, error=error)

    # ── Accessors ─────────────────────────────────────────────────────────────

    @property
    def ok(self) -> bool:
        return self.state == RemoteState.SUCCESS

    @property
    def is_loading(self) -> bool:
        return self.state == RemoteState.LOADING

    @property
    def error_message(self) -> Optional[str]:
        """User-facing text for a failure, ``None`` otherwise."""
        if self.error is None:
            return None
        if isinstance(self.error, DashboardError):
            return self.error.message
        return str(self.error) or "An error occurred"


def run_remote(fn: Callable[[], T]) -> RemoteResult[T]:
    """Call ``fn`` and wrap the outcome in a terminal ``RemoteResult``.

    ``DashboardError`` and ``httpx.HTTPError`` (connection refused, DNS, …)
    become FAILURE results; anything else propagates.
    """
    try:
        return RemoteResult.success(fn())
    except (DashboardError, httpx.HTTPError) as exc:
        logger.warning("Remote request failed: %s", exc)
        return RemoteResult.failure(exc)
