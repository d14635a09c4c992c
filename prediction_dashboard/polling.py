"""Fixed-interval polling for the monitoring views.

A ``Poller`` calls its fetch function immediately and then every
``interval_s`` seconds until stopped. Each call's outcome is stored as a
``RemoteResult`` (see ``clients.remote``) and handed to an optional callback,
so a failed poll never kills the loop — the next tick simply tries again.

No external scheduler library is required — stdlib ``threading`` only.

Usage in the background (dashboard / long-lived process)::

    with Poller(client.risk, interval_s=60, on_result=render) as poller:
        ...                       # poller.latest is refreshed every 60 s
    # leaving the block stops the timer

Usage in the foreground (CLI ``--watch``)::

    Poller(client.system_health, 30, on_result=print_summary).run(max_ticks=10)

Ticks of one poller never overlap: the next wait starts after the previous
fetch returns. Separate pollers are independent and are not coalesced.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

from prediction_dashboard.clients.remote import RemoteResult, run_remote

log = logging.getLogger(__name__)

T = TypeVar("T")


class Poller(Generic[T]):
    """Repeating timer around a fetch function.

    Parameters
    ----------
    fetch:
        Zero-argument callable performing one request.
    interval_s:
        Seconds between the end of one fetch and the start of the next.
    on_result:
        Optional callback receiving each ``RemoteResult``.
    name:
        Label for logs and the worker thread.
    """

    def __init__(
        self,
        fetch: Callable[[], T],
        interval_s: float,
        on_result: Optional[Callable[[RemoteResult[T]], None]] = None,
        name: str = "poller",
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}.")
        self.fetch = fetch
        self.interval_s = interval_s
        self.on_result = on_result
        self.name = name
        self.latest: RemoteResult[T] = RemoteResult.idle()
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ── Single tick ───────────────────────────────────────────────────────────

    def poll_once(self) -> RemoteResult[T]:
        """Fetch once, store the result, and notify the callback."""
        self.latest = RemoteResult.loading()
        result = run_remote(self.fetch)
        self.latest = result
        self.ticks += 1
        if not result.ok:
            log.warning("[%s] poll %d failed: %s", self.name, self.ticks, result.error_message)
        if self.on_result is not None:
            self.on_result(result)
        return result

    # ── Foreground loop ───────────────────────────────────────────────────────

    def run(self, max_ticks: Optional[int] = None) -> None:
        """Poll in the calling thread until ``stop()``, Ctrl-C, or ``max_ticks``.

        ``max_ticks`` counts polls made by this call, not ``self.ticks``.
        """
        self._stop.clear()
        self._loop(max_ticks)

    def _loop(self, max_ticks: Optional[int] = None) -> None:
        # Never clears the stop event: a stop() issued before the worker
        # thread gets here must still end the loop.
        polls = 0
        log.info("[%s] polling every %.1fs", self.name, self.interval_s)
        try:
            while not self._stop.is_set():
                self.poll_once()
                polls += 1
                if max_ticks is not None and polls >= max_ticks:
                    break
                self._stop.wait(self.interval_s)
        except KeyboardInterrupt:
            log.info("[%s] interrupted", self.name)
        log.info("[%s] stopped after %d poll(s)", self.name, self.ticks)

    # ── Background thread ─────────────────────────────────────────────────────

    def start(self) -> "Poller[T]":
        """Start polling on a daemon thread. Calling twice is a no-op."""
        if self.is_running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name=f"{self.name}-thread", daemon=True
        )
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the timer and wait for an in-flight fetch to return."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "Poller[T]":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()
