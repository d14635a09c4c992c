"""Tests for prediction_dashboard.polling."""

from __future__ import annotations

import threading

import pytest

from prediction_dashboard.clients.remote import RemoteState
from prediction_dashboard.exceptions import RequestFailedError
from prediction_dashboard.polling import Poller


class _DelayedStartPoller(Poller):
    """Poller whose worker thread waits on ``gate`` before entering its loop."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.gate = threading.Event()

    def _loop(self, max_ticks=None) -> None:
        self.gate.wait(timeout=5)
        super()._loop(max_ticks)


class _Counter:
    """Fetch function that counts calls and can fail on demand."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.calls = 0
        self.fail_on = fail_on or set()
        self.reached = threading.Event()
        self.target = 3

    def __call__(self) -> int:
        self.calls += 1
        if self.calls >= self.target:
            self.reached.set()
        if self.calls in self.fail_on:
            raise RequestFailedError("backend down", status_code=503)
        return self.calls


# ── poll_once ─────────────────────────────────────────────────────────────────


class TestPollOnce:
    def test_stores_latest_and_calls_back(self) -> None:
        seen = []
        poller = Poller(_Counter(), interval_s=10, on_result=seen.append)
        result = poller.poll_once()
        assert result.ok
        assert poller.latest is result
        assert seen == [result]
        assert poller.ticks == 1

    def test_failure_does_not_raise(self) -> None:
        poller = Poller(_Counter(fail_on={1}), interval_s=10)
        result = poller.poll_once()
        assert result.state == RemoteState.FAILURE
        assert result.error_message == "backend down"

    def test_starts_idle(self) -> None:
        assert Poller(_Counter(), interval_s=1).latest.state == RemoteState.IDLE

    @pytest.mark.parametrize("interval", [0, -5])
    def test_interval_must_be_positive(self, interval: float) -> None:
        with pytest.raises(ValueError, match="positive"):
            Poller(_Counter(), interval_s=interval)


# ── Foreground loop ───────────────────────────────────────────────────────────


class TestRun:
    def test_max_ticks(self) -> None:
        fetch = _Counter()
        Poller(fetch, interval_s=0.001).run(max_ticks=4)
        assert fetch.calls == 4

    def test_keeps_polling_after_failure(self) -> None:
        fetch = _Counter(fail_on={1, 2})
        seen = []
        Poller(fetch, interval_s=0.001, on_result=seen.append).run(max_ticks=3)
        assert [r.ok for r in seen] == [False, False, True]

    def test_max_ticks_counts_per_call(self) -> None:
        fetch = _Counter()
        poller = Poller(fetch, interval_s=0.001)
        poller.run(max_ticks=2)
        poller.run(max_ticks=3)
        assert fetch.calls == 5
        assert poller.ticks == 5


# ── Background thread ─────────────────────────────────────────────────────────


class TestBackground:
    def test_first_poll_is_immediate(self) -> None:
        fetch = _Counter()
        fetch.target = 1
        with Poller(fetch, interval_s=60):
            assert fetch.reached.wait(timeout=5)
        assert fetch.calls == 1

    def test_repeats_until_stopped(self) -> None:
        fetch = _Counter()
        poller = Poller(fetch, interval_s=0.01).start()
        assert fetch.reached.wait(timeout=5)
        poller.stop(timeout=5)
        assert not poller.is_running
        calls = fetch.calls
        assert calls >= 3
        threading.Event().wait(0.05)
        assert fetch.calls == calls

    def test_context_manager_stops_thread(self) -> None:
        fetch = _Counter()
        with Poller(fetch, interval_s=0.01) as poller:
            assert poller.is_running
            assert fetch.reached.wait(timeout=5)
        assert not poller.is_running

    def test_start_twice_is_noop(self) -> None:
        poller = Poller(_Counter(), interval_s=60)
        try:
            poller.start()
            thread = poller._thread
            poller.start()
            assert poller._thread is thread
        finally:
            poller.stop(timeout=5)

    def test_stop_before_start(self) -> None:
        Poller(_Counter(), interval_s=1).stop()

    def test_stop_before_worker_enters_loop(self) -> None:
        """A stop() that lands before the thread body runs still ends the thread."""
        fetch = _Counter()
        poller = _DelayedStartPoller(fetch, interval_s=0.01)
        poller.start()
        thread = poller._thread
        poller.stop(timeout=0.2)
        poller.gate.set()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert fetch.calls == 0
