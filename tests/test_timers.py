"""Tests for the background repeating timer."""

import logging
import time
from types import SimpleNamespace

import pytest

from listening_party import timers
from listening_party.timers import BackgroundTimers, now_ms


class InlineSocketIO:
    """Runs the background task in place and cancels it after `ticks` sleeps.

    Each sleep moves the patched monotonic clock forward by the time slept.
    """

    def __init__(self, ticks: int):
        self.ticks = ticks
        self.sleeps: list[float] = []
        self.handle = None
        self.mono = 1000.0

    def monotonic(self) -> float:
        return self.mono

    def start_background_task(self, target, *args):
        self.handle = args[0]
        target(*args)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.mono += seconds
        if len(self.sleeps) > self.ticks:
            self.handle.cancel()


@pytest.fixture
def inline(monkeypatch):
    def make(ticks):
        socketio = InlineSocketIO(ticks)
        monkeypatch.setattr(timers, "time", SimpleNamespace(monotonic=socketio.monotonic, time=time.time))
        return socketio
    return make


def test_fires_until_cancelled(inline) -> None:
    socketio = inline(5)
    calls = []

    handle = BackgroundTimers(socketio).every(1, lambda: calls.append(1))

    assert len(calls) == 5
    assert handle.cancelled
    assert socketio.sleeps == [pytest.approx(1.0)] * 6


def test_slow_callback_does_not_push_later_ticks_back(inline) -> None:
    socketio = inline(3)

    def slow():
        socketio.mono += 0.25

    BackgroundTimers(socketio).every(1, slow)

    assert socketio.sleeps[0] == pytest.approx(1.0)
    assert all(s == pytest.approx(0.75) for s in socketio.sleeps[1:])


def test_cancelled_before_first_tick_never_fires(inline) -> None:
    socketio = inline(0)
    calls = []
    BackgroundTimers(socketio).every(30, lambda: calls.append(1))
    assert calls == []


def test_failing_callback_keeps_timer_alive(inline, caplog) -> None:
    socketio = inline(3)
    calls = []

    def boom():
        calls.append(1)
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="listening_party.timers"):
        BackgroundTimers(socketio).every(1, boom)

    assert len(calls) == 3
    assert "Timer callback failed" in caplog.text


def test_now_ms_is_wall_clock_millis() -> None:
    assert now_ms() > 1_600_000_000_000
