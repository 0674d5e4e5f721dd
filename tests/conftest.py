"""Shared test fixtures: virtual clock, manual timers and an event recorder."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

import pytest

from listening_party.party import Party
from listening_party.timers import TimerHandle

START_MS = 1_700_000_000_000


@dataclass
class FakeClock:
    """Millisecond clock that only moves when told to."""

    now: int = START_MS

    def __call__(self) -> int:
        return self.now


class ManualTimers:
    """Timer source driven by ``advance``; fires due callbacks in order."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles: list[tuple[TimerHandle, list[int]]] = []

    def every(self, interval, callback) -> TimerHandle:
        handle = TimerHandle(interval, callback)
        self.handles.append((handle, [self.clock.now + int(interval * 1000)]))
        return handle

    def live(self) -> list[TimerHandle]:
        return [h for h, _ in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.clock.now + int(seconds * 1000)
        while True:
            due = [(d[0], i) for i, (h, d) in enumerate(self.handles) if not h.cancelled and d[0] <= target]
            if not due:
                break
            when, i = min(due)
            handle, deadline = self.handles[i]
            self.clock.now = when
            deadline[0] += int(handle.interval * 1000)
            handle.callback()
        self.clock.now = target


@dataclass
class RecordingEmitter:
    """Stands in for the SocketIO server; keeps every broadcast."""

    events: list[tuple[str, object, object]] = field(default_factory=list)

    def emit(self, event, data=None, room=None, **kwargs) -> None:
        self.events.append((event, data, room))

    def named(self, event) -> list:
        return [data for name, data, _ in self.events if name == event]

    def names(self) -> list[str]:
        return [name for name, _, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers(clock) -> ManualTimers:
    return ManualTimers(clock)


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def party(emitter, timers, clock) -> Party:
    return Party(emitter, timers, clock=clock, rng=random.Random(7))


SONG_X = {"uri": "spotify:track:x", "name": "Song X", "artist": "Artist X", "image": "x.png"}
SONG_Y = {"uri": "spotify:track:y", "name": "Song Y", "artist": "Artist Y", "image": "y.png"}
SONG_Z = {"uri": "spotify:track:z", "name": "Song Z", "artist": "Artist Z", "image": "z.png"}
