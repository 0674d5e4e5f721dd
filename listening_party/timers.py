# listening_party/timers.py
# Clock and repeating timers. Timers run as Socket.IO background tasks so they
# cooperate with whichever async_mode the server was started in.

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock milliseconds, the unit used for heartbeats on the wire."""
    return int(time.time() * 1000)


class TimerHandle:
    """Handle of one repeating timer. Cancelling is final."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class BackgroundTimers:
    def __init__(self, socketio):
        self.socketio = socketio

    def every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(interval, callback)
        self.socketio.start_background_task(self._run, handle)
        return handle

    def _run(self, handle: TimerHandle) -> None:
        # Sleep to absolute deadlines so a slow callback does not push later ticks back
        deadline = time.monotonic() + handle.interval
        while not handle.cancelled:
            self.socketio.sleep(max(0.0, deadline - time.monotonic()))
            if handle.cancelled:
                break
            deadline += handle.interval
            try:
                handle.callback()
            except Exception:
                # keep the timer alive; the next tick re-checks session state
                logger.exception("Timer callback failed")
