# listening_party/scheduler.py
# Repeating tally cycle: a one-second tick counts down from 30 and closes the
# cycle on zero. The tick keeps running until the session is destroyed.

from __future__ import annotations

import logging

from . import config

logger = logging.getLogger(__name__)


class TallyScheduler:
    def __init__(
        self,
        registry,
        engine,
        timers,
        period: int = config.TALLY_PERIOD_SECONDS,
        tick: float = config.TALLY_TICK_SECONDS,
    ):
        self.registry = registry
        self.engine = engine
        self.timers = timers
        self.period = period
        self.tick_interval = tick

    def arm(self, code: str) -> None:
        s = self.registry.require(code)
        tally = s["tally"]
        if tally["handle"] is not None:
            tally["handle"].cancel()
        tally["remaining"] = self.period
        tally["armed"] = True
        tally["handle"] = self.timers.every(self.tick_interval, lambda: self._on_tick(code))
        logger.debug("Tally cycle armed for %s", code)

    def _on_tick(self, code: str) -> None:
        with self.registry.lock:
            self.tick(code)

    def tick(self, code) -> None:
        s = self.registry.get(code)
        if s is None or not s["tally"]["armed"]:
            return
        tally = s["tally"]
        tally["remaining"] -= self.tick_interval
        if tally["remaining"] > 0:
            return
        tally["remaining"] = self.period
        self.engine.advance(code)
