# listening_party/heartbeat.py
# Liveness tracking. Clients ping with `heartbeat`; a sweep per session evicts
# anyone silent for longer than the timeout. A silent host closes the session.

from __future__ import annotations

import logging

from . import config
from .membership import find_guest, host_left_message
from .registry import roster_payload
from .timers import now_ms

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    def __init__(
        self,
        registry,
        emitter,
        timers,
        clock=now_ms,
        timeout_ms: int = config.HEARTBEAT_TIMEOUT_MS,
        interval: float = config.HEARTBEAT_SWEEP_SECONDS,
    ):
        self.registry = registry
        self.emitter = emitter
        self.timers = timers
        self.clock = clock
        self.timeout_ms = timeout_ms
        self.interval = interval

    def arm(self, code: str) -> None:
        s = self.registry.require(code)
        if s["heartbeat_handle"] is not None:
            s["heartbeat_handle"].cancel()
        s["heartbeat_handle"] = self.timers.every(self.interval, lambda: self._on_interval(code))

    def _on_interval(self, code: str) -> None:
        with self.registry.lock:
            self.sweep(code)

    def record_heartbeat(self, code, user_id) -> None:
        s = self.registry.require(code)
        ts = self.clock()
        if s["host"]["userId"] == user_id:
            s["host"]["lastHeartbeat"] = ts
            self.emitter.emit("heartbeatReceived", {"message": ts}, room=code)
            return
        idx = find_guest(s, user_id)
        if idx != -1:
            s["users"][idx]["lastHeartbeat"] = ts
            logger.debug("Heartbeat from %s in %s", user_id, code)

    def is_stale(self, person: dict, now: int) -> bool:
        return now - person["lastHeartbeat"] > self.timeout_ms

    def sweep(self, code) -> None:
        s = self.registry.get(code)
        if s is None:
            return
        now = self.clock()

        if self.is_stale(s["host"], now):
            logger.info("Host of session %s timed out", code)
            self.emitter.emit("hostTimedOut", {"message": host_left_message(code)}, room=code)
            self.registry.destroy_session(code)
            return

        for user in list(s["users"]):
            if not self.is_stale(user, now):
                continue
            user_id = user["userId"]
            s["users"] = [u for u in s["users"] if u["userId"] != user_id]
            logger.info("%s timed out of session %s", user_id, code)
            self.emitter.emit("updateUsers", roster_payload(s), room=code)
            self.emitter.emit("userTimedOut", {"userId": user_id}, room=code)
