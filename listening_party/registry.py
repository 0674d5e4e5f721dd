# listening_party/registry.py
# Owns every live session. Other components look sessions up by code on each
# call and never keep a reference, so a destroyed session disappears for all.

from __future__ import annotations

import logging
import random
import threading
from datetime import datetime, timezone

from . import config
from .errors import NoSuchSession, RegistryExhausted
from .timers import now_ms

logger = logging.getLogger(__name__)


# ================== Session state ==================
def participant(user_id: str, username: str, ts: int) -> dict:
    return {"userId": user_id, "username": username, "lastHeartbeat": ts}


def new_session_state(code: str, host_id: str, host_name: str, ts: int) -> dict:
    return {
        "code": code,
        "created_at": ts,
        "start_time": datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z"),
        "host": participant(host_id, host_name, ts),
        "users": [],              # guests, ordered by join time
        "song_requests": [],
        "votes": {},              # uri -> {"votes": [user ids], "name", "artists", "image"}
        "queue_list": [],

        # repeating timers, owned by the session so teardown can cancel them
        "tally": {
            "armed": False,
            "remaining": config.TALLY_PERIOD_SECONDS,
            "handle": None,
        },
        "heartbeat_handle": None,
    }


def roster_payload(s: dict) -> dict:
    return {"users": s["users"], "host": s["host"]}


# ================== Registry ==================
class SessionRegistry:
    def __init__(self, clock=now_ms, rng: random.Random | None = None):
        self.clock = clock
        self.rng = rng or random.Random()
        self.sessions: dict[str, dict] = {}
        # Handlers and timer callbacks mutate sessions only while holding this
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, code) -> bool:
        return code in self.sessions

    def codes(self) -> list[str]:
        return list(self.sessions)

    def get(self, code) -> dict | None:
        return self.sessions.get(code)

    def require(self, code) -> dict:
        s = self.sessions.get(code)
        if s is None:
            raise NoSuchSession(code)
        return s

    def generate_code(self) -> str:
        if len(self.sessions) >= config.CODE_MAX - config.CODE_MIN + 1:
            raise RegistryExhausted("Every session code is in use")
        for _ in range(config.CODE_ATTEMPTS):
            code = str(self.rng.randint(config.CODE_MIN, config.CODE_MAX))
            if code not in self.sessions:
                return code
        raise RegistryExhausted(
            f"No free session code after {config.CODE_ATTEMPTS} attempts"
        )

    def create_session(self, host_id: str, host_name: str) -> str:
        code = self.generate_code()
        self.sessions[code] = new_session_state(code, host_id, host_name, self.clock())
        logger.info("Session %s created by %s (%s)", code, host_name, host_id)
        return code

    def destroy_session(self, code) -> None:
        s = self.sessions.pop(code, None)
        if s is None:
            return
        if s["heartbeat_handle"] is not None:
            s["heartbeat_handle"].cancel()
            s["heartbeat_handle"] = None
        tally = s["tally"]
        if tally["handle"] is not None:
            tally["handle"].cancel()
            tally["handle"] = None
        tally["armed"] = False
        logger.info("Session %s closed (%d active)", code, len(self.sessions))
