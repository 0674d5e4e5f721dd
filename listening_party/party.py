# listening_party/party.py
# Wires the session components together and implements the pass-through
# session features (song requests, play queue, now playing, session time).

from __future__ import annotations

import random

from .heartbeat import HeartbeatMonitor
from .membership import Membership, find_guest
from .registry import SessionRegistry
from .scheduler import TallyScheduler
from .tally import TallyEngine
from .timers import now_ms


# ================== Uptime helpers ==================
def uptime(s: dict, now: int) -> tuple[int, int, int]:
    elapsed = max(0, now - s["created_at"])
    hours = elapsed // 3_600_000
    minutes = (elapsed % 3_600_000) // 60_000
    seconds = (elapsed % 60_000) // 1000
    return hours, minutes, seconds


def format_uptime(hours: int, minutes: int, seconds: int) -> str:
    return f"{hours} hours {minutes} minutes {seconds} seconds"


def person_payload(p: dict) -> dict:
    return {"userId": p["userId"], "username": p["username"], "lastHeartbeat": p["lastHeartbeat"]}


# ================== Coordinator ==================
class Party:
    """All session components sharing one registry, clock and broadcaster.

    `emitter` only needs ``emit(event, payload, room=...)``; in the server it
    is the SocketIO instance, in tests a recorder.
    """

    def __init__(self, emitter, timers, clock=now_ms, rng: random.Random | None = None):
        rng = rng or random.Random()
        self.emitter = emitter
        self.clock = clock
        self.registry = SessionRegistry(clock=clock, rng=rng)
        self.membership = Membership(self.registry, emitter, clock=clock)
        self.heartbeats = HeartbeatMonitor(self.registry, emitter, timers, clock=clock)
        self.tally = TallyEngine(self.registry, emitter, rng=rng)
        self.scheduler = TallyScheduler(self.registry, self.tally, timers)

    @property
    def lock(self):
        return self.registry.lock

    # ---- lifecycle ----
    def create_session(self, host_id, host_name) -> str:
        code = self.registry.create_session(host_id, host_name)
        self.heartbeats.arm(code)
        self.scheduler.arm(code)
        return code

    def roster(self, code) -> dict:
        s = self.registry.require(code)
        return {"host": s["host"], "users": s["users"]}

    def broadcast_roster(self, code) -> None:
        self.membership.broadcast_roster(code)

    # ---- songs ----
    def request_song(self, code, user_id, song_info: dict) -> bool:
        s = self.registry.require(code)
        if find_guest(s, user_id) == -1 or not song_info.get("uri"):
            return False
        s["song_requests"].append(song_info)
        self.emitter.emit("requestedSongs", {"songs": s["song_requests"]}, room=code)
        return True

    def announce_current_song(self, code, user_id, song_info) -> bool:
        s = self.registry.require(code)
        if s["host"]["userId"] != user_id:
            return False
        self.emitter.emit("currentSongInfo", {"songInfo": song_info}, room=code)
        return True

    def voted_song(self, code, user_id) -> str | None:
        s = self.registry.require(code)
        if s["host"]["userId"] != user_id:
            return None
        uri = self.tally.top_by_raw_count(code)
        self.emitter.emit("votedSong", {"uri": uri or ""}, room=code)
        return uri

    def set_queue(self, code, songs) -> None:
        s = self.registry.require(code)
        s["queue_list"] = list(songs or [])
        self.send_queue(code)

    def send_queue(self, code) -> None:
        s = self.registry.require(code)
        self.emitter.emit("queueListUpdate", {"songs": s["queue_list"]}, room=code)

    # ---- status ----
    def session_time(self, code) -> None:
        s = self.registry.require(code)
        hours, minutes, seconds = uptime(s, self.clock())
        self.emitter.emit(
            "currentSessionTime",
            {"hours": hours, "minutes": minutes, "seconds": seconds},
            room=code,
        )

    def active_servers(self) -> list[dict]:
        now = self.clock()
        servers = []
        for code in self.registry.codes():
            s = self.registry.get(code)
            servers.append({
                "serverCode": code,
                "startTime": s["start_time"],
                "upTime": format_uptime(*uptime(s, now)),
                "host": person_payload(s["host"]),
                "users": [person_payload(u) for u in s["users"]],
                "songRequests": s["votes"],
            })
        return servers

