# listening_party/membership.py
# Join / leave / kick rules and host rejoin. Every accepted change broadcasts
# the whole roster so clients resync instead of applying deltas.

from __future__ import annotations

import logging

from . import config
from .errors import NoSuchParticipant, SessionFull
from .registry import participant, roster_payload
from .timers import now_ms

logger = logging.getLogger(__name__)


def find_guest(s: dict, user_id) -> int:
    for i, user in enumerate(s["users"]):
        if user["userId"] == user_id:
            return i
    return -1


def host_left_message(code: str) -> str:
    return f"Host left. {code} has closed."


class Membership:
    def __init__(self, registry, emitter, clock=now_ms, capacity: int = config.GUEST_CAPACITY):
        self.registry = registry
        self.emitter = emitter
        self.clock = clock
        self.capacity = capacity

    def broadcast_roster(self, code: str) -> None:
        s = self.registry.get(code)
        if s is not None:
            self.emitter.emit("updateUsers", roster_payload(s), room=code)

    def join(self, code, user_id, username, on_accepted=None) -> None:
        s = self.registry.require(code)
        idx = find_guest(s, user_id)
        if idx != -1:
            # already a guest: refresh rather than duplicate
            s["users"][idx]["username"] = username
            s["users"][idx]["lastHeartbeat"] = self.clock()
        elif len(s["users"]) >= self.capacity:
            raise SessionFull(code)
        else:
            s["users"].append(participant(user_id, username, self.clock()))
        logger.info("%s (%s) joined session %s", username, user_id, code)

        if on_accepted:
            on_accepted()
        self.broadcast_roster(code)
        self.emitter.emit("userJoined", {"userId": user_id}, room=code)

    def update_host(self, code, user_id, username, on_accepted=None) -> None:
        """Host reconnect. A mismatched id leaves the host record untouched
        but the roster and rejoin notice still go out."""
        s = self.registry.require(code)
        if s["host"]["userId"] == user_id:
            s["host"]["username"] = username
            s["host"]["lastHeartbeat"] = self.clock()
        else:
            logger.warning("Host rejoin for %s with foreign id %s", code, user_id)

        if on_accepted:
            on_accepted()
        self.broadcast_roster(code)
        self.emitter.emit("hostRejoined", {}, room=code)

    def update_guest(self, code, user_id, username, on_accepted=None) -> None:
        s = self.registry.require(code)
        idx = find_guest(s, user_id)
        if idx == -1:
            raise NoSuchParticipant(code, user_id)
        s["users"][idx]["username"] = username
        s["users"][idx]["lastHeartbeat"] = self.clock()

        if on_accepted:
            on_accepted()
        self.broadcast_roster(code)
        self.emitter.emit("userJoined", {"userId": user_id}, room=code)

    def leave(self, code, user_id) -> bool:
        s = self.registry.get(code)
        if s is None:
            return False

        if s["host"]["userId"] == user_id:
            self.emitter.emit("hostLeft", {"message": host_left_message(code)}, room=code)
            self.registry.destroy_session(code)
            return True

        s["users"] = [u for u in s["users"] if u["userId"] != user_id]
        self.broadcast_roster(code)
        self.emitter.emit("userLeft", {"userId": user_id}, room=code)
        self.emitter.emit("userStoppedRejoin", {"users": user_id}, room=code)
        return True

    def kick(self, code, target_id) -> bool:
        # TODO: restrict to the host once clients send the caller's id with kickUser
        s = self.registry.get(code)
        if s is None:
            return False
        s["users"] = [u for u in s["users"] if u["userId"] != target_id]
        logger.info("%s kicked from session %s", target_id, code)
        self.broadcast_roster(code)
        self.emitter.emit("kickedUser", {"userId": target_id}, room=code)
        return True
