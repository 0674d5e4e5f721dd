"""Errors raised by the session core and translated by the Socket.IO handlers."""


class PartyError(Exception):
    """Base class for session errors."""


class NoSuchSession(PartyError):
    def __init__(self, code):
        super().__init__(f"No session with code {code!r}")
        self.code = code


class NoSuchParticipant(PartyError):
    def __init__(self, code, user_id):
        super().__init__(f"No participant {user_id!r} in session {code!r}")
        self.code = code
        self.user_id = user_id


class SessionFull(PartyError):
    def __init__(self, code):
        super().__init__(f"Session {code!r} is full")
        self.code = code


class RegistryExhausted(PartyError):
    """No free session code could be drawn."""
