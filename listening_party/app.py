# listening_party/app.py
# Flask + Flask-SocketIO front end for listening-party sessions
# - host creates a session (6-digit code), up to 4 guests join
# - song requests + vote toggles, 30s tally cycle picks the next song
# - heartbeats; silent host closes the session, silent guests are dropped
# - read-only status endpoints for monitoring

from __future__ import annotations

import json
import logging
import secrets

from flask import Flask, Response, jsonify, request
from flask_socketio import SocketIO, emit, join_room
from werkzeug.middleware.proxy_fix import ProxyFix

from . import config
from .app_logging import configure_logging
from .errors import NoSuchParticipant, NoSuchSession, PartyError, RegistryExhausted, SessionFull
from .party import Party
from .timers import BackgroundTimers, now_ms

logger = logging.getLogger(__name__)

JOIN_ERROR = "Join unsuccessfull."
LEAVE_ERROR = "Could not leave server successfully."
CREATE_ERROR = "Could not create server."


# ================== App init ==================
def create_app(timers=None, clock=now_ms, rng=None) -> Flask:
    """Build the Flask app and its SocketIO server.

    The SocketIO instance is at ``app.extensions["socketio"]`` and the session
    coordinator at ``app.extensions["party"]``.
    """
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app)
    app.config["SECRET_KEY"] = secrets.token_hex(16)
    socketio = SocketIO(app, **config.SOCKET_KW)

    party = Party(socketio, timers or BackgroundTimers(socketio), clock=clock, rng=rng)
    app.extensions["party"] = party

    register_routes(app, party)
    register_socket_handlers(socketio, party)
    return app


# ================== Routes ==================
def register_routes(app: Flask, party: Party) -> None:
    @app.route("/serverStatus")
    def server_status():
        return jsonify({"status": "Server is online"})

    @app.route("/amountServers")
    def amount_servers():
        with party.lock:
            return jsonify({"numberOfServers": len(party.registry)})

    @app.route("/activeServers")
    def active_servers():
        with party.lock:
            body = json.dumps({"servers": party.active_servers()}, indent=4)
        return Response(body, mimetype="application/json")


# ================== Socket.IO ==================
def register_socket_handlers(socketio: SocketIO, party: Party) -> None:

    def enter(code):
        return lambda: join_room(code)

    # ---- session lifecycle / membership ----
    @socketio.on("createServer")
    def create_server(data):
        username = (data or {}).get("username"); user_id = (data or {}).get("userId")
        with party.lock:
            try:
                code = party.create_session(user_id, username)
            except RegistryExhausted as e:
                logger.error("createServer failed: %s", e)
                emit("createError", {"message": CREATE_ERROR}, room=request.sid)
                return
            join_room(code)
            emit("serverCreated", {"serverCode": code}, room=request.sid)
            party.broadcast_roster(code)

    @socketio.on("updateHost")
    def update_host(data):
        code = (data or {}).get("serverCode")
        username = (data or {}).get("username"); user_id = (data or {}).get("userId")
        with party.lock:
            try:
                party.membership.update_host(code, user_id, username, on_accepted=enter(code))
            except NoSuchSession:
                emit("joinError", {"message": JOIN_ERROR}, room=request.sid)

    @socketio.on("updateUser")
    def update_user(data):
        code = (data or {}).get("serverCode")
        username = (data or {}).get("username"); user_id = (data or {}).get("userId")
        with party.lock:
            try:
                party.membership.update_guest(code, user_id, username, on_accepted=enter(code))
            except NoSuchSession:
                emit("joinError", {"message": JOIN_ERROR}, room=request.sid)
            except NoSuchParticipant:
                emit("rejoinError", {"message": JOIN_ERROR}, room=request.sid)

    @socketio.on("joinServer")
    def join_server(data):
        code = (data or {}).get("serverCode")
        username = (data or {}).get("username"); user_id = (data or {}).get("userId")
        with party.lock:
            try:
                party.membership.join(code, user_id, username, on_accepted=enter(code))
            except SessionFull:
                logger.info("Session %s full, %s turned away", code, user_id)
                emit("serverFull", room=request.sid)
            except NoSuchSession:
                emit("joinError", {"message": JOIN_ERROR}, room=request.sid)

    @socketio.on("leaveServer")
    def leave_server(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        with party.lock:
            if not party.membership.leave(code, user_id):
                emit("leaveError", {"message": LEAVE_ERROR}, room=request.sid)

    @socketio.on("kickUser")
    def kick_user(data):
        code = (data or {}).get("serverCode"); kick_id = (data or {}).get("kickId")
        with party.lock:
            if not party.membership.kick(code, kick_id):
                emit("leaveError", {"message": LEAVE_ERROR}, room=request.sid)

    @socketio.on("getUsers")
    def get_users(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            if code in party.registry:
                emit("userList", party.roster(code), room=request.sid)

    @socketio.on("joinServerCode")
    def join_server_code(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            if code not in party.registry:
                return
            join_room(code)
            socketio.emit("connectedToCode", {"message": "Connected"}, room=code)
            party.broadcast_roster(code)

    @socketio.on("heartbeat")
    def heartbeat(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        with party.lock:
            ignore_missing(party.heartbeats.record_heartbeat, code, user_id)

    # ---- songs / votes ----
    @socketio.on("songRequest")
    def song_request(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        song_info = (data or {}).get("songInfo")
        if not isinstance(song_info, dict):
            return
        with party.lock:
            ignore_missing(party.request_song, code, user_id, song_info)

    @socketio.on("votingSong")
    def voting_song(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        song_info = (data or {}).get("songInfo")
        if not isinstance(song_info, dict) or not song_info.get("uri"):
            return
        with party.lock:
            ignore_missing(party.tally.cast_vote, code, user_id, song_info)

    @socketio.on("getVoteList")
    def get_vote_list(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            ignore_missing(party.tally.broadcast_votes, code)

    @socketio.on("getVotedSong")
    def get_voted_song(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        with party.lock:
            ignore_missing(party.voted_song, code, user_id)

    @socketio.on("songInfo")
    def song_info(data):
        code = (data or {}).get("serverCode"); user_id = (data or {}).get("userId")
        with party.lock:
            ignore_missing(party.announce_current_song, code, user_id, (data or {}).get("songInfo"))

    @socketio.on("hostQueueList")
    def host_queue_list(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            ignore_missing(party.set_queue, code, (data or {}).get("songs"))

    @socketio.on("queueList")
    def queue_list(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            ignore_missing(party.send_queue, code)

    @socketio.on("sessionTime")
    def session_time(data):
        code = (data or {}).get("serverCode")
        with party.lock:
            ignore_missing(party.session_time, code)


def ignore_missing(action, *args):
    """Run a session action; unknown sessions are dropped without a reply."""
    try:
        return action(*args)
    except PartyError as e:
        logger.debug("Ignored %s: %s", action.__name__, e)
        return None


# ================== Entry point ==================
def main():
    configure_logging()
    app = create_app()
    logger.info("Starting listening party server on %s:%s", config.APP_HOST, config.APP_PORT)
    app.extensions["socketio"].run(
        app, host=config.APP_HOST, port=config.APP_PORT, debug=False, allow_unsafe_werkzeug=True
    )


if __name__ == "__main__":
    main()
