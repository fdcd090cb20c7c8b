from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import LobbyError, LobbyNotFoundError
from ..game.service import LobbyManager
from ..utils.client import describe_client
from .events import (
    broadcast_lobby_state,
    broadcast_round_outcome,
    emit_player_disconnected,
    notify_round_start,
)

logger = logging.getLogger(__name__)


def _fail(action: str, exc: LobbyError) -> dict:
    logger.info(f"{action} rejected for {request.sid}: {exc.code}")
    error = {"error": exc.code, "message": exc.message}
    emit("lobby:error", error)
    return {"ok": False, **error}


def register_socketio_handlers(socketio: SocketIO, manager: LobbyManager) -> None:
    manager.set_round_timeout_listener(
        lambda outcome: broadcast_round_outcome(socketio, manager, outcome)
    )

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.info(f"Socket connected: {request.sid} {describe_client(request)}")

    @socketio.on("lobby:create")
    def lobby_create(data):
        payload = data or {}
        try:
            result = manager.create_lobby(request.sid, payload.get("playerName"))
        except LobbyError as exc:
            return _fail("lobby:create", exc)

        join_room(result.lobby.code)
        broadcast_lobby_state(socketio, manager, result.lobby)
        return {
            "ok": True,
            "lobbyCode": result.lobby.code,
            "playerId": result.player.id,
            "teamId": result.player.team_id,
        }

    @socketio.on("lobby:join")
    def lobby_join(data):
        payload = data or {}
        lobby_code = str(payload.get("lobbyCode", "")).strip().upper()
        try:
            result = manager.join_lobby(request.sid, payload.get("playerName"), lobby_code)
        except LobbyError as exc:
            return _fail("lobby:join", exc)

        join_room(result.lobby.code)
        broadcast_lobby_state(socketio, manager, result.lobby)
        return {"ok": True, "playerId": result.player.id, "teamId": result.player.team_id}

    @socketio.on("lobby:leave")
    def lobby_leave(data=None):
        try:
            result = manager.leave_lobby(request.sid)
        except LobbyError as exc:
            return _fail("lobby:leave", exc)

        if result is not None:
            leave_room(result.lobby_code)
            broadcast_lobby_state(socketio, manager, result.lobby)
        return {"ok": True}

    @socketio.on("game:start")
    def game_start(data=None):
        lobby = manager.get_lobby_for_player(request.sid)
        try:
            if lobby is None:
                raise LobbyNotFoundError("You must join a lobby before starting a game.")
            result = manager.start_game(lobby.code)
        except LobbyError as exc:
            return _fail("game:start", exc)

        broadcast_lobby_state(socketio, manager, result.lobby)
        notify_round_start(socketio, manager, result.lobby, result.round)
        return {"ok": True, "roundNumber": result.round.number}

    @socketio.on("round:submitWord")
    def round_submit_word(data):
        payload = data or {}
        try:
            result = manager.submit_word(request.sid, payload.get("word"))
        except LobbyError as exc:
            return _fail("round:submitWord", exc)

        if result.already_submitted:
            return {"ok": True, "status": "already-submitted"}

        if result.pending:
            broadcast_lobby_state(socketio, manager, result.lobby)
            return {"ok": True, "status": "pending"}

        broadcast_round_outcome(socketio, manager, result.outcome)
        if result.outcome.game_ended:
            return {"ok": True, "status": "game-ended"}
        return {"ok": True, "status": "accepted"}

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.info(f"Socket disconnected: {request.sid} ({reason or 'unknown'})")
        try:
            result = manager.handle_disconnect(request.sid)
        except LobbyError as exc:
            logger.warning(f"Disconnect cleanup skipped for {request.sid}: {exc.code}")
            return

        if result is not None and result.lobby is not None:
            broadcast_lobby_state(socketio, manager, result.lobby)
            emit_player_disconnected(socketio, result.lobby_code, request.sid)
