"""Outbound Socket.IO broadcasts built from lobby manager results."""

from __future__ import annotations

from flask_socketio import SocketIO

from ..game.models import GameSummary, Lobby, Round, RoundRecord
from ..game.service import LobbyManager, RoundOutcome


def broadcast_lobby_state(socketio: SocketIO, manager: LobbyManager, lobby: Lobby | None) -> None:
    if lobby is None:
        return
    # Every player gets their own filtered view.
    for player_id in list(lobby.players):
        payload = manager.serialize_lobby_for_player(lobby.code, player_id)
        if payload is not None:
            socketio.emit("lobby:state", payload, to=player_id)


def notify_round_start(socketio: SocketIO, manager: LobbyManager, lobby: Lobby, rnd: Round | None) -> None:
    if rnd is None:
        return

    timeout_ms = lobby.settings.submission_timeout_ms
    timing = {
        "startedAtMs": rnd.started_at_ms,
        "submissionTimeoutMs": timeout_ms,
        "deadlineMs": rnd.started_at_ms + timeout_ms if timeout_ms else None,
        "timeRemainingMs": manager.get_round_time_remaining(lobby),
    }

    for player in manager.get_team_players(lobby.code, rnd.active_team_id):
        socketio.emit(
            "round:prompt",
            {"number": rnd.number, "activeTeamId": rnd.active_team_id, "prompt": rnd.prompt.to_dict(), **timing},
            to=player.id,
        )

    socketio.emit(
        "round:started",
        {
            "number": rnd.number,
            "activeTeamId": rnd.active_team_id,
            "promptType": rnd.prompt.type,
            "promptValue": None if rnd.prompt.is_hidden else rnd.prompt.to_dict()["value"],
            **timing,
        },
        to=lobby.code,
    )


def emit_round_completed(socketio: SocketIO, code: str, summary: RoundRecord | None) -> None:
    if summary is None:
        return
    socketio.emit("round:completed", summary.to_dict(), to=code)


def emit_game_ended(socketio: SocketIO, code: str, summary: GameSummary | None) -> None:
    socketio.emit("game:ended", summary.to_dict() if summary else None, to=code)


def emit_player_disconnected(socketio: SocketIO, code: str, player_id: str) -> None:
    socketio.emit("player:disconnected", {"playerId": player_id}, to=code)


def broadcast_round_outcome(socketio: SocketIO, manager: LobbyManager, outcome: RoundOutcome) -> None:
    lobby = outcome.lobby
    emit_round_completed(socketio, lobby.code, outcome.round_summary)
    broadcast_lobby_state(socketio, manager, lobby)
    if outcome.game_ended:
        emit_game_ended(socketio, lobby.code, outcome.game_summary)
    else:
        notify_round_start(socketio, manager, lobby, outcome.next_round)
