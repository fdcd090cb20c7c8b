from __future__ import annotations

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from ..game.constants import ADMIN
from ..game.models import now_ms
from ..game.service import LobbyManager
from ..realtime.events import broadcast_round_outcome

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)


def _manager() -> LobbyManager:
    return current_app.extensions["mindmeld"]


def _authorized() -> bool:
    expected_user = current_app.config.get("ADMIN_USERNAME", "")
    expected_pass = current_app.config.get("ADMIN_PASSWORD", "")
    auth = request.authorization
    if not auth or not auth.username or auth.password is None:
        return False
    user_ok = hmac.compare_digest(auth.username.encode(), expected_user.encode())
    pass_ok = hmac.compare_digest(auth.password.encode(), expected_pass.encode())
    return user_ok and pass_ok


@bp.before_request
def require_admin_auth():
    if _authorized():
        return None
    if request.authorization:
        logger.warning(f"Rejected admin credentials for {request.path}")
        message = "Invalid credentials."
    else:
        message = "Authentication required."
    resp = jsonify({"message": message})
    resp.status_code = 401
    resp.headers["WWW-Authenticate"] = 'Basic realm="Admin Area"'
    return resp


@bp.get("/stats")
def admin_stats():
    return jsonify({"stats": _manager().get_stats(), "timestamp": now_ms()})


@bp.get("/lobbies")
def admin_lobbies():
    lobbies = _manager().list_lobbies_for_admin()
    return jsonify({"count": len(lobbies), "lobbies": lobbies, "timestamp": now_ms()})


@bp.get("/lobbies/<code>")
def admin_lobby(code: str):
    include_history = request.args.get("includeHistory", "true").lower() != "false"
    lobby = _manager().serialize_lobby_for_admin(code, include_history=include_history)
    if lobby is None:
        return jsonify({"message": "Lobby not found."}), 404
    return jsonify({"lobby": lobby, "timestamp": now_ms()})


@bp.get("/config")
def admin_config():
    return jsonify({**_manager().settings.to_dict(), "timestamp": now_ms()})


@bp.post("/lobbies/<code>/rounds/current/force-failure")
def admin_force_failure(code: str):
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        reason = ADMIN

    manager = _manager()
    outcome = manager.force_round_failure(code, reason.strip())
    if outcome is None:
        return jsonify({"message": "No active round to fail for that lobby."}), 404

    logger.info(f"Admin forced round {outcome.round_summary.number} failure in lobby {code}")
    socketio = current_app.extensions.get("socketio")
    if socketio is not None:
        broadcast_round_outcome(socketio, manager, outcome)

    return jsonify(
        {
            "message": "Round failure triggered.",
            "roundSummary": outcome.round_summary.to_dict(),
            "gameEnded": outcome.game_ended,
            "nextRoundNumber": outcome.next_round.number if outcome.next_round else None,
            "timestamp": now_ms(),
        }
    )
