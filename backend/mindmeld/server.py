from __future__ import annotations

import logging
import os
import sys

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.errors import LobbyError, RegistryClosedError
from .game.models import GameSettings
from .game.scheduler import Scheduler
from .game.service import LobbyManager, LobbyStore
from .realtime.handlers import register_socketio_handlers
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .storage.redis_store import RedisLobbyStore

logger = logging.getLogger(__name__)


def _async_mode() -> str:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if env_async_mode:
        return env_async_mode
    # eventlet has known compatibility issues on Windows and Python >= 3.13
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _build_store(app: Flask) -> LobbyStore | None:
    redis_url = app.config.get("REDIS_URL", "")
    if not redis_url:
        return None
    return RedisLobbyStore.from_url(redis_url, ttl_sec=app.config.get("LOBBY_SNAPSHOT_TTL_SEC"))


def create_app(
    config_class=Config,
    *,
    manager: LobbyManager | None = None,
    scheduler: Scheduler | None = None,
    store: LobbyStore | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE") or _async_mode(),
    )

    if manager is None:
        settings = GameSettings(
            points_to_win=app.config["POINTS_TO_WIN"],
            max_rounds=app.config["MAX_ROUNDS"],
            submission_timeout_ms=max(0, app.config["SUBMISSION_TIMEOUT_MS"]),
        )
        manager = LobbyManager(
            settings,
            scheduler=scheduler,
            store=store if store is not None else _build_store(app),
            words=app.config.get("WORD_LIST"),
        )
    app.extensions["mindmeld"] = manager

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    @app.errorhandler(LobbyError)
    def handle_lobby_error(exc: LobbyError):
        status = 503 if isinstance(exc, RegistryClosedError) else 409
        return jsonify({"error": exc.code, "message": exc.message}), status

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({"message": "Route not found"}), 404

    register_socketio_handlers(socketio, manager)

    logger.info(
        f"Game settings: points_to_win={manager.settings.points_to_win} "
        f"max_rounds={manager.settings.max_rounds} "
        f"submission_timeout_ms={manager.settings.submission_timeout_ms}"
    )
    return app, socketio
