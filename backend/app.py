import logging
import os
import signal
import sys

from pathlib import Path

from dotenv import load_dotenv


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if (
        not sys.platform.startswith("win")
        and sys.version_info < (3, 13)
        and env_async_mode in ("", "eventlet")
    ):
        import eventlet

        eventlet.monkey_patch()

    try:
        from backend.mindmeld.server import create_app
        from backend.mindmeld.utils.log import configure_logging
    except ImportError:  # pragma: no cover
        from mindmeld.server import create_app
        from mindmeld.utils.log import configure_logging

    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger = logging.getLogger("mindmeld")

    app, socketio = create_app()
    manager = app.extensions["mindmeld"]
    grace_sec = app.config.get("SHUTDOWN_GRACE_SEC", 5)

    def shutdown(signum, frame):
        logger.info(f"Received shutdown signal {signal.Signals(signum).name}")
        clean = manager.shutdown(grace_sec)
        if not clean:
            logger.warning("Forcing shutdown")
        sys.exit(0 if clean else 1)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "3000"))
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"

    allow_unsafe_werkzeug = os.environ.get("ALLOW_UNSAFE_WERKZEUG", "1") == "1"

    logger.info(f"Server listening on {host}:{port}")
    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=allow_unsafe_werkzeug,
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
