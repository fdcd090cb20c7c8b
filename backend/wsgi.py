import os

try:
    from backend.mindmeld.server import create_app
    from backend.mindmeld.utils.log import configure_logging
except ImportError:  # pragma: no cover
    from mindmeld.server import create_app
    from mindmeld.utils.log import configure_logging

configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
app, socketio = create_app()
