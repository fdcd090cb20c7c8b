import os


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, ""))
    except ValueError:
        return default


def _origins_env(name: str) -> str | list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw or raw == "*":
        return "*"
    return [o.strip() for o in raw.split(",") if o.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = _origins_env("CORS_ORIGINS")

    # Admin basic auth
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "change-me")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Storage (empty keeps lobbies in memory only)
    REDIS_URL = os.environ.get("REDIS_URL", "")
    LOBBY_SNAPSHOT_TTL_SEC = _int_env("LOBBY_SNAPSHOT_TTL_SEC", 86400)

    # Game
    POINTS_TO_WIN = _int_env("POINTS_TO_WIN", 5)
    MAX_ROUNDS = _int_env("MAX_ROUNDS", 20)
    SUBMISSION_TIMEOUT_MS = _int_env("SUBMISSION_TIMEOUT_MS", 10000)

    # Process
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    SHUTDOWN_GRACE_SEC = _int_env("SHUTDOWN_GRACE_SEC", 5)
