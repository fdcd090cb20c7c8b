import pytest

from mindmeld.game.models import GameSettings
from mindmeld.game.service import LobbyManager
from mindmeld.server import create_app


class ManualTimer:
    def __init__(self, delay_sec, callback):
        self.delay_sec = delay_sec
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.callback()


class ManualScheduler:
    """Records timers instead of running them; tests fire them by hand."""

    def __init__(self):
        self.timers = []

    def schedule(self, delay_sec, callback):
        timer = ManualTimer(delay_sec, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]


class FakeClock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class RecordingStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.saved = []
        self.deleted = []

    def save_lobby(self, snapshot):
        if self.fail:
            raise RuntimeError("store offline")
        self.saved.append(snapshot)

    def delete_lobby(self, code):
        if self.fail:
            raise RuntimeError("store offline")
        self.deleted.append(code)


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    CORS_ORIGINS = "*"
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = "threading"
    ADMIN_USERNAME = "admin"
    ADMIN_PASSWORD = "secret"
    REDIS_URL = ""
    POINTS_TO_WIN = 3
    MAX_ROUNDS = 10
    SUBMISSION_TIMEOUT_MS = 10000


@pytest.fixture()
def settings():
    return GameSettings(points_to_win=3, max_rounds=10, submission_timeout_ms=10000)


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def manager(settings, scheduler, clock):
    return LobbyManager(settings, scheduler=scheduler, words=["Apple"], clock=clock)


@pytest.fixture()
def full_lobby(manager):
    """Lobby with p1 (host) and p2 on team-1, p3 and p4 on team-2."""
    lobby = manager.create_lobby("p1", "Ada").lobby
    for pid, name in (("p2", "Ben"), ("p3", "Cleo"), ("p4", "Dev")):
        manager.join_lobby(pid, name, lobby.code)
    return lobby


@pytest.fixture()
def started_lobby(manager, full_lobby):
    manager.start_game(full_lobby.code)
    return full_lobby


@pytest.fixture()
def flask_app(manager):
    app, _ = create_app(TestConfig, manager=manager)
    yield app


@pytest.fixture()
def socketio(flask_app):
    return flask_app.extensions["socketio"]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def admin_headers():
    import base64

    token = base64.b64encode(b"admin:secret").decode()
    return {"Authorization": f"Basic {token}"}
