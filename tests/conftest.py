# tests/conftest.py
import pytest

from app import create_app
from config import Config
from models import db
from models.user import User, UserRole
from services.settings import ensure_default_settings, save_remote_config
from services.sync_engine import SyncEngine


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_DIR = None
    SYNC_AUTOSTART = False


class FakeRemote:
    """Conexión remota en memoria: registra cada sentencia ejecutada."""

    paramstyle = "qmark"
    dialect_name = "fake"

    def __init__(self, fail_on=None, close_error=None):
        self.executed = []
        self.closed = 0
        self._fail_on = fail_on or (lambda sql, params: False)
        self._close_error = close_error

    def execute(self, sql, params=()):
        params = list(params)
        if self._fail_on(sql, params):
            raise RuntimeError("remote rejected statement")
        self.executed.append((sql, params))
        return []

    def close(self):
        self.closed += 1
        if self._close_error:
            raise self._close_error


class FakeConnector:
    def __init__(self, remote=None, error=None):
        self.remote = remote or FakeRemote()
        self.error = error
        self.calls = []

    def __call__(self, cfg, timeout=None):
        self.calls.append((cfg, timeout))
        if self.error:
            raise self.error
        return self.remote


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        ensure_default_settings(db.session)
        yield app
        app.extensions["sync_scheduler"].stop()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def enable_sync(session):
    def _enable(driver="mysql", **overrides):
        data = {
            "enabled": True,
            "driver": driver,
            "host": "db.example.com",
            "database": "pos",
            "user": "pos",
            "password": "secret",
        }
        data.update(overrides)
        return save_remote_config(session, data)

    return _enable


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def engine(session, connector):
    return SyncEngine(session, connect=connector, batch_limit=500, connect_timeout=10)


def _make_user(username, role):
    user = User(username=username, full_name=username.title(), role=role, is_active=True)
    user.set_password("pw1234")
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    _make_user("admin", UserRole.ADMIN)
    resp = client.post("/auth/login", json={"username": "admin", "password": "pw1234"})
    assert resp.status_code == 200
    return client


@pytest.fixture
def cashier_client(client):
    _make_user("caja", UserRole.CASHIER)
    resp = client.post("/auth/login", json={"username": "caja", "password": "pw1234"})
    assert resp.status_code == 200
    return client
