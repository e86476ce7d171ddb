import os
import random
import sys
import pytest

# Ensure the backend root (containing the `tapsprint` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tapsprint import create_app, db, socketio
from tapsprint.services.games.controller import clear_sessions
from tapsprint.services.games.modes import FingerMode, ModeKind
from tapsprint.services.games.scheduler import ManualScheduler
from tapsprint.services.games.session import GameSession
from tapsprint.socketio_events import reset_socket_state


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STATE_BROADCAST_INTERVAL_MS = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        clear_sessions()
        reset_socket_state()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def make_session(scheduler):
    """Factory for sessions on the shared manual clock with a seeded rng."""
    def _make(finger_mode=FingerMode.ONE, mode_kind=ModeKind.TIME_ATTACK, **kwargs):
        kwargs.setdefault('rng', random.Random(1234))
        return GameSession(finger_mode, mode_kind, scheduler, **kwargs)
    return _make
