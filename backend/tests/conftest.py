import os
import sys
import pytest

# Ensure the backend root (containing the `stream_volume` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from stream_volume import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    LOG_LEVEL = 'WARNING'
    VOLUME_MODE = 'stepped'
    VOLUME_COUNTER = 'messages'
    BASE_VOLUME = 0.5
    MAX_VOLUME = 1.0
    MIN_VOLUME = 0.1
    VOLUME_INCREMENT = 0.05
    EVENTS_PER_INCREMENT = 10
    LEADERBOARD_SIZE = 10
    LEADERBOARD_MAX = 100


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def stream_session(flask_app):
    return flask_app.extensions['stream_session']


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
