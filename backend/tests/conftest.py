import os
import sys
import pytest

# Ensure the backend root (containing the `royale` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from royale import create_app, socketio


@pytest.fixture()
def static_dir(tmp_path):
    (tmp_path / 'index.html').write_text('<h1>2048 Royale</h1>', encoding='utf-8')
    (tmp_path / 'game.js').write_text('console.log("royale");', encoding='utf-8')
    return tmp_path


@pytest.fixture()
def flask_app(static_dir):
    class TestConfig:
        TESTING = True
        SECRET_KEY = 'test-secret'
        STATIC_DIR = str(static_dir)
        CORS_ORIGINS = '*'
        SEND_LOCK_TIMEOUT_SEC = 1.0

    yield create_app(TestConfig)


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['room_registry']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on the relay namespace."""
    opened = []

    def _connect():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        assert test_client.is_connected('/ws')
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass
