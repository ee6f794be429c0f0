import os
import sys
import pytest

# Ensure the backend root (containing the `taixiu` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from taixiu import create_app, game_server, socketio
from taixiu.services.game.rounds import now_ms
from helpers import FakeClock, RecordingBroadcaster, ScriptedRandomizer


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    BETTING_DURATION_MS = 18000
    ROLLING_DURATION_MS = 2500
    RESULT_DURATION_MS = 6000
    STARTING_BALANCE = 1000
    MAX_BET = 5000
    CORS_ORIGINS = []
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def clock():
    return FakeClock(1_700_000_000_000)


@pytest.fixture()
def dice():
    return ScriptedRandomizer()


@pytest.fixture()
def flask_app(clock, dice):
    application = create_app(TestConfig)
    # Drive rounds by hand: fixed time and scripted dice
    game_server.clock = clock
    game_server.engine.randomizer = dice
    yield application
    game_server.clock = now_ms


@pytest.fixture()
def server(flask_app):
    return game_server


@pytest.fixture()
def recorder(server):
    rec = RecordingBroadcaster()
    server.broadcaster = rec
    return rec


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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
