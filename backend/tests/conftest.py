import os
import sys
import pytest

# Ensure the backend root (containing the `decider` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from decider import create_app, registry, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    CREATION_PASSWORDS = ['letmein-please']
    MAX_SESSIONS_PER_IP = 0
    CREATE_RATE_LIMIT = 5
    CREATE_RATE_WINDOW_SEC = 60
    SESSION_IDLE_TIMEOUT_SEC = 300
    SWEEP_INTERVAL_SEC = 30
    ITEM_CAP = 100
    PHASE_GATING = True
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'WARNING'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    registry.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def create_session(client):
    """POST a valid creation request; returns (session_id, creator_participant_id)."""
    def _create(creator='Carol', name='Dinner', **extra):
        body = {'password': 'letmein-please', 'creatorName': creator, 'sessionName': name}
        body.update(extra)
        res = client.post('/api/sessions', json=body)
        assert res.status_code == 201, res.get_json()
        data = res.get_json()
        return data['sessionId'], data['participantId']
    return _create


@pytest.fixture()
def connect(flask_app):
    """Open Socket.IO test clients on /ws bound to a session; all are closed on teardown."""
    opened = []

    def _connect(session_id):
        sio = socketio.test_client(flask_app, namespace='/ws', query_string=f'session_id={session_id}')
        opened.append(sio)
        return sio

    yield _connect
    for sio in opened:
        if sio.is_connected('/ws'):
            sio.disconnect(namespace='/ws')
