import os
import sys
import pytest

# Ensure the backend root (containing the `dojo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from dojo import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    SOCKETIO_NAMESPACE = '/ws'
    MAX_PARTICIPANTS = 4
    ROOM_CODE_LENGTH = 6
    # Countdown fires inline and immediately
    START_COUNTDOWN_SEC = 0
    DEFAULT_DURATION_MIN = 30
    DEFAULT_DIFFICULTY = 'Medium'
    RECORD_BATTLES = True


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import dojo.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio(flask_app):
    """Factory for extra Socket.IO clients; all are disconnected on teardown."""
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        test_client.get_received('/ws')  # flush 'connected'
        clients.append(test_client)
        return test_client

    yield _make
    for c in clients:
        try:
            if c.is_connected('/ws'):
                c.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio):
    return make_sio()


class FakeTransport:
    """Records everything the dispatcher sends."""

    def __init__(self):
        self.emitted = []
        self.channels = {}

    def emit(self, event, data, to=None, skip_sid=None):
        self.emitted.append({'event': event, 'data': data, 'to': to, 'skip_sid': skip_sid})

    def join(self, sid, channel):
        self.channels.setdefault(channel, set()).add(sid)

    def leave(self, sid, channel):
        self.channels.get(channel, set()).discard(sid)

    def events(self, name):
        return [e for e in self.emitted if e['event'] == name]

    def names(self):
        return [e['event'] for e in self.emitted]

    def clear(self):
        self.emitted.clear()


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def dispatcher(transport):
    """A dispatcher on a fresh store with no Flask app behind it."""
    import logging
    from dojo.services.rooms.dispatcher import RoomDispatcher
    from dojo.services.rooms.presence import PresenceRegistry
    from dojo.services.rooms.scheduler import CountdownScheduler
    from dojo.services.rooms.store import RoomStore

    logger = logging.getLogger('dojo.tests')
    scheduler = CountdownScheduler(socketio, logger, delay_sec=0, run_inline=True)
    return RoomDispatcher(RoomStore(), PresenceRegistry(), scheduler, transport, logger)
