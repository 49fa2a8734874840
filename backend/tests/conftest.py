import os
import sys
import pytest

# Ensure the backend root (containing the `salpakan` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from salpakan import create_app, protocol, socketio
from salpakan.client.engine import Presenter


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = []
    DEFAULT_ROOM = 'lobby'
    PARTY_SIZE = 2
    COUNTDOWN_DELAY_MS = 5000


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    """Connect any number of Socket.IO test clients on the game namespace."""
    clients = []

    def _connect(room=None):
        test_client = socketio.test_client(
            flask_app,
            namespace=protocol.NAMESPACE,
            query_string=f"room={room}" if room else None,
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected(protocol.NAMESPACE):
                test_client.disconnect(namespace=protocol.NAMESPACE)
        except Exception:
            pass


def received(test_client, name=None):
    """Drain a test client's queue, optionally keeping one event name."""
    packets = test_client.get_received(protocol.NAMESPACE)
    return [p for p in packets if name is None or p['name'] == name]


# ---- client-side fakes ----

class FakeHandle:
    def __init__(self, when, callback, seq):
        self.when = when
        self.callback = callback
        self.seq = seq
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """call_later/clock pair driven by hand; time is epoch milliseconds."""

    def __init__(self, start_ms=1_700_000_000_000.0):
        self.now = start_ms
        self._queue = []
        self._seq = 0

    def clock(self):
        return self.now

    def call_later(self, delay, callback):
        self._seq += 1
        handle = FakeHandle(self.now + round(delay * 1000.0, 6), callback, self._seq)
        self._queue.append(handle)
        return handle

    def pending(self):
        return [h for h in self._queue if not h.cancelled]

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = target
        self._queue = self.pending()


class FakeTransport:
    def __init__(self):
        self.handlers = {}
        self.emitted = []

    def on(self, event, handler):
        self.handlers[event] = handler

    def emit(self, event, payload):
        self.emitted.append((event, payload))

    def deliver(self, event, payload):
        self.handlers[event](payload)


class SocketTestTransport:
    """Adapts a Socket.IO test client to the engine's on/emit interface."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler

    def emit(self, event, payload):
        self.test_client.emit(event, payload, namespace=protocol.NAMESPACE)

    def pump(self):
        for packet in self.test_client.get_received(protocol.NAMESPACE):
            handler = self.handlers.get(packet['name'])
            if handler is not None:
                handler(*packet['args'])


class RecordingPresenter(Presenter):
    def __init__(self, loop=None):
        self.loop = loop
        self.events = []
        self.countdown_texts = []
        self.play_at = None

    def selection_changed(self, cell):
        self.events.append(('selected', cell))

    def piece_moved(self, source, target, piece):
        self.events.append(('moved', source, target, piece))

    def piece_removed(self, cell, piece):
        self.events.append(('removed', cell, piece))

    def phase_changed(self, phase):
        self.events.append(('phase', phase))
        if self.loop is not None:
            self.play_at = self.loop.now

    def countdown_changed(self, text):
        self.countdown_texts.append(text)

    def ready_changed(self, local, opponent):
        self.events.append(('ready', local, opponent))


@pytest.fixture()
def loop():
    return FakeLoop()


@pytest.fixture()
def transport():
    return FakeTransport()
