import asyncio

from socketio.exceptions import BadNamespaceError

from salpakan.client.transport import SocketIOTransport


class FakeAsyncClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.handlers = {}
        self.sent = []
        self.url = None
        self.namespaces = None
        self.disconnected = False

    async def connect(self, url, namespaces=None):
        self.url = url
        self.namespaces = namespaces

    def get_sid(self, namespace=None):
        return 'sid-1'

    def on(self, event, handler=None, namespace=None):
        self.handlers[(event, namespace)] = handler

    async def emit(self, event, data=None, namespace=None):
        if self.fail:
            raise BadNamespaceError(f"{namespace} is not a connected namespace.")
        self.sent.append((event, data, namespace))

    async def disconnect(self):
        self.disconnected = True


def run(fake, room=None, emits=()):
    async def scenario():
        transport = SocketIOTransport('http://localhost:3000', room=room, client=fake)
        transport.on('move', print)
        await transport.connect()
        for event, payload in emits:
            transport.emit(event, payload)
        await transport.disconnect()

    asyncio.run(scenario())


def test_connect_with_room_and_send():
    fake = FakeAsyncClient()
    run(fake, room='abcd', emits=[('ready', {'ready': True})])
    assert fake.url == 'http://localhost:3000?room=abcd'
    assert fake.namespaces == ['/ws']
    assert fake.handlers[('move', '/ws')] is print
    assert fake.sent == [('ready', {'ready': True}, '/ws')]
    assert fake.disconnected


def test_connect_without_room_uses_server_default():
    fake = FakeAsyncClient()
    run(fake)
    assert fake.url == 'http://localhost:3000'


def test_send_failure_is_dropped():
    fake = FakeAsyncClient(fail=True)
    run(fake, emits=[('move', {'fromRow': 5, 'fromCol': 4, 'toRow': 4, 'toCol': 4})])
    assert fake.sent == []
    assert fake.disconnected


def test_async_client_websocket_stack_installed():
    # socketio.AsyncClient opens its connection through aiohttp
    import aiohttp

    assert hasattr(aiohttp, 'ClientSession')
