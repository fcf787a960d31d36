"""Realtime connection: Socket.IO wiring, call-start handshake, drops."""

import pytest
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from courtney_ai.errors import TransportError
from courtney_ai.transport import realtime
from courtney_ai.transport.realtime import REALTIME_PATH, RealtimeConnection

VARS = {"userName": "Ana", "userEmail": "ana@x.com", "userIssue": "billing"}


class FakeAsyncClient:
    """Mimics the parts of socketio.AsyncClient the connection uses."""

    def __init__(self, script, connect_error=None):
        self.script = script
        self.connect_error = connect_error
        self.handlers = {}
        self.connected = False
        self.connect_kwargs = None
        self.emitted = []
        self.disconnect_calls = 0

    def on(self, event, handler=None):
        def register(fn):
            self.handlers[event] = fn
            return fn
        return register(handler) if handler else register

    def event(self, fn):
        self.handlers[fn.__name__] = fn
        return fn

    async def connect(self, url, auth=None, transports=None, socketio_path=None):
        self.connect_kwargs = {"url": url, "auth": auth, "transports": transports, "socketio_path": socketio_path}
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        for step in self.script:
            await step(self)

    async def emit(self, event, data=None):
        self.emitted.append((event, data))

    async def disconnect(self):
        self.disconnect_calls += 1
        if self.connected:
            self.connected = False
            await self.handlers["disconnect"]("client disconnect")

    async def server_event(self, name, *args):
        await self.handlers["*"](name, *args)

    async def drop(self, reason):
        self.connected = False
        await self.handlers["disconnect"](reason)


def call_start(client):
    return client.server_event("call-start")


def drop_before_start(client):
    return client.drop("transport close")


class Sockets:
    def __init__(self):
        self.script = [call_start]
        self.connect_error = None
        self.clients = []

    def __call__(self, *args, **kwargs):
        client = FakeAsyncClient(list(self.script), self.connect_error)
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


@pytest.fixture
def sockets(monkeypatch):
    factory = Sockets()
    monkeypatch.setattr(realtime.socketio, "AsyncClient", factory)
    return factory


@pytest.fixture
def events():
    return []


@pytest.fixture
def conn(events):
    connection = RealtimeConnection("https://rt.test", "pk-1", start_timeout=0.05)
    connection.add_event_handler(lambda name, data: events.append((name, data)))
    return connection


class TestConnect:

    @pytest.mark.asyncio
    async def test_resolves_on_call_start_with_auth(self, sockets, conn, events):
        await conn.connect("asst-1", VARS)
        assert conn.connected is True
        assert sockets.last.connect_kwargs == {
            "url": "https://rt.test",
            "auth": {"publicKey": "pk-1", "assistantId": "asst-1", "variableValues": VARS},
            "transports": ["websocket"],
            "socketio_path": REALTIME_PATH,
        }
        assert events == [("call-start", None)]

    @pytest.mark.asyncio
    async def test_connect_when_connected_is_noop(self, sockets, conn):
        await conn.connect("asst-1", VARS)
        await conn.connect("asst-1", VARS)
        assert len(sockets.clients) == 1

    @pytest.mark.asyncio
    async def test_socketio_connection_error_maps_to_transport_error(self, sockets, conn):
        sockets.connect_error = SocketIOConnectionError("refused")
        with pytest.raises(TransportError) as exc:
            await conn.connect("asst-1", VARS)
        assert "refused" in str(exc.value)
        assert conn.connected is False

    @pytest.mark.asyncio
    async def test_call_start_timeout_disconnects(self, sockets, conn, events):
        sockets.script = []
        with pytest.raises(TransportError) as exc:
            await conn.connect("asst-1", VARS)
        assert "call-start" in str(exc.value)
        assert sockets.last.disconnect_calls == 1
        assert conn.connected is False
        assert events == []

    @pytest.mark.asyncio
    async def test_drop_before_call_start_fails_without_call_end(self, sockets, conn, events):
        sockets.script = [drop_before_start]
        with pytest.raises(TransportError) as exc:
            await conn.connect("asst-1", VARS)
        assert "before the call started" in str(exc.value)
        assert events == []
        assert conn.connected is False


class TestEvents:

    @pytest.mark.asyncio
    async def test_catch_all_passes_first_argument(self, sockets, conn, events):
        await conn.connect("asst-1", VARS)
        await sockets.last.server_event("volume-level", 0.4)
        await sockets.last.server_event("speech-start")
        await sockets.last.server_event("message", {"type": "transcript"}, "extra")
        assert events[1:] == [
            ("volume-level", 0.4),
            ("speech-start", None),
            ("message", {"type": "transcript"}),
        ]

    @pytest.mark.asyncio
    async def test_removed_handler_stops_receiving(self, sockets, conn):
        seen = []
        remove = conn.add_event_handler(lambda name, data: seen.append(name))
        await conn.connect("asst-1", VARS)
        remove()
        remove()
        await sockets.last.server_event("speech-start")
        assert seen == ["call-start"]

    @pytest.mark.asyncio
    async def test_drop_after_start_reports_call_end(self, sockets, conn, events):
        await conn.connect("asst-1", VARS)
        await sockets.last.drop("transport close")
        assert events[-1] == ("call-end", {"reason": "transport close"})

    @pytest.mark.asyncio
    async def test_user_disconnect_sends_no_call_end(self, sockets, conn, events):
        await conn.connect("asst-1", VARS)
        client = sockets.last
        await conn.disconnect()
        assert client.disconnect_calls == 1
        assert conn.connected is False
        assert events == [("call-start", None)]


class TestMute:

    @pytest.mark.asyncio
    async def test_set_muted_emits_control(self, sockets, conn):
        await conn.connect("asst-1", VARS)
        await conn.set_muted(True)
        assert sockets.last.emitted == [("control", {"type": "mute", "muted": True})]
        assert conn.muted is True

    @pytest.mark.asyncio
    async def test_set_muted_requires_connection(self, sockets, conn):
        with pytest.raises(TransportError):
            await conn.set_muted(True)
        await conn.connect("asst-1", VARS)
        await conn.set_muted(True)
        await conn.disconnect()
        assert conn.muted is False
        with pytest.raises(TransportError):
            await conn.set_muted(False)
