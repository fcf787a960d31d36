"""Shared fakes: realtime connection, clock, and mocked chat backend."""

import inspect
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx
import pytest

from courtney_ai.chat import TextTransport
from courtney_ai.errors import TransportError
from courtney_ai.transport.http import HttpClient
from courtney_ai.voice import VoiceTransport
from courtney_ai.widget import SessionController

CHAT_URL = "http://widget.test/api/chat"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


class FakeConnection:
    """In-memory stand-in for RealtimeConnection."""

    def __init__(
        self,
        fail_connect: Optional[Exception] = None,
        fail_disconnect: bool = False,
        end_during_connect: bool = False,
    ):
        self.fail_connect = fail_connect
        self.end_during_connect = end_during_connect
        self.fail_disconnect = fail_disconnect
        self.connected = False
        self.muted = False
        self.connect_calls: list[tuple[str, dict[str, str]]] = []
        self.disconnect_calls = 0
        self.handlers: list[Callable] = []

    def add_event_handler(self, handler):
        self.handlers.append(handler)
        def remove():
            if handler in self.handlers:
                self.handlers.remove(handler)
        return remove

    async def fire(self, event: str, data: Any = None) -> None:
        for handler in list(self.handlers):
            result = handler(event, data)
            if inspect.isawaitable(result):
                await result

    async def connect(self, assistant_id: str, variable_values: dict[str, str]) -> None:
        self.connect_calls.append((assistant_id, variable_values))
        if self.fail_connect is not None:
            if self.end_during_connect:
                await self.fire("call-end", {"reason": "transport close"})
            raise self.fail_connect
        self.connected = True
        await self.fire("call-start", None)

    async def set_muted(self, muted: bool) -> None:
        if not self.connected:
            raise TransportError("Realtime connection not open")
        self.muted = muted

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise RuntimeError("socket already gone")
        self.connected = False
        self.muted = False


class ChatBackend:
    """httpx mock handler answering chat requests from a script of responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def chat_reply(chat_id: str, *texts: str) -> httpx.Response:
    return httpx.Response(200, json={"id": chat_id, "output": [{"role": "assistant", "content": t} for t in texts]})


def make_text_transport(handler) -> TextTransport:
    return TextTransport(HttpClient(transport=httpx.MockTransport(handler)), CHAT_URL)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def voice(connection: FakeConnection) -> VoiceTransport:
    return VoiceTransport(lambda: connection, "asst-1")


@pytest.fixture
def backend() -> ChatBackend:
    return ChatBackend(chat_reply("c1", "Hello Ana"))


@pytest.fixture
def controller(backend: ChatBackend, voice: VoiceTransport) -> SessionController:
    ctl = SessionController(make_text_transport(backend), voice, tick_interval=0.01)
    ctl.open()
    return ctl
