"""
Realtime voice connection over Socket.IO.

Connection: {realtime_url} with auth={publicKey, assistantId, variableValues}.
connect() resolves once the backend emits `call-start`.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from courtney_ai.errors import TransportError
from courtney_ai.models.events import VoiceEvent

logger = logging.getLogger(__name__)

REALTIME_PATH = "/socket.io/"

RawEventHandler = Callable[[str, Any], Union[None, Awaitable[None]]]


class RealtimeConnection:
    def __init__(
        self,
        base_url: str,
        public_key: str,
        transports: Optional[list[str]] = None,
        start_timeout: float = 15.0,
    ):
        self._base_url = base_url
        self._public_key = public_key
        self._transports = transports or ["websocket"]
        self._start_timeout = start_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._muted = False
        self._closing = False
        self._call_started = False
        self._event_handlers: list[RawEventHandler] = []

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    @property
    def muted(self) -> bool:
        return self._muted

    def add_event_handler(self, handler: RawEventHandler) -> Callable[[], None]:
        """Add a raw event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)
        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def _dispatch(self, event: str, data: Any) -> None:
        for handler in list(self._event_handlers):
            result = handler(event, data)
            if inspect.isawaitable(result):
                await result

    async def connect(self, assistant_id: str, variable_values: dict[str, str]) -> None:
        """Open the realtime call and wait for `call-start`.

        A drop before `call-start` fails the connect at once; only a drop
        after the call started is reported as `call-end`.
        """
        if self.connected:
            return

        self._sio = socketio.AsyncClient()
        self._closing = False
        self._call_started = False
        self._muted = False
        settled = asyncio.Event()

        @self._sio.on("*")
        async def on_any(event: str, *args: Any) -> None:
            data = args[0] if args else None
            if event == VoiceEvent.CALL_START:
                self._call_started = True
                settled.set()
            await self._dispatch(event, data)

        @self._sio.event
        async def disconnect(reason: Any = None) -> None:
            if self._closing:
                return
            if not self._call_started:
                logger.warning("Realtime connection dropped before call-start: %s", reason)
                settled.set()
                return
            logger.warning("Realtime connection dropped: %s", reason)
            await self._dispatch(VoiceEvent.CALL_END, {"reason": str(reason) if reason else "disconnected"})

        try:
            await self._sio.connect(
                self._base_url,
                auth={
                    "publicKey": self._public_key,
                    "assistantId": assistant_id,
                    "variableValues": variable_values,
                },
                transports=self._transports,
                socketio_path=REALTIME_PATH,
            )
        except SocketIOConnectionError as e:
            self._sio = None
            raise TransportError(f"Realtime connect failed: {e}") from e

        try:
            await asyncio.wait_for(settled.wait(), timeout=self._start_timeout)
        except asyncio.TimeoutError:
            await self.disconnect()
            raise TransportError(f"Timed out waiting for 'call-start' after {self._start_timeout}s")
        if not self._call_started:
            await self.disconnect()
            raise TransportError("Realtime connection closed before the call started")

    async def set_muted(self, muted: bool) -> None:
        if not self.connected:
            raise TransportError("Realtime connection not open")
        await self._sio.emit("control", {"type": "mute", "muted": muted})  # type: ignore[union-attr]
        self._muted = muted

    async def disconnect(self) -> None:
        self._closing = True
        self._muted = False
        if self._sio:
            sio, self._sio = self._sio, None
            await sio.disconnect()
