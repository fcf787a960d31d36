"""
Voice transport: wraps the realtime connection and normalizes its events.

Subscribers register by event name (see VoiceEvent) and receive typed
payloads. Transcript fragments are filtered here: only final, non-system
transcripts are re-emitted, as `transcript` events.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from courtney_ai.errors import ProtocolError, TransportError
from courtney_ai.models.events import (
    ServerMessage,
    Transcript,
    TranscriptMessage,
    TranscriptType,
    VoiceEvent,
    VoiceEventPayload,
    event_name,
)
from courtney_ai.models.form import UserContext
from courtney_ai.models.session import Role
from courtney_ai.transport.events import parse_event
from courtney_ai.transport.realtime import RealtimeConnection

logger = logging.getLogger(__name__)

VoiceCallback = Callable[[VoiceEventPayload], Union[None, Awaitable[None]]]
ConnectionFactory = Callable[[], RealtimeConnection]


class VoiceTransport:
    def __init__(self, connection_factory: ConnectionFactory, assistant_id: str):
        self._connection_factory = connection_factory
        self._assistant_id = assistant_id
        self._connection: Optional[RealtimeConnection] = None
        self._remove_handler: Optional[Callable[[], None]] = None
        self._callbacks: dict[str, list[VoiceCallback]] = {}

    @property
    def initialized(self) -> bool:
        return self._connection is not None

    def initialize(self) -> None:
        if self._connection is not None:
            logger.debug("Voice transport already initialized")
            return
        self._connection = self._connection_factory()
        self._remove_handler = self._connection.add_event_handler(self._handle_raw)
        logger.info("Voice transport initialized")

    async def start_voice_call(self, user_context: UserContext) -> None:
        if self._connection is None:
            raise TransportError("Voice transport not initialized")
        logger.info("Starting voice call for %s", user_context.email)
        try:
            await self._connection.connect(self._assistant_id, user_context.to_variable_values())
        except TransportError:
            logger.exception("Voice call failed to start")
            raise
        logger.info("Voice call started")

    async def stop(self) -> None:
        if self._connection is None:
            logger.warning("Voice transport not initialized; nothing to stop")
            return
        try:
            await self._connection.disconnect()
        except Exception as e:
            raise TransportError(f"Failed to stop voice call: {e}") from e
        logger.info("Voice call stopped")

    async def set_muted(self, muted: bool) -> None:
        if self._connection is None:
            logger.warning("Voice transport not initialized; mute ignored")
            return
        logger.info("Setting muted=%s", muted)
        await self._connection.set_muted(muted)

    def is_muted(self) -> bool:
        if self._connection is None:
            return False
        return self._connection.muted

    def on(self, event: str, callback: VoiceCallback) -> None:
        if event not in VoiceEvent.ALL:
            raise ValueError(f"Unknown voice event: {event!r}")
        self._callbacks.setdefault(event, []).append(callback)

    def off(self, event: str, callback: VoiceCallback) -> None:
        callbacks = self._callbacks.get(event)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    async def _emit(self, event: str, payload: VoiceEventPayload) -> None:
        for callback in list(self._callbacks.get(event, [])):
            result = callback(payload)
            if inspect.isawaitable(result):
                await result

    async def _handle_raw(self, name: str, data: object) -> None:
        try:
            payload = parse_event(name, data)
        except ProtocolError as e:
            logger.warning("Dropping malformed %s event: %s", name, e)
            return
        if payload is None:
            logger.debug("Ignoring realtime event %s", name)
            return

        if isinstance(payload, TranscriptMessage):
            transcript = self._normalize(payload)
            if transcript is not None:
                await self._emit(VoiceEvent.TRANSCRIPT, transcript)
            return

        if isinstance(payload, ServerMessage):
            logger.debug("Realtime %s message: %s", payload.type, payload.body)
        elif name == VoiceEvent.ERROR:
            logger.error("Realtime error: %s", getattr(payload, "message", ""))
        elif name != VoiceEvent.VOLUME_LEVEL:
            logger.debug("Realtime event %s", name)
        await self._emit(event_name(payload), payload)

    @staticmethod
    def _normalize(message: TranscriptMessage) -> Optional[Transcript]:
        if message.transcript_type != TranscriptType.FINAL or not message.transcript:
            return None
        if message.role == Role.SYSTEM.value:
            logger.debug("Skipping system transcript")
            return None
        role = Role.USER if message.role == Role.USER.value else Role.ASSISTANT
        logger.debug("Transcript %s: %s", role.value, message.transcript)
        return Transcript(role=role, text=message.transcript)

    async def destroy(self) -> None:
        logger.info("Destroying voice transport")
        if self._connection is not None:
            try:
                await self._connection.disconnect()
            except Exception:
                logger.exception("Voice stop failed during destroy")
        if self._remove_handler is not None:
            self._remove_handler()
            self._remove_handler = None
        self._callbacks.clear()
        self._connection = None


class CallTimer:
    """Counts elapsed call seconds while running; the count survives stop()."""

    def __init__(self, on_tick: Optional[Callable[[int], None]] = None, interval: float = 1.0):
        self._on_tick = on_tick
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self.elapsed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.elapsed += 1
            if self._on_tick is not None:
                self._on_tick(self.elapsed)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def reset(self) -> None:
        self.elapsed = 0
