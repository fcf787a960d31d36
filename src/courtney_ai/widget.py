"""
Session controller: the widget state machine.

Owns WidgetState and the session-active flag, routes user actions to the
text or voice transport, and writes everything the user should see into the
transcript store. Both ways a session can end (user action, backend
`call-end`) go through end_session().

    closed --open--> form --start_chat--> chat
                          --start_call--> voice (reverts to form on failure)
    chat|voice --new_session--> form
"""

import asyncio
import logging
from typing import Optional

import httpx

from courtney_ai.chat import TextTransport
from courtney_ai.config import WidgetConfig
from courtney_ai.errors import CourtneyError, ProtocolError, SessionError, TransportError
from courtney_ai.feedback import FeedbackCapture, HttpFeedbackCollector
from courtney_ai.models.events import Transcript, VoiceErrorEvent, VoiceEvent, VoiceEventPayload
from courtney_ai.models.form import UserContext
from courtney_ai.models.session import Role, VoiceSessionControls, WidgetState
from courtney_ai.transcript import TranscriptStore
from courtney_ai.transport.http import HttpClient
from courtney_ai.transport.realtime import RealtimeConnection
from courtney_ai.voice import CallTimer, VoiceTransport

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."
CALL_START_FAILED_MESSAGE = (
    "Failed to start call. Please check your VAPI credentials and microphone permissions."
)


class SessionController:
    def __init__(
        self,
        text: TextTransport,
        voice: VoiceTransport,
        transcript: Optional[TranscriptStore] = None,
        feedback: Optional[FeedbackCapture] = None,
        tick_interval: float = 1.0,
    ):
        self.text = text
        self.voice = voice
        self.transcript = transcript or TranscriptStore()
        self.feedback = feedback or FeedbackCapture()
        self.controls = VoiceSessionControls()
        self.user_context: Optional[UserContext] = None

        self._state = WidgetState.CLOSED
        self._session_active = False
        self._generation = 0
        self._starting = False
        self._send_lock = asyncio.Lock()
        self._timer = CallTimer(on_tick=self._on_tick, interval=tick_interval)

        self.voice.initialize()
        self.voice.on(VoiceEvent.TRANSCRIPT, self._on_transcript)
        self.voice.on(VoiceEvent.CALL_END, self._on_call_end)
        self.voice.on(VoiceEvent.ERROR, self._on_error)

    @classmethod
    def from_config(
        cls,
        config: WidgetConfig,
        chat_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SessionController":
        """Build a controller with real transports.

        `chat_transport` routes text-mode HTTP traffic, e.g. through an
        in-process ProxyTransport.
        """
        http = HttpClient(timeout=config.request_timeout, transport=chat_transport)
        text = TextTransport(http, config.chat_url)
        voice = VoiceTransport(
            lambda: RealtimeConnection(config.realtime_url, config.public_key),
            config.assistant_id,
        )
        feedback = None
        if config.feedback_url:
            feedback = FeedbackCapture(HttpFeedbackCollector(HttpClient(timeout=config.request_timeout), config.feedback_url))
        return cls(text, voice, feedback=feedback)

    @property
    def state(self) -> WidgetState:
        return self._state

    @property
    def session_active(self) -> bool:
        return self._session_active

    def _require_state(self, expected: WidgetState, operation: str) -> None:
        if self._state != expected:
            raise SessionError(
                f"Cannot {operation} while widget is {self._state.value}",
                code="invalid_transition",
                details={"state": self._state.value, "expected": expected.value},
            )

    def open(self) -> None:
        if self._state == WidgetState.CLOSED:
            self._state = WidgetState.FORM

    async def close(self) -> None:
        if self._session_active:
            await self.end_session()
        self._state = WidgetState.CLOSED

    def _begin(self, state: WidgetState, user_context: UserContext) -> None:
        self._generation += 1
        self.user_context = user_context
        self._state = state
        self._session_active = True
        self.transcript.clear()

    async def start_chat(self, user_context: UserContext) -> None:
        self._require_state(WidgetState.FORM, "start chat")
        user_context.validate_fields()
        logger.info("Starting chat session")
        self._begin(WidgetState.CHAT, user_context)
        self.text.reset()

    async def start_call(self, user_context: UserContext) -> None:
        self._require_state(WidgetState.FORM, "start call")
        user_context.validate_fields()
        logger.info("Starting voice session")
        self._begin(WidgetState.VOICE, user_context)
        self.controls.reset()
        self._timer.reset()
        self._starting = True
        try:
            await self.voice.start_voice_call(user_context)
        except Exception as e:
            logger.error("Failed to start call: %s", e)
            self._state = WidgetState.FORM
            self._session_active = False
            if isinstance(e, TransportError):
                raise TransportError(CALL_START_FAILED_MESSAGE, status=e.status, body=e.body) from e
            raise TransportError(CALL_START_FAILED_MESSAGE) from e
        finally:
            self._starting = False
        self.controls.muted = self.voice.is_muted()
        self._timer.start()

    async def send_message(self, content: str) -> None:
        content = content.strip()
        if not content or not self._session_active:
            return
        self.transcript.append(Role.USER, content)

        if self._state == WidgetState.VOICE:
            logger.debug("Voice mode: outbound text ignored, input arrives via transcripts")
            return
        if self._state != WidgetState.CHAT:
            return

        generation = self._generation
        async with self._send_lock:
            if generation != self._generation:
                return
            context = self.user_context if self.text.current_continuation() is None else None
            try:
                turns = await self.text.send_message(content, context)
            except (TransportError, ProtocolError) as e:
                logger.error("Failed to send message: %s", e)
                turns = None
            if generation != self._generation:
                logger.debug("Dropping chat reply from a finished session")
                return
        if turns is None:
            self.transcript.append(Role.ASSISTANT, APOLOGY_MESSAGE)
            return
        for turn in turns:
            self.transcript.append(Role.ASSISTANT, turn.content or "")

    async def _teardown(self, state: WidgetState) -> None:
        if state == WidgetState.VOICE:
            await self._timer.stop()
            try:
                await self.voice.stop()
            except CourtneyError as e:
                logger.error("Voice stop failed: %s", e)
        elif state == WidgetState.CHAT:
            self.text.reset()

    async def end_session(self) -> None:
        if not self._session_active:
            logger.debug("end_session: no active session")
            return
        logger.info("Ending %s session", self._state.value)
        self._session_active = False
        self._generation += 1
        await self._teardown(self._state)
        self.feedback.open(mode=self._state.value)

    async def new_session(self) -> None:
        logger.info("Starting new session")
        self._session_active = False
        self._generation += 1
        await self._teardown(self._state)
        self.transcript.clear()
        self.user_context = None
        self.controls.reset()
        self._timer.reset()
        self._state = WidgetState.FORM

    async def toggle_mute(self) -> bool:
        self._require_state(WidgetState.VOICE, "toggle mute")
        if not self._session_active:
            logger.debug("Call is over; mute unchanged")
            return self.controls.muted
        muted = not self.controls.muted
        try:
            await self.voice.set_muted(muted)
        except TransportError as e:
            logger.error("Mute toggle failed: %s", e)
            return self.controls.muted
        self.controls.muted = muted
        logger.info("Mute toggled: %s", muted)
        return muted

    async def shutdown(self) -> None:
        """Release both transports; the controller is unusable afterwards."""
        await self._timer.stop()
        await self.voice.destroy()
        await self.text.close()
        await self.feedback.aclose()

    def _on_tick(self, elapsed: int) -> None:
        self.controls.elapsed_seconds = elapsed

    def _on_transcript(self, payload: VoiceEventPayload) -> None:
        if self._state != WidgetState.VOICE or not isinstance(payload, Transcript):
            return
        self.transcript.append(payload.role, payload.text)

    async def _on_call_end(self, _payload: VoiceEventPayload) -> None:
        if self._starting:
            logger.debug("call-end while the call is still starting; start_call handles it")
            return
        if self._state == WidgetState.VOICE:
            logger.info("Call ended by backend")
            await self.end_session()

    def _on_error(self, payload: VoiceEventPayload) -> None:
        message = payload.message if isinstance(payload, VoiceErrorEvent) else "An error occurred"
        self.transcript.append(Role.SYSTEM, f"Error: {message}")
