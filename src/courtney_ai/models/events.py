"""
Realtime voice events: names and typed payloads.

Raw events arrive from the realtime stream as (name, data) pairs. They are
parsed at the boundary (see transport/events.py) into one of the payload
models below; `kind` is the tag of the union.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from courtney_ai.models.session import Role


class VoiceEvent:
    """Event names re-emitted by the voice transport to its subscribers."""
    CALL_START = "call-start"
    CALL_END = "call-end"
    SPEECH_START = "speech-start"
    SPEECH_END = "speech-end"
    VOLUME_LEVEL = "volume-level"
    MESSAGE = "message"
    TRANSCRIPT = "transcript"
    ERROR = "error"

    ALL = frozenset({
        CALL_START, CALL_END, SPEECH_START, SPEECH_END,
        VOLUME_LEVEL, MESSAGE, TRANSCRIPT, ERROR,
    })


class TranscriptType:
    PARTIAL = "partial"
    FINAL = "final"


class CallStarted(BaseModel):
    kind: Literal["call-start"] = "call-start"
    data: Any = None


class CallEnded(BaseModel):
    kind: Literal["call-end"] = "call-end"
    data: Any = None


class SpeechStarted(BaseModel):
    kind: Literal["speech-start"] = "speech-start"
    data: Any = None


class SpeechEnded(BaseModel):
    kind: Literal["speech-end"] = "speech-end"
    data: Any = None


class VolumeLevel(BaseModel):
    kind: Literal["volume-level"] = "volume-level"
    level: float


class TranscriptMessage(BaseModel):
    """Raw `message` of type "transcript", before filtering."""
    kind: Literal["transcript-message"] = "transcript-message"
    role: str
    transcript_type: str = Field(alias="transcriptType")
    transcript: str = ""

    model_config = ConfigDict(populate_by_name=True)


class ServerMessage(BaseModel):
    """Any other `message` subtype (function-call, conversation-update, ...)."""
    kind: Literal["server-message"] = "server-message"
    type: str
    body: dict[str, Any] = {}


class VoiceErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    message: str = "An error occurred"
    data: Any = None


class Transcript(BaseModel):
    """A settled transcript line that passed filtering; ready for the transcript store."""
    kind: Literal["transcript"] = "transcript"
    role: Role
    text: str


VoiceEventPayload = Union[
    CallStarted, CallEnded, SpeechStarted, SpeechEnded, VolumeLevel,
    TranscriptMessage, ServerMessage, VoiceErrorEvent, Transcript,
]


def event_name(payload: VoiceEventPayload) -> str:
    """Subscriber-facing event name for a payload."""
    if isinstance(payload, (TranscriptMessage, ServerMessage)):
        return VoiceEvent.MESSAGE
    return payload.kind
