"""
Realtime event parsing: turns raw (name, data) pairs into typed payloads.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from courtney_ai.errors import ProtocolError
from courtney_ai.models.events import (
    CallEnded,
    CallStarted,
    ServerMessage,
    SpeechEnded,
    SpeechStarted,
    TranscriptMessage,
    VoiceErrorEvent,
    VoiceEvent,
    VoiceEventPayload,
    VolumeLevel,
)

_SIGNALS = {
    VoiceEvent.CALL_START: CallStarted,
    VoiceEvent.CALL_END: CallEnded,
    VoiceEvent.SPEECH_START: SpeechStarted,
    VoiceEvent.SPEECH_END: SpeechEnded,
}


def _error_message(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error")
        if isinstance(msg, dict):
            return _error_message(msg)
        if isinstance(msg, str) and msg:
            return msg
    return None


def _parse_message(data: Any) -> VoiceEventPayload:
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ProtocolError("message event without a type", {"data": data})
    if data["type"] == "transcript":
        return TranscriptMessage.model_validate(data)
    body = {k: v for k, v in data.items() if k != "type"}
    return ServerMessage(type=data["type"], body=body)


def parse_event(name: str, data: Any) -> Optional[VoiceEventPayload]:
    """Parse one raw realtime event.

    Returns None for event names outside the voice event surface, raises
    ProtocolError when a known event carries a malformed body.
    """
    try:
        if name in _SIGNALS:
            return _SIGNALS[name](data=data)
        if name == VoiceEvent.VOLUME_LEVEL:
            level = data.get("level") if isinstance(data, dict) else data
            return VolumeLevel(level=level)
        if name == VoiceEvent.MESSAGE:
            return _parse_message(data)
        if name == VoiceEvent.ERROR:
            msg = _error_message(data)
            if msg:
                return VoiceErrorEvent(message=msg, data=data)
            return VoiceErrorEvent(data=data)
    except PydanticValidationError as e:
        raise ProtocolError(f"Malformed {name} event: {e.error_count()} error(s)", {"data": data}) from e
    return None
