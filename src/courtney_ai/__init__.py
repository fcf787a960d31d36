"""
courtney-ai — session core for the Courtney support widget.

One assistant, two transports: request/reply text chat and a realtime
voice call, normalized into a single transcript.
"""

from courtney_ai.chat import TextTransport
from courtney_ai.config import WidgetConfig
from courtney_ai.errors import (
    ConfigurationError,
    CourtneyError,
    ProtocolError,
    SessionError,
    TransportError,
    ValidationError,
)
from courtney_ai.feedback import FeedbackCapture, FeedbackRecord
from courtney_ai.models.events import VoiceEvent
from courtney_ai.models.form import UserContext
from courtney_ai.models.session import Message, Role, WidgetState
from courtney_ai.proxy import ChatProxy, ProxyTransport
from courtney_ai.transcript import TranscriptStore
from courtney_ai.voice import VoiceTransport
from courtney_ai.widget import SessionController

__version__ = "0.1.0"
__all__ = [
    "SessionController",
    "TextTransport",
    "VoiceTransport",
    "TranscriptStore",
    "FeedbackCapture",
    "FeedbackRecord",
    "ChatProxy",
    "ProxyTransport",
    "WidgetConfig",
    "UserContext",
    "Message",
    "Role",
    "WidgetState",
    "VoiceEvent",
    "CourtneyError",
    "ValidationError",
    "TransportError",
    "ConfigurationError",
    "ProtocolError",
    "SessionError",
]
