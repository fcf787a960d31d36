"""
Session models — transcript messages, widget state and voice call controls.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class WidgetState(str, Enum):
    CLOSED = "closed"
    FORM = "form"
    CHAT = "chat"
    VOICE = "voice"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    content: str
    timestamp: datetime


class VoiceSessionControls(BaseModel):
    muted: bool = False
    elapsed_seconds: int = 0

    def reset(self) -> None:
        self.muted = False
        self.elapsed_seconds = 0


def format_duration(seconds: int) -> str:
    """Render a call duration as MM:SS."""
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins:02d}:{secs:02d}"
