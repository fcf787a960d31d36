"""
Transcript store: the ordered message log shown to the user.

Appends are deduplicated: the voice stream can deliver the same finalized
fragment more than once, so an append whose role and content match an entry
added less than DEDUP_WINDOW ago returns that entry instead.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional, Union

from courtney_ai.models.session import Message, Role

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(milliseconds=1000)

Clock = Callable[[], datetime]
MessageListener = Callable[[Message], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranscriptStore:
    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or _utcnow
        self._messages: list[Message] = []
        self._counter = 0
        self._listeners: list[MessageListener] = []

    def add_listener(self, listener: MessageListener) -> Callable[[], None]:
        """Call `listener` for every message actually appended. Returns a cleanup function."""
        self._listeners.append(listener)
        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def append(self, role: Union[Role, str], content: str) -> Message:
        role = Role(role)
        now = self._clock()
        for existing in self._messages:
            if existing.role == role and existing.content == content and now - existing.timestamp < DEDUP_WINDOW:
                logger.debug("Duplicate %s message suppressed", role.value)
                return existing

        message = Message(id=f"msg-{self._counter}", role=role, content=content, timestamp=now)
        self._counter += 1
        self._messages.append(message)
        for listener in list(self._listeners):
            listener(message)
        return message

    def clear(self) -> None:
        self._messages = []

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))
