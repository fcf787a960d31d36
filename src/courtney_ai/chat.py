"""
Text transport — request/reply chat with conversation continuation.

The first request of a conversation carries the user context as
`assistantOverrides.variableValues`; the backend answers with an `id` that
is sent back as `previousChatId` on every later request. Token and context
are never sent together.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from courtney_ai.errors import ProtocolError
from courtney_ai.models.chat import AssistantOverrides, ChatRequest, ChatResponse, ChatTurn
from courtney_ai.models.form import UserContext
from courtney_ai.transport.http import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_CHAT_URL = "http://localhost:3000/api/chat"


class TextTransport:
    def __init__(self, http: HttpClient, chat_url: str = DEFAULT_CHAT_URL):
        self._http = http
        self._chat_url = chat_url
        self._chat_id: Optional[str] = None
        self._epoch = 0

    def current_continuation(self) -> Optional[str]:
        return self._chat_id

    def build_request(self, content: str, user_context: Optional[UserContext] = None) -> ChatRequest:
        request = ChatRequest(input=content)
        if self._chat_id:
            request.previous_chat_id = self._chat_id
        elif user_context is not None:
            request.assistant_overrides = AssistantOverrides(variable_values=user_context.to_variable_values())
        return request

    async def send_message(self, content: str, user_context: Optional[UserContext] = None) -> list[ChatTurn]:
        """Send one user turn; return the assistant turns with content.

        Raises TransportError on a non-2xx status and ProtocolError when the
        response body does not match the chat schema.
        """
        request = self.build_request(content, user_context)
        epoch = self._epoch
        logger.debug(
            "Sending chat message (continuation=%s, context=%s)",
            request.previous_chat_id, request.assistant_overrides is not None,
        )
        data = await self._http.post(self._chat_url, request.to_wire())
        try:
            response = ChatResponse.model_validate(data)
        except PydanticValidationError as e:
            raise ProtocolError("Unexpected chat response shape", {"body": data}) from e

        if epoch == self._epoch:
            self._chat_id = response.id
        else:
            logger.debug("Conversation reset while %s was in flight; token discarded", response.id)
        turns = response.assistant_turns()
        logger.debug("Chat response %s with %d assistant turn(s)", response.id, len(turns))
        return turns

    def reset(self) -> None:
        if self._chat_id:
            logger.info("Resetting chat conversation %s", self._chat_id)
        self._chat_id = None
        self._epoch += 1

    async def close(self) -> None:
        await self._http.close()
