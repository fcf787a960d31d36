"""
Chat endpoint wire schema: request and response bodies of the text transport.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AssistantOverrides(BaseModel):
    variable_values: dict[str, str] = Field(alias="variableValues")

    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(BaseModel):
    input: str
    previous_chat_id: Optional[str] = Field(default=None, alias="previousChatId")
    assistant_overrides: Optional[AssistantOverrides] = Field(default=None, alias="assistantOverrides")

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ChatTurn(BaseModel):
    role: str
    content: Optional[str] = None


class ChatResponse(BaseModel):
    """Success body: `id` is the continuation token for the next request."""
    id: str
    output: Optional[list[ChatTurn]] = None

    def assistant_turns(self) -> list[ChatTurn]:
        return [t for t in self.output or [] if t.role == "assistant" and t.content]
