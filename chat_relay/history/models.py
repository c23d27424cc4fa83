# chat_relay/history/models.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatTurn(BaseModel):
    """One earlier exchange supplied by the caller."""
    model_config = ConfigDict(frozen=True)

    query: str
    response: str = ""


class ConversationRequest(BaseModel):
    """
    Input to a single relay call.
    """
    message: str
    history: list[ChatTurn] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message is required")
        return value
