"""
Core LLM dataclasses for the upstream chat-completions request.

This module provides:
- Provider detection
- Message structures
- The streaming request model and its JSON payload
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProviderType(Enum):
    """Supported OpenAI-compatible providers."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GROQ = "groq"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ResponseMode(Enum):
    """How the model is asked to answer."""
    PLAIN = "plain"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class LLMMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMRequest:
    """Streaming chat-completions request."""
    model: str
    messages: list[LLMMessage]
    temperature: float = 0.7
    max_tokens: int | None = None
    stream: bool = True
    response_format: dict[str, str] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the provider's JSON body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
            "stream": self.stream,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.response_format is not None:
            payload["response_format"] = self.response_format
        return payload


def detect_provider(base_url: str) -> ProviderType:
    """Detect provider type from base URL."""
    base_url_lower = base_url.lower()

    if "openrouter.ai" in base_url_lower:
        return ProviderType.OPENROUTER
    if "groq.com" in base_url_lower:
        return ProviderType.GROQ

    return ProviderType.OPENAI
