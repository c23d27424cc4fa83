"""
Upstream LLM integration.

This package provides:
- Dataclass request models for OpenAI-compatible providers
- A streaming HTTP client built on httpx
- The relay error taxonomy
"""

from __future__ import annotations

from .client import UpstreamClient
from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    MalformedFrameError,
    RelayError,
    RenderError,
    UpstreamTransportError,
)
from .models import LLMMessage, LLMRequest, MessageRole, ProviderType, ResponseMode

__all__ = [
    # Exceptions
    "ConfigurationError",
    "InvalidRequestError",
    # Models
    "LLMMessage",
    "LLMRequest",
    "MalformedFrameError",
    "MessageRole",
    "ProviderType",
    "RelayError",
    "RenderError",
    "ResponseMode",
    # Client
    "UpstreamClient",
    "UpstreamTransportError",
]
