"""
Streaming pipeline for upstream completions.

- SSE frame parsing
- Markdown reassembly and cleanup
- Outbound event types
"""

from __future__ import annotations

from .models import (
    DONE,
    DoneEvent,
    ErrorEvent,
    FrameKind,
    OutboundEvent,
    StructuredAnswer,
    StructuredEvent,
    TokenEvent,
    UpstreamFrame,
)
from .parser import FrameParser
from .reassembler import (
    FlushPolicy,
    MarkdownReassembler,
    clean_markdown,
    render_structured_answer,
)

__all__ = [
    "DONE",
    "DoneEvent",
    "ErrorEvent",
    "FlushPolicy",
    "FrameKind",
    "FrameParser",
    "MarkdownReassembler",
    "OutboundEvent",
    "StructuredAnswer",
    "StructuredEvent",
    "TokenEvent",
    "UpstreamFrame",
    "clean_markdown",
    "render_structured_answer",
]
