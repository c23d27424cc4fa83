"""
Streaming data types: upstream frames, the structured answer schema and the
events written to the browser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FrameKind(Enum):
    """Kinds of parsed upstream SSE frames."""
    DELTA = "delta"
    DONE = "done"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class UpstreamFrame:
    """One parsed SSE event from the provider."""
    kind: FrameKind
    text: str = ""
    raw: str = ""

    @classmethod
    def delta(cls, text: str) -> UpstreamFrame:
        return cls(FrameKind.DELTA, text=text)

    @classmethod
    def done(cls) -> UpstreamFrame:
        return cls(FrameKind.DONE)

    @classmethod
    def malformed(cls, raw: str) -> UpstreamFrame:
        return cls(FrameKind.MALFORMED, raw=raw)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class AnswerLink(_CamelModel):
    text: str
    url: str


class AnswerStep(_CamelModel):
    title: str
    description: str = ""
    links: list[AnswerLink] = Field(default_factory=list)


class AnswerSource(_CamelModel):
    name: str
    url: str


class StructuredAnswer(_CamelModel):
    """JSON envelope the model returns in structured mode."""
    main_answer: str = Field(alias="mainAnswer")
    steps: list[AnswerStep] = Field(default_factory=list)
    sources: list[AnswerSource] = Field(default_factory=list)
    language: str = "en"


@dataclass(frozen=True)
class TokenEvent:
    """A cleaned Markdown fragment."""
    token: str

    def payload(self) -> dict[str, Any]:
        return {"token": self.token}


@dataclass(frozen=True)
class StructuredEvent:
    """The full structured answer, sent once for machine consumers."""
    answer: StructuredAnswer

    def payload(self) -> dict[str, Any]:
        return {"structured": self.answer.model_dump(by_alias=True)}


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure of the call."""
    error: str

    def payload(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass(frozen=True)
class DoneEvent:
    """End of stream marker; written as the literal [DONE] frame."""

    def payload(self) -> None:
        return None


DONE = DoneEvent()

OutboundEvent = TokenEvent | StructuredEvent | ErrorEvent | DoneEvent
