"""
Incremental Markdown reassembly for streamed model output.

The reassembler owns the per-call buffer. Deltas are appended until a flush
boundary is reached (sentence end, blank line, size limit) or, in structured
mode, until the buffer parses as the JSON answer envelope. Every fragment is
passed through ``clean_markdown`` before it leaves. Whitespace at a fragment
boundary is held back and sent with the next fragment, so the concatenated
tokens keep the original spacing and only the answer as a whole is trimmed.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from ..exceptions import RenderError
from ..models import ResponseMode
from .models import (
    DONE,
    ErrorEvent,
    OutboundEvent,
    StructuredAnswer,
    StructuredEvent,
    TokenEvent,
)

logger = logging.getLogger(__name__)

SENTENCE_END = re.compile(r"[.!?]\s*$")
PARAGRAPH_BREAK = "\n\n"

# Cleanup rules, applied in this order
_NESTED_LINK = re.compile(
    r"\[([^\]]*)\]\(\[click here\]\(([^)\s]+)\)\)", re.IGNORECASE
)
_CLICK_LABEL = re.compile(r"\[click here\](\([^()\s]*\))?", re.IGNORECASE)
_CLICK_PAREN = re.compile(r"\(click here\)", re.IGNORECASE)

_FENCE_OPEN = re.compile(r"^```[A-Za-z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


@dataclass(frozen=True)
class FlushPolicy:
    """When buffered text is complete enough to send."""
    sentence_end: bool = True
    paragraph_break: bool = True
    max_buffer_chars: int = 100

    def should_flush(self, buffer: str) -> bool:
        if self.sentence_end and SENTENCE_END.search(buffer):
            return True
        if self.paragraph_break and PARAGRAPH_BREAK in buffer:
            return True
        return len(buffer) > self.max_buffer_chars


DEFAULT_POLICIES = {
    ResponseMode.PLAIN: FlushPolicy(),
    ResponseMode.STRUCTURED: FlushPolicy(
        sentence_end=False, paragraph_break=False, max_buffer_chars=8000
    ),
}


def _strip_artifact(pattern: re.Pattern[str], text: str) -> str:
    """
    Remove ``pattern`` matches, keeping a captured link target if any.

    A ``)`` right after the removal site that would close nothing is dropped,
    which collapses the ``))`` the removal leaves behind. Balanced nesting such
    as ``f(g(x))`` elsewhere in the text is untouched.
    """
    parts: list[str] = []
    position = 0
    for match in pattern.finditer(text):
        parts.append(text[position:match.start()])
        if pattern.groups and match.group(1):
            parts.append(match.group(1))
        position = match.end()

        kept = "".join(parts)
        while (
            kept.endswith(")")
            and text.startswith(")", position)
            and kept.count("(") <= kept.count(")")
        ):
            position += 1
    parts.append(text[position:])
    return "".join(parts)


def clean_markdown(text: str, trim: bool = True) -> str:
    """
    Normalize "Click here" link artifacts the model tends to produce.

    Rules run in order (nested link unwrapping, label stripping, orphaned
    parenthetical stripping, collapsing the ``))`` a removal leaves behind,
    trimming) and repeat until nothing changes, so the result is a fixed
    point. Pass ``trim=False`` to keep surrounding whitespace.

    Example:
        "[Click here]([Click here](https://a.gov))" -> "(https://a.gov)"
    """
    previous = None
    while text != previous:
        previous = text
        text = _NESTED_LINK.sub(r"[\1](\2)", text)
        text = _strip_artifact(_CLICK_LABEL, text)
        text = _strip_artifact(_CLICK_PAREN, text)
        if trim:
            text = text.strip()
    return text


def render_structured_answer(answer: StructuredAnswer) -> str:
    """Render a structured answer as Markdown."""
    blocks = [answer.main_answer.strip()]

    for index, step in enumerate(answer.steps, start=1):
        lines = [f"{index}. **{step.title}**"]
        if step.description:
            lines.append(step.description)
        if step.links:
            first, *rest = step.links
            lines.append(f"Helpful links: [{first.text}]({first.url})")
            lines.extend(f"- [{link.text}]({link.url})" for link in rest)
        blocks.append("\n".join(lines))

    return "\n\n".join(block for block in blocks if block)


def _strip_code_fence(text: str) -> str:
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text))


def parse_structured_answer(text: str) -> StructuredAnswer | None:
    """
    Try to read ``text`` as a complete structured answer.

    Returns None while the text is not yet a JSON object.

    Raises:
        RenderError: The text is a JSON object but not a valid answer.
    """
    candidate = _strip_code_fence(text.strip())
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None

    if not isinstance(data, dict):
        return None

    try:
        return StructuredAnswer.model_validate(data)
    except ValidationError as e:
        raise RenderError(
            f"Structured answer does not match schema ({e.error_count()} errors)"
        ) from e


class MarkdownReassembler:
    """Per-call buffer that turns deltas into outbound events."""

    def __init__(
        self,
        mode: ResponseMode = ResponseMode.PLAIN,
        policy: FlushPolicy | None = None,
    ) -> None:
        self.mode = mode
        self.policy = policy or DEFAULT_POLICIES[mode]
        self._buffer = ""
        # Trailing whitespace of the last fragment, sent ahead of the next one
        self._pending_space = ""
        self._text_sent = False
        self.structured_emitted = False
        self.done = False

    @property
    def buffer(self) -> str:
        return self._buffer

    def ingest(self, delta: str) -> list[OutboundEvent]:
        """Append a delta; return whatever became ready to send."""
        if not delta or self.done:
            return []

        if self.structured_emitted:
            logger.debug("Discarding delta after structured answer was sent")
            return []

        self._buffer += delta

        if self.mode is ResponseMode.STRUCTURED:
            return self._ingest_structured()

        if self.policy.should_flush(self._buffer):
            return self._flush()
        return []

    def finalize(self) -> list[OutboundEvent]:
        """Flush whatever is left and close the call with Done."""
        if self.done:
            return []

        events: list[OutboundEvent] = []
        if self._buffer and self.mode is ResponseMode.STRUCTURED:
            try:
                answer = parse_structured_answer(self._buffer)
            except RenderError as e:
                logger.warning(f"Final structured answer rejected: {e}")
                answer = None
            if answer is not None:
                events.extend(self._emit_structured(answer))

        if self._buffer:
            events.extend(self._flush(final=True))

        self.done = True
        events.append(DONE)
        return events

    def fail(self, message: str) -> list[OutboundEvent]:
        """Drop buffered text and close the call with an error."""
        if self.done:
            return []

        self._buffer = ""
        self._pending_space = ""
        self.done = True
        return [ErrorEvent(message), DONE]

    def _ingest_structured(self) -> list[OutboundEvent]:
        try:
            answer = parse_structured_answer(self._buffer)
        except RenderError as e:
            logger.warning(f"{e}; sending buffered text as plain Markdown")
            return self._flush()

        if answer is not None:
            return self._emit_structured(answer)

        if self.policy.should_flush(self._buffer):
            return self._flush()
        return []

    def _emit_structured(self, answer: StructuredAnswer) -> list[OutboundEvent]:
        rendered = clean_markdown(render_structured_answer(answer))
        self._buffer = ""
        self._pending_space = ""
        self.structured_emitted = True

        events: list[OutboundEvent] = []
        if rendered:
            events.append(TokenEvent(rendered))
        events.append(StructuredEvent(answer))
        return events

    def _flush(self, final: bool = False) -> list[OutboundEvent]:
        text = self._pending_space + clean_markdown(self._buffer, trim=False)
        self._buffer = ""

        # Only the outer edges of the whole answer are trimmed
        if not self._text_sent:
            text = text.lstrip()
        fragment = text.rstrip()
        self._pending_space = "" if final else text[len(fragment):]

        if not fragment:
            return []
        self._text_sent = True
        return [TokenEvent(fragment)]
