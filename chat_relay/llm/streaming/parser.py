"""
SSE frame parser for OpenAI-compatible streaming responses.

Splits raw upstream text into frames, extracts the incremental
``choices[0].delta.content`` text and detects the ``[DONE]`` sentinel.
Unparsable JSON is reported as a MALFORMED frame and dropped; nothing is
carried across chunk boundaries since the transport is line-buffered.
"""

from __future__ import annotations

import json
from typing import Any

from ..exceptions import MalformedFrameError
from .models import UpstreamFrame

DATA_MARKER = "data:"
DONE_SENTINEL = "[DONE]"


class FrameParser:
    """Stateless line parser with counters for monitoring."""

    def __init__(self) -> None:
        self.stats = {
            'frames': 0,
            'deltas': 0,
            'malformed': 0,
        }

    def parse_chunk(self, chunk: str | bytes) -> list[UpstreamFrame]:
        """Parse one chunk of upstream text into zero or more frames."""
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")

        frames: list[UpstreamFrame] = []

        for raw_line in chunk.split("\n"):
            line = raw_line.strip()

            if not line or not line.startswith(DATA_MARKER):
                continue

            data_content = line[len(DATA_MARKER):].strip()
            self.stats['frames'] += 1

            if data_content == DONE_SENTINEL:
                frames.append(UpstreamFrame.done())
                return frames

            try:
                parsed_data = self.decode_payload(data_content)
            except MalformedFrameError as e:
                self.stats['malformed'] += 1
                frames.append(UpstreamFrame.malformed(e.raw))
                continue

            text = self._extract_delta(parsed_data)
            if text:
                self.stats['deltas'] += 1
                frames.append(UpstreamFrame.delta(text))

        return frames

    @staticmethod
    def decode_payload(data_content: str) -> Any:
        """
        Decode the JSON payload of one data line.

        Raises:
            MalformedFrameError: If the payload is not valid JSON.
        """
        try:
            return json.loads(data_content)
        except json.JSONDecodeError as e:
            raise MalformedFrameError(
                f"Malformed upstream frame: {e.msg}", raw=data_content
            ) from e

    @staticmethod
    def _extract_delta(data: Any) -> str | None:
        """Return ``choices[0].delta.content`` when it is a string."""
        if not isinstance(data, dict):
            return None

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None

        choice = choices[0]
        if not isinstance(choice, dict):
            return None

        delta = choice.get("delta")
        if not isinstance(delta, dict):
            return None

        content = delta.get("content")
        return content if isinstance(content, str) else None

    def get_stats(self) -> dict[str, int]:
        """Get parser statistics for monitoring."""
        return self.stats.copy()

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self.stats = {
            'frames': 0,
            'deltas': 0,
            'malformed': 0,
        }
