#!/usr/bin/env python3
"""
Tests for the upstream SSE frame parser.
"""

from __future__ import annotations

import json

import pytest

from chat_relay.llm.exceptions import MalformedFrameError
from chat_relay.llm.streaming.models import FrameKind, UpstreamFrame
from chat_relay.llm.streaming.parser import FrameParser


def delta_line(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


class TestFrameParser:
    """Test FrameParser.parse_chunk."""

    def test_single_delta(self):
        """Test a single data line yields one delta frame."""
        parser = FrameParser()
        frames = parser.parse_chunk(delta_line("Hello"))
        assert frames == [UpstreamFrame.delta("Hello")]

    def test_multiple_lines_and_blank_separators(self):
        """Test blank separator lines between frames are skipped."""
        parser = FrameParser()
        chunk = f"{delta_line('Hel')}\n\n{delta_line('lo')}\n\n"
        frames = parser.parse_chunk(chunk)
        assert [f.text for f in frames] == ["Hel", "lo"]
        assert all(f.kind is FrameKind.DELTA for f in frames)

    def test_bytes_are_decoded(self):
        """Test byte chunks are decoded as UTF-8."""
        parser = FrameParser()
        frames = parser.parse_chunk(delta_line("héllo").encode("utf-8"))
        assert frames[0].text == "héllo"

    def test_done_short_circuits_rest_of_chunk(self):
        """Test nothing after the DONE sentinel is parsed."""
        parser = FrameParser()
        chunk = f"{delta_line('a')}\ndata: [DONE]\n{delta_line('never')}\n"
        frames = parser.parse_chunk(chunk)
        assert [f.kind for f in frames] == [FrameKind.DELTA, FrameKind.DONE]

    def test_malformed_json_is_reported_not_raised(self):
        """Test invalid JSON becomes a MALFORMED frame."""
        parser = FrameParser()
        frames = parser.parse_chunk('data: {"choices": [{"delta": {"cont')
        assert len(frames) == 1
        assert frames[0].kind is FrameKind.MALFORMED
        assert frames[0].raw.startswith('{"choices"')
        assert parser.get_stats()["malformed"] == 1

    def test_malformed_frame_does_not_stop_following_frames(self):
        """Test parsing continues after a malformed frame."""
        parser = FrameParser()
        chunk = f"data: {{broken\n{delta_line('ok')}\n"
        frames = parser.parse_chunk(chunk)
        assert [f.kind for f in frames] == [FrameKind.MALFORMED, FrameKind.DELTA]

    def test_missing_content_yields_nothing(self):
        """Test frames without delta content produce no frames."""
        parser = FrameParser()
        role_only = "data: " + json.dumps({"choices": [{"delta": {"role": "assistant"}}]})
        finish = "data: " + json.dumps({"choices": [{"delta": {}, "finish_reason": "stop"}]})
        no_choices = "data: " + json.dumps({"choices": []})
        not_object = "data: [1, 2, 3]"
        for line in (role_only, finish, no_choices, not_object):
            assert parser.parse_chunk(line) == []

    def test_empty_content_yields_nothing(self):
        """Test an empty content string is dropped."""
        parser = FrameParser()
        assert parser.parse_chunk(delta_line("")) == []

    def test_non_data_lines_are_ignored(self):
        """Test comments and other SSE fields are ignored."""
        parser = FrameParser()
        chunk = f": keep-alive\nevent: message\nid: 7\n{delta_line('x')}\n"
        frames = parser.parse_chunk(chunk)
        assert frames == [UpstreamFrame.delta("x")]

    def test_marker_without_space(self):
        """Test the data marker is accepted without a following space."""
        parser = FrameParser()
        frames = parser.parse_chunk('data:{"choices": [{"delta": {"content": "y"}}]}')
        assert frames == [UpstreamFrame.delta("y")]

    def test_stats_and_reset(self):
        """Test statistics counting and reset."""
        parser = FrameParser()
        parser.parse_chunk(f"{delta_line('a')}\ndata: nope\ndata: [DONE]")
        stats = parser.get_stats()
        assert stats == {"frames": 3, "deltas": 1, "malformed": 1}

        parser.reset_stats()
        assert parser.get_stats() == {"frames": 0, "deltas": 0, "malformed": 0}


class TestDecodePayload:
    """Test FrameParser.decode_payload."""

    def test_valid_payload(self):
        """Test valid JSON is returned decoded."""
        assert FrameParser.decode_payload('{"a": 1}') == {"a": 1}

    def test_invalid_payload_raises(self):
        """Test invalid JSON raises MalformedFrameError carrying the raw text."""
        with pytest.raises(MalformedFrameError) as exc_info:
            FrameParser.decode_payload("{broken")
        assert exc_info.value.raw == "{broken"
        assert exc_info.value.category == "malformed_frame"
