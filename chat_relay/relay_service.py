"""
Relay service: one upstream completion per inbound chat call.

Each call gets its own MarkdownReassembler, so concurrent calls share
nothing but the HTTP connection pool. The event sequence of every call ends
with exactly one Done event, whether it succeeded or failed.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing
from typing import Any

from chat_relay.history.conversation_utils import build_conversation
from chat_relay.history.models import ConversationRequest
from chat_relay.llm.client import UpstreamClient
from chat_relay.llm.models import ResponseMode
from chat_relay.llm.streaming.models import OutboundEvent
from chat_relay.llm.streaming.reassembler import FlushPolicy, MarkdownReassembler
from chat_relay.logging_utils import RelayErrorHandler, logger, operation_context
from chat_relay.prompts import system_prompt_for


class RelayService:
    """Streams one conversation request through the upstream model."""

    def __init__(self, upstream: UpstreamClient, relay_config: dict[str, Any]) -> None:
        self.upstream = upstream
        self.mode = ResponseMode(relay_config["mode"])
        self.policy = FlushPolicy(**relay_config["flush"][self.mode.value])
        self.system_prompt = system_prompt_for(
            self.mode, relay_config["prompts"].get(self.mode.value)
        )

    def new_reassembler(self) -> MarkdownReassembler:
        return MarkdownReassembler(self.mode, self.policy)

    async def relay(
        self,
        request: ConversationRequest,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncGenerator[OutboundEvent]:
        """
        Yield outbound events for ``request``.

        Errors never escape: they become one error event followed by Done.
        Closing this generator closes the upstream stream.

        Args:
            request: Validated message and history
            is_disconnected: Checked before every upstream delta; once it
                returns True the upstream stream is closed and nothing more
                is yielded, even while no fragment is ready to flush.
        """
        request_id = uuid.uuid4().hex[:12]
        context = {
            "request_id": request_id,
            "mode": self.mode.value,
            "history_turns": len(request.history),
        }
        reassembler = self.new_reassembler()

        async with operation_context("relay", context=context) as log:
            try:
                messages = build_conversation(
                    self.system_prompt, request.history, request.message
                )
                async with aclosing(self.upstream.stream_deltas(messages)) as deltas:
                    async for delta in deltas:
                        if is_disconnected is not None and await is_disconnected():
                            log.info("Client disconnected, closing upstream stream")
                            return
                        for event in reassembler.ingest(delta):
                            yield event
                events = reassembler.finalize()
            except Exception as e:
                message = RelayErrorHandler.create_error_message(e, "relay", context)
                events = reassembler.fail(message)

            for event in events:
                yield event

    async def reject(self, message: str) -> AsyncGenerator[OutboundEvent]:
        """Event sequence for a request that failed validation."""
        logger.warning("Rejected relay request", reason=message)
        for event in self.new_reassembler().fail(message):
            yield event
