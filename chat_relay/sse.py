"""
Server-Sent Events writer for relay output.

Each outbound event becomes one ``data: <json>\\n\\n`` frame; Done becomes the
literal ``data: [DONE]\\n\\n``. When the browser goes away the emitter closes
the event source, which in turn closes the upstream HTTP stream. The relay
checks the same signal per upstream delta, so a call that is still buffering
stops reading upstream too.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from chat_relay.llm.streaming.models import OutboundEvent

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: OutboundEvent) -> str:
    """Encode one event as an SSE frame."""
    payload = event.payload()
    if payload is None:
        return DONE_FRAME
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class DownstreamEmitter:
    """Writes relay events to one client connection."""

    def __init__(
        self,
        events: AsyncGenerator[OutboundEvent],
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self._events = events
        self._is_disconnected = is_disconnected
        self._closed = False
        self.frames_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, event: OutboundEvent) -> str | None:
        """Encode ``event``; after close this is a no-op returning None."""
        if self._closed:
            return None
        self.frames_written += 1
        return encode_event(event)

    async def stream(self) -> AsyncGenerator[str]:
        """Yield SSE frames until the events end or the client disconnects."""
        try:
            async for event in self._events:
                if await self._client_gone():
                    logger.info("Client disconnected, aborting upstream stream")
                    break
                frame = self.write(event)
                if frame is None:
                    break
                yield frame
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop writing and close the event source. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        await self._events.aclose()

    async def _client_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()
