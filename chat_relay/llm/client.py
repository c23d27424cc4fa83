"""
Streaming HTTP client for OpenAI-compatible chat-completions APIs.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from .exceptions import ConfigurationError, UpstreamTransportError
from .models import LLMMessage, LLMRequest, ResponseMode, detect_provider
from .streaming.models import FrameKind
from .streaming.parser import FrameParser

logger = logging.getLogger(__name__)

HTTP_OK = 200
MISSING_KEY_MESSAGE = "OpenAI API key is not configured"


class UpstreamClient:
    """HTTP client that opens one streaming completion per relay call."""

    def __init__(
        self,
        config: dict[str, Any],
        api_key: str | None,
        mode: ResponseMode = ResponseMode.PLAIN,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        required_keys = ["base_url", "model"]
        for key in required_keys:
            if key not in config:
                raise ValueError(
                    f"Required LLM configuration parameter '{key}' not found."
                )

        self.config = config
        self.api_key = api_key
        self.mode = mode
        self.provider_type = detect_provider(config["base_url"])

        http_config = config.get("http_client", {})
        timeout = httpx.Timeout(
            connect=http_config.get("connect_timeout", 10.0),
            read=http_config.get("read_timeout"),
            write=http_config.get("write_timeout", 10.0),
            pool=http_config.get("pool_timeout", 10.0),
        )
        limits = httpx.Limits(
            max_connections=http_config.get("max_connections", 100),
            max_keepalive_connections=http_config.get("max_keepalive", 20),
        )

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=config["base_url"],
            headers=headers,
            timeout=timeout,
            limits=limits,
            transport=transport,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def build_request(self, messages: list[LLMMessage]) -> LLMRequest:
        """Build the streaming request for the configured model and mode."""
        response_format = None
        if self.mode is ResponseMode.STRUCTURED:
            response_format = {"type": "json_object"}

        return LLMRequest(
            model=self.config["model"],
            messages=messages,
            temperature=self.config.get("temperature", 0.7),
            max_tokens=self.config.get("max_tokens"),
            stream=True,
            response_format=response_format,
        )

    async def stream_deltas(
        self, messages: list[LLMMessage]
    ) -> AsyncGenerator[str]:
        """
        Stream text deltas for ``messages``.

        Ends when the provider sends ``[DONE]`` or closes the stream.

        Raises:
            ConfigurationError: No API key; nothing is sent upstream.
            UpstreamTransportError: Bad status, wrong content type, or a
                network failure while streaming.
        """
        if not self.has_credentials:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        payload = self.build_request(messages).to_payload()
        parser = FrameParser()

        try:
            async with self.client.stream(
                "POST", "/chat/completions", json=payload
            ) as response:
                if response.status_code != HTTP_OK:
                    error_text = await response.aread()
                    raise self._status_error(response.status_code, error_text)

                content_type = response.headers.get("content-type", "")
                if "event-stream" not in content_type:
                    raise UpstreamTransportError(
                        f"Expected streaming response, got content-type: "
                        f"{content_type}",
                        provider=self.provider_type.value,
                        model=self.config["model"],
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    for frame in parser.parse_chunk(line):
                        if frame.kind is FrameKind.DONE:
                            return
                        if frame.kind is FrameKind.MALFORMED:
                            logger.debug(f"Dropping malformed frame: {frame.raw[:80]}")
                            continue
                        yield frame.text

        except httpx.HTTPError as e:
            logger.error(f"HTTP error during streaming: {e}")
            raise UpstreamTransportError(
                f"Upstream transport error: {e!s}",
                provider=self.provider_type.value,
                model=self.config["model"],
            ) from e
        finally:
            logger.debug(f"Upstream stream closed, parser stats: {parser.get_stats()}")

    def _status_error(self, status_code: int, body: bytes) -> UpstreamTransportError:
        text = body.decode("utf-8", errors="replace")
        response_data: dict[str, Any] = {}
        detail = text[:500]

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, dict):
            response_data = parsed
            error = parsed.get("error")
            if isinstance(error, dict) and error.get("message"):
                detail = str(error["message"])

        return UpstreamTransportError(
            f"Upstream API error {status_code}: {detail}",
            provider=self.provider_type.value,
            model=self.config["model"],
            status_code=status_code,
            response_data=response_data,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> UpstreamClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
