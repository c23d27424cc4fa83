"""
FastAPI application exposing the relay as an SSE endpoint.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from chat_relay.config import Configuration
from chat_relay.history.conversation_utils import build_request
from chat_relay.llm.client import UpstreamClient
from chat_relay.llm.exceptions import InvalidRequestError
from chat_relay.llm.models import ResponseMode
from chat_relay.relay_service import RelayService
from chat_relay.sse import SSE_HEADERS, DownstreamEmitter

logger = logging.getLogger(__name__)


class ChatBody(BaseModel):
    """JSON body for POST /api/chat."""
    message: str | None = None
    history: list[Any] | str | None = None


def create_app(
    configuration: Configuration | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        configuration: Loaded configuration; read from disk when omitted.
        transport: Optional httpx transport for the upstream client.
    """
    configuration = configuration or Configuration()
    server_config = configuration.get_server_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        relay_config = configuration.get_relay_config()
        upstream = UpstreamClient(
            configuration.get_llm_config(),
            configuration.llm_api_key,
            mode=ResponseMode(relay_config["mode"]),
            transport=transport,
        )
        if not upstream.has_credentials:
            logger.warning(
                f"No API key configured for provider "
                f"'{configuration.active_provider}'; relay calls will fail"
            )

        async with upstream:
            app.state.relay_service = RelayService(upstream, relay_config)
            logger.info(
                f"Relay ready: model={upstream.config['model']}, "
                f"mode={relay_config['mode']}"
            )
            yield

    app = FastAPI(title="Chat Relay", lifespan=lifespan)

    cors = server_config["cors"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors["allow_origins"],
        allow_methods=cors["allow_methods"],
        allow_headers=cors["allow_headers"],
    )

    @app.get("/")
    async def health() -> dict[str, str]:
        return {"message": "Server is running"}

    @app.get("/api/chat")
    async def chat_get(
        request: Request,
        message: str | None = None,
        history: str | None = None,
    ) -> StreamingResponse:
        return _sse_response(request, message, history)

    @app.post("/api/chat")
    async def chat_post(request: Request, body: ChatBody) -> StreamingResponse:
        return _sse_response(request, body.message, body.history)

    return app


def _sse_response(
    request: Request,
    message: str | None,
    history: str | list[Any] | None,
) -> StreamingResponse:
    service: RelayService = request.app.state.relay_service

    try:
        conversation = build_request(message, history)
        events = service.relay(conversation, request.is_disconnected)
    except InvalidRequestError as e:
        events = service.reject(str(e))

    emitter = DownstreamEmitter(events, request.is_disconnected)
    return StreamingResponse(
        emitter.stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
