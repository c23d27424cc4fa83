#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that error classification and operation logging work correctly.
"""

import asyncio

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from chat_relay.llm.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    RenderError,
    UpstreamTransportError,
)
from chat_relay.logging_utils import (
    INTERNAL_ERROR_MESSAGE,
    RelayErrorHandler,
    operation_context,
)


class _Strict(BaseModel):
    value: int


class TestRelayErrorHandler:
    """Test the RelayErrorHandler class."""

    def test_classify_relay_errors(self):
        """Test classification of relay errors by category."""
        assert RelayErrorHandler.classify_error(
            ConfigurationError("no key")
        ) == "configuration_error"
        assert RelayErrorHandler.classify_error(
            UpstreamTransportError("boom", status_code=502)
        ) == "upstream_error"
        assert RelayErrorHandler.classify_error(
            InvalidRequestError("bad")
        ) == "invalid_request"
        assert RelayErrorHandler.classify_error(RenderError("shape")) == "render_error"

    def test_classify_validation_error(self):
        """Test classification of ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            _Strict(value="not a number")
        assert RelayErrorHandler.classify_error(exc_info.value) == "validation_error"

    def test_classify_timeout_error(self):
        """Test classification of timeout errors."""
        assert RelayErrorHandler.classify_error(TimeoutError("slow")) == "timeout_error"
        assert RelayErrorHandler.classify_error(
            httpx.ReadTimeout("slow")
        ) == "timeout_error"

    def test_classify_connection_error(self):
        """Test classification of connection errors."""
        assert RelayErrorHandler.classify_error(
            ConnectionError("Network unreachable")
        ) == "connection_error"
        assert RelayErrorHandler.classify_error(OSError("reset")) == "connection_error"

    def test_classify_unknown_error(self):
        """Test classification of unknown error type."""
        assert RelayErrorHandler.classify_error(RuntimeError("?")) == "unknown_error"

    def test_client_message(self):
        """Test client messages hide internal error details."""
        assert RelayErrorHandler.client_message(
            ConfigurationError("OpenAI API key is not configured")
        ) == "OpenAI API key is not configured"
        assert RelayErrorHandler.client_message(
            KeyError("internal detail")
        ) == INTERNAL_ERROR_MESSAGE

    def test_create_error_message_with_context(self):
        """Test creating an error message with context."""
        message = RelayErrorHandler.create_error_message(
            UpstreamTransportError("Upstream API error 500: down"),
            "relay",
            {"request_id": "abc"},
        )
        assert message == "Upstream API error 500: down"


class TestOperationContext:
    """Test the operation_context async context manager."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test operation_context with a successful operation."""
        async with operation_context("test_operation", context={"k": "v"}) as log:
            assert log is not None

    @pytest.mark.asyncio
    async def test_error_is_reraised(self):
        """Test operation_context re-raises errors."""
        with pytest.raises(ValueError, match="Test error"):
            async with operation_context("test_operation"):
                raise ValueError("Test error")

    @pytest.mark.asyncio
    async def test_cancellation_is_reraised(self):
        """Test operation_context re-raises cancellation."""
        async def worker():
            async with operation_context("slow_operation"):
                await asyncio.sleep(10)

        task = asyncio.create_task(worker())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
