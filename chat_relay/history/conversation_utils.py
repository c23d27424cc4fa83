"""
Conversation utilities for building the upstream message list.

History arrives with every call (nothing is stored server side), so these
helpers only decode it and lay it out in chronological order.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import unquote

from pydantic import TypeAdapter, ValidationError

from chat_relay.history.models import ChatTurn, ConversationRequest
from chat_relay.llm.exceptions import InvalidRequestError
from chat_relay.llm.models import LLMMessage, MessageRole

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(list[ChatTurn])


def parse_history(raw: str | list[Any] | None) -> list[ChatTurn]:
    """
    Decode the ``history`` parameter into chat turns.

    Accepts an already-decoded list, a JSON array string, or a JSON array
    that is still percent-encoded once.

    Raises:
        InvalidRequestError: If the value is not a JSON array of turns.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            try:
                data = json.loads(unquote(raw))
            except json.JSONDecodeError as e:
                raise InvalidRequestError(
                    "history must be a JSON array of {query, response} objects"
                ) from e
    else:
        data = raw

    try:
        return _history_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(f"Rejected history with {e.error_count()} validation errors")
        raise InvalidRequestError(
            "history must be a JSON array of {query, response} objects"
        ) from e


def build_request(message: str | None, history: str | list[Any] | None) -> ConversationRequest:
    """Validate raw inbound values into a ConversationRequest."""
    turns = parse_history(history)
    try:
        return ConversationRequest(message=message or "", history=turns)
    except ValidationError as e:
        raise InvalidRequestError("message is required") from e


def build_conversation(
    system_prompt: str,
    history: list[ChatTurn],
    message: str,
) -> list[LLMMessage]:
    """
    Build the OpenAI-style message list.

    Args:
        system_prompt: Fixed system instruction
        history: Earlier turns, oldest first
        message: The current user message

    Returns:
        System message, alternating user/assistant turns, then the new message
    """
    conversation = [LLMMessage(MessageRole.SYSTEM, system_prompt)]

    for turn in history:
        conversation.append(LLMMessage(MessageRole.USER, turn.query))
        conversation.append(LLMMessage(MessageRole.ASSISTANT, turn.response))

    conversation.append(LLMMessage(MessageRole.USER, message))
    return conversation
