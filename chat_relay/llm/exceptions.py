"""
Error taxonomy for relay operations.

Every error carries a category so the relay boundary can turn it into a
single client-facing error event:
- Configuration problems (missing credential) fail immediately
- Upstream transport failures end the current call
- Malformed frames and render failures are recovered locally
"""

from __future__ import annotations


class RelayError(Exception):
    """Base relay error with a category for classification."""

    category = "relay_error"


class ConfigurationError(RelayError):
    """Required configuration (usually the provider credential) is missing."""

    category = "configuration_error"


class InvalidRequestError(RelayError):
    """Inbound request could not be turned into a ConversationRequest."""

    category = "invalid_request"


class UpstreamTransportError(RelayError):
    """Upstream request failed or the stream broke mid-call."""

    category = "upstream_error"

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        model: str = "unknown",
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.response_data = response_data or {}


class MalformedFrameError(RelayError):
    """Upstream frame payload is not valid JSON."""

    category = "malformed_frame"

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class RenderError(RelayError):
    """Structured payload does not match the expected answer schema."""

    category = "render_error"
