from __future__ import annotations
from typing import Iterable, Optional


class GatewayError(Exception):
    """Base class for gateway failures."""


class ConfigurationError(GatewayError):
    """
    A provider kind cannot be built from the current configuration
    (usually: no credential). Startup skips the alias and logs a warning.
    """


class UnsupportedProviderKind(GatewayError):
    def __init__(self, kind: str):
        super().__init__(f"Unsupported provider: {kind}")
        self.kind = kind


class ProviderNotFound(GatewayError):
    def __init__(self, alias: str, available: Iterable[str] = ()):
        self.alias = alias
        self.available = list(available)
        super().__init__(
            f"Model '{alias}' not available. Available models: {', '.join(self.available)}"
        )


class UpstreamError(GatewayError):
    """The vendor call failed (network, auth, malformed response)."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UpstreamClientError(UpstreamError):
    """
    Non-retryable: caller/config issue (4xx invalid request, auth, unknown model,
    unsupported parameter, etc.). The fix is change input/config, not retry.
    """


class UpstreamTransientError(UpstreamError):
    """
    Retryable: rate limits, timeouts, network hiccups, 5xx, etc.
    """


class PersistenceError(GatewayError):
    """Conversation store read/write failed."""


class MalformedInput(GatewayError):
    """Request body is missing messages or does not end with a user turn."""


class ConversationNotFound(PersistenceError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id
