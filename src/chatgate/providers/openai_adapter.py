# src/chatgate/providers/openai_adapter.py
from __future__ import annotations
from typing import Any, AsyncIterator, Dict, Optional, Sequence

from openai import AsyncOpenAI

from chatgate.core.errors import UpstreamClientError, UpstreamError, UpstreamTransientError
from chatgate.core.messages import ChatMessage, as_dicts
from chatgate.providers.registry import ProviderConfig, ProviderRegistry


def classify_exception(exc: Exception) -> UpstreamError:
    """
    Convert SDK/client exceptions into neutral upstream errors.
    Avoid hard dependency on specific SDK exception classes by inspecting attributes/message.
    """
    if isinstance(exc, UpstreamError):
        return exc
    status = getattr(exc, "status_code", None) or getattr(exc, "http_status", None)
    msg = str(exc) or exc.__class__.__name__

    if status is not None:
        s = int(status)
        if s == 429 or s >= 500:
            return UpstreamTransientError(msg, status=s)
        return UpstreamClientError(msg, status=s)

    lower = msg.lower()
    if any(k in lower for k in ("rate limit", "temporarily unavailable", "timeout", "timed out", "connection")):
        return UpstreamTransientError(msg)
    if any(k in lower for k in ("invalid_request_error", "unsupported", "parameter", "authentication")):
        return UpstreamClientError(msg)
    return UpstreamTransientError(msg)


@ProviderRegistry.kind("openai")
class OpenAIAdapter:
    """
    Chat Completions adapter:
    - system messages stay inline, in order
    - 'params' from the YAML providers section are passed through as-is
    - maps SDK errors to UpstreamClientError / UpstreamTransientError
    """

    name = "OpenAI"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        self.model = model
        client_kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        if organization:
            client_kwargs["organization"] = organization
        self.client = AsyncOpenAI(**client_kwargs)

        self.params = params or {}
        self.timeout = timeout

    @classmethod
    def create(cls, *, config: ProviderConfig) -> "OpenAIAdapter":
        opts = dict(config.options or {})
        return cls(
            model=config.model,
            api_key=config.credential,
            params=opts.get("params") or {},
            timeout=opts.get("timeout"),
            base_url=opts.get("base_url"),
            organization=opts.get("organization"),
        )

    def _build_args(self, messages: Sequence[ChatMessage], *, stream: bool) -> Dict[str, Any]:
        args: Dict[str, Any] = {
            "model": self.model,
            "messages": as_dicts(messages),
            "stream": stream,
            **self.params,
        }
        if self.timeout is not None:
            args["timeout"] = self.timeout
        return args

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        try:
            resp = await self.client.chat.completions.create(**self._build_args(messages, stream=False))
        except Exception as e:
            raise classify_exception(e) from e
        try:
            msg = resp.choices[0].message
        except (AttributeError, IndexError, TypeError) as e:
            raise UpstreamError(f"Malformed {self.name} response: {e}") from e
        return getattr(msg, "content", None) or ""

    async def complete_stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat.completions.create(**self._build_args(messages, stream=True))
        except Exception as e:
            raise classify_exception(e) from e

        async with stream:
            try:
                async for chunk in stream:
                    try:
                        piece = chunk.choices[0].delta.content
                    except (AttributeError, IndexError, TypeError):
                        # keep-alive / usage-only chunks carry no choices
                        piece = None
                    if piece:
                        yield piece
            except UpstreamError:
                raise
            except Exception as e:
                raise classify_exception(e) from e
