from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple

from anthropic import AsyncAnthropic

from chatgate.core.errors import UpstreamError
from chatgate.core.messages import ChatMessage
from chatgate.providers.openai_adapter import classify_exception
from chatgate.providers.registry import ProviderConfig, ProviderRegistry

DEFAULT_MAX_TOKENS = 1024


def split_system(messages: Sequence[ChatMessage]) -> Tuple[Optional[str], List[Dict[str, str]]]:
    """
    Anthropic takes the system prompt as a separate field.
    Returns (system_text or None, remaining messages in original order).
    """
    system_parts: List[str] = []
    rest: List[Dict[str, str]] = []
    for m in messages:
        if m.role == "system":
            system_parts.append(m.content)
        else:
            rest.append({"role": m.role, "content": m.content})
    system = "\n\n".join(system_parts) if system_parts else None
    return system, rest


@ProviderRegistry.kind("anthropic")
class AnthropicAdapter:
    """
    Messages API adapter. Completion only: no complete_stream, so the
    streaming session serves it with simulated streaming.
    """

    name = "Anthropic"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
    ):
        self.model = model
        client_kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = AsyncAnthropic(**client_kwargs)
        self.max_tokens = int(max_tokens)
        self.params = params or {}
        self.timeout = timeout

    @classmethod
    def create(cls, *, config: ProviderConfig) -> "AnthropicAdapter":
        opts = dict(config.options or {})
        return cls(
            model=config.model,
            api_key=config.credential,
            max_tokens=opts.get("max_tokens") or DEFAULT_MAX_TOKENS,
            params=opts.get("params") or {},
            timeout=opts.get("timeout"),
            base_url=opts.get("base_url"),
        )

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        system, convo = split_system(messages)
        args: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": convo,
            **self.params,
        }
        if system is not None:
            args["system"] = system
        if self.timeout is not None:
            args["timeout"] = self.timeout

        try:
            resp = await self.client.messages.create(**args)
        except Exception as e:
            raise classify_exception(e) from e

        blocks = getattr(resp, "content", None)
        if blocks is None:
            raise UpstreamError(f"Malformed {self.name} response: no content")
        # Multiple text blocks are concatenated; tool/other blocks carry no text
        return "".join(getattr(b, "text", "") or "" for b in blocks if getattr(b, "type", "text") == "text")
