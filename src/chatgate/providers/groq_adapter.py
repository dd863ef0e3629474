from __future__ import annotations

from chatgate.providers.openai_adapter import OpenAIAdapter
from chatgate.providers.registry import ProviderConfig, ProviderRegistry

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


@ProviderRegistry.kind("groq")
class GroqAdapter(OpenAIAdapter):
    """Groq speaks the Chat Completions wire format, so the OpenAI client is pointed at its endpoint."""

    name = "Groq"

    @classmethod
    def create(cls, *, config: ProviderConfig) -> "GroqAdapter":
        opts = dict(config.options or {})
        return cls(
            model=config.model,
            api_key=config.credential,
            params=opts.get("params") or {},
            timeout=opts.get("timeout"),
            base_url=opts.get("base_url") or GROQ_BASE_URL,
        )
