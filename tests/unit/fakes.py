# tests/unit/fakes.py
# Shared test doubles for providers and registries.

from __future__ import annotations
import sys
from pathlib import Path
from typing import List, Optional

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatgate.core.errors import UpstreamError, UpstreamTransientError  # noqa: E402
from chatgate.providers.registry import ProviderConfig, ProviderRegistry  # noqa: E402


class FakeProvider:
    """Completion-only provider."""
    name = "Fake"

    def __init__(self, text: str = "Hello world", model: str = "fake-model", fail: Optional[Exception] = None):
        self.text = text
        self.model = model
        self.fail = fail
        self.calls = 0
        self.seen: List[list] = []

    async def complete(self, messages):
        self.calls += 1
        self.seen.append(list(messages))
        if self.fail is not None:
            raise self.fail
        return self.text


class FakeStreamingProvider(FakeProvider):
    """
    Streams ``fragments``; with ``break_after=n`` it raises after yielding n fragments.
    """

    def __init__(self, fragments, *, break_after: Optional[int] = None, **kw):
        super().__init__(**kw)
        self.fragments = list(fragments)
        self.break_after = break_after
        self.stream_calls = 0
        self.stream_closed = False
        self.yielded = 0

    async def complete_stream(self, messages):
        self.stream_calls += 1
        try:
            for i, piece in enumerate(self.fragments):
                if self.break_after is not None and i == self.break_after:
                    raise UpstreamTransientError("stream broke")
                self.yielded += 1
                yield piece
            if self.break_after is not None and self.break_after >= len(self.fragments):
                raise UpstreamTransientError("stream broke")
        finally:
            self.stream_closed = True


@ProviderRegistry.kind("fake")
class FakeKindAdapter(FakeProvider):
    """Adapter registered under kind 'fake' so registries can be built without SDKs."""

    def __init__(self, config: ProviderConfig):
        super().__init__(text=f"reply from {config.model}", model=config.model)
        self.config = config

    @classmethod
    def create(cls, *, config: ProviderConfig) -> "FakeKindAdapter":
        return cls(config)


def fake_config(model: str = "m1", credential: str = "key") -> ProviderConfig:
    return ProviderConfig(kind="fake", model=model, credential=credential)


def swap_provider(registry: ProviderRegistry, alias: str, provider) -> None:
    """Replace the adapter built for ``alias`` with a hand-made double, keeping its config."""
    registry._entries[alias] = (provider, registry.config_for(alias))


__all__ = [
    "FakeProvider",
    "FakeStreamingProvider",
    "FakeKindAdapter",
    "UpstreamError",
    "fake_config",
    "swap_provider",
]
