# tests/unit/test_anthropic_adapter.py

from __future__ import annotations
import pytest

import fakes  # noqa: F401

import chatgate.providers.anthropic_adapter as aa
from chatgate.core.errors import UpstreamClientError
from chatgate.core.messages import ChatMessage
from chatgate.core.ports import stream_capability
from chatgate.providers.registry import ProviderConfig


class _Block:
    def __init__(self, text, type_="text"):
        self.text = text
        self.type = type_

class _Resp:
    def __init__(self, blocks):
        self.content = blocks

class _FakeMessages:
    def __init__(self, parent):
        self.parent = parent

    async def create(self, **kwargs):
        self.parent.calls.append(kwargs)
        if self.parent.fail is not None:
            raise self.parent.fail
        return _Resp(self.parent.blocks)

class _FakeAsyncAnthropic:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.calls = []
        self.fail = None
        self.blocks = [_Block("Hello"), _Block(" there")]
        self.messages = _FakeMessages(self)


@pytest.fixture
def adapter(monkeypatch):
    monkeypatch.setattr(aa, "AsyncAnthropic", _FakeAsyncAnthropic, raising=True)
    return aa.AnthropicAdapter.create(config=ProviderConfig(
        kind="anthropic", model="claude-3-haiku-20240307", credential="sk-ant", options={"max_tokens": 256},
    ))


@pytest.mark.asyncio
async def test_system_messages_are_extracted_in_order(adapter):
    msgs = [
        ChatMessage("system", "rule one"),
        ChatMessage("user", "a"),
        ChatMessage("assistant", "b"),
        ChatMessage("system", "rule two"),
        ChatMessage("user", "c"),
    ]
    out = await adapter.complete(msgs)

    assert out == "Hello there"
    call = adapter.client.calls[0]
    assert call["system"] == "rule one\n\nrule two"
    assert call["messages"] == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c"},
    ]
    assert call["max_tokens"] == 256
    assert call["model"] == "claude-3-haiku-20240307"


@pytest.mark.asyncio
async def test_no_system_field_without_system_messages(adapter):
    await adapter.complete([ChatMessage("user", "hi")])
    assert "system" not in adapter.client.calls[0]


@pytest.mark.asyncio
async def test_empty_and_non_text_blocks(adapter):
    adapter.client.blocks = []
    assert await adapter.complete([ChatMessage("user", "hi")]) == ""

    adapter.client.blocks = [_Block(None, "tool_use"), _Block("ok")]
    assert await adapter.complete([ChatMessage("user", "hi")]) == "ok"


@pytest.mark.asyncio
async def test_errors_are_upstream_errors(adapter):
    class AuthError(Exception):
        status_code = 401

    adapter.client.fail = AuthError("invalid x-api-key")
    with pytest.raises(UpstreamClientError):
        await adapter.complete([ChatMessage("user", "hi")])


def test_completion_only(adapter):
    assert stream_capability(adapter) is None
    assert adapter.name == "Anthropic"
