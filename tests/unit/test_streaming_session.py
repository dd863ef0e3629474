# tests/unit/test_streaming_session.py

from __future__ import annotations
import pytest

from fakes import FakeProvider, FakeStreamingProvider

from chatgate.core.errors import UpstreamError
from chatgate.core.messages import ChatMessage, Content, Done, Error, is_terminal
from chatgate.core.streaming import StreamingSession, split_words
from chatgate.web.sse import sse_body

MSGS = [ChatMessage("user", "Hi")]


async def collect(session):
    return [e async for e in session.events()]


def text_of(events):
    return "".join(e.text for e in events if isinstance(e, Content))


def assert_well_formed(events):
    assert events, "session produced nothing"
    assert is_terminal(events[-1])
    assert not any(is_terminal(e) for e in events[:-1])


@pytest.mark.asyncio
async def test_native_stream_relays_fragments_in_order():
    p = FakeStreamingProvider(["Hel", "lo"])
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert events == [Content("Hel"), Content("lo"), Done()]
    assert p.calls == 0
    assert p.stream_closed


@pytest.mark.asyncio
async def test_midstream_failure_falls_back_to_simulated_replay():
    p = FakeStreamingProvider(["Hel", "lo"], break_after=1, text="Hello world")
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert_well_formed(events)
    assert events[0] == Content("Hel")
    assert events[-1] == Done()
    # native fragment delivered once, then the complete reply replayed word by word
    replay = events[1:-1]
    assert text_of(replay) == "Hello world"
    assert replay == [Content("Hello"), Content(" world")]
    assert p.stream_calls == 1
    assert p.calls == 1


@pytest.mark.asyncio
async def test_stream_failing_before_first_fragment_falls_back():
    p = FakeStreamingProvider(["x"], break_after=0, text="fine thanks")
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert events == [Content("fine"), Content(" thanks"), Done()]


@pytest.mark.asyncio
async def test_completion_only_provider_is_simulated():
    p = FakeProvider(text="one two  three")
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert events == [Content("one"), Content(" two"), Content("  three"), Done()]


@pytest.mark.asyncio
async def test_completion_failure_emits_single_error():
    p = FakeProvider(fail=UpstreamError("auth failed"))
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert len(events) == 1
    assert isinstance(events[0], Error)
    assert "auth failed" in events[0].message


@pytest.mark.asyncio
async def test_fallback_failure_after_partial_output_ends_with_error():
    p = FakeStreamingProvider(["par"], break_after=1, fail=UpstreamError("down"))
    events = await collect(StreamingSession(p, MSGS, word_delay=0))

    assert events[0] == Content("par")
    assert isinstance(events[-1], Error)
    assert Done() not in events
    assert_well_formed(events)


@pytest.mark.asyncio
async def test_empty_completion_is_just_done():
    events = await collect(StreamingSession(FakeProvider(text=""), MSGS, word_delay=0))
    assert events == [Done()]


@pytest.mark.asyncio
async def test_pacing_sleeps_between_words(monkeypatch):
    delays = []

    async def fake_sleep(d):
        delays.append(d)

    monkeypatch.setattr("chatgate.core.streaming.asyncio.sleep", fake_sleep)
    await collect(StreamingSession(FakeProvider(text="a b c"), MSGS, word_delay=0.03))
    assert delays == [0.03, 0.03]


@pytest.mark.parametrize("text", [
    "Hello world",
    "  leading and trailing  ",
    "tabs\tand\nnew lines\n\n",
    "single",
    "",
    "   ",
])
def test_split_words_is_lossless(text):
    assert "".join(split_words(text)) == text


@pytest.mark.asyncio
async def test_disconnected_response_body_stops_vendor_stream():
    p = FakeStreamingProvider(["a", "b", "c", "d"])
    body = sse_body(StreamingSession(p, MSGS, word_delay=0).events())

    assert await body.__anext__() == 'data: {"content": "a"}\n\n'
    # the server closes the body iterator when the client goes away
    await body.aclose()

    assert p.stream_closed
    assert p.yielded < 4
    # no fallback call after a client disconnect
    assert p.calls == 0


@pytest.mark.asyncio
async def test_closing_events_early_closes_vendor_stream():
    p = FakeStreamingProvider(["a", "b", "c"])
    events = StreamingSession(p, MSGS, word_delay=0).events()
    assert await events.__anext__() == Content("a")
    await events.aclose()
    assert p.stream_closed
