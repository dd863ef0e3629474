from __future__ import annotations
import asyncio
import logging
import re
from contextlib import aclosing
from typing import AsyncIterator, List, Sequence

from .messages import ChatMessage, Content, Done, Error, StreamEvent
from .ports import Provider, stream_capability

logger = logging.getLogger(__name__)

DEFAULT_WORD_DELAY = 0.03

_WORD_RE = re.compile(r"\s*\S+|\s+$")


def split_words(text: str) -> List[str]:
    """
    Split a reply into word-sized pieces, each carrying the whitespace that
    precedes it. ''.join(split_words(t)) == t for every t.
    """
    return _WORD_RE.findall(text)


class StreamingSession:
    """
    Drives one provider call and produces a well-formed event sequence:
    zero or more Content events, then exactly one Done or Error.

    Native streaming is used when the provider has it. If the native stream
    breaks mid-flight the reply is fetched again with complete() and replayed
    word by word; fragments already delivered stay delivered.
    """

    def __init__(
        self,
        provider: Provider,
        messages: Sequence[ChatMessage],
        *,
        word_delay: float = DEFAULT_WORD_DELAY,
    ):
        self.provider = provider
        self.messages = list(messages)
        self.word_delay = float(word_delay)

    async def events(self) -> AsyncIterator[StreamEvent]:
        stream_fn = stream_capability(self.provider)
        if stream_fn is not None:
            sent = 0
            try:
                async with aclosing(stream_fn(self.messages)) as stream:
                    async for piece in stream:
                        if piece:
                            sent += 1
                            yield Content(piece)
            except Exception as e:
                logger.warning(
                    "Native streaming failed for %s after %d fragment(s), falling back: %s",
                    getattr(self.provider, "model", "?"), sent, e,
                )
            else:
                yield Done()
                return

        try:
            text = await self.provider.complete(self.messages)
        except Exception as e:
            logger.error("Provider call failed for %s: %s", getattr(self.provider, "model", "?"), e)
            yield Error(f"Failed to get response: {e}")
            return

        async for event in self._simulate(text or ""):
            yield event
        yield Done()

    async def _simulate(self, text: str) -> AsyncIterator[StreamEvent]:
        for i, word in enumerate(split_words(text)):
            if i and self.word_delay > 0:
                await asyncio.sleep(self.word_delay)
            yield Content(word)
