from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Sequence, Union

from .errors import MalformedInput, ProviderNotFound
from .messages import ChatMessage, Content, Done, StreamEvent
from .ports import ConversationStore, Provider
from .streaming import DEFAULT_WORD_DELAY, StreamingSession

from chatgate.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Mapping[str, Any]]


@dataclass(frozen=True)
class PreparedChat:
    alias: str
    provider: Provider
    messages: List[ChatMessage]
    conversation_id: Optional[str] = None


@dataclass(frozen=True)
class ChatReply:
    reply: str
    model: str
    provider: str


class ChatGateway:
    """
    Request-level glue around the streaming session: input validation,
    model selection, default system prompt and best-effort persistence.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: Optional[ConversationStore] = None,
        *,
        default_model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        word_delay: float = DEFAULT_WORD_DELAY,
        session_factory: Callable[..., StreamingSession] = StreamingSession,
    ):
        self.registry = registry
        self.store = store
        self._default_model = default_model
        self.system_prompt = system_prompt
        self.word_delay = word_delay
        self._session_factory = session_factory

    @property
    def default_model(self) -> Optional[str]:
        """Configured default if registered, else the first registered alias."""
        if self._default_model and self._default_model in self.registry:
            return self._default_model
        aliases = self.registry.list_aliases()
        return aliases[0] if aliases else None

    # ----- validation -----

    def prepare(
        self,
        messages: Optional[Sequence[MessageLike]],
        model: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> PreparedChat:
        if not messages:
            raise MalformedInput("Messages array is required")
        msgs = [m if isinstance(m, ChatMessage) else ChatMessage.from_dict(m) for m in messages]
        if msgs[-1].role != "user":
            raise MalformedInput("Latest message must be from user")

        alias = model if model is not None else self.default_model
        if alias is None:
            raise ProviderNotFound("", self.registry.list_aliases())
        provider = self.registry.resolve(alias)

        if self.system_prompt and not any(m.role == "system" for m in msgs):
            msgs.insert(0, ChatMessage("system", self.system_prompt))

        return PreparedChat(alias=alias, provider=provider, messages=msgs, conversation_id=conversation_id)

    # ----- persistence -----

    def _persisting(self, prepared: PreparedChat) -> bool:
        return bool(prepared.conversation_id) and self.store is not None

    async def _persist(self, prepared: PreparedChat, role: str, content: str, *, touch: bool = False) -> None:
        try:
            await asyncio.to_thread(self.store.append_message, prepared.conversation_id, role, content)
            if touch:
                await asyncio.to_thread(self.store.touch, prepared.conversation_id)
        except Exception:
            logger.exception("Storing %s message for conversation %s failed", role, prepared.conversation_id)

    # ----- entry points -----

    async def send(self, prepared: PreparedChat) -> ChatReply:
        """Non-streaming exchange. UpstreamError propagates to the caller."""
        if self._persisting(prepared):
            await self._persist(prepared, "user", prepared.messages[-1].content)

        reply = await prepared.provider.complete(prepared.messages)

        if self._persisting(prepared):
            await self._persist(prepared, "assistant", reply, touch=True)
        return ChatReply(reply=reply, model=prepared.alias, provider=prepared.provider.name)

    async def stream(self, prepared: PreparedChat) -> AsyncIterator[StreamEvent]:
        """
        Event stream for one exchange. The assistant text is stored once the
        session finishes with Done; an Error or a closed stream stores nothing.
        """
        if self._persisting(prepared):
            await self._persist(prepared, "user", prepared.messages[-1].content)

        session = self._session_factory(prepared.provider, prepared.messages, word_delay=self.word_delay)
        parts: List[str] = []
        events = session.events()
        try:
            async for event in events:
                if isinstance(event, Content):
                    parts.append(event.text)
                elif isinstance(event, Done) and self._persisting(prepared):
                    await self._persist(prepared, "assistant", "".join(parts), touch=True)
                yield event
        finally:
            await events.aclose()
