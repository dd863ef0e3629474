from __future__ import annotations
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol, Sequence

from .messages import ChatMessage


class Provider(Protocol):
    """
    Interface the core uses to talk to any LLM backend.
    """

    # Surface the vendor model name for logging/headers
    model: str
    # Human-facing vendor name ("OpenAI", "Groq", "Anthropic")
    name: str

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """
        Single-shot call. Returns the assistant text ('' for an empty completion).
        Raises UpstreamError on vendor failure.
        """
        ...


class StreamingProvider(Provider, Protocol):
    def complete_stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        """
        Native streaming call. Yields text fragments as they arrive.
        """
        ...


StreamFn = Callable[[Sequence[ChatMessage]], AsyncIterator[str]]


def stream_capability(provider: Any) -> Optional[StreamFn]:
    """Bound native-stream method of ``provider``, or None when it only completes."""
    fn = getattr(provider, "complete_stream", None)
    return fn if callable(fn) else None


class ConversationStore(Protocol):
    """
    Persistence collaborator. All methods are blocking and raise PersistenceError;
    the gateway calls them off the event loop and logs any failure it sees.
    """

    def create_conversation(
        self, title: Optional[str] = None, model: Optional[str] = None, provider: Optional[str] = None
    ) -> Dict[str, Any]: ...

    def list_conversations(self) -> List[Dict[str, Any]]: ...

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]: ...

    def append_message(self, conversation_id: str, role: str, content: str) -> Dict[str, Any]: ...

    def touch(self, conversation_id: str) -> None: ...

    def delete_conversation(self, conversation_id: str) -> None: ...
