# src/chatgate/core/messages.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Mapping, Union

from .errors import MalformedInput

Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        role = data.get("role")
        content = data.get("content")
        if role not in ROLES:
            raise MalformedInput(f"Invalid role: {role!r}")
        if not isinstance(content, str):
            raise MalformedInput("Message content must be a string")
        return cls(role=role, content=content)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def as_dicts(messages: Iterable[ChatMessage]) -> List[Dict[str, str]]:
    """OpenAI-style [{'role': ..., 'content': ...}] view of a message list."""
    return [m.to_dict() for m in messages]


# ----- stream events -----

@dataclass(frozen=True)
class Content:
    text: str

    def payload(self) -> Dict[str, Any]:
        return {"content": self.text}


@dataclass(frozen=True)
class Done:
    def payload(self) -> Dict[str, Any]:
        return {"done": True}


@dataclass(frozen=True)
class Error:
    message: str

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


StreamEvent = Union[Content, Done, Error]


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, (Done, Error))
