from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

MODEL_ROLES = ("user", "assistant", "system")
ROLES = MODEL_ROLES + ("tool_call", "tool_result")


@dataclass
class Message:
    """A single turn in a conversation, as persisted and as sent by clients."""

    role: str
    content: str = ""
    tool_name: Optional[str] = None
    tool_args: Optional[dict[str, Any]] = None
    tool_result: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[float] = None
    is_collapsed: bool = False

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "toolName": self.tool_name,
            "toolArgs": self.tool_args,
            "toolResult": self.tool_result,
            "isCollapsed": self.is_collapsed,
            "createdAt": self.created_at,
        }


def filter_messages_for_model(messages: list[Message]) -> list[dict[str, str]]:
    """Drop tool_call / tool_result turns and convert the rest to chat dicts."""
    return [
        {"role": m.role, "content": m.content}
        for m in messages
        if m.role in MODEL_ROLES
    ]


@dataclass(frozen=True)
class ToolCallDelta:
    """An incremental piece of a tool call, addressed by its slot index."""

    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass(frozen=True)
class ResponseFragment:
    """One incremental unit of a model response stream."""

    text: str = ""
    tool_calls: tuple[ToolCallDelta, ...] = ()
    finish_reason: Optional[str] = None


@dataclass
class ToolCallFragment:
    """A tool call being assembled from deltas that share an index."""

    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""

    def merge(self, delta: ToolCallDelta) -> None:
        if delta.id and not self.id:
            self.id = delta.id
        self.name += delta.name
        self.arguments += delta.arguments

    @property
    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.arguments)


@dataclass(frozen=True)
class ChatEvent:
    """A normalized event emitted to the caller of the orchestrator.

    Attributes:
        type: One of "text_chunk", "tool_call", "tool_result", "error", "end".
        content: Text fragment (text_chunk).
        name: Tool name (tool_call, tool_result).
        args: Parsed tool arguments (tool_call).
        result: Tool result string (tool_result).
        id: Correlation id shared by a tool_call and its tool_result.
        message: Error description (error).
    """

    type: str
    content: str = ""
    name: str = ""
    args: Any = field(default_factory=dict)
    result: str = ""
    id: str = ""
    message: str = ""

    @staticmethod
    def text_chunk(content: str) -> "ChatEvent":
        return ChatEvent(type="text_chunk", content=content)

    @staticmethod
    def tool_call(name: str, args: Any, call_id: str) -> "ChatEvent":
        return ChatEvent(type="tool_call", name=name, args=args, id=call_id)

    @staticmethod
    def tool_result(name: str, result: str, call_id: str) -> "ChatEvent":
        return ChatEvent(type="tool_result", name=name, result=result, id=call_id)

    @staticmethod
    def error(message: str) -> "ChatEvent":
        return ChatEvent(type="error", message=message)

    @staticmethod
    def end() -> "ChatEvent":
        return ChatEvent(type="end")

    def to_dict(self) -> dict[str, Any]:
        if self.type == "text_chunk":
            return {"type": self.type, "content": self.content}
        if self.type == "tool_call":
            return {"type": self.type, "name": self.name, "args": self.args, "id": self.id}
        if self.type == "tool_result":
            return {"type": self.type, "name": self.name, "result": self.result, "id": self.id}
        if self.type == "error":
            return {"type": self.type, "message": self.message}
        return {"type": self.type}

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict())}\n\n"
