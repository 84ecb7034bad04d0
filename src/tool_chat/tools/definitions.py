from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class FollowupPolicy:
    """How a tool's results shape the followup request to the LLM."""

    enabled: bool
    system_prompt: Optional[str] = None  # replaces the generic followup system prompt
    result_filter: Optional[Callable[[str], str]] = None  # trims the result before it is sent back


@dataclass(frozen=True)
class ToolSpec:
    """Definition of a tool the LLM can invoke."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema for the function parameters
    fn: Callable[..., Any]  # sync or async callable returning the result string
    followup: Optional[FollowupPolicy] = None

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolExecution:
    """Record of a successful tool execution within one round."""

    tool_name: str
    tool_args: dict[str, Any]
    result: str
    tool: ToolSpec
    call_id: str  # correlation id shared by the tool_call / tool_result events
    record_id: Optional[str] = None  # id of the persisted tool_call record, if any
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class ToolTrace:
    """Display record of a tool call for the UI."""

    call_id: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    result: Optional[str] = None
    error: Optional[str] = None
