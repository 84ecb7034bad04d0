"""Shared test doubles: a scripted streaming model and fragment builders."""

from __future__ import annotations

from typing import Any, Optional, Union

from tool_chat.core.messages import ResponseFragment, ToolCallDelta
from tool_chat.tools.definitions import FollowupPolicy, ToolSpec

QUERY_SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string"}},
    "required": ["query"],
}


def text(content: str) -> ResponseFragment:
    return ResponseFragment(text=content)


def call(index: int, name: str = "", args: str = "", call_id: str = "") -> ResponseFragment:
    return ResponseFragment(tool_calls=(ToolCallDelta(index=index, id=call_id, name=name, arguments=args),))


def finish(reason: str) -> ResponseFragment:
    return ResponseFragment(finish_reason=reason)


def make_tool(
    name: str,
    fn,
    followup: Optional[FollowupPolicy] = None,
    parameters: Optional[dict[str, Any]] = None,
) -> ToolSpec:
    return ToolSpec(
        name=name,
        description=f"{name} tool",
        parameters=QUERY_SCHEMA if parameters is None else parameters,
        fn=fn,
        followup=followup,
    )


Script = list[Union[ResponseFragment, Exception]]


class ScriptedModel:
    """Plays back one scripted fragment list per round and records each request."""

    def __init__(self, rounds: list[Script]) -> None:
        self._rounds = list(rounds)
        self.calls: list[dict[str, Any]] = []

    async def stream(self, messages, tools, allow_tools=True, model=None):
        self.calls.append(
            {"messages": messages, "tools": tools, "allow_tools": allow_tools, "model": model}
        )
        if not self._rounds:
            raise AssertionError("model called more times than scripted")
        for item in self._rounds.pop(0):
            if isinstance(item, Exception):
                raise item
            yield item

    async def generate(self, prompt, context=None, model=None, max_tokens=None) -> str:
        return f"summary of {prompt}"


class RecordingStore:
    """MessageStore double; optionally fails every call."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.appended: list[tuple[str, Any]] = []
        self.updates: list[tuple[str, str]] = []

    def append(self, session_id, message) -> str:
        if self.fail:
            raise RuntimeError("database is down")
        self.appended.append((session_id, message))
        return f"rec-{len(self.appended)}"

    def update_result(self, record_id, result) -> None:
        if self.fail:
            raise RuntimeError("database is down")
        self.updates.append((record_id, result))


async def collect(agen) -> list:
    return [item async for item in agen]
