"""Reassembly of a streamed model response into text and tool calls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from tool_chat.core.messages import ResponseFragment, ToolCallFragment

STOP = "stop"
TOOL_CALLS = "tool_calls"


@dataclass(frozen=True)
class RoundEvent:
    """
    Normalized event produced while consuming one round's stream.
    type: "text_chunk" | "tool_call_fragment" | "round_finished"
    """

    type: str
    text: str = ""
    slot: Optional[ToolCallFragment] = None
    reason: str = ""


class StreamMultiplexer:
    """Consumes the fragments of one model response.

    Text is re-emitted as it arrives and accumulated. Tool-call deltas are
    merged into slots keyed by the index the model assigns to each parallel
    call; a slot is created the first time its index is seen and its name and
    arguments grow by concatenation in arrival order.

    The round finishes at the first finish reason. A stream that runs out
    without one is finished as a plain "stop".
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self.slots: dict[int, ToolCallFragment] = {}
        self.finish_reason: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def finished(self) -> bool:
        return self.finish_reason is not None

    def feed(self, fragment: ResponseFragment) -> list[RoundEvent]:
        if self.finished:
            return []

        events: list[RoundEvent] = []
        if fragment.text:
            self._text_parts.append(fragment.text)
            events.append(RoundEvent(type="text_chunk", text=fragment.text))

        for delta in fragment.tool_calls:
            slot = self.slots.get(delta.index)
            if slot is None:
                slot = self.slots[delta.index] = ToolCallFragment(index=delta.index)
            slot.merge(delta)
            events.append(RoundEvent(type="tool_call_fragment", slot=slot))

        if fragment.finish_reason:
            events.append(self.finish(fragment.finish_reason))
        return events

    def finish(self, reason: str) -> RoundEvent:
        self.finish_reason = reason
        return RoundEvent(type="round_finished", reason=reason)

    async def consume(self, fragments: AsyncIterator[ResponseFragment]) -> AsyncIterator[RoundEvent]:
        try:
            async for fragment in fragments:
                for event in self.feed(fragment):
                    yield event
                if self.finished:
                    break
        finally:
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                await aclose()
        if not self.finished:
            yield self.finish(STOP)

    def resolve(self) -> tuple[list[ToolCallFragment], list[str]]:
        """Return (eligible tool calls in index order, argument parse errors).

        Slots missing a name or arguments are dropped without an error.
        """
        eligible: list[ToolCallFragment] = []
        errors: list[str] = []
        for index in sorted(self.slots):
            slot = self.slots[index]
            if not slot.is_complete:
                continue
            try:
                json.loads(slot.arguments)
            except ValueError as e:
                errors.append(f"Invalid arguments for tool {slot.name}: {e}")
                continue
            eligible.append(slot)
        return eligible, errors
