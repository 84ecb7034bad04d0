"""Concurrent execution of the tool calls requested in one round."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from jsonschema import Draft7Validator

from tool_chat.core.interfaces import MessageStore
from tool_chat.core.messages import ChatEvent, Message, ToolCallFragment
from tool_chat.core.metrics import Timer
from tool_chat.stores.best_effort import BestEffortStore
from tool_chat.tools.definitions import ToolExecution, ToolSpec
from tool_chat.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)


class ToolArgumentsError(ValueError):
    """Raised when parsed arguments do not satisfy the tool's JSON schema."""


@dataclass(frozen=True)
class PendingCall:
    """A resolved tool call whose tool_call record exists but has no result yet."""

    tool: ToolSpec
    args: dict[str, Any]
    call_id: str
    record_id: Optional[str]


@dataclass(frozen=True)
class InvocationOutcome:
    event: ChatEvent
    execution: Optional[ToolExecution] = None


def validate_arguments(tool: ToolSpec, args: dict[str, Any]) -> None:
    if not tool.parameters:
        return
    errors = sorted(Draft7Validator(tool.parameters).iter_errors(args), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(e.message for e in errors)
        raise ToolArgumentsError(f"Invalid arguments for tool {tool.name}: {details}")


class ToolInvoker:
    """Runs tool calls for one conversation, each failure isolated to its call.

    Every call goes through two steps. ``start`` parses the arguments,
    resolves the tool and persists a pending tool_call record before anything
    runs. ``execute`` runs the tool and attaches the result to that record.
    Failures in either step become error events and never propagate.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        store: Optional[MessageStore] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self._registry = registry
        self._store = BestEffortStore(store, session_id)

    async def start(
        self, fragment: ToolCallFragment
    ) -> tuple[Optional[PendingCall], list[ChatEvent]]:
        """Announce a call and prepare it for execution.

        Every fragment whose arguments parse gets a ``tool_call`` event, even
        when it then fails to resolve; the failure follows as an ``error``.
        """
        name = fragment.name
        try:
            args = json.loads(fragment.arguments)
        except ValueError as e:
            LOGGER.warning("Unparseable arguments for tool %s: %s", name, e)
            return None, [ChatEvent.error(f"Invalid arguments for tool {name}: {e}")]

        call_id = fragment.id or f"call_{uuid.uuid4().hex[:12]}"
        announced = ChatEvent.tool_call(name, args, call_id)
        if not isinstance(args, dict):
            LOGGER.warning("Non-object arguments for tool %s (%s)", name, call_id)
            return None, [
                announced,
                ChatEvent.error(f"Invalid arguments for tool {name}: expected a JSON object"),
            ]

        tool = self._registry.lookup(name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %s (%s)", name, call_id)
            return None, [announced, ChatEvent.error(f"Tool not found: {name}")]

        record_id = await self._store.append(
            Message(role="tool_call", content=f"Calling {name}", tool_name=name, tool_args=args)
        )
        LOGGER.info("Tool call %s (%s) args=%s", name, call_id, args)
        pending = PendingCall(tool=tool, args=args, call_id=call_id, record_id=record_id)
        return pending, [announced]

    async def execute(self, pending: PendingCall) -> InvocationOutcome:
        tool = pending.tool
        timer = Timer()
        try:
            with timer.step(tool.name):
                validate_arguments(tool, pending.args)
                result = await self._run(tool, pending.args)
        except Exception as e:
            LOGGER.warning("Tool %s (%s) failed", tool.name, pending.call_id, exc_info=True)
            return InvocationOutcome(event=ChatEvent.error(f"Tool execution failed: {tool.name}: {e}"))

        await self._store.update_result(pending.record_id, result)
        LOGGER.info("Tool %s (%s) finished in %.0f ms", tool.name, pending.call_id, timer.last())
        execution = ToolExecution(
            tool_name=tool.name,
            tool_args=pending.args,
            result=result,
            tool=tool,
            call_id=pending.call_id,
            record_id=pending.record_id,
            elapsed_ms=timer.last(),
        )
        return InvocationOutcome(
            event=ChatEvent.tool_result(tool.name, result, pending.call_id),
            execution=execution,
        )

    async def invoke(self, fragment: ToolCallFragment) -> list[InvocationOutcome]:
        """Run a single call end to end."""
        pending, events = await self.start(fragment)
        outcomes = [InvocationOutcome(event=event) for event in events]
        if pending is not None:
            outcomes.append(await self.execute(pending))
        return outcomes

    async def invoke_all(self, fragments: list[ToolCallFragment]) -> AsyncIterator[InvocationOutcome]:
        """Start every call in call order, then run them concurrently.

        tool_call events come out in call order; results and execution errors
        come out in completion order and must be matched by id.
        """
        pending_calls: list[PendingCall] = []
        for fragment in fragments:
            pending, events = await self.start(fragment)
            for event in events:
                yield InvocationOutcome(event=event)
            if pending is not None:
                pending_calls.append(pending)

        if not pending_calls:
            return

        tasks = [asyncio.ensure_future(self.execute(p)) for p in pending_calls]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    @staticmethod
    async def _run(tool: ToolSpec, args: dict[str, Any]) -> str:
        if inspect.iscoroutinefunction(tool.fn):
            result = await tool.fn(**args)
        else:
            result = await asyncio.to_thread(tool.fn, **args)
        return result if isinstance(result, str) else json.dumps(result)
