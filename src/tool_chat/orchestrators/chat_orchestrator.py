"""Multi-round, tool-augmented chat turns."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from tool_chat.core.config import ChatConfig
from tool_chat.core.interfaces import ChatModel, MessageStore
from tool_chat.core.messages import ChatEvent, Message, filter_messages_for_model
from tool_chat.core.metrics import Timer
from tool_chat.orchestrators.followup import FollowupComposer
from tool_chat.orchestrators.stream_multiplexer import TOOL_CALLS, StreamMultiplexer
from tool_chat.orchestrators.tool_invoker import ToolInvoker
from tool_chat.stores.best_effort import BestEffortStore
from tool_chat.tools.definitions import ToolExecution
from tool_chat.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

LAST_CHANCE_GUIDANCE = (
    "This is your last opportunity to call tools. Request any remaining information now; "
    "after this round you must answer with the information you already have."
)
NO_TOOLS_GUIDANCE = (
    "Tools are no longer available. Answer the user's question now using the tool results "
    "above."
)


class RoundState(enum.Enum):
    REQUESTING = "requesting"
    STREAMING = "streaming"
    TOOL_EXECUTING = "tool_executing"
    COMPOSING = "composing"
    DONE = "done"


@dataclass
class Turn:
    """Mutable state of one conversation turn."""

    max_rounds: int
    allow_tools: bool
    round_no: int = 1
    state: RoundState = RoundState.REQUESTING
    text_parts: list[str] = field(default_factory=list)

    def enter(self, state: RoundState) -> None:
        LOGGER.debug("Round %d: %s -> %s", self.round_no, self.state.value, state.value)
        self.state = state

    def advance(self) -> None:
        """Composing -> Requesting. Past the last counted round, tools are withdrawn."""
        if self.round_no < self.max_rounds:
            self.round_no += 1
        else:
            self.allow_tools = False
        self.enter(RoundState.REQUESTING)

    @property
    def text(self) -> str:
        return "".join(self.text_parts)


def round_guidance(round_no: int, max_rounds: int, allow_tools: bool) -> str:
    """Instruction appended to the system prompt for a given round."""
    if not allow_tools:
        return NO_TOOLS_GUIDANCE
    if round_no >= max_rounds:
        return LAST_CHANCE_GUIDANCE
    if round_no == 1:
        return ""
    remaining = max_rounds - round_no + 1
    return (
        f"You may call tools in at most {remaining} more rounds. "
        "Prefer answering directly once you have enough information."
    )


def _with_guidance(context: list[dict[str, Any]], guidance: str) -> list[dict[str, Any]]:
    if not guidance:
        return list(context)
    head, rest = context[0], context[1:]
    return [{"role": "system", "content": f"{head['content']}\n\n{guidance}"}, *rest]


class ChatOrchestrator:
    """Drives one conversation turn against a streaming chat model.

    Each round streams the model's answer; when the model finishes with
    tool calls, the calls are run concurrently and their results are composed
    into the next round's context. Tools are offered for at most
    ``max_tool_call_rounds`` rounds; after tools ran in the last of them one
    more request is made without tools and its answer is final.

    The caller always receives a sequence of ChatEvents ending with exactly
    one ``end`` event, whether the turn succeeded or not.
    """

    def __init__(
        self,
        model: ChatModel,
        registry: ToolRegistry,
        config: Optional[ChatConfig] = None,
        store: Optional[MessageStore] = None,
        composer: Optional[FollowupComposer] = None,
    ) -> None:
        self._model = model
        self._registry = registry
        self._config = config or ChatConfig()
        self._store = store
        self._composer = composer or FollowupComposer()

    @property
    def config(self) -> ChatConfig:
        return self._config

    async def run(
        self,
        messages: list[Message],
        model: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AsyncIterator[ChatEvent]:
        store = BestEffortStore(self._store, session_id)
        invoker = ToolInvoker(self._registry, store=self._store, session_id=session_id)
        tool_schemas = self._registry.schemas()
        turn = Turn(max_rounds=self._config.max_tool_call_rounds, allow_tools=bool(tool_schemas))
        timer = Timer()

        history = filter_messages_for_model(messages)
        if history and history[-1]["role"] == "user":
            await store.append(Message(role="user", content=history[-1]["content"]))
        context: list[dict[str, Any]] = [
            {"role": "system", "content": self._config.system_prompt},
            *history,
        ]

        try:
            while True:
                guidance = ""
                if tool_schemas:
                    guidance = round_guidance(turn.round_no, turn.max_rounds, turn.allow_tools)
                request = _with_guidance(context, guidance)
                mux = StreamMultiplexer()
                fragments = self._model.stream(
                    request,
                    tool_schemas if turn.allow_tools else [],
                    allow_tools=turn.allow_tools,
                    model=model or self._config.model,
                )

                turn.enter(RoundState.STREAMING)
                with timer.step(f"round_{turn.round_no}{'' if turn.allow_tools else '_final'}"):
                    async for event in mux.consume(fragments):
                        if event.type == "text_chunk":
                            turn.text_parts.append(event.text)
                            yield ChatEvent.text_chunk(event.text)

                if not turn.allow_tools or mux.finish_reason != TOOL_CALLS:
                    break
                eligible, parse_errors = mux.resolve()
                for message in parse_errors:
                    yield ChatEvent.error(message)
                if not eligible:
                    break

                turn.enter(RoundState.TOOL_EXECUTING)
                executions: list[ToolExecution] = []
                async for outcome in invoker.invoke_all(eligible):
                    yield outcome.event
                    if outcome.execution is not None:
                        executions.append(outcome.execution)
                if not executions:
                    LOGGER.info("All tool calls failed in round %d; finishing turn", turn.round_no)
                    break

                turn.enter(RoundState.COMPOSING)
                prior = context[1:]
                if mux.text.strip():
                    prior.append({"role": "assistant", "content": mux.text})
                context = self._composer.compose(executions, prior)
                turn.advance()
        except Exception as e:
            LOGGER.exception("Chat stream error")
            yield ChatEvent.error(str(e) or type(e).__name__)

        turn.enter(RoundState.DONE)
        final_text = turn.text.strip()
        if final_text:
            await store.append(Message(role="assistant", content=final_text))
        LOGGER.info("Chat turn done after %d round(s): %s", turn.round_no, timer.summary())
        yield ChatEvent.end()

    async def stream_sse(
        self,
        messages: list[Message],
        model: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """The same turn encoded as ``data: <json>`` lines."""
        async for event in self.run(messages, model=model, session_id=session_id):
            yield event.to_sse()
