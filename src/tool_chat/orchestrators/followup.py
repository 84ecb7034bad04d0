from __future__ import annotations

import logging
from typing import Any

from tool_chat.tools.definitions import FollowupPolicy, ToolExecution

LOGGER = logging.getLogger(__name__)

DEFAULT_FOLLOWUP_PROMPT = (
    "You are a helpful assistant. Based on the tool results in the conversation, provide a "
    "comprehensive and helpful response to the user's question. Analyze and summarize the "
    "information clearly."
)


def _enabled_policy(execution: ToolExecution) -> FollowupPolicy | None:
    policy = execution.tool.followup
    return policy if policy is not None and policy.enabled else None


class FollowupComposer:
    """
    Builds the next round's messages from a round's tool executions:
    one system message merged from the enabled followup policies, the prior
    history, then one assistant entry per tool result.
    """

    def __init__(self, default_prompt: str = DEFAULT_FOLLOWUP_PROMPT) -> None:
        self._default_prompt = default_prompt

    def system_prompt(self, executions: list[ToolExecution]) -> str:
        overrides = [
            policy.system_prompt
            for policy in map(_enabled_policy, executions)
            if policy is not None and policy.system_prompt
        ]
        return "\n\n".join(overrides) if overrides else self._default_prompt

    def filter_result(self, execution: ToolExecution) -> str:
        policy = _enabled_policy(execution)
        if policy is None or policy.result_filter is None:
            return execution.result
        try:
            return policy.result_filter(execution.result)
        except Exception:
            LOGGER.warning(
                "Result filter for %s failed; using unfiltered result", execution.tool_name,
                exc_info=True,
            )
            return execution.result

    def compose(
        self, executions: list[ToolExecution], history: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt(executions)}
        ]
        messages.extend(history)
        for execution in executions:
            messages.append({
                "role": "assistant",
                "content": f"Tool {execution.tool_name} executed with result: "
                f"{self.filter_result(execution)}",
            })
        return messages
