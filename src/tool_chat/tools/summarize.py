from __future__ import annotations

from typing import Optional

from tool_chat.core.interfaces import ChatModel
from tool_chat.tools.definitions import ToolSpec

SUMMARIZER_CONTEXT = (
    "You condense text for a chat assistant. Reply with a 2-3 sentence summary that keeps "
    "names, numbers and dates. Do not add information that is not in the text."
)


def build_summary_prompt(text: str, focus: Optional[str] = None) -> str:
    if focus:
        return f"Summarize the following text, focusing on {focus}:\n\n{text}"
    return text


def make_summarize_tool(llm: ChatModel) -> ToolSpec:
    """Summarize tool backed by the chat model's one-shot ``generate``."""

    async def summarize(text: str, focus: Optional[str] = None) -> str:
        return await llm.generate(prompt=build_summary_prompt(text, focus), context=SUMMARIZER_CONTEXT)

    return ToolSpec(
        name="summarize",
        description=(
            "Summarize a long piece of text, such as a page returned by web_search, "
            "into 2-3 sentences."
        ),
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The text to summarize."},
                "focus": {
                    "type": "string",
                    "description": "Optional aspect of the text the summary should focus on.",
                },
            },
            "required": ["text"],
        },
        fn=summarize,
    )
