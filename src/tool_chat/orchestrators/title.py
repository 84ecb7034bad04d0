from __future__ import annotations

import logging
import re
from typing import Optional

from tool_chat.core.interfaces import ChatModel
from tool_chat.core.messages import MODEL_ROLES, Message

LOGGER = logging.getLogger(__name__)

MAX_TITLE_CHARS = 50
TITLE_CONTEXT_MESSAGES = 4  # first two exchanges


class TitleGenerationError(RuntimeError):
    pass


class NotEnoughMessagesError(TitleGenerationError):
    pass


def build_title_prompt(messages: list[Message]) -> str:
    conversation = "\n".join(f"{m.role}: {m.content}" for m in messages[:TITLE_CONTEXT_MESSAGES])
    return (
        "Based on the following conversation, generate a concise, descriptive title "
        f"(maximum {MAX_TITLE_CHARS} characters) that captures the main topic or question:\n\n"
        f"{conversation}\n\nTitle:"
    )


def clean_title(raw: str) -> str:
    title = re.sub(r"^[\"']|[\"']$", "", raw.strip())
    return title[:MAX_TITLE_CHARS]


async def generate_title(
    llm: ChatModel, messages: list[Message], model: Optional[str] = None
) -> str:
    """Generate a short session title from the opening messages."""
    messages = [m for m in messages if m.role in MODEL_ROLES]
    if len(messages) < 2:
        raise NotEnoughMessagesError("Not enough messages to generate title")

    try:
        raw = await llm.generate(build_title_prompt(messages), model=model, max_tokens=20)
    except Exception as e:
        LOGGER.warning("Title generation failed", exc_info=True)
        raise TitleGenerationError("Failed to generate title") from e

    title = clean_title(raw)
    if not title:
        raise TitleGenerationError("Failed to generate title")
    return title
