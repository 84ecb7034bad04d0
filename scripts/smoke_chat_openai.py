from __future__ import annotations

import asyncio
import os
import sys

from dotenv import load_dotenv

from tool_chat.core.factory import build_orchestrator, get_chat_model, get_search_provider
from tool_chat.core.logsetup import setup_logging
from tool_chat.core.messages import Message


async def run(prompt: str) -> None:
    llm = get_chat_model("openai")
    search = get_search_provider("exa") if os.getenv("EXA_API_KEY") else None
    orchestrator = build_orchestrator(llm, search=search)

    async for event in orchestrator.run([Message(role="user", content=prompt)]):
        if event.type == "text_chunk":
            print(event.content, end="", flush=True)
        elif event.type == "tool_call":
            print(f"\n[tool_call {event.id}] {event.name} {event.args}")
        elif event.type == "tool_result":
            print(f"[tool_result {event.id}] {event.name}: {len(event.result)} chars")
        elif event.type == "error":
            print(f"\n[error] {event.message}")
    print()


def main() -> None:
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "WARNING"))
    prompt = " ".join(sys.argv[1:]) or "What happened in tech news this week? Cite your sources."
    asyncio.run(run(prompt))


if __name__ == "__main__":
    main()
