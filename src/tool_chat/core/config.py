from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. When you use tools to gather information, you MUST always "
    "provide a comprehensive response based on the tool results. After calling a tool and "
    "receiving results, you MUST analyze and summarize the information for the user in a clear "
    "and helpful way. Never end your response with just a tool call - always follow up with "
    "explanatory text."
)


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ChatConfig:
    model: str = "gpt-4o-mini"
    max_tool_call_rounds: int = 3
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    def __post_init__(self) -> None:
        if self.max_tool_call_rounds < 1:
            raise ConfigError(
                f"MAX_TOOL_CALL_ROUNDS must be at least 1 (got {self.max_tool_call_rounds})."
            )

    @staticmethod
    def from_env() -> "ChatConfig":
        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        raw_rounds = os.getenv("MAX_TOOL_CALL_ROUNDS", "3").strip()
        try:
            rounds = int(raw_rounds)
        except ValueError as e:
            raise ConfigError(f"MAX_TOOL_CALL_ROUNDS must be an integer, got {raw_rounds!r}.") from e
        system_prompt = os.getenv("CHAT_SYSTEM_PROMPT", "").strip() or DEFAULT_SYSTEM_PROMPT
        return ChatConfig(model=model, max_tool_call_rounds=rounds, system_prompt=system_prompt)


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = "chat.db"

    @staticmethod
    def from_env() -> "StoreConfig":
        return StoreConfig(db_path=os.getenv("CHAT_DB_PATH", "chat.db").strip() or "chat.db")
