from __future__ import annotations

from typing import Optional

from tool_chat.core.config import ChatConfig, StoreConfig
from tool_chat.core.interfaces import ChatModel, SearchProvider, SessionStore
from tool_chat.orchestrators.chat_orchestrator import ChatOrchestrator
from tool_chat.providers.llm_openai import OpenAIChatModel, OpenAILLMConfig
from tool_chat.providers.search_exa import ExaSearch, ExaSearchConfig
from tool_chat.stores.memory import InMemoryStore
from tool_chat.stores.sqlite import SQLiteStore
from tool_chat.tools import ToolRegistry, make_summarize_tool, make_web_search_tool


def get_chat_model(name: str) -> OpenAIChatModel:
    key = (name or "").strip().lower()

    if key in {"openai", "gpt"}:
        cfg = OpenAILLMConfig.from_env()
        return OpenAIChatModel(cfg)

    raise ValueError(f"Unknown LLM provider: {name}")


def get_search_provider(name: str) -> SearchProvider:
    key = (name or "").strip().lower()

    if key in {"exa"}:
        cfg = ExaSearchConfig.from_env()
        return ExaSearch(cfg)

    raise ValueError(f"Unknown search provider: {name}")


def get_store(name: str) -> SessionStore:
    key = (name or "").strip().lower()

    if key in {"sqlite", "db"}:
        return SQLiteStore(StoreConfig.from_env().db_path)

    if key in {"memory", "inmemory"}:
        return InMemoryStore()

    raise ValueError(f"Unknown store: {name}")


def get_registry(llm: ChatModel, search: Optional[SearchProvider] = None) -> ToolRegistry:
    """Return the default set of tools; web search only when a provider is given."""
    registry = ToolRegistry()
    if search is not None:
        registry.register(make_web_search_tool(search))
    registry.register(make_summarize_tool(llm))
    return registry


def build_orchestrator(
    llm: ChatModel,
    search: Optional[SearchProvider] = None,
    store: Optional[SessionStore] = None,
    config: Optional[ChatConfig] = None,
) -> ChatOrchestrator:
    return ChatOrchestrator(
        model=llm,
        registry=get_registry(llm, search),
        config=config or ChatConfig.from_env(),
        store=store,
    )
