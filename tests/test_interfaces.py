import json

import pytest

from helpers import make_tool
from tool_chat.core.config import ChatConfig
from tool_chat.core.factory import build_orchestrator, get_registry, get_store
from tool_chat.core.interfaces import SearchProvider
from tool_chat.orchestrators.chat_orchestrator import ChatOrchestrator
from tool_chat.stores.memory import InMemoryStore
from tool_chat.tools import make_summarize_tool, make_web_search_tool
from tool_chat.tools.registry import DuplicateToolError, ToolNotFoundError, ToolRegistry
from tool_chat.tools.summarize import SUMMARIZER_CONTEXT


class DummySearch:
    def __init__(self) -> None:
        self.queries = []

    def search(self, query: str) -> dict:
        self.queries.append(query)
        return {
            "resolvedSearchType": "neural",
            "results": [{"title": "Python 3.13", "url": "https://python.org", "text": "released"}],
        }


class DummyLLM:
    def __init__(self) -> None:
        self.requests = []

    async def generate(self, prompt, context=None, model=None, max_tokens=None) -> str:
        self.requests.append((prompt, context))
        return "short"


def test_dummy_search_satisfies_protocol():
    search: SearchProvider = DummySearch()
    assert search.search("hi")["results"]


def test_registry_rejects_duplicates_and_reports_unknown_names():
    registry = ToolRegistry([make_tool("search", lambda query: "x")])

    with pytest.raises(DuplicateToolError):
        registry.register(make_tool("search", lambda query: "y"))
    with pytest.raises(ToolNotFoundError):
        registry.get("nope")
    assert registry.lookup("nope") is None
    assert "search" in registry
    assert len(registry) == 1
    assert registry.names() == ["search"]


def test_schemas_use_function_calling_format():
    registry = ToolRegistry([make_tool("search", lambda query: "x")])

    (schema,) = registry.schemas()

    assert schema["type"] == "function"
    assert schema["function"]["name"] == "search"
    assert schema["function"]["parameters"]["required"] == ["query"]


def test_web_search_tool_formats_provider_results():
    search = DummySearch()
    tool = make_web_search_tool(search)

    payload = json.loads(tool.fn(query="python news"))

    assert search.queries == ["python news"]
    assert payload["query"] == "python news"
    assert payload["searchType"] == "neural"
    assert payload["results"][0]["url"] == "https://python.org"
    assert set(payload["results"][0]) == {"title", "url", "publishedDate", "author", "text", "image"}
    assert tool.followup.enabled is True


@pytest.mark.asyncio
async def test_summarize_tool_delegates_to_llm():
    llm = DummyLLM()
    tool = make_summarize_tool(llm)

    assert await tool.fn(text="long text") == "short"
    assert llm.requests[0][0] == "long text"
    assert llm.requests[0][1] == SUMMARIZER_CONTEXT
    assert tool.followup is None

    await tool.fn(text="long text", focus="dates")
    assert llm.requests[1][0].startswith("Summarize the following text, focusing on dates")


def test_default_registry_offers_search_only_with_a_provider():
    llm = DummyLLM()

    assert get_registry(llm).names() == ["summarize"]
    assert get_registry(llm, DummySearch()).names() == ["web_search", "summarize"]


def test_build_orchestrator_uses_given_config():
    config = ChatConfig(max_tool_call_rounds=2)

    orchestrator = build_orchestrator(DummyLLM(), store=InMemoryStore(), config=config)

    assert isinstance(orchestrator, ChatOrchestrator)
    assert orchestrator.config.max_tool_call_rounds == 2


def test_get_store(tmp_path, monkeypatch):
    monkeypatch.setenv("CHAT_DB_PATH", str(tmp_path / "x.db"))

    assert isinstance(get_store("memory"), InMemoryStore)
    assert get_store("sqlite").list_sessions() == []
    with pytest.raises(ValueError):
        get_store("redis")
