from types import SimpleNamespace

import pytest
import requests

from tool_chat.providers.llm_openai import (
    OpenAILLMConfig,
    OpenAIProviderError,
    fragment_from_chunk,
)
from tool_chat.providers.search_exa import ExaSearch, ExaSearchConfig, ExaSearchError


def _chunk(content=None, tool_calls=None, finish_reason=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def _tool_delta(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments)
    )


def test_text_chunk_maps_to_fragment():
    fragment = fragment_from_chunk(_chunk(content="Hello"))

    assert fragment.text == "Hello"
    assert fragment.tool_calls == ()
    assert fragment.finish_reason is None


def test_tool_call_chunk_maps_missing_fields_to_empty_strings():
    fragment = fragment_from_chunk(
        _chunk(tool_calls=[_tool_delta(0, call_id="call_1", name="web_search"), _tool_delta(1, arguments='{"q')])
    )

    first, second = fragment.tool_calls
    assert (first.index, first.id, first.name, first.arguments) == (0, "call_1", "web_search", "")
    assert (second.index, second.id, second.name, second.arguments) == (1, "", "", '{"q')


def test_finish_reason_is_carried():
    assert fragment_from_chunk(_chunk(finish_reason="tool_calls")).finish_reason == "tool_calls"


def test_chunk_without_choices_is_skipped():
    assert fragment_from_chunk(SimpleNamespace(choices=[])) is None


def test_openai_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(OpenAIProviderError):
        OpenAILLMConfig.from_env()


def test_openai_config_from_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_TEMPERATURE", "0.2")
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)

    cfg = OpenAILLMConfig.from_env()

    assert (cfg.api_key, cfg.model, cfg.temperature, cfg.base_url) == ("sk-test", "gpt-4o", 0.2, None)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body="") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = body

    def json(self):
        return self._payload


def test_exa_search_posts_query(monkeypatch):
    sent = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        sent.update(url=url, headers=headers, json=json)
        return FakeResponse(payload={"resolvedSearchType": "neural"})

    monkeypatch.setattr(requests, "post", fake_post)
    search = ExaSearch(ExaSearchConfig(api_key="exa-key", num_results=3, base_url="https://exa.test/"))

    data = search.search(" python ")

    assert sent["url"] == "https://exa.test/search"
    assert sent["headers"]["x-api-key"] == "exa-key"
    assert sent["json"] == {
        "query": "python",
        "numResults": 3,
        "useAutoprompt": True,
        "contents": {"text": True},
    }
    assert data["results"] == []


def test_exa_http_error_raises(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(status_code=401, body="bad key"))

    with pytest.raises(ExaSearchError, match="401"):
        ExaSearch(ExaSearchConfig(api_key="k")).search("python")


def test_exa_network_error_raises(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", fake_post)

    with pytest.raises(ExaSearchError):
        ExaSearch(ExaSearchConfig(api_key="k")).search("python")


def test_exa_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("EXA_API_KEY", raising=False)

    with pytest.raises(ExaSearchError):
        ExaSearchConfig.from_env()
