import pytest

from tool_chat.core.cache import TTLCache
from tool_chat.providers.models import (
    DEFAULT_MODELS,
    FALLBACK_TITLE_MODEL,
    ModelCatalog,
    format_model_name,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLister:
    def __init__(self, ids=None, error=None) -> None:
        self.ids = ids or []
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.ids)


@pytest.mark.asyncio
async def test_cache_reloads_only_after_expiry():
    clock = FakeClock()
    cache = TTLCache(ttl_s=300, clock=clock)
    loads = []

    async def loader():
        loads.append(clock.now)
        return len(loads)

    assert await cache.get(loader) == 1
    clock.now += 299
    assert await cache.get(loader) == 1
    clock.now += 1
    assert await cache.get(loader) == 2
    assert len(loads) == 2


def test_peek_and_clear():
    cache = TTLCache(ttl_s=10, clock=FakeClock())

    assert cache.peek() is None
    cache.put(["a"])
    assert cache.peek() == ["a"]
    cache.clear()
    assert cache.peek() is None


@pytest.mark.parametrize(
    "model_id, name",
    [
        ("gpt-4o-mini", "GPT-4o Mini"),
        ("gpt-4-turbo", "GPT-4 Turbo"),
        ("gpt-4.1-nano", "GPT-4.1 Nano"),
        ("o1-preview", "O1 Preview"),
    ],
)
def test_format_model_name(model_id, name):
    assert format_model_name(model_id) == name


@pytest.mark.asyncio
async def test_models_are_named_sorted_and_cached():
    lister = CountingLister(ids=["gpt-4o-mini", "gpt-3.5-turbo", "gpt-4o"])
    catalog = ModelCatalog(lister, clock=FakeClock())

    models = await catalog.list_models()
    await catalog.list_models()

    assert [m.name for m in models] == ["GPT-3.5 Turbo", "GPT-4o", "GPT-4o Mini"]
    assert models[0].description == "OpenAI gpt-3.5-turbo"
    assert lister.calls == 1


@pytest.mark.asyncio
async def test_listing_failure_falls_back_to_defaults_and_is_cached():
    clock = FakeClock()
    lister = CountingLister(error=RuntimeError("401 Unauthorized"))
    catalog = ModelCatalog(lister, ttl_s=60, clock=clock)

    assert await catalog.list_models() == DEFAULT_MODELS
    assert await catalog.list_models() == DEFAULT_MODELS
    assert lister.calls == 1

    clock.now += 60
    await catalog.list_models()
    assert lister.calls == 2


@pytest.mark.asyncio
async def test_title_model_prefers_nano():
    catalog = ModelCatalog(CountingLister(ids=["gpt-4o", "gpt-4.1-nano"]), clock=FakeClock())

    assert (await catalog.title_model()).id == "gpt-4.1-nano"


@pytest.mark.asyncio
async def test_title_model_falls_back():
    catalog = ModelCatalog(CountingLister(ids=["gpt-4o"]), clock=FakeClock())

    assert await catalog.title_model() == FALLBACK_TITLE_MODEL


@pytest.mark.asyncio
async def test_clear_forces_reload():
    lister = CountingLister(ids=["gpt-4o"])
    catalog = ModelCatalog(lister, clock=FakeClock())

    await catalog.list_models()
    catalog.clear()
    await catalog.list_models()

    assert lister.calls == 2
