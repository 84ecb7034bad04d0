from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from tool_chat.core.cache import TTLCache

LOGGER = logging.getLogger(__name__)

CACHE_TTL_S = 5 * 60


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    description: Optional[str] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"id": self.id, "name": self.name, "description": self.description}


DEFAULT_MODELS = [
    ModelInfo(id="gpt-4o", name="GPT-4o", description="Latest GPT-4 model"),
    ModelInfo(id="gpt-4-turbo", name="GPT-4 Turbo", description="Fast GPT-4 model"),
    ModelInfo(id="gpt-3.5-turbo", name="GPT-3.5 Turbo", description="Fast and efficient"),
]

FALLBACK_TITLE_MODEL = ModelInfo(
    id="gpt-4o-mini",
    name="GPT-4o Mini",
    description="Fast and efficient model for title generation",
)


def format_model_name(model_id: str) -> str:
    """'gpt-4o-mini' -> 'GPT-4o Mini'."""
    name = model_id.replace("gpt-", "GPT-", 1).replace("-", " ", 1)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name)


class ModelCatalog:
    """
    Lists the models the provider offers, cached for a few minutes.
    A failed listing falls back to a default list, which is cached as well.
    """

    def __init__(
        self,
        lister: Callable[[], Awaitable[list[str]]],
        ttl_s: float = CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lister = lister
        self._models: TTLCache[list[ModelInfo]] = TTLCache(ttl_s, clock)
        self._title_model: TTLCache[ModelInfo] = TTLCache(ttl_s, clock)

    async def _load_models(self) -> list[ModelInfo]:
        try:
            LOGGER.info("Fetching model list")
            ids = await self._lister()
        except Exception:
            LOGGER.warning("Failed to fetch models; using defaults", exc_info=True)
            return list(DEFAULT_MODELS)
        models = [ModelInfo(id=i, name=format_model_name(i), description=f"OpenAI {i}") for i in ids]
        return sorted(models, key=lambda m: m.name)

    async def list_models(self) -> list[ModelInfo]:
        return await self._models.get(self._load_models)

    async def _load_title_model(self) -> ModelInfo:
        for model in await self.list_models():
            if "4.1-nano" in model.id:
                return model
        return FALLBACK_TITLE_MODEL

    async def title_model(self) -> ModelInfo:
        return await self._title_model.get(self._load_title_model)

    def clear(self) -> None:
        self._models.clear()
        self._title_model.clear()
