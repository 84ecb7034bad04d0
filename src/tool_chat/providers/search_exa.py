from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import requests

from tool_chat.core.interfaces import SearchProvider


class ExaSearchError(RuntimeError):
    pass


@dataclass(frozen=True)
class ExaSearchConfig:
    api_key: str
    num_results: int = 5
    base_url: str = "https://api.exa.ai"

    @staticmethod
    def from_env() -> "ExaSearchConfig":
        api_key = os.getenv("EXA_API_KEY", "").strip()
        if not api_key:
            raise ExaSearchError("Missing EXA_API_KEY in environment.")

        num_results = int(os.getenv("EXA_NUM_RESULTS", "5"))
        base_url = os.getenv("EXA_BASE_URL", "https://api.exa.ai").strip()
        return ExaSearchConfig(api_key=api_key, num_results=num_results, base_url=base_url)


class ExaSearch(SearchProvider):
    """
    Exa web search (search + page contents in one call).
    Each result carries title, url, publishedDate, author, text and image.
    """

    def __init__(self, config: ExaSearchConfig, timeout_s: float = 30.0) -> None:
        self._cfg = config
        self._timeout_s = timeout_s

    def search(self, query: str) -> dict[str, Any]:
        query = (query or "").strip()
        if not query:
            raise ValueError("ExaSearch.search received empty query.")

        url = f"{self._cfg.base_url.rstrip('/')}/search"
        headers = {
            "x-api-key": self._cfg.api_key,
            "accept": "application/json",
            "content-type": "application/json",
        }
        payload = {
            "query": query,
            "numResults": self._cfg.num_results,
            "useAutoprompt": True,
            "contents": {"text": True},
        }

        try:
            resp = requests.post(url, headers=headers, json=payload, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise ExaSearchError(f"Failed to reach Exa at {self._cfg.base_url} ({e})") from e

        if resp.status_code >= 400:
            raise ExaSearchError(f"Exa search failed: {resp.status_code} - {resp.text[:500]}")

        data = resp.json()
        if not isinstance(data, dict):
            raise ExaSearchError("Exa returned an unexpected payload.")
        data.setdefault("results", [])
        return data
