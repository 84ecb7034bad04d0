from __future__ import annotations

import json

from tool_chat.core.interfaces import SearchProvider
from tool_chat.tools.definitions import FollowupPolicy, ToolSpec

CITE_SOURCES_PROMPT = (
    "Based on the search results provided, please provide a comprehensive response to the "
    "user's question. You MUST cite your sources by including the URLs and titles of the "
    "articles you reference. When mentioning information from the search results, always "
    "include the source URL in your response."
)


def filter_search_result(result: str) -> str:
    """Keep only query and title/url/text per hit; anything unparseable passes through."""
    try:
        parsed = json.loads(result)
        filtered = {
            "query": parsed.get("query"),
            "results": [
                {"title": r.get("title"), "url": r.get("url"), "text": r.get("text")}
                for r in parsed.get("results") or []
            ],
        }
    except (ValueError, AttributeError, TypeError):
        return result
    return json.dumps(filtered, indent=2)


def make_web_search_tool(search: SearchProvider) -> ToolSpec:
    """Factory that creates a web search tool backed by the given provider."""

    def web_search(query: str) -> str:
        data = search.search(query)
        results = data.get("results") or []
        formatted = {
            "query": query,
            "searchType": data.get("resolvedSearchType"),
            "results": [
                {
                    "title": r.get("title"),
                    "url": r.get("url"),
                    "publishedDate": r.get("publishedDate"),
                    "author": r.get("author"),
                    "text": r.get("text"),
                    "image": r.get("image"),
                }
                for r in results
            ],
        }
        return json.dumps(formatted, indent=2)

    return ToolSpec(
        name="web_search",
        description=(
            "Search the web. Use this when answering questions about recent events "
            "or anything that needs up-to-date information from the internet."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to find information for.",
                }
            },
            "required": ["query"],
        },
        fn=web_search,
        followup=FollowupPolicy(
            enabled=True,
            system_prompt=CITE_SOURCES_PROMPT,
            result_filter=filter_search_result,
        ),
    )
