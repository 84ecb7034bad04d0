"""Name-keyed registry of the tools offered to the LLM."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

from tool_chat.tools.definitions import ToolSpec

LOGGER = logging.getLogger(__name__)


class DuplicateToolError(Exception):
    """Raised when attempting to register a tool with a name that already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ToolNotFoundError(Exception):
    """Raised when a requested tool is not found in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found")


class ToolRegistry:
    """Registry mapping tool names to their specs.

    Registrations happen at process start; afterwards the registry is only
    read. Lookup of an unknown name is not an error here, callers decide how
    to report it.

    Example:
        registry = ToolRegistry([make_web_search_tool(search)])
        spec = registry.lookup("web_search")
    """

    def __init__(self, tools: Optional[Iterable[ToolSpec]] = None) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for spec in tools or ():
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise DuplicateToolError(spec.name)
        self._tools[spec.name] = spec
        LOGGER.debug("Registered tool %s", spec.name)

    def lookup(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise ToolNotFoundError(name)
        return spec

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """Tool schemas in OpenAI function-calling format."""
        return [spec.to_openai() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
