from tool_chat.tools.definitions import (
    FollowupPolicy,
    ToolExecution,
    ToolSpec,
    ToolTrace,
)
from tool_chat.tools.registry import DuplicateToolError, ToolNotFoundError, ToolRegistry
from tool_chat.tools.summarize import make_summarize_tool
from tool_chat.tools.web_search import filter_search_result, make_web_search_tool

__all__ = [
    "DuplicateToolError",
    "FollowupPolicy",
    "ToolExecution",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolSpec",
    "ToolTrace",
    "filter_search_result",
    "make_summarize_tool",
    "make_web_search_tool",
]
