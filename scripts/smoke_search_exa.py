from __future__ import annotations

import sys

from dotenv import load_dotenv

from tool_chat.core.factory import get_search_provider
from tool_chat.tools import filter_search_result, make_web_search_tool


def main() -> None:
    load_dotenv()
    tool = make_web_search_tool(get_search_provider("exa"))
    out = tool.fn(query=" ".join(sys.argv[1:]) or "latest Python release")
    print(filter_search_result(out))


if __name__ == "__main__":
    main()
