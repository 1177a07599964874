from .base import ToolExecutor, ToolRegistry, ToolSpec
from .search import (
    WEB_SEARCH_TOOL,
    SearchResult,
    WebSearchClient,
    create_web_search_tool,
    format_search_results,
)

__all__ = [
    "SearchResult",
    "ToolExecutor",
    "ToolRegistry",
    "ToolSpec",
    "WEB_SEARCH_TOOL",
    "WebSearchClient",
    "create_web_search_tool",
    "format_search_results",
]
