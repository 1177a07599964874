"""Web search tool backed by SerpAPI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from ..errors import ConfigurationError, SearchError
from .base import ToolSpec

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = "web_search"
DEFAULT_NUM_RESULTS = 5


@dataclass
class SearchResult:
    title: str
    link: str
    snippet: str

    def to_dict(self) -> dict:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}


class WebSearchClient:
    """Runs a query against SerpAPI and returns ranked organic results."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://serpapi.com/search.json",
        timeout: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> WebSearchClient:
        return cls(
            settings.serpapi_key,
            base_url=settings.serpapi_url,
            timeout=settings.search_timeout_seconds,
        )

    async def search(self, query: str, num_results: int = DEFAULT_NUM_RESULTS) -> list[SearchResult]:
        """Return at most ``num_results`` results, in the backend's ranking order."""
        if not self.api_key:
            raise ConfigurationError("SERPAPI_KEY is not configured")

        params = {"q": query, "api_key": self.api_key, "num": str(num_results)}
        logger.info("Web search: %r (num=%d)", query, num_results, extra={"tool": WEB_SEARCH_TOOL})

        try:
            if self._http is not None:
                resp = await self._http.get(self.base_url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as http:
                    resp = await http.get(self.base_url, params=params)
        except httpx.HTTPError as exc:
            logger.error("Search request failed: %s", exc, extra={"tool": WEB_SEARCH_TOOL})
            raise SearchError(f"Search request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.error(
                "Search API returned %d: %s",
                resp.status_code,
                resp.text[:500],
                extra={"tool": WEB_SEARCH_TOOL},
            )
            raise SearchError(f"Search API request failed with status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise SearchError("Search API returned a non-JSON body") from exc

        return parse_organic_results(data, num_results)


def parse_organic_results(data: dict[str, Any], num_results: int) -> list[SearchResult]:
    results: list[SearchResult] = []
    for item in (data.get("organic_results") or [])[: max(num_results, 0)]:
        results.append(
            SearchResult(
                title=item.get("title") or "",
                link=item.get("link") or "",
                snippet=item.get("snippet") or "",
            )
        )
    return results


def format_search_results(results: list[SearchResult]) -> str:
    """Flatten results into one ``- title (link): snippet`` line each."""
    if not results:
        return "No results found."
    return "\n".join(f"- {r.title} ({r.link}): {r.snippet}" for r in results)


def create_web_search_tool(
    client: WebSearchClient, *, num_results: int = DEFAULT_NUM_RESULTS
) -> ToolSpec:
    async def web_search_execute(tool_call_id: str, params: dict[str, Any]) -> str:
        results = await client.search(params["query"].strip(), num_results=num_results)
        return format_search_results(results)

    return ToolSpec(
        name=WEB_SEARCH_TOOL,
        description=(
            "Search the web for examples, documentation, case studies, or vendor "
            "information relevant to automation opportunities."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query."},
            },
            "required": ["query"],
        },
        execute=web_search_execute,
    )
