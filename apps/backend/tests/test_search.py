import sys
import unittest
from pathlib import Path

import httpx

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from workflow_sage.errors import ConfigurationError, SearchError
from workflow_sage.tools.search import (
    SearchResult,
    WebSearchClient,
    format_search_results,
    parse_organic_results,
)

ORGANIC = {
    "organic_results": [
        {"title": "UiPath", "link": "https://uipath.com", "snippet": "RPA platform"},
        {"title": "Zapier", "link": "https://zapier.com"},
        {"title": "Make", "link": "https://make.com", "snippet": "Scenarios"},
    ]
}


class WebSearchClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.requests: list[httpx.Request] = []

    def _client(self, handler) -> WebSearchClient:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(record))
        self.addAsyncCleanup(http.aclose)
        return WebSearchClient("serp-key", http_client=http)

    async def test_results_truncated_in_rank_order(self) -> None:
        client = self._client(lambda request: httpx.Response(200, json=ORGANIC))

        results = await client.search("workflow automation", num_results=2)

        self.assertEqual([r.title for r in results], ["UiPath", "Zapier"])
        self.assertEqual(results[1].snippet, "")
        params = self.requests[0].url.params
        self.assertEqual(params["q"], "workflow automation")
        self.assertEqual(params["num"], "2")
        self.assertEqual(params["api_key"], "serp-key")

    async def test_missing_organic_results(self) -> None:
        client = self._client(lambda request: httpx.Response(200, json={}))
        self.assertEqual(await client.search("nothing"), [])

    async def test_http_error_status(self) -> None:
        client = self._client(lambda request: httpx.Response(401, json={"error": "Invalid key"}))
        with self.assertRaises(SearchError):
            await client.search("x")

    async def test_transport_failure(self) -> None:
        def fail(request):
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(SearchError):
            await self._client(fail).search("x")

    async def test_non_json_body(self) -> None:
        client = self._client(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(SearchError):
            await client.search("x")

    async def test_missing_key(self) -> None:
        with self.assertRaises(ConfigurationError):
            await WebSearchClient(None).search("x")


class FormattingTests(unittest.TestCase):
    def test_format_lines(self) -> None:
        text = format_search_results(parse_organic_results(ORGANIC, 5))
        self.assertEqual(
            text.splitlines(),
            [
                "- UiPath (https://uipath.com): RPA platform",
                "- Zapier (https://zapier.com): ",
                "- Make (https://make.com): Scenarios",
            ],
        )

    def test_no_results(self) -> None:
        self.assertEqual(format_search_results([]), "No results found.")

    def test_to_dict(self) -> None:
        result = SearchResult(title="t", link="l", snippet="s")
        self.assertEqual(result.to_dict(), {"title": "t", "link": "l", "snippet": "s"})


if __name__ == "__main__":
    unittest.main()
