"""
Web tools for codeagent.

This module provides tools for reading the web:
- web_search: Search DuckDuckGo's HTML endpoint and return ranked results
- fetch_webpage: Download a page and extract its main text

Both tools ask the permission gate with action "execute" before any
request is made. Pages are parsed with BeautifulSoup; no API key is
needed for search.

Limits:
    - At most MAX_SEARCH_RESULTS results per search
    - Page text is cut at MAX_PAGE_CHARS characters and marked with
      TRUNCATION_MARKER
"""

import re
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, quote_plus, urlparse

import httpx
from bs4 import BeautifulSoup

from codeagent.schema import ActionKind, ToolParameter, ToolResult
from codeagent.tools.base import Tool, ToolContext

if TYPE_CHECKING:
    from codeagent.config import Settings

SEARCH_URL = "https://html.duckduckgo.com/html/?q="
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_SEARCH_RESULTS = 5
MAX_SEARCH_RESULTS = 10
MAX_PAGE_CHARS = 8000
TRUNCATION_MARKER = "...[truncated]"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Removed before text extraction
NON_CONTENT_TAGS = ["script", "style", "nav", "header", "footer", "aside", "iframe", "noscript"]

# Tried in order; the first that yields text wins
CONTENT_SELECTORS = ["main", "article", "#content", ".content", "body"]


def validate_http_url(url: str) -> list[str]:
    """Check that a URL is absolute http(s) with a host."""
    errors = []
    parsed = urlparse(url)
    if not parsed.scheme:
        errors.append("'url' must have a scheme (http:// or https://)")
    elif parsed.scheme not in ("http", "https"):
        errors.append("'url' scheme must be http or https")
    if not parsed.netloc:
        errors.append("'url' must have a host")
    return errors


def unwrap_result_url(href: str) -> str:
    """
    Return the target of a DuckDuckGo redirect link.

    Result links look like "//duckduckgo.com/l/?uddg=<encoded target>";
    anything else is returned unchanged.
    """
    parsed = urlparse(href)
    if parsed.path == "/l/":
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    if href.startswith("//"):
        return f"https:{href}"
    return href


def parse_search_results(html: str, limit: int) -> list[dict[str, str]]:
    """Extract up to `limit` results with both a title and a URL."""
    soup = BeautifulSoup(html, "html.parser")
    results = []
    for element in soup.select(".result"):
        if len(results) >= limit:
            break
        title_el = element.select_one(".result__title")
        snippet_el = element.select_one(".result__snippet")
        url_el = element.select_one(".result__url")

        title = title_el.get_text(strip=True) if title_el else ""
        snippet = snippet_el.get_text(strip=True) if snippet_el else ""
        href = url_el.get("href", "") if url_el else ""

        if title and href:
            results.append({"title": title, "snippet": snippet, "url": unwrap_result_url(href)})
    return results


def extract_page_text(html: str) -> tuple[str, str]:
    """
    Extract (title, main text) from a page.

    Non-content elements are removed, then the first content selector
    that yields text is used. Whitespace runs collapse to one space.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    for element in soup(NON_CONTENT_TAGS):
        element.decompose()

    text = ""
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            text = node.get_text(" ")
            if text.strip():
                break
    if not text.strip():
        text = soup.get_text(" ")

    return title, re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, limit: int = MAX_PAGE_CHARS) -> tuple[str, bool]:
    """Cut text at limit characters, appending the truncation marker."""
    if len(text) <= limit:
        return text, False
    return text[:limit] + TRUNCATION_MARKER, True


class _HttpTool(Tool):
    """Shared HTTP plumbing for the web tools."""

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds

    def _get(self, url: str) -> httpx.Response:
        with httpx.Client(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            response = client.get(url)
            response.raise_for_status()
            return response

    def _request_failed(self, e: Exception, url: str) -> ToolResult:
        """Map an httpx exception onto a failed result."""
        if isinstance(e, httpx.TimeoutException):
            return ToolResult.fail(f"Request timed out after {self.timeout_seconds} seconds")
        if isinstance(e, httpx.HTTPStatusError):
            return ToolResult.fail(f"HTTP {e.response.status_code} from {url}")
        return ToolResult.fail(f"Request failed: {e}")


class WebSearchTool(_HttpTool):
    """
    Search the web.

    Arguments:
        query (str): The search query (required)
        num_results (int): Results to return, default 5, at most 10

    Returns:
        output: Numbered list of title, snippet and URL
        data: [{"title", "snippet", "url"}, ...] in rank order
    """

    @property
    def name(self) -> str:
        return "web_search"

    @property
    def description(self) -> str:
        return (
            "Search the internet for information. Returns a list of search results "
            "with titles, snippets, and URLs. Use this when you need current "
            "information, documentation, or answers not in your training data."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(name="query", type="string", description="The search query", required=True),
            ToolParameter(
                name="num_results",
                type="number",
                description="Number of results to return (default: 5, max: 10)",
            ),
        )

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        query = args["query"]
        requested = args.get("num_results") or DEFAULT_SEARCH_RESULTS
        limit = max(1, min(int(requested), MAX_SEARCH_RESULTS))

        denied = self.authorize(
            context,
            ActionKind.EXECUTE,
            f'web search: "{query}"',
            details="Search the internet",
        )
        if denied is not None:
            return denied

        url = SEARCH_URL + quote_plus(query)
        try:
            response = self._get(url)
        except httpx.HTTPError as e:
            return self._request_failed(e, url)

        results = parse_search_results(response.text, limit)
        if not results:
            return ToolResult.fail("No results found")

        output = "\n\n".join(
            f"{i}. {r['title']}\n   {r['snippet']}\n   {r['url']}"
            for i, r in enumerate(results, start=1)
        )
        return ToolResult.ok(output, data=results)


class FetchWebpageTool(_HttpTool):
    """
    Fetch a webpage and extract its main text.

    Arguments:
        url (str): The http(s) URL to fetch (required)

    Returns:
        output: Main text, cut at 8000 characters
        data: {"url", "title", "length", "truncated"}; length is the
            length of the full extracted text
    """

    @property
    def name(self) -> str:
        return "fetch_webpage"

    @property
    def description(self) -> str:
        return (
            "Fetch and extract the main text content from a webpage. Use this to "
            "read documentation, articles, or any web content."
        )

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        return (
            ToolParameter(
                name="url",
                type="string",
                description="The URL of the webpage to fetch",
                required=True,
            ),
        )

    def validate_args(self, args: Any) -> list[str]:
        errors = super().validate_args(args)
        if errors:
            return errors
        return validate_http_url(args["url"])

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResult:
        url = args["url"]

        denied = self.authorize(
            context,
            ActionKind.EXECUTE,
            f"fetch webpage: {url}",
            details="Download and read webpage content",
        )
        if denied is not None:
            return denied

        try:
            response = self._get(url)
        except httpx.HTTPError as e:
            return self._request_failed(e, url)

        title, text = extract_page_text(response.text)
        output, truncated = truncate_text(text)
        return ToolResult.ok(
            output,
            data={
                "url": url,
                "title": title,
                "length": len(text),
                "truncated": truncated,
            },
        )


def web_tools(settings: "Settings | None" = None) -> list[Tool]:
    """The web tools, configured from settings."""
    timeout = settings.web_timeout_seconds if settings is not None else DEFAULT_TIMEOUT_SECONDS
    return [WebSearchTool(timeout), FetchWebpageTool(timeout)]
