"""
Web search capability.

- detect_search_intent: regex heuristic deciding whether a message needs
  fresh information from the web
- extract_search_query: strips conversational prefixes from the message
- TavilySearch: the search adapter, backed by the Tavily REST API
"""
import re
from typing import Any, List, Optional

import httpx

from sage.core.logging_config import get_logger
from sage.tools.base import AdapterResult

logger = get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

SEARCH_INTENT_PATTERNS = [
    re.compile(r"search\s+(online\s+)?(for|about)\s+"),
    re.compile(r"look\s+up\s+.+\s+online"),
    re.compile(r"find\s+information\s+(about|on|for)\s+"),
    re.compile(r"search\s+the\s+web\s+(for|about)"),
    re.compile(r"google\s+search\s+(for|about)"),
    re.compile(r"web\s+search\s+(for|about)"),
    re.compile(r"^search\s+"),
    re.compile(r"latest\s+news\s+(about|on)\s+"),
    re.compile(r"current\s+events\s+(about|on)"),
    re.compile(r"recent\s+developments\s+in"),
    re.compile(r"what's\s+happening\s+with\s+"),
    re.compile(r"what\s+is\s+the\s+latest\s+"),
    re.compile(r"tell\s+me\s+about\s+.+\s+(news|updates|developments)"),
    re.compile(r"\b(weather|forecast|temperature)\s+(in|for|at)\s+"),
    re.compile(r"\b(stock|share)\s+price\s+(of|for)\s+"),
    re.compile(r"\b(today's|latest|breaking)\s+(news|headlines)\b"),
]

QUERY_PREFIXES = [
    "search online for ",
    "search online about ",
    "search for ",
    "search about ",
    "look up ",
    "find information about ",
    "find information on ",
    "tell me about ",
    "what's ",
    "what is ",
    "what are ",
    "who is ",
    "where is ",
    "when is ",
    "how to ",
]


def detect_search_intent(message: str) -> bool:
    """Check whether a message asks for current web information."""
    lower = message.lower()
    return any(pattern.search(lower) for pattern in SEARCH_INTENT_PATTERNS)


def extract_search_query(message: str) -> str:
    """
    Turn a chat message into a search query.

    Example:
        >>> extract_search_query("What's the weather in Paris?")
        'the weather in Paris'
    """
    lower = message.lower()
    query = message
    for prefix in QUERY_PREFIXES:
        if lower.startswith(prefix):
            query = message[len(prefix):]
            break
    return re.sub(r"[?!]", "", query).strip()


def format_search_results(results: List[Any]) -> str:
    """Render results (title/content/url dicts, or plain strings) as numbered text."""
    if not results:
        return "No search results found."

    lines = []
    for index, result in enumerate(results, start=1):
        if not isinstance(result, dict):
            lines.append(f"{index}. {result}")
            continue
        title = result.get("title") or "Untitled"
        snippet = result.get("content") or result.get("snippet") or ""
        url = result.get("url") or result.get("link")
        lines.append(f"{index}. {title}")
        if snippet:
            lines.append(f"   {snippet}")
        if url:
            lines.append(f"   {url}")
    return "\n".join(lines)


def build_search_prompt(text: str, query: str, results: List[Any]) -> str:
    """The augmented input sent to the provider in place of the raw message."""
    return (
        f"{text}\n"
        f'Here are current search results for "{query}":\n'
        f"{format_search_results(results)}\n"
        "Please provide a comprehensive answer based on this information."
    )


class TavilySearch:
    """
    Search adapter for the Tavily API.

    Example:
        >>> search = TavilySearch(api_key="tvly-...")
        >>> result = await search("weather in Paris")
        >>> result.data["results"]
    """

    def __init__(
        self,
        api_key: Optional[str],
        max_results: int = 5,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = api_key
        self.max_results = max_results
        self.timeout = timeout
        self._client = client

    async def __call__(self, query: str) -> AdapterResult:
        if not self.api_key:
            return AdapterResult.fail("Search is not configured (TAVILY_API_KEY not set)")

        payload = {
            "api_key": self.api_key,
            "query": query,
            "max_results": self.max_results,
        }

        logger.info(f"Web search: query='{query[:80]}'")

        try:
            if self._client is not None:
                response = await self._client.post(TAVILY_SEARCH_URL, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(TAVILY_SEARCH_URL, json=payload)
        except httpx.HTTPError as exc:
            logger.warning(f"Web search request failed: {exc}")
            return AdapterResult.fail(f"Search request failed: {exc}")

        if response.status_code >= 400:
            logger.warning(f"Web search returned HTTP {response.status_code}")
            return AdapterResult.fail(f"Search failed with status {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            return AdapterResult.fail("Search returned an invalid response")

        results = [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "content": item.get("content", ""),
            }
            for item in body.get("results", [])
        ]

        logger.info(f"Web search complete: {len(results)} results")
        return AdapterResult.ok(query=query, results=results)
