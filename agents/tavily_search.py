"""
Tavily web search as a ``SearchProvider``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from tavily import AsyncTavilyClient

from domain.errors import UpstreamServiceError
from domain.models import Locale, QueryItem, RawQueryResult, SearchDepth

logger = logging.getLogger(__name__)

TAVILY_DEPTHS = {SearchDepth.SHALLOW: "basic", SearchDepth.THOROUGH: "advanced"}
TAVILY_MAX_RESULTS = {SearchDepth.SHALLOW: 5, SearchDepth.THOROUGH: 10}


def tavily_options(depth: SearchDepth) -> Dict[str, Any]:
    return {
        "search_depth": TAVILY_DEPTHS[depth],
        "max_results": TAVILY_MAX_RESULTS[depth],
        "include_answer": True,
        "include_raw_content": True,
    }


def build_query_result(query: str, response: Any, locale: Locale) -> RawQueryResult:
    """Map a Tavily response (direct or relayed through MCP) onto ``RawQueryResult``."""
    entries: List[Any]
    if isinstance(response, dict):
        entries = response.get("results") or response.get("data") or []
        if not isinstance(entries, list):
            entries = [entries]
    elif isinstance(response, list):
        entries = response
    else:
        entries = []

    items = []
    for entry in entries:
        if not isinstance(entry, dict):
            items.append(QueryItem(title=str(entry), snippet=str(entry)))
            continue
        items.append(
            QueryItem(
                title=entry.get("title") or entry.get("url") or "Result",
                url=entry.get("url") or "",
                snippet=entry.get("content") or entry.get("snippet") or "",
                content=entry.get("raw_content"),
            )
        )
    return RawQueryResult(query=query, items=tuple(items), locale=locale)


class TavilySearchProvider:
    """Search provider calling the Tavily API through its async client."""

    def __init__(self, *, api_key: Optional[str] = None, client: Optional[AsyncTavilyClient] = None) -> None:
        if client is None:
            if not api_key:
                raise EnvironmentError("TAVILY_API_KEY is not set.")
            client = AsyncTavilyClient(api_key=api_key)
        self._client = client

    async def search(self, query: str, *, locale: Locale, depth: SearchDepth) -> RawQueryResult:
        options = tavily_options(depth)
        logger.info("Tavily search: '%s' (%s, max_results=%d)", query, options["search_depth"], options["max_results"])
        try:
            response = await self._client.search(query, **options)
        except Exception as exc:
            raise UpstreamServiceError(service="tavily", message=str(exc)) from exc

        result = build_query_result(query, response, locale)
        logger.debug("Tavily returned %d results for '%s'", len(result.items), query)
        return result
