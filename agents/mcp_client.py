"""
Tavily search reached through an MCP server speaking JSON-RPC over HTTP.

``MCPToolClient`` lists and invokes tools with blocking ``requests`` calls;
``MCPSearchProvider`` runs those calls in a worker thread so it can stand in
for the direct Tavily client.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from domain.errors import UpstreamServiceError
from domain.models import Locale, RawQueryResult, SearchDepth

from .tavily_search import build_query_result, tavily_options

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TOOL = "tavily.search"
USER_AGENT = "CompetitorResearch/0.1"


class MCPRPCError(RuntimeError):
    """JSON-RPC error object returned by the server."""

    def __init__(self, *, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(f"MCP RPC error {code}: {message}")
        self.code = code
        self.data = data

    @classmethod
    def from_payload(cls, error: Dict[str, Any]) -> "MCPRPCError":
        return cls(
            code=error.get("code", -32000),
            message=error.get("message", "Unknown error"),
            data=error.get("data"),
        )


@dataclass(slots=True)
class MCPServerConfig:
    base_url: str
    api_key: Optional[str] = None
    tool_name: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return self.base_url.rstrip("/")

    def headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json, application/*+json, text/event-stream",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


class MCPToolClient:
    """Blocking JSON-RPC client; the tool catalogue is fetched once, on first use."""

    def __init__(
        self,
        *,
        config: MCPServerConfig,
        request_timeout: int = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._timeout = request_timeout
        self._session = session or requests.Session()
        self._session.headers.update(config.headers())
        self._ids = itertools.count(1)
        self._catalogue: Optional[Dict[str, Dict[str, Any]]] = None
        logger.info("MCP client targeting %s", config.endpoint)

    def list_tools(self) -> Dict[str, Dict[str, Any]]:
        if self._catalogue is not None:
            return self._catalogue

        result = self._json_rpc("list_tools", {})
        entries = result.get("tools", []) if isinstance(result, dict) else result or []
        self._catalogue = {
            entry["name"]: entry for entry in entries if isinstance(entry, dict) and entry.get("name")
        }
        if not self._catalogue:
            logger.warning("MCP server at %s advertised no tools", self._config.endpoint)
        else:
            logger.info("MCP tools available: %s", ", ".join(sorted(self._catalogue)))
        return self._catalogue

    def call_tool(self, *, tool_name: Optional[str] = None, **arguments: Any) -> Dict[str, Any]:
        name = tool_name or self._config.tool_name
        if not name:
            raise ValueError("No MCP tool name given and no default configured.")
        if name not in self.list_tools():
            logger.warning("MCP tool '%s' is not advertised; calling it anyway", name)

        logger.info("Calling MCP tool '%s'", name)
        result = self._json_rpc("call_tool", {"name": name, "arguments": arguments})
        return result if isinstance(result, dict) else {"result": result}

    def _json_rpc(self, method: str, params: Dict[str, Any]) -> Any:
        request_id = str(next(self._ids))
        envelope = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        logger.debug("-> %s #%s %s", method, request_id, params)

        response = self._session.post(self._config.endpoint, json=envelope, timeout=self._timeout)
        if response.status_code >= 400:
            logger.error("MCP %s #%s returned HTTP %s", method, request_id, response.status_code)
            response.raise_for_status()

        body = response.json()
        logger.debug("<- %s #%s %s", method, request_id, body)
        if body.get("error") is not None:
            raise MCPRPCError.from_payload(body["error"])
        return body.get("result")


class MCPSearchProvider:
    """Search provider that relays Tavily queries through an MCP tool."""

    def __init__(self, client: MCPToolClient, *, tool_name: str = DEFAULT_SEARCH_TOOL) -> None:
        self._client = client
        self._tool_name = tool_name

    async def search(self, query: str, *, locale: Locale, depth: SearchDepth) -> RawQueryResult:
        arguments = {"query": query, **tavily_options(depth)}
        logger.info("MCP search via '%s': '%s'", self._tool_name, query)
        try:
            response = await asyncio.to_thread(self._client.call_tool, tool_name=self._tool_name, **arguments)
        except (requests.exceptions.RequestException, MCPRPCError, ValueError) as exc:
            raise UpstreamServiceError(service="mcp_search", message=str(exc)) from exc
        return build_query_result(query, response, locale)
