"""Runtime settings read from the process environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from agents.model_client import DEFAULT_BASE_URL, DEFAULT_MODEL_NAME

from .content_budget import RESERVED_RESPONSE_TOKENS, context_limit_for

logger = logging.getLogger(__name__)

DEFAULT_MCP_BASE_URL = "http://127.0.0.1:6112/mcp"
SEARCH_TRANSPORTS = ("tavily", "mcp")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True, frozen=True)
class ResearchSettings:
    openai_api_key: str
    openai_model_name: str = DEFAULT_MODEL_NAME
    openai_base_url: str = DEFAULT_BASE_URL
    search_transport: str = "tavily"
    tavily_api_key: Optional[str] = None
    tavily_mcp_base_url: str = DEFAULT_MCP_BASE_URL
    tavily_mcp_api_key: Optional[str] = None
    cache_dir: Path = Path("cache")
    cache_ttl: timedelta = timedelta(hours=24)
    bundle_cache_enabled: bool = True
    context_token_limit: Optional[int] = None
    reserved_response_tokens: int = RESERVED_RESPONSE_TOKENS
    entity_directory_path: Optional[Path] = None

    @property
    def context_limit(self) -> int:
        if self.context_token_limit is not None:
            return self.context_token_limit
        return context_limit_for(self.openai_model_name)

    @classmethod
    def from_env(cls) -> "ResearchSettings":
        """Build settings from environment variables.

        Raises ``EnvironmentError`` for missing keys and ``ValueError`` for
        values that cannot be parsed.
        """
        openai_api_key = os.getenv("OPENAI_API_KEY")
        if not openai_api_key:
            raise EnvironmentError("OPENAI_API_KEY is not set.")

        transport = os.getenv("SEARCH_TRANSPORT", "tavily").strip().lower()
        if transport not in SEARCH_TRANSPORTS:
            raise ValueError(f"SEARCH_TRANSPORT must be one of {', '.join(SEARCH_TRANSPORTS)}, got '{transport}'.")
        tavily_api_key = os.getenv("TAVILY_API_KEY")
        if transport == "tavily" and not tavily_api_key:
            raise EnvironmentError("TAVILY_API_KEY is not set.")

        ttl_hours = _float_env("CACHE_TTL_HOURS", 24.0)
        if ttl_hours <= 0:
            raise ValueError("CACHE_TTL_HOURS must be positive.")

        context_limit = os.getenv("CONTEXT_TOKEN_LIMIT")
        directory_path = os.getenv("ENTITY_DIRECTORY_PATH")

        settings = cls(
            openai_api_key=openai_api_key,
            openai_model_name=os.getenv("OPENAI_MODEL_NAME", DEFAULT_MODEL_NAME),
            openai_base_url=os.getenv("OPENAI_API_BASE_URL", DEFAULT_BASE_URL),
            search_transport=transport,
            tavily_api_key=tavily_api_key,
            tavily_mcp_base_url=os.getenv("TAVILY_MCP_BASE_URL", DEFAULT_MCP_BASE_URL),
            tavily_mcp_api_key=os.getenv("TAVILY_MCP_API_KEY") or tavily_api_key,
            cache_dir=Path(os.getenv("CACHE_DIR", "cache")),
            cache_ttl=timedelta(hours=ttl_hours),
            bundle_cache_enabled=_bool_env("BUNDLE_CACHE_ENABLED", True),
            context_token_limit=_int_value("CONTEXT_TOKEN_LIMIT", context_limit) if context_limit else None,
            reserved_response_tokens=_int_value(
                "RESERVED_RESPONSE_TOKENS",
                os.getenv("RESERVED_RESPONSE_TOKENS", str(RESERVED_RESPONSE_TOKENS)),
            ),
            entity_directory_path=Path(directory_path) if directory_path else None,
        )
        logger.debug(
            "Loaded settings: model=%s transport=%s cache_dir=%s ttl=%s",
            settings.openai_model_name,
            settings.search_transport,
            settings.cache_dir,
            settings.cache_ttl,
        )
        return settings


def _int_value(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative.")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'.") from exc


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'.")
