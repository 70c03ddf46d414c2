"""Wires the concrete adapters into a ready-to-use research pipeline."""

from __future__ import annotations

import logging
from typing import Optional, Union

from agents.aggregate_agent import AggregateAnalysisAgent
from agents.analysis_agent import EntityAnalysisAgent
from agents.article_agent import ArticleAgent
from agents.mcp_client import MCPSearchProvider, MCPServerConfig, MCPToolClient
from agents.tavily_search import TavilySearchProvider
from domain.directory import InMemoryEntityDirectory
from domain.interfaces import SearchProvider

from .aggregate_reports import AggregateReportOrchestrator
from .cache_store import FileCacheStore
from .config import ResearchSettings
from .entity_research import EntityResearchOrchestrator
from .pipeline import CachedResearchPipeline, ResearchPipeline
from .telemetry import LoggingObserver, ResearchObserver

logger = logging.getLogger(__name__)


def build_search_provider(settings: ResearchSettings) -> SearchProvider:
    if settings.search_transport == "mcp":
        client = MCPToolClient(
            config=MCPServerConfig(
                base_url=settings.tavily_mcp_base_url,
                api_key=settings.tavily_mcp_api_key,
            )
        )
        return MCPSearchProvider(client)
    return TavilySearchProvider(api_key=settings.tavily_api_key)


def build_directory(settings: ResearchSettings) -> InMemoryEntityDirectory:
    if settings.entity_directory_path is not None:
        return InMemoryEntityDirectory.from_json(settings.entity_directory_path)
    return InMemoryEntityDirectory.with_sample_data()


def build_pipeline(
    settings: ResearchSettings,
    observer: Optional[ResearchObserver] = None,
) -> Union[ResearchPipeline, CachedResearchPipeline]:
    """Assemble the pipeline described by ``settings``."""
    observer = observer or LoggingObserver()
    cache = FileCacheStore(settings.cache_dir, ttl=settings.cache_ttl)
    directory = build_directory(settings)
    search = build_search_provider(settings)
    llm_kwargs = {
        "api_key": settings.openai_api_key,
        "model_name": settings.openai_model_name,
        "base_url": settings.openai_base_url,
    }

    entity_research = EntityResearchOrchestrator(
        directory=directory,
        search_provider=search,
        analysis_service=EntityAnalysisAgent(
            context_limit=settings.context_limit,
            reserved_response_tokens=settings.reserved_response_tokens,
            **llm_kwargs,
        ),
        cache=cache,
        observer=observer,
    )
    report_builder = AggregateReportOrchestrator(
        directory=directory,
        search_provider=search,
        aggregate_service=AggregateAnalysisAgent(
            context_limit=settings.context_limit,
            reserved_response_tokens=settings.reserved_response_tokens,
            **llm_kwargs,
        ),
        cache=cache,
        observer=observer,
        reserved_response_tokens=settings.reserved_response_tokens,
    )
    pipeline = ResearchPipeline(
        entity_research=entity_research,
        report_builder=report_builder,
        article_service=ArticleAgent(**llm_kwargs),
        observer=observer,
    )
    logger.info(
        "Pipeline ready: %d entities, %s search, model %s, cache %s",
        len(directory),
        settings.search_transport,
        settings.openai_model_name,
        cache.cache_dir,
    )
    if settings.bundle_cache_enabled:
        return CachedResearchPipeline(pipeline, cache, observer=observer)
    return pipeline
