"""Shared fixtures for the research tests."""

from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

import pytest

from domain.directory import InMemoryEntityDirectory
from research.aggregate_reports import AggregateReportOrchestrator
from research.cache_store import FileCacheStore
from research.entity_research import EntityResearchOrchestrator
from research.pipeline import ResearchPipeline

from .stubs import (
    ACME_ENTITIES,
    FakeClock,
    RecordingObserver,
    StubAggregateService,
    StubAnalysisService,
    StubArticleService,
    StubSearchProvider,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock) -> FileCacheStore:
    return FileCacheStore(tmp_path / "cache", ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def acme_entities() -> List[Dict[str, object]]:
    return [dict(entity) for entity in ACME_ENTITIES]


@pytest.fixture
def directory() -> InMemoryEntityDirectory:
    return InMemoryEntityDirectory(ACME_ENTITIES)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def search() -> StubSearchProvider:
    return StubSearchProvider()


@pytest.fixture
def analysis() -> StubAnalysisService:
    return StubAnalysisService()


@pytest.fixture
def aggregate() -> StubAggregateService:
    return StubAggregateService()


@pytest.fixture
def articles() -> StubArticleService:
    return StubArticleService()


@pytest.fixture
def entity_research(directory, search, analysis, cache, observer) -> EntityResearchOrchestrator:
    return EntityResearchOrchestrator(
        directory=directory,
        search_provider=search,
        analysis_service=analysis,
        cache=cache,
        observer=observer,
    )


@pytest.fixture
def report_builder(directory, search, aggregate, cache, observer) -> AggregateReportOrchestrator:
    return AggregateReportOrchestrator(
        directory=directory,
        search_provider=search,
        aggregate_service=aggregate,
        cache=cache,
        observer=observer,
    )


@pytest.fixture
def pipeline(entity_research, report_builder, articles, observer) -> ResearchPipeline:
    return ResearchPipeline(
        entity_research=entity_research,
        report_builder=report_builder,
        article_service=articles,
        observer=observer,
    )
