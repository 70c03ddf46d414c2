"""Tests for the per-entity fan-out orchestrator."""

import pytest

from domain.errors import EntityNotFoundError, InputValidationError, NoRelatedEntitiesError
from domain.models import EntityRecord, Locale, QueryKind, RawQueryResult, ResearchDepth, ResearchOptions, SearchDepth
from research.cache_store import derive_key
from research.entity_research import (
    EntityResearchOrchestrator,
    build_target_context,
    query_cache_key,
    record_cache_key,
)
from research.telemetry import EventKind

from .stubs import StubAnalysisService, StubSearchProvider


def _orchestrator(directory, cache, observer, *, search=None, analysis=None):
    return EntityResearchOrchestrator(
        directory=directory,
        search_provider=search or StubSearchProvider(),
        analysis_service=analysis or StubAnalysisService(),
        cache=cache,
        observer=observer,
    )


@pytest.mark.asyncio
class TestResolution:
    async def test_empty_keyword_fails_before_io(self, entity_research, search, analysis):
        with pytest.raises(InputValidationError):
            await entity_research.research("   ")
        assert search.queries == []
        assert analysis.calls == []

    async def test_resolves_by_id_then_name(self, entity_research):
        assert (await entity_research.resolve_target("E1")).name == "Acme Corp"
        assert (await entity_research.resolve_target("Acme Corp")).id == "E1"

    async def test_unknown_target(self, entity_research):
        with pytest.raises(EntityNotFoundError) as info:
            await entity_research.research("acme")
        assert info.value.identifier == "acme"
        assert info.value.entity_kind == "entity"

    async def test_no_related_entities(self, entity_research):
        with pytest.raises(NoRelatedEntitiesError) as info:
            await entity_research.research("E4")
        assert info.value.entity_kind == "related_entities"


@pytest.mark.asyncio
class TestFanOut:
    async def test_limit_bounds_started_tasks(self, entity_research, analysis):
        result = await entity_research.research("Acme Corp", ResearchOptions(limit=2))
        assert sorted(analysis.calls) == ["Globex", "Initech"]
        assert result.attempted == 2
        assert len(result.records) == 2
        assert all(record.parent_id == "E1" for record in result.records)

    async def test_one_failing_entity_is_dropped(self, directory, cache, observer):
        analysis = StubAnalysisService(failing=["Initech"])
        orchestrator = _orchestrator(directory, cache, observer, analysis=analysis)

        result = await orchestrator.research("E1")

        assert sorted(record.entity_name for record in result.records) == ["Globex", "Umbrella"]
        failures = observer.of_kind(EventKind.TASK_FAILED)
        assert [event.subject for event in failures] == ["Initech"]

    async def test_search_failure_only_affects_its_entity(self, directory, cache, observer):
        search = StubSearchProvider(failing=["Globex"])
        orchestrator = _orchestrator(directory, cache, observer, search=search)

        result = await orchestrator.research("E1")

        assert sorted(record.entity_name for record in result.records) == ["Initech", "Umbrella"]

    async def test_three_sub_queries_per_entity(self, entity_research, search):
        await entity_research.research("E1", ResearchOptions(limit=1, depth=ResearchDepth.DEEP, locale=Locale.EN))
        assert len(search.queries) == 3
        assert all(query.startswith("Globex ") for query in search.queries)
        assert set(search.depths) == {SearchDepth.THOROUGH}

    async def test_target_context_reaches_analysis(self, entity_research, analysis):
        await entity_research.research("E1", ResearchOptions(limit=1))
        assert analysis.contexts == [build_target_context((await entity_research.resolve_target("E1")), Locale.JP)]
        assert "widgets" in analysis.contexts[0]


@pytest.mark.asyncio
class TestCaching:
    async def test_second_run_is_served_from_cache(self, entity_research, analysis, search, observer):
        first = await entity_research.research("E1")
        calls_after_first = len(search.queries)
        second = await entity_research.research("E1")

        assert sorted(analysis.calls) == ["Globex", "Initech", "Umbrella"]
        assert len(search.queries) == calls_after_first
        assert {r.entity_name for r in first.records} == {r.entity_name for r in second.records}
        hits = [event for event in observer.of_kind(EventKind.CACHE_HIT) if event.detail.get("level") == "record"]
        assert len(hits) == 3

    async def test_records_and_queries_are_cached(self, entity_research, cache):
        await entity_research.research("E1", ResearchOptions(limit=1))

        record = await cache.get(record_cache_key("E1", "Globex"), EntityRecord)
        assert record is not None and record.parent_id == "E1"
        for kind in QueryKind:
            assert await cache.get(query_cache_key("E1", "Globex", kind), RawQueryResult) is not None

    async def test_cached_queries_skip_search(self, entity_research, cache, search, analysis):
        await entity_research.research("E1", ResearchOptions(limit=1))
        cache.path_for(record_cache_key("E1", "Globex")).unlink()

        await entity_research.research("E1", ResearchOptions(limit=1))

        assert len(search.queries) == 3
        assert analysis.calls == ["Globex", "Globex"]

    async def test_record_keys_are_scoped_by_parent(self):
        assert record_cache_key("E1", "Globex") == derive_key("E1", "Globex", "research")
        assert record_cache_key("E1", "Globex") != record_cache_key("E2", "Globex")
