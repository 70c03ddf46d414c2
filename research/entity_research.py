"""
Per-entity research: resolve the target, fan out over its related entities,
and produce one ``EntityRecord`` per peer.

Caching happens at two granularities here. A record-level slot keyed by
``(parent_id, entity_name, "research")`` short-circuits a whole task; a
query-level slot keyed by ``(parent_id, entity_name, query_kind)`` holds the
raw search results that fed the analysis.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from domain.errors import EntityNotFoundError, InputValidationError, NoRelatedEntitiesError
from domain.interfaces import AnalysisService, EntityDirectory, SearchProvider
from domain.models import Entity, EntityRecord, Locale, QueryKind, RawQueryResult, ResearchOptions

from .cache_store import FileCacheStore, derive_key
from .queries import classify_query, entity_queries
from .telemetry import EventKind, LoggingObserver, ResearchObserver, TelemetryEvent

logger = logging.getLogger(__name__)

RECORD_CACHE_TAG = "research"


def validate_keyword(keyword: Optional[str]) -> str:
    if not isinstance(keyword, str) or not keyword.strip():
        raise InputValidationError("Target keyword must be a non-empty string.")
    return keyword.strip()


def record_cache_key(parent_id: str, entity_name: str) -> str:
    return derive_key(parent_id, entity_name, RECORD_CACHE_TAG)


def query_cache_key(parent_id: str, entity_name: str, kind: QueryKind) -> str:
    return derive_key(parent_id, entity_name, kind.value)


def build_target_context(entity: Entity, locale: Locale) -> str:
    """Describe the target entity for the analysis prompt."""
    bullets = "\n".join(f"- {keyword}" for keyword in entity.keywords)
    if locale is Locale.JP:
        return f"会社名: {entity.name}\n主要事業・キーワード:\n{bullets}"
    return f"Company name: {entity.name}\nCore business / keywords:\n{bullets}"


@dataclass(slots=True)
class EntityResearchResult:
    target: Entity
    records: List[EntityRecord] = field(default_factory=list)
    attempted: int = 0


class EntityResearchOrchestrator:
    """Fan-out research over a target entity's related entities."""

    stage = "entity_research"

    def __init__(
        self,
        *,
        directory: EntityDirectory,
        search_provider: SearchProvider,
        analysis_service: AnalysisService,
        cache: FileCacheStore,
        observer: Optional[ResearchObserver] = None,
    ) -> None:
        self._directory = directory
        self._search = search_provider
        self._analysis = analysis_service
        self._cache = cache
        self._observer = observer or LoggingObserver()

    async def resolve_target(self, keyword: str) -> Entity:
        """Look ``keyword`` up as an identifier first, then as a name."""
        keyword = validate_keyword(keyword)
        entity = await self._directory.find_by_id(keyword)
        if entity is None:
            entity = await self._directory.find_by_name(keyword)
        if entity is None:
            raise EntityNotFoundError(identifier=keyword)
        logger.info("Resolved '%s' to entity %s (%s)", keyword, entity.id, entity.name)
        return entity

    async def revenue_ranges(self, target_keyword: str) -> Dict[str, str]:
        """Revenue bands of the target's related entities, as known to the directory."""
        target = await self.resolve_target(target_keyword)
        ranges = await self._directory.revenue_ranges(target.id)
        logger.info("Revenue bands for %s: %d of %d related entities", target.name, len(ranges), len(target.related))
        return ranges

    async def research(self, target_keyword: str, options: Optional[ResearchOptions] = None) -> EntityResearchResult:
        target_keyword = validate_keyword(target_keyword)
        options = options or ResearchOptions()
        target = await self.resolve_target(target_keyword)
        records, attempted = await self.research_entities(target, options)
        return EntityResearchResult(target=target, records=records, attempted=attempted)

    async def research_entities(self, target: Entity, options: ResearchOptions) -> Tuple[List[EntityRecord], int]:
        related = await self._directory.related_entities(target.id)
        if not related:
            raise NoRelatedEntitiesError(identifier=target.id)

        selected = list(related)[: options.limit]
        logger.info(
            "Researching %d of %d related entities for %s (limit %d)",
            len(selected),
            len(related),
            target.name,
            options.limit,
        )
        context = build_target_context(target, options.locale)
        outcomes = await asyncio.gather(
            *(self._guarded(target, name, context, options) for name in selected)
        )
        records = [record for record in outcomes if record is not None]
        logger.info("Entity research finished for %s: %d/%d records", target.name, len(records), len(selected))
        return records, len(selected)

    async def _guarded(
        self,
        target: Entity,
        entity_name: str,
        context: str,
        options: ResearchOptions,
    ) -> Optional[EntityRecord]:
        try:
            return await self._research_one(target, entity_name, context, options)
        except Exception as exc:
            logger.debug("Research task for %s failed", entity_name, exc_info=True)
            self._emit(EventKind.TASK_FAILED, entity_name, parent_id=target.id, error=str(exc))
            return None

    async def _research_one(
        self,
        target: Entity,
        entity_name: str,
        context: str,
        options: ResearchOptions,
    ) -> EntityRecord:
        key = record_cache_key(target.id, entity_name)
        cached = await self._cache.get(key, EntityRecord)
        if cached is not None:
            self._emit(EventKind.CACHE_HIT, entity_name, level="record", last_updated=cached.last_updated.isoformat())
            return cached
        self._emit(EventKind.CACHE_MISS, entity_name, level="record")

        raw_results = await asyncio.gather(
            *(
                self._run_query(target, entity_name, kind, query, options)
                for kind, query in entity_queries(entity_name, options.locale)
            )
        )

        analysis = await self._analysis.analyze(entity_name, raw_results, context, options)
        record = EntityRecord.assemble(target.id, analysis)
        await self._cache.set(key, record)
        logger.info(
            "Analysed %s: %d products, %d features",
            entity_name,
            len(record.products),
            len(record.features),
        )
        return record

    async def _run_query(
        self,
        target: Entity,
        entity_name: str,
        kind: QueryKind,
        query: str,
        options: ResearchOptions,
    ) -> RawQueryResult:
        cached = await self._cache.get(query_cache_key(target.id, entity_name, kind), RawQueryResult)
        if cached is not None:
            self._emit(EventKind.CACHE_HIT, entity_name, level="query", query_kind=kind.value)
            return cached

        result = await self._search.search(query, locale=options.locale, depth=options.search_depth)
        inferred = classify_query(result.query, options.locale)
        await self._cache.set(query_cache_key(target.id, entity_name, inferred), result)
        logger.debug("Cached %s query for %s (%d items)", inferred.value, entity_name, len(result.items))
        return result

    def _emit(self, kind: EventKind, subject: str, **detail: object) -> None:
        self._observer.emit(TelemetryEvent(kind=kind, stage=self.stage, subject=subject, detail=dict(detail)))
