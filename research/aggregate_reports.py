"""
Aggregate reports (market environment, competitive threat) for a target entity.

One report is built per (entity, kind). Auxiliary searches run concurrently and
fail individually; the combined search context is budgeted against the
aggregate service's context window before the single generative call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from domain.interfaces import AggregateAnalysisService, EntityDirectory, SearchProvider
from domain.models import AggregateReport, AggregateRequest, Entity, RawQueryResult, ReportKind, ResearchOptions

from .cache_store import FileCacheStore, derive_key
from .content_budget import (
    RESERVED_RESPONSE_TOKENS,
    available_budget,
    estimate_tokens,
    summarize_query_results,
    truncate,
)
from .queries import auxiliary_queries
from .telemetry import EventKind, LoggingObserver, ResearchObserver, TelemetryEvent

logger = logging.getLogger(__name__)

REPORT_CACHE_TAG = "market"


def report_cache_key(parent_id: str, kind: ReportKind) -> str:
    return derive_key(parent_id, REPORT_CACHE_TAG, kind.value)


class AggregateReportOrchestrator:
    """Builds and caches one aggregate report per (entity, report kind)."""

    stage = "aggregate_report"

    def __init__(
        self,
        *,
        directory: EntityDirectory,
        search_provider: SearchProvider,
        aggregate_service: AggregateAnalysisService,
        cache: FileCacheStore,
        observer: Optional[ResearchObserver] = None,
        reserved_response_tokens: int = RESERVED_RESPONSE_TOKENS,
    ) -> None:
        self._directory = directory
        self._search = search_provider
        self._service = aggregate_service
        self._cache = cache
        self._observer = observer or LoggingObserver()
        self._reserved = reserved_response_tokens

    async def build_report(
        self,
        entity: Entity,
        kind: ReportKind,
        options: Optional[ResearchOptions] = None,
    ) -> AggregateReport:
        options = options or ResearchOptions()
        key = report_cache_key(entity.id, kind)
        cached = await self._cache.get(key, AggregateReport)
        if cached is not None:
            self._emit(EventKind.CACHE_HIT, entity.name, level="report", report_kind=kind.value)
            return cached
        self._emit(EventKind.CACHE_MISS, entity.name, level="report", report_kind=kind.value)

        related_keywords, auxiliary = await asyncio.gather(
            self.related_keywords(entity),
            self._auxiliary_results(entity, kind, options),
        )
        request = self._budgeted_request(entity, kind, options, related_keywords, auxiliary)

        report = await self._service.analyze_aggregate(request)
        if report.kind is not kind:
            report = report.model_copy(update={"kind": kind})
        await self._cache.set(key, report)
        self._emit(
            EventKind.REPORT_BUILT,
            entity.name,
            report_kind=kind.value,
            analysis_items=len(report.analysis_items),
            relation_items=len(report.relation_items),
            search_results=len(auxiliary),
        )
        return report

    async def related_keywords(self, entity: Entity) -> Dict[str, Tuple[str, ...]]:
        """Keywords of every related entity the directory knows about."""
        names = await self._directory.related_entities(entity.id)
        found = await asyncio.gather(*(self._directory.find_by_name(name) for name in names))
        keywords: Dict[str, Tuple[str, ...]] = {}
        for name, related in zip(names, found):
            if related is None:
                logger.debug("Related entity %s is not in the directory; skipping", name)
                continue
            keywords[name] = tuple(related.keywords)
        return keywords

    async def _auxiliary_results(
        self,
        entity: Entity,
        kind: ReportKind,
        options: ResearchOptions,
    ) -> List[RawQueryResult]:
        queries = auxiliary_queries(entity, kind, options.locale)
        outcomes = await asyncio.gather(*(self._guarded_search(entity, kind, query, options) for query in queries))
        results = [result for result in outcomes if result is not None]
        logger.info("%s search for %s: %d/%d queries answered", kind.value, entity.name, len(results), len(queries))
        return results

    async def _guarded_search(
        self,
        entity: Entity,
        kind: ReportKind,
        query: str,
        options: ResearchOptions,
    ) -> Optional[RawQueryResult]:
        try:
            return await self._search.search(query, locale=options.locale, depth=options.search_depth)
        except Exception as exc:
            logger.debug("Auxiliary search '%s' failed", query, exc_info=True)
            self._emit(EventKind.SEARCH_FAILED, entity.name, report_kind=kind.value, query=query, error=str(exc))
            return None

    def _budgeted_request(
        self,
        entity: Entity,
        kind: ReportKind,
        options: ResearchOptions,
        related_keywords: Dict[str, Tuple[str, ...]],
        auxiliary: List[RawQueryResult],
    ) -> AggregateRequest:
        request = AggregateRequest(
            kind=kind,
            locale=options.locale,
            target_name=entity.name,
            target_keywords=entity.keywords,
            related_keywords=related_keywords,
        )
        # The separator added around the search results counts as overhead too.
        overhead = self._service.system_prompt(kind, options.locale) + request.to_prompt() + "\n\nsearch_results:\n"
        budget = available_budget(self._service.context_limit, overhead, self._reserved)
        if budget == 0:
            logger.warning(
                "No room left for search results in %s report for %s (overhead %d tokens)",
                kind.value,
                entity.name,
                estimate_tokens(overhead),
            )
        context = truncate(summarize_query_results(auxiliary, max_tokens=budget), budget)
        return request.model_copy(update={"search_context": context})

    def _emit(self, kind: EventKind, subject: str, **detail: object) -> None:
        self._observer.emit(TelemetryEvent(kind=kind, stage=self.stage, subject=subject, detail=dict(detail)))
