"""
Top-level research pipeline and its whole-bundle cache wrapper.

``ResearchPipeline.research`` runs per-entity research, then builds each
requested aggregate report, and merges everything into a ``ResearchBundle``.
``CachedResearchPipeline`` puts one more cache-aside check in front of it,
keyed by the input keyword and the options, so a fully formed bundle can be
served without touching any inner stage.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from domain.interfaces import ArticleService
from domain.models import (
    AggregateReport,
    ArticleOptions,
    Entity,
    ReportKind,
    ResearchBundle,
    ResearchOptions,
)

from .aggregate_reports import AggregateReportOrchestrator
from .cache_store import FileCacheStore, derive_key
from .entity_research import EntityResearchOrchestrator, validate_keyword
from .telemetry import EventKind, LoggingObserver, ResearchObserver, TelemetryEvent

logger = logging.getLogger(__name__)


def bundle_cache_key(keyword: str, options: ResearchOptions) -> str:
    return derive_key(keyword, "bundle", options.fingerprint())


def article_cache_key(keyword: str, options: ResearchOptions, article_options: ArticleOptions) -> str:
    return derive_key(keyword, "article", options.fingerprint(), article_options.fingerprint())


class ResearchPipeline:
    """Entity research followed by the requested aggregate reports."""

    stage = "pipeline"

    def __init__(
        self,
        *,
        entity_research: EntityResearchOrchestrator,
        report_builder: AggregateReportOrchestrator,
        article_service: Optional[ArticleService] = None,
        observer: Optional[ResearchObserver] = None,
    ) -> None:
        self._entity_research = entity_research
        self._reports = report_builder
        self._articles = article_service
        self._observer = observer or LoggingObserver()

    async def research(self, target_keyword: str, options: Optional[ResearchOptions] = None) -> ResearchBundle:
        """Run the full research flow for ``target_keyword``.

        Only input validation and entity lookup failures propagate. A failed
        report is left out of the bundle.
        """
        keyword = validate_keyword(target_keyword)
        options = options or ResearchOptions()
        logger.info("Starting research for '%s' (%s)", keyword, options.fingerprint())

        result = await self._entity_research.research(keyword, options)
        reports = await self._build_reports(result.target, options)

        bundle = ResearchBundle(
            target=result.target,
            records=tuple(result.records),
            environment_report=reports.get(ReportKind.ENVIRONMENT),
            threat_report=reports.get(ReportKind.THREAT),
            attempted=result.attempted,
        )
        logger.info(
            "Research for '%s' complete: %d records, reports: %s",
            keyword,
            len(bundle.records),
            ", ".join(kind.value for kind in reports) or "none",
        )
        return bundle

    async def write_article(
        self,
        target_keyword: str,
        options: Optional[ResearchOptions] = None,
        article_options: Optional[ArticleOptions] = None,
    ) -> ResearchBundle:
        """Research ``target_keyword`` and attach a generated article to the bundle."""
        keyword = validate_keyword(target_keyword)
        if self._articles is None:
            raise RuntimeError("No article service configured for this pipeline.")
        article_options = article_options or ArticleOptions()

        bundle = await self.research(keyword, options)
        article = await self._articles.generate(bundle.target.name, bundle, article_options)
        logger.info("Generated article '%s' (%d words)", article.title, article.word_count)
        return bundle.model_copy(update={"article": article})

    async def revenue_ranges(self, target_keyword: str) -> Dict[str, str]:
        return await self._entity_research.revenue_ranges(target_keyword)

    async def _build_reports(self, target: Entity, options: ResearchOptions) -> Dict[ReportKind, AggregateReport]:
        kinds = options.report_kinds
        if not kinds:
            return {}
        outcomes = await asyncio.gather(*(self._guarded_report(target, kind, options) for kind in kinds))
        return {kind: report for kind, report in zip(kinds, outcomes) if report is not None}

    async def _guarded_report(
        self,
        target: Entity,
        kind: ReportKind,
        options: ResearchOptions,
    ) -> Optional[AggregateReport]:
        try:
            return await self._reports.build_report(target, kind, options)
        except Exception as exc:
            logger.debug("Building %s report for %s failed", kind.value, target.name, exc_info=True)
            self._observer.emit(
                TelemetryEvent(
                    kind=EventKind.REPORT_FAILED,
                    stage=self.stage,
                    subject=target.name,
                    detail={"report_kind": kind.value, "error": str(exc)},
                )
            )
            return None


class CachedResearchPipeline:
    """Serves whole bundles from the cache, falling back to the wrapped pipeline."""

    stage = "bundle_cache"

    def __init__(
        self,
        pipeline: ResearchPipeline,
        cache: FileCacheStore,
        observer: Optional[ResearchObserver] = None,
    ) -> None:
        self._pipeline = pipeline
        self._cache = cache
        self._observer = observer or LoggingObserver()

    async def research(self, target_keyword: str, options: Optional[ResearchOptions] = None) -> ResearchBundle:
        keyword = validate_keyword(target_keyword)
        options = options or ResearchOptions()
        key = bundle_cache_key(keyword, options)

        cached = await self._cache.get(key, ResearchBundle)
        if cached is not None:
            self._emit(EventKind.BUNDLE_SERVED, keyword, artifact="bundle")
            return cached
        self._emit(EventKind.CACHE_MISS, keyword, level="bundle")

        bundle = await self._pipeline.research(keyword, options)
        await self._store(key, keyword, bundle, options)
        return bundle

    async def write_article(
        self,
        target_keyword: str,
        options: Optional[ResearchOptions] = None,
        article_options: Optional[ArticleOptions] = None,
    ) -> ResearchBundle:
        keyword = validate_keyword(target_keyword)
        options = options or ResearchOptions()
        article_options = article_options or ArticleOptions()
        key = article_cache_key(keyword, options, article_options)

        cached = await self._cache.get(key, ResearchBundle)
        if cached is not None and cached.article is not None:
            self._emit(EventKind.BUNDLE_SERVED, keyword, artifact="article")
            return cached
        self._emit(EventKind.CACHE_MISS, keyword, level="article")

        bundle = await self._pipeline.write_article(keyword, options, article_options)
        await self._store(key, keyword, bundle, options)
        return bundle

    async def revenue_ranges(self, target_keyword: str) -> Dict[str, str]:
        return await self._pipeline.revenue_ranges(target_keyword)

    async def _store(self, key: str, keyword: str, bundle: ResearchBundle, options: ResearchOptions) -> None:
        # partial bundles stay uncached
        if not bundle.is_complete(options):
            logger.info(
                "Not caching partial bundle for '%s': %d of %d records",
                keyword,
                len(bundle.records),
                bundle.attempted,
            )
            return
        await self._cache.set(key, bundle)

    def _emit(self, kind: EventKind, subject: str, **detail: object) -> None:
        self._observer.emit(TelemetryEvent(kind=kind, stage=self.stage, subject=subject, detail=dict(detail)))
