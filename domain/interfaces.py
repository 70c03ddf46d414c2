"""Boundary contracts for the collaborators consumed by the research core."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .models import (
    AggregateReport,
    AggregateRequest,
    ArticleOptions,
    Entity,
    EntityAnalysis,
    GeneratedArticle,
    Locale,
    RawQueryResult,
    ReportKind,
    ResearchBundle,
    ResearchOptions,
    SearchDepth,
)


@runtime_checkable
class EntityDirectory(Protocol):
    async def find_by_id(self, entity_id: str) -> Optional[Entity]: ...

    async def find_by_name(self, name: str) -> Optional[Entity]: ...

    async def related_entities(self, entity_id: str) -> List[str]: ...

    async def revenue_ranges(self, entity_id: str) -> Dict[str, str]: ...


@runtime_checkable
class SearchProvider(Protocol):
    async def search(self, query: str, *, locale: Locale, depth: SearchDepth) -> RawQueryResult: ...


@runtime_checkable
class AnalysisService(Protocol):
    async def analyze(
        self,
        entity_name: str,
        raw_results: Sequence[RawQueryResult],
        target_context: str,
        options: ResearchOptions,
    ) -> EntityAnalysis: ...


@runtime_checkable
class AggregateAnalysisService(Protocol):
    """Produces one aggregate report per request.

    ``context_limit`` and ``system_prompt`` let callers budget the request
    content against the service's fixed context window.
    """

    context_limit: int

    def system_prompt(self, kind: ReportKind, locale: Locale) -> str: ...

    async def analyze_aggregate(self, request: AggregateRequest) -> AggregateReport: ...


@runtime_checkable
class ArticleService(Protocol):
    async def generate(
        self,
        target_name: str,
        bundle: ResearchBundle,
        options: ArticleOptions,
    ) -> GeneratedArticle: ...
