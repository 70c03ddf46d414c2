"""
Data shapes passed between the research stages.

Every payload that crosses an adapter boundary is validated here, so the
orchestrators only ever see closed, checked shapes.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Locale(str, Enum):
    EN = "EN"
    JP = "JP"


class ResearchDepth(str, Enum):
    NORMAL = "normal"
    DEEP = "deep"


class SearchDepth(str, Enum):
    SHALLOW = "shallow"
    THOROUGH = "thorough"


class QueryKind(str, Enum):
    GENERAL = "general"
    PRODUCTS = "products"
    FEATURES = "features"


class ReportKind(str, Enum):
    ENVIRONMENT = "environment"
    THREAT = "threat"


class ArticleStyle(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    ACADEMIC = "academic"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)


class Entity(_Frozen):
    """A directory entry: the subject of research or one of its peers."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    keywords: Tuple[str, ...] = ()
    related: Tuple[str, ...] = ()
    revenue_range: Optional[str] = None


class QueryItem(_Frozen):
    title: str = ""
    url: str = ""
    snippet: str = ""
    content: Optional[str] = None


class RawQueryResult(_Frozen):
    """Items returned by one search sub-query."""

    query: str
    items: Tuple[QueryItem, ...] = ()
    produced_at: datetime = Field(default_factory=utcnow)
    locale: Locale = Locale.JP


class EntityAnalysis(_Frozen):
    """Structured analysis of one related entity, before it is tied to a parent."""

    entity_name: str
    products: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    position_summary: str = ""
    comparison_notes: str = ""
    source_url: Optional[str] = None


class EntityRecord(_Frozen):
    """Research record for one (parent, related entity) pair."""

    parent_id: str = Field(min_length=1)
    entity_name: str
    products: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    position_summary: str = ""
    comparison_notes: str = ""
    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=utcnow)

    @classmethod
    def assemble(cls, parent_id: str, analysis: EntityAnalysis) -> "EntityRecord":
        """Build a record from an analysis, stamping the owning parent."""
        return cls(parent_id=parent_id, **analysis.model_dump())


class AnalysisItem(_Frozen):
    topic: str
    content: str


class RelationItem(_Frozen):
    peer_name: str
    relation_analysis: str = ""
    recommended_action: str = ""


class AggregateReport(_Frozen):
    kind: ReportKind
    analysis_items: Tuple[AnalysisItem, ...] = ()
    relation_items: Tuple[RelationItem, ...] = ()


class AggregateRequest(_Frozen):
    """Everything the aggregate-analysis service needs for one report."""

    kind: ReportKind
    locale: Locale = Locale.JP
    target_name: str
    target_keywords: Tuple[str, ...] = ()
    related_keywords: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    search_context: str = ""

    def to_prompt(self) -> str:
        """Render the request as the user message sent to the service."""
        terms = json.dumps(list(self.target_keywords), ensure_ascii=False)
        related = json.dumps({name: list(words) for name, words in self.related_keywords.items()}, ensure_ascii=False)
        content = (
            f"target_company_name: {self.target_name}, "
            f"target_company_terms: {terms}, "
            f"similar_companies_terms: {related}"
        )
        if self.search_context:
            content += f"\n\nsearch_results:\n{self.search_context}"
        return content


class ResearchOptions(_Frozen):
    locale: Locale = Locale.JP
    depth: ResearchDepth = ResearchDepth.NORMAL
    limit: int = Field(default=10, ge=1, le=50)
    include_environment: bool = False
    include_threat: bool = False

    @property
    def search_depth(self) -> SearchDepth:
        return SearchDepth.THOROUGH if self.depth is ResearchDepth.DEEP else SearchDepth.SHALLOW

    @property
    def report_kinds(self) -> List[ReportKind]:
        kinds: List[ReportKind] = []
        if self.include_environment:
            kinds.append(ReportKind.ENVIRONMENT)
        if self.include_threat:
            kinds.append(ReportKind.THREAT)
        return kinds

    def fingerprint(self) -> str:
        return self.model_dump_json()


class ArticleOptions(_Frozen):
    style: ArticleStyle = ArticleStyle.PROFESSIONAL
    include_images: bool = False
    locale: Locale = Locale.JP

    def fingerprint(self) -> str:
        return self.model_dump_json()


class GeneratedArticle(_Frozen):
    title: str
    content: str
    word_count: int = 0
    generated_at: datetime = Field(default_factory=utcnow)


class ResearchBundle(_Frozen):
    """Combined output of one pipeline invocation."""

    target: Entity
    records: Tuple[EntityRecord, ...] = ()
    environment_report: Optional[AggregateReport] = None
    threat_report: Optional[AggregateReport] = None
    article: Optional[GeneratedArticle] = None
    attempted: int = Field(default=0, ge=0)

    def report(self, kind: ReportKind) -> Optional[AggregateReport]:
        return self.environment_report if kind is ReportKind.ENVIRONMENT else self.threat_report

    def is_complete(self, options: ResearchOptions) -> bool:
        """True when no entity task was dropped and every requested report is present."""
        if len(self.records) < self.attempted:
            return False
        return all(self.report(kind) is not None for kind in options.report_kinds)
