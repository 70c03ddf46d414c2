"""Search query phrasing per locale, and the reverse mapping back to query kinds."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from domain.models import Entity, Locale, QueryKind, ReportKind

ENTITY_QUERY_TEMPLATES: Dict[Locale, Dict[QueryKind, str]] = {
    Locale.EN: {
        QueryKind.GENERAL: "{name} company information business services products",
        QueryKind.PRODUCTS: "{name} products services features capabilities",
        QueryKind.FEATURES: "{name} features strengths advantages technology",
    },
    Locale.JP: {
        QueryKind.GENERAL: "{name} 会社情報 事業内容 サービス 製品",
        QueryKind.PRODUCTS: "{name} 製品 サービス 特徴 機能",
        QueryKind.FEATURES: "{name} 特徴 強み 優位性 技術",
    },
}

# Checked in order. Each token appears in exactly one template of its locale;
# "products"/"features" themselves occur in more than one.
QUERY_KIND_TOKENS: Dict[Locale, Tuple[Tuple[QueryKind, str], ...]] = {
    Locale.EN: ((QueryKind.FEATURES, "strengths"), (QueryKind.PRODUCTS, "capabilities")),
    Locale.JP: ((QueryKind.FEATURES, "強み"), (QueryKind.PRODUCTS, "機能")),
}

AUXILIARY_QUERY_TEMPLATES: Dict[ReportKind, Dict[Locale, Tuple[str, ...]]] = {
    ReportKind.ENVIRONMENT: {
        Locale.EN: (
            "{name} industry market environment",
            "{keywords} market size growth forecast",
            "{keywords} industry trends technology",
            "{keywords} regulation policy changes",
        ),
        Locale.JP: (
            "{name} 業界 市場環境",
            "{keywords} 市場規模 成長 予測",
            "{keywords} 業界動向 技術トレンド",
            "{keywords} 規制 政策 動向",
        ),
    },
    ReportKind.THREAT: {
        Locale.EN: (
            "{name} competitors competitive threats",
            "{keywords} new entrants disruption",
            "{keywords} substitute services risks",
            "{keywords} regulatory risks challenges",
        ),
        Locale.JP: (
            "{name} 競合 脅威",
            "{keywords} 新規参入 破壊的イノベーション",
            "{keywords} 代替サービス リスク",
            "{keywords} 規制リスク 課題",
        ),
    },
}

AUXILIARY_KEYWORD_COUNT = 3


def entity_queries(entity_name: str, locale: Locale) -> List[Tuple[QueryKind, str]]:
    templates = ENTITY_QUERY_TEMPLATES[locale]
    return [(kind, template.format(name=entity_name)) for kind, template in templates.items()]


def classify_query(query: str, locale: Locale) -> QueryKind:
    """Best-effort guess of which sub-query produced ``query``."""
    for kind, token in QUERY_KIND_TOKENS[locale]:
        if token in query:
            return kind
    return QueryKind.GENERAL


def auxiliary_queries(entity: Entity, kind: ReportKind, locale: Locale) -> List[str]:
    keywords = _keyword_phrase(entity.keywords) or entity.name
    return [
        template.format(name=entity.name, keywords=keywords)
        for template in AUXILIARY_QUERY_TEMPLATES[kind][locale]
    ]


def _keyword_phrase(keywords: Sequence[str]) -> str:
    return " ".join(keywords[:AUXILIARY_KEYWORD_COUNT])
