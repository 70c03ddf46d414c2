"""
Long-form Markdown articles written from a finished research bundle.
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Optional

from autogen_core.models import ChatCompletionClient

from domain.errors import UpstreamServiceError
from domain.models import AggregateReport, ArticleOptions, GeneratedArticle, Locale, ResearchBundle

from .model_client import DEFAULT_BASE_URL, DEFAULT_MODEL_NAME, build_openai_client, run_single_turn
from .research_prompts import article_prompt

logger = logging.getLogger(__name__)

_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_CJK = re.compile(r"[\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf]")
_MARKDOWN_RULES = (
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),
    (re.compile(r"\*{1,2}([^*]+)\*{1,2}"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\|[^|\n]*\|"), ""),
    (re.compile(r"[-*+]\s+"), ""),
    (re.compile(r"\n+"), " "),
)


def default_title(target_name: str, locale: Locale) -> str:
    if locale is Locale.JP:
        return f"{target_name} 競合分析レポート"
    return f"{target_name} Competitive Analysis Report"


def extract_title(content: str, target_name: str, locale: Locale = Locale.JP) -> str:
    match = _TITLE.search(content)
    if match:
        return match.group(1).strip()
    return default_title(target_name, locale)


def strip_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def count_words(text: str) -> int:
    """Approximate word count for English and Japanese text.

    Whitespace-separated tokens and half the number of CJK characters are both
    counted; the larger of the two wins.
    """
    clean = strip_markdown(text)
    words = len(clean.split())
    cjk_estimate = math.ceil(len(_CJK.findall(clean)) / 2)
    return max(words, cjk_estimate)


def _report_lines(
    report: AggregateReport,
    heading: str,
    item_label: str,
    relation_heading: str,
    peer_label: str,
    action_label: str,
) -> List[str]:
    lines = ["", f"=== {heading} ==="]
    for index, item in enumerate(report.analysis_items, start=1):
        lines.append("")
        lines.append(f"{item_label} {index}: {item.topic}")
        lines.append(f"内容: {item.content}")
    lines.append("")
    lines.append(f"--- {relation_heading} ---")
    for index, relation in enumerate(report.relation_items, start=1):
        lines.append("")
        lines.append(f"{peer_label} {index}: {relation.peer_name}")
        lines.append(f"分析: {relation.relation_analysis}")
        lines.append(f"{action_label}: {relation.recommended_action}")
    return lines


def build_article_content(target_name: str, bundle: ResearchBundle) -> str:
    """Render the research bundle as the article writer's input."""
    lines = [f"対象企業: {target_name}", "", "=== 競合調査データ ==="]
    if bundle.records:
        for index, record in enumerate(bundle.records, start=1):
            lines.append("")
            lines.append(f"競合企業 {index}: {record.entity_name}")
            lines.append(f"主要製品・サービス: {', '.join(record.products)}")
            lines.append(f"主要機能: {', '.join(record.features)}")
            lines.append(f"強み: {', '.join(record.strengths)}")
            lines.append(f"弱み: {', '.join(record.weaknesses)}")
            lines.append(f"市場ポジション: {record.position_summary}")
            lines.append(f"比較分析: {record.comparison_notes}")
            if record.source_url:
                lines.append(f"ウェブサイト: {record.source_url}")
    else:
        lines.append("競合調査データが利用できません。")

    if bundle.environment_report is not None:
        lines.extend(
            _report_lines(bundle.environment_report, "市場環境分析", "分析項目", "関係性分析", "類似企業", "推奨アクション")
        )
    if bundle.threat_report is not None:
        lines.extend(
            _report_lines(bundle.threat_report, "脅威分析", "脅威項目", "脅威関係性分析", "脅威企業", "対策推奨")
        )
    return "\n".join(lines) + "\n"


class ArticleAgent:
    """Article-generation service backed by a single-turn AutoGen assistant."""

    agent_name = "article_writer"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL_NAME,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        model_client: Optional[ChatCompletionClient] = None,
    ) -> None:
        if model_client is None:
            if not api_key:
                raise EnvironmentError("OPENAI_API_KEY is not set.")
            model_client = build_openai_client(
                api_key=api_key,
                model_name=model_name,
                base_url=base_url,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        self._model_client = model_client

    async def generate(self, target_name: str, bundle: ResearchBundle, options: ArticleOptions) -> GeneratedArticle:
        logger.info("Generating %s article for %s", options.style.value, target_name)
        system_message = article_prompt(style=options.style, locale=options.locale, include_images=options.include_images)
        try:
            content = await run_single_turn(
                model_client=self._model_client,
                name=self.agent_name,
                system_message=system_message,
                task=build_article_content(target_name, bundle),
                description="Writes a Markdown competitive-analysis article.",
            )
        except Exception as exc:
            raise UpstreamServiceError(service="article_generation", message=str(exc)) from exc
        if not content:
            raise UpstreamServiceError(service="article_generation", message="empty article")

        return GeneratedArticle(
            title=extract_title(content, target_name, options.locale),
            content=content,
            word_count=count_words(content),
        )
