"""
Environment and threat reports over AutoGen + OpenAI.

The model answers in JSON mode; the wire shape is validated with pydantic and
mapped onto ``AggregateReport``.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from autogen_core.models import ChatCompletionClient
from pydantic import BaseModel, ConfigDict, ValidationError

from domain.errors import UpstreamServiceError
from domain.models import AggregateReport, AggregateRequest, AnalysisItem, Locale, RelationItem, ReportKind
from research.content_budget import DEFAULT_CONTEXT_LIMIT, RESERVED_RESPONSE_TOKENS, fit_to_budget

from .model_client import DEFAULT_BASE_URL, DEFAULT_MODEL_NAME, build_openai_client, run_single_turn
from .research_prompts import aggregate_prompt

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class _AnalysisResultWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    topic_title: Optional[str] = None
    analysis_content: Optional[str] = None


class _RelationResultWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    similar_company_name: Optional[str] = None
    specific_analysis_result_between_target_company: Optional[str] = None
    recommendation_next_action_between_target_company: Optional[str] = None


class _AggregateWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    analysis_results: Optional[List[_AnalysisResultWire]] = None
    relation_results: Optional[List[_RelationResultWire]] = None


def strip_code_fence(text: str) -> str:
    text = text.strip()
    match = _FENCE.match(text)
    return match.group(1) if match else text


def parse_aggregate_report(text: str, kind: ReportKind) -> AggregateReport:
    """Validate the model's JSON answer and convert it into an ``AggregateReport``."""
    try:
        wire = _AggregateWire.model_validate_json(strip_code_fence(text))
    except ValidationError as exc:
        raise UpstreamServiceError(service="aggregate_analysis", message=f"invalid JSON response: {exc}") from exc

    analysis_items = tuple(
        AnalysisItem(topic=item.topic_title or "", content=item.analysis_content or "")
        for item in wire.analysis_results or []
        if item.topic_title or item.analysis_content
    )
    relation_items = tuple(
        RelationItem(
            peer_name=item.similar_company_name,
            relation_analysis=item.specific_analysis_result_between_target_company or "",
            recommended_action=item.recommendation_next_action_between_target_company or "",
        )
        for item in wire.relation_results or []
        if item.similar_company_name
    )
    return AggregateReport(kind=kind, analysis_items=analysis_items, relation_items=relation_items)


class AggregateAnalysisAgent:
    """Aggregate-analysis service backed by a JSON-mode AutoGen assistant."""

    agent_name = "market_analyst"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL_NAME,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.3,
        context_limit: int = DEFAULT_CONTEXT_LIMIT,
        reserved_response_tokens: int = RESERVED_RESPONSE_TOKENS,
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
                json_output=True,
            )
        self._model_client = model_client
        self.context_limit = context_limit
        self._reserved = reserved_response_tokens

    def system_prompt(self, kind: ReportKind, locale: Locale) -> str:
        return aggregate_prompt(kind, locale)

    async def analyze_aggregate(self, request: AggregateRequest) -> AggregateReport:
        system_message = self.system_prompt(request.kind, request.locale)
        content = fit_to_budget(
            system_message,
            request.to_prompt(),
            total_budget=self.context_limit,
            reserved_for_response=self._reserved,
        )
        logger.info(
            "Requesting %s report for %s (%d related entities, %d chars of search context)",
            request.kind.value,
            request.target_name,
            len(request.related_keywords),
            len(request.search_context),
        )

        try:
            text = await run_single_turn(
                model_client=self._model_client,
                name=self.agent_name,
                system_message=system_message,
                task=content,
                description="Analyses a market and its players, answering in JSON.",
            )
        except Exception as exc:
            raise UpstreamServiceError(service="aggregate_analysis", message=str(exc)) from exc
        if not text:
            raise UpstreamServiceError(service="aggregate_analysis", message="empty response")

        report = parse_aggregate_report(text, request.kind)
        logger.info(
            "%s report for %s: %d topics, %d relations",
            request.kind.value,
            request.target_name,
            len(report.analysis_items),
            len(report.relation_items),
        )
        return report
