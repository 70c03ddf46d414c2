"""
Entity analysis over AutoGen + OpenAI.

The model is asked for a fixed Markdown layout (bold section headings with
``- `` bullet lists), which ``parse_analysis`` turns into an ``EntityAnalysis``.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from autogen_core.models import ChatCompletionClient

from domain.errors import UpstreamServiceError
from domain.models import EntityAnalysis, Locale, RawQueryResult, ResearchOptions
from research.content_budget import (
    DEFAULT_CONTEXT_LIMIT,
    RESERVED_RESPONSE_TOKENS,
    estimate_tokens,
    fit_to_budget,
)

from .model_client import DEFAULT_BASE_URL, DEFAULT_MODEL_NAME, build_openai_client, run_single_turn
from .research_prompts import ANALYSIS_SECTIONS, ANALYSIS_SYSTEM_PROMPTS, analysis_prompt, format_search_results

logger = logging.getLogger(__name__)


def extract_list(text: str) -> List[str]:
    """Return the ``- `` bullet items of a section body."""
    items = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("- "):
            item = line[2:].strip()
            if item:
                items.append(item)
    return items


def extract_sections(text: str) -> Dict[str, str]:
    """Map record field names to section bodies, accepting either locale's headings."""
    sections: Dict[str, str] = {}
    for field_name in ANALYSIS_SECTIONS[Locale.EN]:
        for headings in ANALYSIS_SECTIONS.values():
            pattern = r"\*\*" + re.escape(headings[field_name]) + r"[:：]\*\*[ \t]*\n(.*?)(?=\n\*\*|\Z)"
            match = re.search(pattern, text, flags=re.DOTALL | re.IGNORECASE)
            if match:
                sections[field_name] = match.group(1).strip()
                break
    return sections


def parse_analysis(text: str, entity_name: str, source_url: Optional[str] = None) -> EntityAnalysis:
    sections = extract_sections(text)
    return EntityAnalysis(
        entity_name=entity_name,
        products=tuple(extract_list(sections.get("products", ""))),
        features=tuple(extract_list(sections.get("features", ""))),
        strengths=tuple(extract_list(sections.get("strengths", ""))),
        weaknesses=tuple(extract_list(sections.get("weaknesses", ""))),
        position_summary=sections.get("position_summary", ""),
        comparison_notes=sections.get("comparison_notes", ""),
        source_url=source_url,
    )


def first_source_url(raw_results: Iterable[RawQueryResult]) -> Optional[str]:
    for result in raw_results:
        for item in result.items:
            if item.url:
                return item.url
    return None


class EntityAnalysisAgent:
    """Analysis service backed by a single-turn AutoGen assistant."""

    agent_name = "entity_analyst"

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
            )
        self._model_client = model_client
        self.context_limit = context_limit
        self._reserved = reserved_response_tokens

    async def analyze(
        self,
        entity_name: str,
        raw_results: Sequence[RawQueryResult],
        target_context: str,
        options: ResearchOptions,
    ) -> EntityAnalysis:
        locale = options.locale
        system_message = ANALYSIS_SYSTEM_PROMPTS[locale]
        skeleton = analysis_prompt(entity_name=entity_name, target_context=target_context, search_content="", locale=locale)
        search_content = fit_to_budget(
            system_message + skeleton,
            format_search_results(raw_results),
            total_budget=self.context_limit,
            reserved_for_response=self._reserved,
        )
        prompt = analysis_prompt(
            entity_name=entity_name,
            target_context=target_context,
            search_content=search_content,
            locale=locale,
        )
        logger.info("Analysing %s (%d prompt tokens)", entity_name, estimate_tokens(system_message + prompt))

        try:
            text = await run_single_turn(
                model_client=self._model_client,
                name=self.agent_name,
                system_message=system_message,
                task=prompt,
                description="Turns search results about one company into a structured analysis.",
            )
        except Exception as exc:
            raise UpstreamServiceError(service="analysis", message=str(exc)) from exc
        if not text:
            raise UpstreamServiceError(service="analysis", message=f"empty response for {entity_name}")

        logger.debug("Analysis output for %s: %s", entity_name, text)
        return parse_analysis(text, entity_name, source_url=first_source_url(raw_results))
