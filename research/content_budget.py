"""
Token budgeting for text handed to the generative services.

Sizes are estimated from character counts (about four characters per token
for mixed English/Japanese text). Truncation cuts at a sentence end, then at
whitespace, then hard, and appends ``TRUNCATION_MARKER``.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional

from domain.models import RawQueryResult

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
SAFETY_FACTOR = 0.9
SENTENCE_WINDOW = 0.7
WHITESPACE_WINDOW = 0.8
SENTENCE_ENDINGS = ("。", ".", "!", "?", "！", "？")
TRUNCATION_MARKER = "\n\n[content truncated]"

DEFAULT_CONTEXT_LIMIT = 8192
RESERVED_RESPONSE_TOKENS = 2000
MODEL_CONTEXT_LIMITS: Dict[str, int] = {
    "gpt-4o-mini": 8192,
    "gpt-4o": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 4096,
}

SUMMARY_ITEMS_PER_QUERY = 3
SUMMARY_SNIPPET_CHARS = 200
MIN_PARTIAL_SUMMARY_TOKENS = 100


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def marker_tokens() -> int:
    return estimate_tokens(TRUNCATION_MARKER)


def context_limit_for(model: str, default: int = DEFAULT_CONTEXT_LIMIT) -> int:
    return MODEL_CONTEXT_LIMITS.get(model, default)


def available_budget(total_budget: int, overhead_text: str, reserved_for_response: int) -> int:
    return max(0, total_budget - estimate_tokens(overhead_text) - reserved_for_response)


def truncate(text: str, max_tokens: int) -> str:
    """Shrink ``text`` to roughly ``max_tokens``.

    Text that already fits is returned unchanged, as is a previously truncated
    text whose body fits, so repeated application at the same budget is stable.
    """
    max_tokens = max(0, max_tokens)
    if estimate_tokens(text) <= max_tokens:
        return text
    if text.endswith(TRUNCATION_MARKER) and estimate_tokens(text[: -len(TRUNCATION_MARKER)]) <= max_tokens:
        return text

    window = math.floor(max_tokens * CHARS_PER_TOKEN * SAFETY_FACTOR)
    head = text[:window]

    sentence_end = max(head.rfind(mark) for mark in SENTENCE_ENDINGS)
    if sentence_end >= 0 and sentence_end + 1 > window * SENTENCE_WINDOW:
        return head[: sentence_end + 1] + TRUNCATION_MARKER

    whitespace = max(head.rfind(" "), head.rfind("\n"), head.rfind("\t"), head.rfind("　"))
    if whitespace >= 0 and whitespace > window * WHITESPACE_WINDOW:
        return head[:whitespace] + TRUNCATION_MARKER

    return head + TRUNCATION_MARKER


def fit_to_budget(
    system_prompt: str,
    content: str,
    *,
    total_budget: int = DEFAULT_CONTEXT_LIMIT,
    reserved_for_response: int = RESERVED_RESPONSE_TOKENS,
) -> str:
    """Truncate ``content`` so it fits next to ``system_prompt`` in the context window."""
    budget = available_budget(total_budget, system_prompt, reserved_for_response)
    content_tokens = estimate_tokens(content)
    if content_tokens <= budget:
        logger.debug("Content fits: %d tokens of %d available", content_tokens, budget)
        return content
    logger.info("Content exceeds budget (%d > %d tokens); truncating", content_tokens, budget)
    return truncate(content, budget)


def summarize_query_result(result: RawQueryResult) -> str:
    lines = [f"Query: {result.query}"]
    if not result.items:
        lines.append("No results")
        return "\n".join(lines)
    lines.append(f"Results: {len(result.items)}")
    for index, item in enumerate(result.items[:SUMMARY_ITEMS_PER_QUERY], start=1):
        snippet = item.snippet or item.content or ""
        if len(snippet) > SUMMARY_SNIPPET_CHARS:
            snippet = snippet[:SUMMARY_SNIPPET_CHARS] + "..."
        lines.append(f"{index}. {item.title}")
        lines.append(f"   {snippet}")
    return "\n".join(lines)


def summarize_query_results(results: Iterable[RawQueryResult], max_tokens: Optional[int] = None) -> str:
    """Render query results compactly, stopping once ``max_tokens`` is used up."""
    chunks = []
    used = 0
    for result in results:
        summary = summarize_query_result(result)
        tokens = estimate_tokens(summary)
        if max_tokens is not None and used + tokens > max_tokens:
            remaining = max_tokens - used
            if remaining > MIN_PARTIAL_SUMMARY_TOKENS:
                chunks.append(truncate(summary, remaining - marker_tokens()))
            break
        chunks.append(summary)
        used += tokens
    return "\n\n".join(chunks)
