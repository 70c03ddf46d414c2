"""Tests for token estimation, truncation and search-result summaries."""

import pytest

from domain.models import QueryItem, RawQueryResult
from research.content_budget import (
    DEFAULT_CONTEXT_LIMIT,
    SUMMARY_SNIPPET_CHARS,
    TRUNCATION_MARKER,
    available_budget,
    context_limit_for,
    estimate_tokens,
    fit_to_budget,
    marker_tokens,
    summarize_query_result,
    summarize_query_results,
    truncate,
)

SAMPLES = [
    "",
    "short",
    "First sentence. Second sentence. Third sentence goes on for a while. " * 20,
    "word " * 500,
    "x" * 3000,
    "日本語の文章です。これは二文目です。" * 80,
]


class TestEstimate:
    def test_four_characters_per_token(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_context_limits(self):
        assert context_limit_for("gpt-4o") == 128000
        assert context_limit_for("gpt-3.5-turbo") == 4096
        assert context_limit_for("unknown-model") == DEFAULT_CONTEXT_LIMIT
        assert context_limit_for("unknown-model", default=1000) == 1000

    def test_available_budget_never_negative(self):
        assert available_budget(100, "x" * 4000, 50) == 0
        assert available_budget(1000, "abcd", 100) == 899


class TestTruncate:
    def test_fitting_text_is_unchanged(self):
        assert truncate("short text", 100) == "short text"

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("budget", [0, 1, 10, 57, 200])
    def test_size_is_bounded(self, text, budget):
        assert estimate_tokens(truncate(text, budget)) <= budget + marker_tokens()

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("budget", [0, 1, 10, 57, 200])
    def test_idempotent(self, text, budget):
        once = truncate(text, budget)
        assert truncate(once, budget) == once

    def test_prefers_sentence_boundary(self):
        text = "This is the first sentence. " * 50
        result = truncate(text, 50)
        assert result.endswith("." + TRUNCATION_MARKER)

    def test_falls_back_to_whitespace(self):
        text = "word " * 200
        result = truncate(text, 20)
        body = result[: -len(TRUNCATION_MARKER)]
        assert body.endswith("word")
        assert result.endswith(TRUNCATION_MARKER)

    def test_hard_cut_without_boundaries(self):
        result = truncate("x" * 1000, 10)
        assert result == "x" * 36 + TRUNCATION_MARKER

    def test_japanese_sentence_end(self):
        text = "これは文です。" * 100
        result = truncate(text, 30)
        assert result.endswith("。" + TRUNCATION_MARKER)


class TestFitToBudget:
    def test_returns_content_when_it_fits(self):
        assert fit_to_budget("system", "content", total_budget=100, reserved_for_response=10) == "content"

    def test_truncates_to_remaining_budget(self):
        content = "x" * 4000
        result = fit_to_budget("s" * 40, content, total_budget=500, reserved_for_response=100)
        assert result.endswith(TRUNCATION_MARKER)
        assert estimate_tokens(result) <= 390 + marker_tokens()


def _result(query: str, count: int, snippet: str = "snippet") -> RawQueryResult:
    items = tuple(QueryItem(title=f"Title {i}", url=f"https://e.com/{i}", snippet=snippet) for i in range(count))
    return RawQueryResult(query=query, items=items)


class TestSummaries:
    def test_empty_result(self):
        assert summarize_query_result(_result("q", 0)) == "Query: q\nNo results"

    def test_at_most_three_items_with_capped_snippets(self):
        summary = summarize_query_result(_result("q", 5, snippet="s" * 500))
        assert "Results: 5" in summary
        assert "3. Title 2" in summary
        assert "Title 3" not in summary
        assert "s" * SUMMARY_SNIPPET_CHARS + "..." in summary
        assert "s" * (SUMMARY_SNIPPET_CHARS + 1) not in summary

    def test_stops_at_budget(self):
        results = [_result(f"query {i}", 3, snippet="s" * 150) for i in range(10)]
        unbounded = summarize_query_results(results)
        bounded = summarize_query_results(results, max_tokens=300)
        assert len(bounded) < len(unbounded)
        assert estimate_tokens(bounded) <= 300 + marker_tokens()

    def test_no_budget_keeps_everything(self):
        results = [_result("a", 1), _result("b", 1)]
        assert summarize_query_results(results).count("Query:") == 2
