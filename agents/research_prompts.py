"""
Centralized prompts used by the analysis, aggregate and article agents.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from domain.models import ArticleStyle, Locale, RawQueryResult, ReportKind

# Section headings the analysis agent is asked to produce, keyed by record field.
ANALYSIS_SECTIONS = {
    Locale.EN: {
        "products": "Main Products/Services",
        "features": "Key Features",
        "strengths": "Strengths",
        "weaknesses": "Weaknesses",
        "position_summary": "Market Position",
        "comparison_notes": "Comparison with Target Company",
    },
    Locale.JP: {
        "products": "主要製品・サービス",
        "features": "主要機能・特徴",
        "strengths": "強み",
        "weaknesses": "弱み",
        "position_summary": "市場ポジション",
        "comparison_notes": "対象会社との比較",
    },
}

ANALYSIS_SYSTEM_PROMPTS = {
    Locale.EN: "You are a competitive analysis expert. Provide detailed analysis in English.",
    Locale.JP: "あなたは競合他社分析の専門家です。日本語で詳細な分析を行ってください。",
}


def format_search_results(raw_results: Iterable[RawQueryResult]) -> str:
    """Flatten search results into the block quoted inside the analysis prompt."""

    blocks = []
    for result in raw_results:
        items = "\n\n".join(
            f"タイトル: {item.title}\nURL: {item.url}\n内容: {item.snippet or item.content or ''}"
            for item in result.items
        )
        blocks.append(items)
    return "\n\n---\n\n".join(blocks)


def analysis_prompt(*, entity_name: str, target_context: str, search_content: str, locale: Locale) -> str:
    """Return the user prompt asking for a structured analysis of ``entity_name``."""

    headings = ANALYSIS_SECTIONS[locale]
    if locale is Locale.JP:
        return (
            f"以下の情報を基に、競合他社「{entity_name}」の詳細な分析を行ってください。\n\n"
            f"対象会社の情報:\n{target_context}\n\n"
            f"競合他社の検索結果:\n{search_content}\n\n"
            "以下の形式で分析結果を返してください:\n\n"
            f"**{headings['products']}:**\n- [製品1]\n- [製品2]\n- [製品3]\n\n"
            f"**{headings['features']}:**\n- [機能1]\n- [機能2]\n- [機能3]\n\n"
            f"**{headings['strengths']}:**\n- [強み1]\n- [強み2]\n- [強み3]\n\n"
            f"**{headings['weaknesses']}:**\n- [弱み1]\n- [弱み2]\n- [弱み3]\n\n"
            f"**{headings['position_summary']}:**\n[市場での位置づけについて]\n\n"
            f"**{headings['comparison_notes']}:**\n[具体的な比較分析]\n"
        )
    return (
        f'Based on the following information, provide a detailed analysis of competitor "{entity_name}".\n\n'
        f"Target company information:\n{target_context}\n\n"
        f"Competitor search results:\n{search_content}\n\n"
        "Please return the analysis in the following format:\n\n"
        f"**{headings['products']}:**\n- [Product 1]\n- [Product 2]\n- [Product 3]\n\n"
        f"**{headings['features']}:**\n- [Feature 1]\n- [Feature 2]\n- [Feature 3]\n\n"
        f"**{headings['strengths']}:**\n- [Strength 1]\n- [Strength 2]\n- [Strength 3]\n\n"
        f"**{headings['weaknesses']}:**\n- [Weakness 1]\n- [Weakness 2]\n- [Weakness 3]\n\n"
        f"**{headings['position_summary']}:**\n[Market positioning analysis]\n\n"
        f"**{headings['comparison_notes']}:**\n[Specific comparative analysis]\n"
    )


_AGGREGATE_FOCUS = {
    ReportKind.ENVIRONMENT: {
        Locale.JP: "データサイエンス的観点も交えて市場状況",
        Locale.EN: "the market situation, including a data-science perspective,",
    },
    ReportKind.THREAT: {
        Locale.JP: "脅威分析に重点を置いて市場状況",
        Locale.EN: "the market situation with an emphasis on threats",
    },
}

_AGGREGATE_OUTPUT_FORMAT = """{
  "analysis_results": [
    {"topic_title": "...", "analysis_content": "..."}
  ],
  "relation_results": [
    {
      "similar_company_name": "",
      "specific_analysis_result_between_target_company": "",
      "recommendation_next_action_between_target_company": ""
    }
  ]
}"""


def aggregate_prompt(kind: ReportKind, locale: Locale) -> str:
    """Return the system prompt for an environment or threat report."""

    focus = _AGGREGATE_FOCUS[kind][locale]
    if locale is Locale.JP:
        return (
            "あなたは競合分析アシスタントです。指定された目標企業と、その類似企業群から構成される市場領域について、"
            f"{focus}を多角的・構造的に分析してください。\n"
            "■ 入力内容：\n"
            "・target_company_name（企業名）\n"
            "・target_company_terms\n"
            "・similar_companies_terms\n"
            "・search_results（Web検索結果）- 利用可能な場合は、これらの最新情報を分析に活用してください\n"
            "■ analysis_results の出力について\n"
            "analysis_results では、市場全体や業界構造に関する主要な論点・トピックごとに、現状・課題・機会・トレンド等を"
            "**多面的かつ実務的に分析**してください。\n"
            "トピック例：市場規模の推移、成長性、競争環境、顧客セグメント、主要技術トレンド、規制・障壁、新規参入リスクなど。\n"
            "各トピックごとに、「topic_title」（分析テーマ）と「analysis_content」（要点を端的かつ具体的にまとめた内容）を記載してください。\n"
            "■ relation_results の出力について\n"
            "relation_results では、target_company（目標企業）と各 similar_company（類似企業）との**直接的な関係性**や"
            "**比較分析**を行い、下記３点を記載してください。\n"
            '"similar_company_name": 類似企業名（必須）\n'
            '"specific_analysis_result_between_target_company": 目標企業と当該類似企業との主な違い、共通点、'
            "競争優位性や脅威、協業可能性など**直接的な関係や相違点に関する定量・定性分析**を記載してください。\n"
            '"recommendation_next_action_between_target_company": この分析をもとに、目標企業が当該類似企業に対して取るべき'
            "**推奨アクション**を具体的かつ実行可能なレベルで記載してください。\n"
            f"■ 出力フォーマット（JSON）:\n{_AGGREGATE_OUTPUT_FORMAT}\n"
            "JSON形式の結果のみを返し、不要な文章や解説は含めないでください。"
        )
    return (
        "You are a competitive analysis assistant. For the market formed by the given target company and its similar "
        f"companies, analyse {focus} from multiple angles and in a structured way.\n"
        "Inputs: target_company_name, target_company_terms, similar_companies_terms, and search_results (web search "
        "results; use this recent information when available).\n"
        "analysis_results: one entry per major topic of the market or industry structure (market size, growth, "
        "competition, customer segments, technology trends, regulation and barriers, new-entrant risk). Give each a "
        '"topic_title" and a concise, concrete "analysis_content".\n'
        "relation_results: one entry per similar company with \"similar_company_name\" (required), "
        '"specific_analysis_result_between_target_company" (differences, overlaps, advantages, threats, partnership '
        'potential) and "recommendation_next_action_between_target_company" (a concrete, actionable recommendation).\n'
        f"Output format (JSON):\n{_AGGREGATE_OUTPUT_FORMAT}\n"
        "Return only the JSON object, with no extra prose."
    )


ARTICLE_STYLE_INSTRUCTIONS = {
    ArticleStyle.PROFESSIONAL: "専門的でビジネス向けの文体で、データと分析に基づいた客観的な内容",
    ArticleStyle.CASUAL: "わかりやすく親しみやすい文体で、読みやすく実用的な内容",
    ArticleStyle.ACADEMIC: "学術的で詳細な分析を含む、研究論文のような体系的な内容",
}

ARTICLE_OUTLINE: Sequence[str] = (
    "エグゼクティブサマリー",
    "企業概要",
    "競合分析",
    "市場環境分析（提供されている場合）",
    "脅威分析（提供されている場合）",
    "推奨アクション",
    "まとめ",
)


def article_prompt(*, style: ArticleStyle, locale: Locale, include_images: bool) -> str:
    """Return the system prompt for the article writer."""

    language = "すべて日本語で記述してください。" if locale is Locale.JP else "Write everything in English."
    lines = [
        f"あなたは競合分析の専門家です。提供された競合調査データを基に、{ARTICLE_STYLE_INSTRUCTIONS[style]}の記事を作成してください。",
        "",
        "記事の要件：",
        "- Markdown形式で出力",
        f"- {language}",
        "- 適切な見出し構造（H1, H2, H3）を使用",
        "- 競合他社の分析結果を整理して記述",
        "- 市場環境分析と脅威分析が含まれている場合は、それらも含める",
        "- 具体的な競合企業の特徴、強み、弱み、市場ポジションを明記",
        "- 読み手にとって有用な洞察と推奨アクションを含める",
        "- 表やリストを適切に使用して読みやすくする",
    ]
    if include_images:
        lines.append("- 画像のプレースホルダー（![image description](placeholder)）を適切な場所に配置")
    lines.append("")
    lines.append("記事構成の例：")
    lines.extend(f"{index}. {section}" for index, section in enumerate(ARTICLE_OUTLINE, start=1))
    return "\n".join(lines)
