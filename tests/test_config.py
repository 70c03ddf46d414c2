"""Tests for settings, telemetry logging, pipeline wiring and CLI option parsing."""

import logging
from datetime import timedelta
from pathlib import Path

import pytest

from domain.models import Locale, ResearchDepth
from research.config import ResearchSettings
from research.telemetry import EventKind, LoggingObserver, TelemetryEvent

ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_MODEL_NAME",
    "OPENAI_API_BASE_URL",
    "TAVILY_API_KEY",
    "SEARCH_TRANSPORT",
    "TAVILY_MCP_BASE_URL",
    "TAVILY_MCP_API_KEY",
    "CACHE_DIR",
    "CACHE_TTL_HOURS",
    "BUNDLE_CACHE_ENABLED",
    "CONTEXT_TOKEN_LIMIT",
    "RESERVED_RESPONSE_TOKENS",
    "ENTITY_DIRECTORY_PATH",
]


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-test")
    return monkeypatch


class TestResearchSettings:
    def test_defaults(self, env):
        settings = ResearchSettings.from_env()
        assert settings.openai_model_name == "gpt-4o-mini"
        assert settings.search_transport == "tavily"
        assert settings.cache_dir == Path("cache")
        assert settings.cache_ttl == timedelta(hours=24)
        assert settings.bundle_cache_enabled is True
        assert settings.context_limit == 8192
        assert settings.reserved_response_tokens == 2000
        assert settings.entity_directory_path is None
        assert settings.tavily_mcp_api_key == "tvly-test"

    def test_overrides(self, env):
        env.setenv("OPENAI_MODEL_NAME", "gpt-4o")
        env.setenv("CACHE_TTL_HOURS", "1.5")
        env.setenv("BUNDLE_CACHE_ENABLED", "false")
        env.setenv("ENTITY_DIRECTORY_PATH", "entities.json")
        settings = ResearchSettings.from_env()
        assert settings.context_limit == 128000
        assert settings.cache_ttl == timedelta(minutes=90)
        assert settings.bundle_cache_enabled is False
        assert settings.entity_directory_path == Path("entities.json")

    def test_explicit_context_limit_wins(self, env):
        env.setenv("CONTEXT_TOKEN_LIMIT", "4000")
        assert ResearchSettings.from_env().context_limit == 4000

    def test_missing_openai_key(self, env):
        env.delenv("OPENAI_API_KEY")
        with pytest.raises(EnvironmentError):
            ResearchSettings.from_env()

    def test_tavily_key_only_needed_for_direct_transport(self, env):
        env.delenv("TAVILY_API_KEY")
        with pytest.raises(EnvironmentError):
            ResearchSettings.from_env()
        env.setenv("SEARCH_TRANSPORT", "mcp")
        assert ResearchSettings.from_env().search_transport == "mcp"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("CACHE_TTL_HOURS", "soon"),
            ("CACHE_TTL_HOURS", "0"),
            ("CONTEXT_TOKEN_LIMIT", "big"),
            ("RESERVED_RESPONSE_TOKENS", "-5"),
            ("BUNDLE_CACHE_ENABLED", "maybe"),
            ("SEARCH_TRANSPORT", "carrier-pigeon"),
        ],
    )
    def test_invalid_values(self, env, name, value):
        env.setenv(name, value)
        with pytest.raises(ValueError):
            ResearchSettings.from_env()


class TestLoggingObserver:
    def test_levels_follow_event_kind(self, caplog):
        observer = LoggingObserver(logging.getLogger("research.test"))
        with caplog.at_level(logging.DEBUG, logger="research.test"):
            observer.emit(TelemetryEvent(kind=EventKind.TASK_FAILED, stage="entity_research", subject="Globex"))
            observer.emit(TelemetryEvent(kind=EventKind.CACHE_HIT, stage="entity_research", subject="Globex"))
            observer.emit(TelemetryEvent(kind=EventKind.REPORT_BUILT, stage="aggregate_report", subject="Acme"))
        assert [record.levelno for record in caplog.records] == [logging.WARNING, logging.DEBUG, logging.INFO]
        assert "task_failed Globex" in caplog.records[0].getMessage()


class TestCommandLine:
    def test_options_from_flags(self):
        from main import options_from_args, parse_args

        args = parse_args(["acme", "--locale", "EN", "--depth", "deep", "--limit", "3", "--threat"])
        options = options_from_args(args)
        assert args.keyword == "acme"
        assert options.locale is Locale.EN
        assert options.depth is ResearchDepth.DEEP
        assert options.limit == 3
        assert options.include_threat and not options.include_environment

    def test_defaults(self):
        from main import options_from_args, parse_args

        options = options_from_args(parse_args([]))
        assert options.locale is Locale.JP
        assert options.limit == 10


class TestFactory:
    def test_cached_pipeline_by_default(self, tmp_path):
        from research.factory import build_pipeline
        from research.pipeline import CachedResearchPipeline

        settings = ResearchSettings(openai_api_key="sk-test", tavily_api_key="tvly-test", cache_dir=tmp_path)
        assert isinstance(build_pipeline(settings), CachedResearchPipeline)

    def test_plain_pipeline_when_bundle_cache_disabled(self, tmp_path):
        from research.factory import build_pipeline
        from research.pipeline import ResearchPipeline

        settings = ResearchSettings(
            openai_api_key="sk-test",
            tavily_api_key="tvly-test",
            cache_dir=tmp_path,
            bundle_cache_enabled=False,
        )
        assert isinstance(build_pipeline(settings), ResearchPipeline)

    def test_search_transport_selection(self):
        from agents.mcp_client import MCPSearchProvider
        from agents.tavily_search import TavilySearchProvider
        from research.factory import build_search_provider

        direct = ResearchSettings(openai_api_key="sk-test", tavily_api_key="tvly-test")
        via_mcp = ResearchSettings(openai_api_key="sk-test", search_transport="mcp")
        assert isinstance(build_search_provider(direct), TavilySearchProvider)
        assert isinstance(build_search_provider(via_mcp), MCPSearchProvider)

    def test_model_defaults_shared_with_agents(self):
        from agents import model_client
        from research import config

        assert config.DEFAULT_MODEL_NAME is model_client.DEFAULT_MODEL_NAME
        assert config.DEFAULT_BASE_URL is model_client.DEFAULT_BASE_URL


class RevenuePipeline:
    async def revenue_ranges(self, keyword):
        return {"株式会社リアン": "1億円〜10億円"}


@pytest.mark.asyncio
async def test_revenues_flag_prints_ranges(capsys):
    from main import handle, parse_args

    await handle(RevenuePipeline(), "リアン", parse_args(["リアン", "--revenues"]))
    assert '"株式会社リアン": "1億円〜10億円"' in capsys.readouterr().out


def test_logging_configured_before_environment_load(monkeypatch):
    import main

    calls = []
    monkeypatch.setattr(main, "configure_logging", lambda: calls.append("logging"))
    monkeypatch.setattr(main, "load_dotenv", lambda: calls.append("dotenv"))

    def missing_key():
        raise EnvironmentError("OPENAI_API_KEY is not set.")

    monkeypatch.setattr(main.ResearchSettings, "from_env", staticmethod(missing_key))
    main.main(["acme"])
    assert calls == ["logging", "dotenv"]
