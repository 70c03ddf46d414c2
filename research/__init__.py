"""
Research core: caching, budgeting and the fan-out orchestrators.

Adapters for real services live in ``agents``; ``research.factory`` wires them
together from ``ResearchSettings``:

```python
from research.config import ResearchSettings
from research.factory import build_pipeline

pipeline = build_pipeline(ResearchSettings.from_env())
bundle = await pipeline.research("acme")
```
"""

from .aggregate_reports import AggregateReportOrchestrator, report_cache_key  # noqa: F401
from .cache_store import FileCacheStore, derive_key  # noqa: F401
from .content_budget import estimate_tokens, fit_to_budget, truncate  # noqa: F401
from .entity_research import EntityResearchOrchestrator, EntityResearchResult  # noqa: F401
from .pipeline import CachedResearchPipeline, ResearchPipeline  # noqa: F401
from .telemetry import EventKind, LoggingObserver, ResearchObserver, TelemetryEvent  # noqa: F401

__all__ = [
    "AggregateReportOrchestrator",
    "CachedResearchPipeline",
    "EntityResearchOrchestrator",
    "EntityResearchResult",
    "EventKind",
    "FileCacheStore",
    "LoggingObserver",
    "ResearchObserver",
    "ResearchPipeline",
    "TelemetryEvent",
    "derive_key",
    "estimate_tokens",
    "fit_to_budget",
    "report_cache_key",
    "truncate",
]
