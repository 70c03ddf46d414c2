"""Structured research events and the observers that receive them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    TASK_FAILED = "task_failed"
    SEARCH_FAILED = "search_failed"
    REPORT_BUILT = "report_built"
    REPORT_FAILED = "report_failed"
    BUNDLE_SERVED = "bundle_served"


@dataclass(slots=True, frozen=True)
class TelemetryEvent:
    kind: EventKind
    stage: str
    subject: str
    detail: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ResearchObserver(Protocol):
    def emit(self, event: TelemetryEvent) -> None: ...


_WARNING_EVENTS = {EventKind.TASK_FAILED, EventKind.SEARCH_FAILED, EventKind.REPORT_FAILED}
_DEBUG_EVENTS = {EventKind.CACHE_HIT, EventKind.CACHE_MISS}


class LoggingObserver:
    """Forwards every event to the standard logging module."""

    def __init__(self, log: logging.Logger = logger) -> None:
        self._log = log

    def emit(self, event: TelemetryEvent) -> None:
        if event.kind in _WARNING_EVENTS:
            level = logging.WARNING
        elif event.kind in _DEBUG_EVENTS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        self._log.log(level, "[%s] %s %s %s", event.stage, event.kind.value, event.subject, event.detail)
