"""Error taxonomy shared by the research core and its adapters."""

from __future__ import annotations

from typing import Optional


class ResearchError(Exception):
    """Base class for every error raised by the research pipeline."""


class InputValidationError(ResearchError, ValueError):
    """Raised before any I/O when a required input is empty or malformed."""


class EntityNotFoundError(ResearchError, LookupError):
    """Raised when the target entity or its related entities cannot be resolved."""

    def __init__(self, *, identifier: str, entity_kind: str = "entity", message: Optional[str] = None) -> None:
        super().__init__(message or f"{entity_kind} '{identifier}' not found")
        self.identifier = identifier
        self.entity_kind = entity_kind


class NoRelatedEntitiesError(EntityNotFoundError):
    """Raised when a resolved entity has an empty related-entity list."""

    def __init__(self, *, identifier: str) -> None:
        super().__init__(
            identifier=identifier,
            entity_kind="related_entities",
            message=f"No related entities found for entity '{identifier}'",
        )


class UpstreamServiceError(ResearchError, RuntimeError):
    """Raised by adapters when a search or generative call fails."""

    def __init__(self, *, service: str, message: str) -> None:
        super().__init__(f"{service} failed: {message}")
        self.service = service


class CacheError(ResearchError, OSError):
    """Storage failure inside the cache store. Never leaves the store."""
