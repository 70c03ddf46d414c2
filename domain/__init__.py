"""
Domain package: validated data shapes, error taxonomy and the entity directory.

```python
from domain import Entity, ResearchOptions
from domain.directory import InMemoryEntityDirectory
```
"""

from .errors import (  # noqa: F401
    CacheError,
    EntityNotFoundError,
    InputValidationError,
    NoRelatedEntitiesError,
    ResearchError,
    UpstreamServiceError,
)
from .models import (  # noqa: F401
    AggregateReport,
    AggregateRequest,
    AnalysisItem,
    ArticleOptions,
    ArticleStyle,
    Entity,
    EntityAnalysis,
    EntityRecord,
    GeneratedArticle,
    Locale,
    QueryItem,
    QueryKind,
    RawQueryResult,
    RelationItem,
    ReportKind,
    ResearchBundle,
    ResearchDepth,
    ResearchOptions,
    SearchDepth,
)

__all__ = [
    "AggregateReport",
    "AggregateRequest",
    "AnalysisItem",
    "ArticleOptions",
    "ArticleStyle",
    "CacheError",
    "Entity",
    "EntityAnalysis",
    "EntityNotFoundError",
    "EntityRecord",
    "GeneratedArticle",
    "InputValidationError",
    "Locale",
    "NoRelatedEntitiesError",
    "QueryItem",
    "QueryKind",
    "RawQueryResult",
    "RelationItem",
    "ReportKind",
    "ResearchBundle",
    "ResearchDepth",
    "ResearchError",
    "ResearchOptions",
    "SearchDepth",
    "UpstreamServiceError",
]
