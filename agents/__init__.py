"""
Agents package: adapters that connect the research core to external services.

Each class here satisfies one of the protocols in ``domain.interfaces``:

```python
from agents import EntityAnalysisAgent, TavilySearchProvider

search = TavilySearchProvider(api_key="tvly-...")
analysis = EntityAnalysisAgent(api_key="sk-...")
```
"""

from .aggregate_agent import AggregateAnalysisAgent  # noqa: F401
from .analysis_agent import EntityAnalysisAgent  # noqa: F401
from .article_agent import ArticleAgent  # noqa: F401
from .mcp_client import MCPSearchProvider, MCPServerConfig, MCPToolClient  # noqa: F401
from .tavily_search import TavilySearchProvider  # noqa: F401

__all__ = [
    "AggregateAnalysisAgent",
    "ArticleAgent",
    "EntityAnalysisAgent",
    "MCPSearchProvider",
    "MCPServerConfig",
    "MCPToolClient",
    "TavilySearchProvider",
]
