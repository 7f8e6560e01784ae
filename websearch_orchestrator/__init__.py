"""
Web Search Orchestrator

Turns free-text questions into ranked web search results using a
quota-aware Brave Search API with fallback to self-hosted SearXNG
instances, optional LLM query rewriting and full-page enrichment.
"""

__version__ = "1.0.0"
__author__ = "Web Search Orchestrator Team"

from .config import Settings
from .core import SearchOrchestrator
from .models import SearchResult, SearchOptions, TimeRange

__all__ = [
    "Settings",
    "SearchOrchestrator",
    "SearchResult",
    "SearchOptions",
    "TimeRange",
    "__version__",
]
