"""
Data models for the web search orchestrator.
"""

from .search_result import (
    TimeRange,
    SearchResult,
    SearchQuery,
    SearchOptions,
)
from .quota import (
    ProviderQuota,
    ModelInfo,
)

__all__ = [
    "TimeRange",
    "SearchResult",
    "SearchQuery",
    "SearchOptions",
    "ProviderQuota",
    "ModelInfo",
]
