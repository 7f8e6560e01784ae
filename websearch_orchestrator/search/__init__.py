"""
Search providers, caching, ranking and content retrieval.
"""

from .search_cache import CacheEntry, TTLCache, DualTierCache, build_search_key
from .providers import (
    SearchProvider,
    ProviderChain,
    build_provider_query,
    filter_by_domains,
    validate_instance_url,
)
from .brave_search import BraveSearchProvider
from .searxng_search import SearxngProvider
from .web_fetch import WebFetcher
from .ranker import rank, score, query_terms_from

__all__ = [
    "CacheEntry",
    "TTLCache",
    "DualTierCache",
    "build_search_key",
    "SearchProvider",
    "ProviderChain",
    "build_provider_query",
    "filter_by_domains",
    "validate_instance_url",
    "BraveSearchProvider",
    "SearxngProvider",
    "WebFetcher",
    "rank",
    "score",
    "query_terms_from",
]
