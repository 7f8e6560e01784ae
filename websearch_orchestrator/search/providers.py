"""
Search provider interface and the ordered fallback chain.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence
from urllib.parse import urlparse
import logging

from ..models import SearchOptions, SearchResult
from ..utils import AuthenticationError, ConfigurationError, ProviderError, RateLimitError

logger = logging.getLogger(__name__)


class SearchProvider(ABC):
    """
    One search backend in the fallback chain.

    ``execute`` returns the provider's results or raises a
    ``ProviderError`` subclass; it never returns partial garbage.
    """

    provider_id: str = "provider"

    #: Whether the chain must re-check include/exclude domains locally
    filters_locally: bool = False

    @property
    def name(self) -> str:
        return self.provider_id

    def is_available(self) -> bool:
        """Cheap pre-check (API key present, quota left, ...)."""
        return True

    @abstractmethod
    def execute(self, query: str, options: SearchOptions) -> List[SearchResult]:
        """Run ``query`` (already carrying site: operators) against the backend."""

    def close(self) -> None:
        """Release network resources."""


def validate_instance_url(url: str) -> str:
    """Normalize a SearXNG base URL, raising ConfigurationError if unusable."""
    url = url.strip().rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Invalid search instance URL: {url!r}")
    return url


def build_provider_query(query: str, options: SearchOptions) -> str:
    """
    Append domain restrictions in the common web-search operator syntax.

    ``(site:a OR site:b)`` for included domains, ``-site:x`` per excluded one.
    """
    parts = [query]

    if options.include_domains:
        sites = " OR ".join(f"site:{d}" for d in options.include_domains)
        parts.append(f"({sites})")

    for domain in options.exclude_domains:
        parts.append(f"-site:{domain}")

    return " ".join(parts)


def filter_by_domains(
    results: List[SearchResult],
    include_domains: Sequence[str],
    exclude_domains: Sequence[str] = ()
) -> List[SearchResult]:
    """
    Keep results whose URL contains one of ``include_domains`` (when given)
    and none of ``exclude_domains``. Matching is case-insensitive substring.
    """
    if not include_domains and not exclude_domains:
        return results

    include = [d.lower() for d in include_domains]
    exclude = [d.lower() for d in exclude_domains]

    filtered = []
    for result in results:
        url = result.url.lower()
        if include and not any(domain in url for domain in include):
            continue
        if any(domain in url for domain in exclude):
            continue
        filtered.append(result)

    logger.info(
        f"Domain filter: kept {len(filtered)} of {len(results)} results "
        f"(include: {list(include_domains)}, exclude: {list(exclude_domains)})"
    )
    return filtered


class ProviderChain:
    """
    Ordered list of providers tried strictly one after another.

    The first provider that yields a non-empty (and, for providers that
    ignore site: operators, non-empty after local filtering) result set
    wins, capped at ``max_results``. If every provider fails, the result
    is an empty list.
    """

    def __init__(self, providers: Sequence[SearchProvider]):
        self.providers: List[SearchProvider] = list(providers)

    def execute(self, query: str, options: SearchOptions) -> List[SearchResult]:
        """
        Run a search through the chain.

        Args:
            query: Keyword query without domain operators
            options: Search options

        Returns:
            Results from the first successful provider, or an empty list
        """
        provider_query = build_provider_query(query, options)
        logger.info(f"Web search: '{provider_query}' (max {options.max_results} results)")

        for provider in self.providers:
            if not provider.is_available():
                logger.debug(f"Skipping unavailable provider {provider.name}")
                continue

            try:
                results = provider.execute(provider_query, options)
            except AuthenticationError as e:
                logger.error(f"{provider.name}: rejected credentials, skipping ({e})")
                continue
            except RateLimitError as e:
                logger.warning(f"{provider.name}: rate limited, skipping ({e})")
                continue
            except ProviderError as e:
                logger.warning(f"{provider.name} failed: {e}")
                continue

            if not results:
                logger.debug(f"{provider.name}: no results")
                continue

            if provider.filters_locally:
                filtered = filter_by_domains(
                    results, options.include_domains, options.exclude_domains
                )
                if not filtered:
                    logger.warning(
                        f"{provider.name}: all {len(results)} results removed by domain filter"
                    )
                    continue
                results = filtered

            results = results[:options.max_results]
            logger.info(f"{provider.name}: {len(results)} results")
            return results

        logger.warning(f"All search providers exhausted for: '{query}'")
        return []

    def close(self) -> None:
        for provider in self.providers:
            provider.close()
