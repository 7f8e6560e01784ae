"""
Brave Search API provider with quota accounting.
"""

import httpx
import time
from typing import List, Optional
from pydantic import ValidationError
import logging

from ..models import SearchOptions, SearchResult
from ..utils import retry_search, handle_http_error, MalformedResponseError, RateLimitError, TransientError
from .providers import SearchProvider

logger = logging.getLogger(__name__)


class BraveSearchProvider(SearchProvider):
    """
    Commercial, quota-limited search provider.

    Only offered to the chain while an API key is configured and the
    quota ledger reports remaining searches for the month. Each call
    reserves its use in the ledger before the request and hands it back
    when the search yields nothing.
    """

    provider_id = "brave"
    BASE_URL = "https://api.search.brave.com/res/v1/web/search"
    MAX_COUNT = 20  # Brave max per request

    def __init__(
        self,
        api_key: str,
        ledger,
        monthly_limit: int = 2000,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the Brave provider.

        Args:
            api_key: Brave Search API key (may be empty: provider stays unavailable)
            ledger: QuotaLedger recording each successful search
            monthly_limit: Searches allowed per calendar month
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.api_key = (api_key or "").strip()
        self.ledger = ledger
        self.monthly_limit = monthly_limit
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def is_available(self) -> bool:
        if not self.api_key:
            return False
        remaining = self.ledger.remaining(self.provider_id, self.monthly_limit)
        if remaining <= 0:
            logger.warning("Brave monthly quota used up - falling back to self-hosted search")
            return False
        return True

    def execute(self, query: str, options: SearchOptions) -> List[SearchResult]:
        month = self.ledger.reserve(self.provider_id, self.monthly_limit)
        if month is None:
            raise RateLimitError(message="Brave monthly quota used up")

        start_time = time.time()
        used = False
        try:
            results = self._execute_search(query, options)
            used = bool(results)
        finally:
            if not used:
                self.ledger.release(self.provider_id, month)

        duration_ms = int((time.time() - start_time) * 1000)
        if results:
            logger.info(
                f"Brave search: {len(results)} results in {duration_ms}ms "
                f"({self.ledger.count(self.provider_id)}/{self.monthly_limit} this month)"
            )
        return results

    @retry_search
    def _execute_search(self, query: str, options: SearchOptions) -> List[SearchResult]:
        """
        Execute the actual search API call.

        Decorated with retry logic for 5xx and network failures only.
        """
        headers = {
            "X-Subscription-Token": self.api_key,
            "Accept": "application/json"
        }

        params = {
            "q": query,
            "count": min(options.max_results, self.MAX_COUNT),
            "search_lang": "de",
            "country": "de",
        }

        freshness = options.time_range.brave_value
        if freshness:
            params["freshness"] = freshness

        try:
            response = self.client.get(self.BASE_URL, headers=headers, params=params)
        except httpx.TimeoutException:
            logger.warning(f"Brave search timeout for query: {query[:50]}...")
            raise TransientError("Brave search timed out")
        except httpx.HTTPError as e:
            raise TransientError(f"Brave search request failed: {e}") from e

        if response.status_code != 200:
            handle_http_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Brave returned invalid JSON: {e}") from e

        return self._parse_results(data)

    def _parse_results(self, data: dict) -> List[SearchResult]:
        """
        Parse Brave API response into SearchResult objects.

        Args:
            data: Raw API response

        Returns:
            List of SearchResult objects

        Raises:
            MalformedResponseError: If the payload does not have the expected shape
        """
        if not isinstance(data, dict):
            raise MalformedResponseError("Brave response is not a JSON object")

        web = data.get("web") or {}
        if not isinstance(web, dict):
            raise MalformedResponseError("Brave 'web' section is not a JSON object")
        web_results = web.get("results") or []
        if not isinstance(web_results, list):
            raise MalformedResponseError("Brave 'web.results' is not a list")

        results = []
        try:
            for item in web_results:
                if not isinstance(item, dict):
                    continue
                url = item.get("url")
                title = item.get("title")
                if not url or title is None:
                    continue
                results.append(SearchResult(
                    title=title,
                    url=url,
                    snippet=item.get("description") or ""
                ))
        except (ValidationError, TypeError) as e:
            raise MalformedResponseError(f"Brave returned unusable results: {e}") from e

        return results

    def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            self.client.close()
