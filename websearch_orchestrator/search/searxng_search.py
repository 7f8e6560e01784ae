"""
Self-hosted SearXNG instances used as fallback providers.
"""

import httpx
from typing import List, Optional
from pydantic import ValidationError
import logging

from ..models import SearchOptions, SearchResult
from ..utils import handle_http_error, MalformedResponseError, RateLimitError, TransientError
from .providers import SearchProvider, validate_instance_url

logger = logging.getLogger(__name__)


class SearxngProvider(SearchProvider):
    """
    One SearXNG instance.

    Public instances often ignore ``site:`` operators, so the chain
    re-filters their results locally (``filters_locally``).
    """

    provider_id = "searxng"
    filters_locally = True

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    def __init__(
        self,
        instance_url: str,
        ledger=None,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the provider.

        Args:
            instance_url: Base URL of the instance
            ledger: Optional QuotaLedger counting self-hosted searches
            timeout: Request timeout in seconds
            client: Optional preconfigured (possibly shared) HTTP client
        """
        self.instance_url = validate_instance_url(instance_url)
        self.ledger = ledger
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    @property
    def name(self) -> str:
        return f"searxng({self.instance_url})"

    def execute(self, query: str, options: SearchOptions) -> List[SearchResult]:
        params = {
            "q": query,
            "format": "json",
            "language": "de",
        }
        time_range = options.time_range.searxng_value
        if time_range:
            params["time_range"] = time_range

        headers = {
            "User-Agent": self.USER_AGENT,
            "Accept": "application/json",
        }

        try:
            response = self.client.get(
                f"{self.instance_url}/search", params=params, headers=headers
            )
        except httpx.HTTPError as e:
            raise TransientError(f"Request to {self.instance_url} failed: {e}") from e

        if response.status_code != 200:
            handle_http_error(response)

        body = response.text
        if body.lstrip().startswith("<!DOCTYPE") or "Too Many Requests" in body:
            raise RateLimitError(message=f"Bot protection or rate limit page from {self.instance_url}")

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{self.instance_url} returned invalid JSON: {e}") from e

        results = self._parse_results(data)
        if results and self.ledger is not None:
            self.ledger.record_use(self.provider_id)
        return results

    def _parse_results(self, data: dict) -> List[SearchResult]:
        """
        Parse the instance's JSON into results.

        Every hit is returned; the chain applies the domain filter and
        the ``max_results`` cap afterwards.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{self.instance_url} response is not a JSON object")

        items = data.get("results") or []
        if not isinstance(items, list):
            raise MalformedResponseError(f"{self.instance_url} 'results' is not a list")

        results = []
        try:
            for item in items:
                if not isinstance(item, dict):
                    continue
                url = item.get("url")
                title = item.get("title")
                if not url or title is None:
                    continue
                results.append(SearchResult(
                    title=title,
                    url=url,
                    snippet=item.get("content") or ""
                ))
        except (ValidationError, TypeError) as e:
            raise MalformedResponseError(f"{self.instance_url} returned unusable results: {e}") from e

        return results

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
