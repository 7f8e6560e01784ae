"""
Web page fetcher with HTML text extraction.
"""

import httpx
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional
from bs4 import BeautifulSoup
import logging

from ..utils import handle_http_error, SearchError
from .search_cache import TTLCache

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class WebFetcher:
    """
    Fetches pages and reduces them to their visible text.

    Full (untruncated) text is kept in the content cache so a later call
    with a larger ``max_length`` can reuse it; truncation happens per call.
    """

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # Elements that never carry page content
    STRIP_TAGS = [
        'script', 'style', 'nav', 'header', 'footer',
        'aside', 'noscript', 'iframe', 'form', 'svg',
    ]

    # Typical advertising containers
    AD_SELECTORS = [
        '.ads', '.ad', '.advertisement', '.advert', '.sponsored',
        '[id^="ad-"]', '[class*="ad-container"]', '[class*="banner-ad"]',
    ]

    TRUNCATION_MARKER = "..."

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        timeout: float = 10.0,
        max_workers: int = 4,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the web fetcher.

        Args:
            cache: Content cache (URL -> full text)
            timeout: Per-request timeout in seconds
            max_workers: Parallel fetches in ``fetch_many``
            client: Optional preconfigured HTTP client
        """
        self.cache = cache or TTLCache(max_entries=50, ttl_seconds=30 * 60, name="content-cache")
        self.max_workers = max_workers
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": self.USER_AGENT}
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="content-fetch"
        )

    def fetch(self, url: str, max_length: int = 1000) -> Optional[str]:
        """
        Fetch and extract the text of a page.

        Args:
            url: URL to fetch
            max_length: Maximum characters to return

        Returns:
            Page text (possibly truncated), or None if the page could not be used
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Cache hit for URL: {url[:50]}...")
            return self._truncate(cached, max_length)

        start_time = time.time()
        try:
            text = self._fetch_url(url)
        except (httpx.HTTPError, SearchError) as e:
            logger.debug(f"Could not load page {url}: {e}")
            return None
        except Exception as e:
            # parser failures on hostile markup stay local to this page
            logger.debug(f"Could not extract text from {url}: {e}")
            return None

        if not text:
            logger.debug(f"No visible text on page: {url}")
            return None

        self.cache.put(url, text)
        logger.debug(f"Fetched {url[:50]} ({len(text)} chars) in {int((time.time() - start_time) * 1000)}ms")
        return self._truncate(text, max_length)

    def _fetch_url(self, url: str) -> str:
        response = self.client.get(url, headers={"User-Agent": self.USER_AGENT})
        if response.status_code != 200:
            handle_http_error(response)
        return self.extract_text(response.text)

    def extract_text(self, html: str) -> str:
        """
        Extract visible body text from HTML with whitespace collapsed.

        Args:
            html: Raw HTML content

        Returns:
            Extracted text content
        """
        soup = BeautifulSoup(html, 'html.parser')

        for element in soup(self.STRIP_TAGS):
            element.decompose()

        for selector in self.AD_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

        # Hidden elements
        for element in soup.find_all(style=lambda x: x and 'display:none' in x.replace(' ', '')):
            element.decompose()

        root = soup.body or soup
        text = root.get_text(separator=' ')
        return _WHITESPACE.sub(' ', text).strip()

    def _truncate(self, text: str, max_length: int) -> str:
        if len(text) > max_length:
            return text[:max_length] + self.TRUNCATION_MARKER
        return text

    def fetch_many(self, urls: List[str], max_length: int = 1000) -> List[Optional[str]]:
        """
        Fetch several pages in parallel.

        Args:
            urls: URLs to fetch
            max_length: Maximum characters per page

        Returns:
            One entry per URL, in input order; None where the fetch failed
        """
        if not urls:
            return []
        return list(self._executor.map(lambda u: self.fetch(u, max_length), urls))

    def close(self) -> None:
        """Close the HTTP client and worker pool."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
