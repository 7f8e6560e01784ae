"""
Error taxonomy and retry utilities for search providers.
"""

from typing import Optional, Type, Tuple
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx
import logging

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """Base class for all orchestrator errors."""
    pass


class ConfigurationError(SearchError):
    """Invalid configuration detected at construction time."""
    pass


class PersistenceError(SearchError):
    """Settings store could not be read or written."""
    pass


class ProviderError(SearchError):
    """A single search provider failed; the chain advances to the next one."""
    pass


class RateLimitError(ProviderError):
    """Provider quota or rate limit hit. Never retried within one call."""

    def __init__(self, retry_after: Optional[float] = None, message: str = "Rate limited"):
        self.retry_after = retry_after
        super().__init__(f"{message}. Retry after: {retry_after}s")


class AuthenticationError(ProviderError):
    """Provider rejected the credentials (misconfiguration)."""
    pass


class PermanentError(ProviderError):
    """Client error that should not be retried."""
    pass


class MalformedResponseError(ProviderError):
    """Provider answered with something that is not the expected JSON."""
    pass


class TransientError(ProviderError):
    """Temporary network or server error."""
    pass


def create_retry_decorator(
    max_attempts: int = 2,
    min_wait: float = 0.5,
    max_wait: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        TransientError,
        httpx.TimeoutException,
        httpx.NetworkError,
    )
):
    """
    Create a retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        retryable_exceptions: Tuple of exception types to retry on

    Returns:
        A retry decorator configured with the specified parameters
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retryable_exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )


# The commercial provider gets one quick second chance on 5xx/timeouts.
# Rate limits and auth failures are excluded: they must not burn quota twice.
retry_search = create_retry_decorator(
    max_attempts=2,
    min_wait=0.5,
    max_wait=2.0
)


def handle_http_error(response: httpx.Response) -> None:
    """
    Convert HTTP errors to appropriate exception types.

    Args:
        response: The HTTP response to check

    Raises:
        AuthenticationError: For 401/403 responses
        RateLimitError: For 429 responses
        TransientError: For 5xx responses
        PermanentError: For other 4xx responses
    """
    if response.status_code in (401, 403):
        raise AuthenticationError(
            f"Authentication failed: {response.status_code}"
        )
    elif response.status_code == 429:
        retry_after = response.headers.get('retry-after')
        try:
            retry_after_seconds = float(retry_after) if retry_after else None
        except ValueError:
            retry_after_seconds = None
        raise RateLimitError(retry_after=retry_after_seconds)
    elif response.status_code >= 500:
        raise TransientError(
            f"Server error: {response.status_code} - {response.text[:200]}"
        )
    elif response.status_code >= 400:
        raise PermanentError(
            f"Client error: {response.status_code} - {response.text[:200]}"
        )
    elif response.status_code >= 300:
        raise PermanentError(f"Unexpected status: {response.status_code}")
