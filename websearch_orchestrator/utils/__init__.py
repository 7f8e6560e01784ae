"""
Utility modules for the web search orchestrator.
"""

from .retry import (
    SearchError,
    ConfigurationError,
    PersistenceError,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    PermanentError,
    MalformedResponseError,
    TransientError,
    create_retry_decorator,
    retry_search,
    handle_http_error,
)
from .logging_config import (
    configure_logging,
    ProgressLogger,
)

__all__ = [
    # Errors and retry
    "SearchError",
    "ConfigurationError",
    "PersistenceError",
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "PermanentError",
    "MalformedResponseError",
    "TransientError",
    "create_retry_decorator",
    "retry_search",
    "handle_http_error",
    # Logging
    "configure_logging",
    "ProgressLogger",
]
