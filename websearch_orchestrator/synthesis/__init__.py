"""
LLM-backed query rewriting.
"""

from .claude_client import ChatCapability, ClaudeChatClient
from .query_optimizer import QueryOptimizer, select_fallback_model

__all__ = [
    "ChatCapability",
    "ClaudeChatClient",
    "QueryOptimizer",
    "select_fallback_model",
]
