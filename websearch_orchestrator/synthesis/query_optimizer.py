"""
LLM-based rewriting of natural-language questions into keyword queries.
"""

import re
import threading
from typing import List, Optional
import logging

from ..models import ModelInfo
from .claude_client import ChatCapability

logger = logging.getLogger(__name__)

MAX_OPTIMIZED_LENGTH = 200

SYSTEM_PROMPT = """You are a search query optimizer. Turn the user's request into the best possible web search query.

Rules:
1. Extract the core terms
2. Remove filler words
3. Add relevant synonyms (joined with OR)
4. Return ONLY the optimized search query, NOTHING else
5. At most 10 words
{expert_rule}
Examples:
- "Kannst du mir sagen wie das Wetter morgen in Berlin wird?" -> "Wetter Berlin morgen Vorhersage"
- "Was sind die besten Restaurants in München?" -> "beste Restaurants München Empfehlungen Bewertungen"
- "How do I build a REST API in Java?" -> "Java REST API Tutorial example Spring Boot"
- (lawyer context) "What could happen to me in the worst case?" -> "legal consequences penalty maximum sentence risk"
"""

EXPERT_RULE = "6. IMPORTANT: the user is talking to a {expert}. Add the relevant technical terms of that field!\n"

# Name fragments of small, fast models, most preferred first
PREFERRED_MODEL_PATTERNS = [
    r"1b", r"2b", r"3b",
    r"phi", r"tinyllama", r"smollm", r"haiku",
    r"7b", r"8b",
]
EXCLUDED_MODEL_MARKERS = ("vision", "embed")


def select_fallback_model(models: List[ModelInfo]) -> Optional[str]:
    """
    Pick the smallest suitable model when the configured one is missing.

    Name patterns first, then the smallest known size, then whatever
    comes first in the list.
    """
    usable = [
        m for m in models
        if not any(marker in m.name.lower() for marker in EXCLUDED_MODEL_MARKERS)
    ]

    for pattern in PREFERRED_MODEL_PATTERNS:
        for model in usable:
            if re.search(pattern, model.name.lower()):
                return model.name

    sized = [m for m in usable if m.size]
    if sized:
        return min(sized, key=lambda m: m.size).name

    return models[0].name if models else None


class QueryOptimizer:
    """
    Rewrites verbose questions into compact keyword queries.

    Availability-degrading: without a usable model, or when the model
    misbehaves, the original query is returned (with the expert context
    appended as plain text if one was given).
    """

    def __init__(
        self,
        chat: Optional[ChatCapability],
        model: str
    ):
        """
        Initialize the optimizer.

        Args:
            chat: Chat capability, or None when no LLM is configured
            model: Preferred model name
        """
        self.chat = chat
        self.configured_model = model
        self._lock = threading.Lock()
        self._effective_model: Optional[str] = None
        self.refresh_model()

    @property
    def effective_model(self) -> Optional[str]:
        with self._lock:
            return self._effective_model

    def set_model(self, model: str) -> None:
        self.configured_model = model
        self.refresh_model()

    def refresh_model(self) -> Optional[str]:
        """Determine which model to use, falling back to the smallest available."""
        effective = self._determine_model()
        with self._lock:
            self._effective_model = effective
        return effective

    def _determine_model(self) -> Optional[str]:
        if self.chat is None:
            logger.info("No chat capability configured - query optimization disabled")
            return None

        try:
            models = self.chat.list_models()
        except Exception as e:
            logger.warning(f"Could not list chat models: {e}")
            return None

        if not models:
            logger.warning("No chat models available - query optimization disabled")
            return None

        if any(m.name.lower() == self.configured_model.lower() for m in models):
            logger.info(f"Optimization model available: {self.configured_model}")
            return self.configured_model

        logger.warning(f"Configured model '{self.configured_model}' not available - looking for an alternative")
        fallback = select_fallback_model(models)
        if fallback:
            logger.info(f"Using fallback optimization model: {fallback}")
        return fallback

    def optimize(
        self,
        query: str,
        language: str,
        expert_context: Optional[str] = None
    ) -> str:
        """
        Rewrite a query into search keywords.

        Args:
            query: User query
            language: Detected two-letter language code
            expert_context: Optional field of expertise to bias terms toward

        Returns:
            Optimized query, or the original (plus expert context) on any failure
        """
        expert = expert_context.strip() if expert_context and expert_context.strip() else None
        fallback = f"{query} {expert}" if expert else query

        model = self.effective_model
        if model is None or self.chat is None:
            logger.debug("No optimization model available - using original query")
            return fallback

        system_prompt = SYSTEM_PROMPT.format(
            expert_rule=EXPERT_RULE.format(expert=expert) if expert else ""
        )
        prompt = f"Optimize this search query (language: {language}): {query}"

        try:
            result = self.chat.chat(model, prompt, system_prompt)
        except Exception as e:
            logger.warning(f"Query optimization failed ({model}): {e}")
            return fallback

        if not result or not result.strip():
            logger.debug("Optimizer returned nothing - using original query")
            return fallback

        if len(result) >= MAX_OPTIMIZED_LENGTH:
            logger.debug(f"Optimizer returned {len(result)} chars of prose - using original query")
            return fallback

        optimized = re.sub(r"[\"']", "", result.strip())
        return optimized or fallback
