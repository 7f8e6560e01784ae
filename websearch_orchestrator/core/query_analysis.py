"""
Lightweight query analysis: language detection and auto-search triggers.
"""

import re
from typing import Sequence
import logging

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[^\W\d_]+")

GERMAN_WORDS = (
    "der", "die", "das", "und", "ist", "ein", "eine", "für", "mit",
    "wie", "was", "kann", "nicht", "auch", "ich", "du", "wir",
)

ENGLISH_WORDS = (
    "the", "a", "an", "and", "is", "for", "with", "how", "what",
    "can", "not", "also", "i", "you", "we", "are", "have",
)

# Phrases that explicitly ask for a web lookup. Time words such as
# "heute" or "latest" are deliberately absent: they alone never trigger.
EXPLICIT_SEARCH_TRIGGERS = (
    "recherchiere", "recherchier", "recherche für mich",
    "such im web", "such im internet", "suche im internet", "suche im web",
    "google", "googel", "googlen", "googl mal",
    "schau im internet nach", "schau im web nach",
    "online nachschauen", "online recherchieren",
    "search the web", "search online", "look it up online",
)


def _count_function_words(text: str, words: Sequence[str]) -> int:
    tokens = set(_WORD.findall(text))
    return sum(1 for word in words if word in tokens)


def detect_language(text: str, default: str = "de") -> str:
    """
    Guess whether a query is German or English.

    Counts how many words of each function-word list occur in the text;
    the higher count wins and a tie falls back to ``default``.
    """
    if not text or not text.strip():
        return default

    lowered = text.lower()
    german = _count_function_words(lowered, GERMAN_WORDS)
    english = _count_function_words(lowered, ENGLISH_WORDS)

    if german > english:
        return "de"
    if english > german:
        return "en"
    return default


def should_auto_search(message: str, triggers: Sequence[str] = EXPLICIT_SEARCH_TRIGGERS) -> bool:
    """True iff the message contains an explicit search request phrase."""
    if not message or not message.strip():
        return False

    lowered = message.lower()
    if any(trigger in lowered for trigger in triggers):
        logger.debug("Auto-search: explicit search request detected")
        return True
    return False
