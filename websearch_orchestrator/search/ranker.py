"""
Keyword-overlap relevance ranking.
"""

from typing import Dict, List, Sequence

from ..models import SearchResult

TITLE_WEIGHT = 10
URL_WEIGHT = 5
SNIPPET_WEIGHT = 3
MIN_TERM_LENGTH = 3

# Bonus per URL fragment for sources that are usually worth reading first.
AUTHORITY_BONUSES: Dict[str, int] = {
    "wikipedia": 15,
    "github": 10,
    "stackoverflow": 10,
}


def query_terms_from(text: str) -> List[str]:
    """Split a query into lower-cased whitespace-separated terms."""
    return text.lower().split()


def score(result: SearchResult, query_terms: Sequence[str]) -> int:
    """
    Relevance score of one result.

    10 per term found in the title, 5 per term in the URL, 3 per term in
    the snippet (terms shorter than 3 characters are ignored), plus the
    authority bonus of the URL's domain.
    """
    title = result.title.lower()
    url = result.url.lower()
    snippet = (result.snippet or "").lower()

    total = 0
    for term in query_terms:
        term = term.lower()
        if len(term) < MIN_TERM_LENGTH:
            continue
        if term in title:
            total += TITLE_WEIGHT
        if term in url:
            total += URL_WEIGHT
        if term in snippet:
            total += SNIPPET_WEIGHT

    for fragment, bonus in AUTHORITY_BONUSES.items():
        if fragment in url:
            total += bonus

    return total


def rank(results: Sequence[SearchResult], query_terms: Sequence[str]) -> List[SearchResult]:
    """
    Sort results by descending score.

    ``sorted`` is stable, so equal scores keep their provider order and
    the same input always yields the same output.
    """
    return sorted(results, key=lambda r: score(r, query_terms), reverse=True)
