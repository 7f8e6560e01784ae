"""
Markdown renderings of search results for LLM prompts and chat replies.
"""

from typing import List, Optional

from ..models import SearchResult

CONTEXT_HEADER = "=== WEB-SUCHERGEBNISSE ==="
LANGUAGE_REMINDER = "WICHTIG: Antworte auf DEUTSCH!"
SOURCES_HEADING = "📚 **Quellen:**"

# Per-result content shown in the prompt
MAX_CONTEXT_CONTENT = 500


def format_for_context(results: List[SearchResult], include_source_urls: bool = False) -> str:
    """
    Render results as a context block to prepend to an LLM prompt.

    Args:
        results: Search results, in ranked order
        include_source_urls: Whether the reply will carry a sources footer;
            adds a reminder to answer in German

    Returns:
        Context block, or an empty string for no results
    """
    if not results:
        return ""

    lines = [CONTEXT_HEADER]
    if include_source_urls:
        lines.append(LANGUAGE_REMINDER)
        lines.append("")

    for index, result in enumerate(results, start=1):
        lines.append(f"**Quelle {index}:** {result.title}")
        lines.append(f"URL: {result.url}")
        if result.snippet:
            lines.append(f"Inhalt: {result.snippet[:MAX_CONTEXT_CONTENT]}")
        lines.append("")

    return "\n".join(lines) + "\n"


def format_sources_footer(results: Optional[List[SearchResult]]) -> str:
    """Markdown list of source links to append to an answer."""
    if not results:
        return ""

    lines = ["", "", "---", SOURCES_HEADING]
    for result in results:
        lines.append(f"- [{result.title}]({result.url})")
    return "\n".join(lines) + "\n"
