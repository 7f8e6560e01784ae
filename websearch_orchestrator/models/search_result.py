"""
Search query, option and result models.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from enum import Enum


class TimeRange(str, Enum):
    """Freshness filter supported by both provider tiers."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    NONE = "none"

    @property
    def brave_value(self) -> Optional[str]:
        """Value for Brave's ``freshness`` parameter."""
        return {
            TimeRange.DAY: "pd",
            TimeRange.WEEK: "pw",
            TimeRange.MONTH: "pm",
            TimeRange.YEAR: "py",
        }.get(self)

    @property
    def searxng_value(self) -> Optional[str]:
        """Value for SearXNG's ``time_range`` parameter."""
        return None if self is TimeRange.NONE else self.value


class SearchResult(BaseModel):
    """A single web search hit. ``url`` is the identity used for deduplication."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Page title")
    url: str = Field(description="Page URL")
    snippet: str = Field(default="", description="Provider snippet, or full page text after enrichment")

    def __str__(self) -> str:
        return f"{self.title} ({self.url})"


class SearchQuery(BaseModel):
    """Immutable view of a user query after language detection and optimization."""

    model_config = ConfigDict(frozen=True)

    raw: str = Field(description="Query text as typed by the user")
    language: str = Field(default="de", description="Detected two-letter language code")
    optimized: str = Field(description="Keyword query sent to providers (may equal raw)")

    @property
    def was_optimized(self) -> bool:
        return self.optimized != self.raw


class SearchOptions(BaseModel):
    """Per-call search configuration."""

    max_results: int = Field(default=7, ge=1, le=50)
    include_domains: List[str] = Field(default_factory=list)
    exclude_domains: List[str] = Field(default_factory=list)
    time_range: TimeRange = Field(default=TimeRange.NONE)

    optimize_query: bool = Field(default=True)
    fetch_full_content: bool = Field(default=False)
    multi_query: bool = Field(default=False)
    rerank: bool = Field(default=True)

    max_content_length: int = Field(default=1000, ge=1, description="Max characters per enriched page")
    expert_context: Optional[str] = Field(
        default=None,
        description="Free-text hint (e.g. 'tax advisor') appended to the optimization prompt"
    )

    @field_validator("include_domains", "exclude_domains", mode="before")
    @classmethod
    def normalize_domains(cls, v):
        """Drop blanks and surrounding whitespace; ``None`` means no filter."""
        if v is None:
            return []
        return [d.strip() for d in v if d and d.strip()]

    @field_validator("time_range", mode="before")
    @classmethod
    def default_time_range(cls, v):
        return TimeRange.NONE if v is None else v
