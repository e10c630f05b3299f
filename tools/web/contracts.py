"""Data contracts for the research aggregation pipeline."""

from dataclasses import dataclass, field
from enum import Enum


class SourceKind(str, Enum):
    """The independent search backends a research run can query."""

    AI_SUMMARY = "ai_summary"
    WEB = "web"
    FORUM = "forum"
    LINK_AGGREGATOR = "link_aggregator"
    VIDEO = "video"


def normalize_url(url: str) -> str:
    """Dedup key for a URL: trailing slash stripped, lowercased."""
    return url.strip().rstrip("/").lower()


@dataclass(frozen=True)
class SearchResult:
    """Result from a search source. Immutable once an adapter produces it."""

    title: str
    url: str
    snippet: str = ""
    source_kind: SourceKind = SourceKind.WEB
    engagement_score: float = 0.0

    # Source-specific fields rendered by the context formatter
    community: str | None = None  # forum: subreddit
    comment_count: int = 0
    top_comment: str | None = None
    channel: str | None = None  # video
    published_at: str | None = None  # ISO 8601 when the provider reports it

    @property
    def normalized_url(self) -> str:
        return normalize_url(self.url)


@dataclass(frozen=True)
class ScrapedPage:
    """Readable content extracted from one fetched page."""

    url: str
    title: str
    description: str
    extracted_text: str
    author: str | None = None
    published_date: str | None = None


@dataclass
class ResearchContext:
    """
    Aggregated research for one query.

    ``results_by_source`` holds the merged web list under ``SourceKind.WEB``;
    cited links from the AI summary source are folded into it, so the
    ``AI_SUMMARY`` kind never has a bucket of its own.
    """

    query: str
    results_by_source: dict[SourceKind, list[SearchResult]] = field(default_factory=dict)
    synthesized_summary: str | None = None
    formatted_text: str = ""

    @property
    def total_result_count(self) -> int:
        return sum(len(results) for results in self.results_by_source.values())

    @property
    def is_empty(self) -> bool:
        return self.total_result_count == 0 and not self.synthesized_summary

    def results_for(self, kind: SourceKind) -> list[SearchResult]:
        return self.results_by_source.get(kind, [])

    def all_results(self) -> list[SearchResult]:
        """Every result in formatter order (web first, then the other buckets)."""
        ordered: list[SearchResult] = []
        for kind in (SourceKind.WEB, SourceKind.FORUM, SourceKind.LINK_AGGREGATOR, SourceKind.VIDEO):
            ordered.extend(self.results_for(kind))
        return ordered
