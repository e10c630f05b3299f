"""Web research sources and helpers."""

from .contracts import ResearchContext, ScrapedPage, SearchResult, SourceKind, normalize_url

__all__ = ["ResearchContext", "ScrapedPage", "SearchResult", "SourceKind", "normalize_url"]
