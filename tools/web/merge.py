"""Merge, dedup and engagement ranking for search results."""

from datetime import datetime, timezone

from config.config import MERGED_WEB_CAP

from .contracts import SearchResult


def dedupe_by_url(results: list[SearchResult]) -> list[SearchResult]:
    """Keep the first result for each normalized URL, preserving order."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        key = result.normalized_url
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


def merge_web_like(
    primary: list[SearchResult],
    secondary: list[SearchResult],
    cap: int = MERGED_WEB_CAP,
) -> list[SearchResult]:
    """
    Combine AI-search citations with secondary web results.

    Primary results come first and win on any normalized-URL collision;
    secondary results only fill URLs not already seen. Output is capped.
    """
    return dedupe_by_url(list(primary) + list(secondary))[:cap]


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recency_multiplier(published_at: str | None, now: datetime) -> float:
    """Boost for fresh discussion: last week x1.5, last fortnight x1.2."""
    published = _parse_timestamp(published_at)
    if published is None:
        return 1.0
    days = (now - published).total_seconds() / 86400
    if days <= 7:
        return 1.5
    if days <= 14:
        return 1.2
    return 1.0


def engagement_rank(result: SearchResult, now: datetime) -> float:
    return (result.engagement_score + result.comment_count * 2) * recency_multiplier(result.published_at, now)


def rank_by_engagement(results: list[SearchResult], now: datetime | None = None) -> list[SearchResult]:
    """Dedupe, then order by engagement x recency, highest first (stable)."""
    now = now or datetime.now(timezone.utc)
    return sorted(dedupe_by_url(results), key=lambda r: engagement_rank(r, now), reverse=True)
