"""Forum source: Reddit search JSON API with top-comment enrichment."""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import httpx

from config.config import TOP_COMMENT_CHARS
from models.source_outcome import SourceOutcome
from utils.logger import get_logger

from .base_adapter import BaseSourceAdapter
from .contracts import SearchResult, SourceKind

logger = get_logger(__name__)

REDDIT_SEARCH_URL = "https://www.reddit.com/search.json"
REDDIT_BASE_URL = "https://reddit.com"
USER_AGENT = "Pulse/1.0 (agent research)"
ENRICHED_POST_COUNT = 3
MIN_COMMENT_CHARS = 30


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class RedditSearchAdapter(BaseSourceAdapter):
    """
    Reddit discussions from the last month.

    The top posts are enriched with their first substantive comment. Comment
    lookups are best-effort: a failed lookup leaves its post untouched.
    """

    kind = SourceKind.FORUM

    def __init__(self, api_key: str | None = None, max_results: int = 8, comment_budget_s: float = 5.0, **kwargs):
        super().__init__(api_key, max_results=max_results, **kwargs)
        self.comment_budget_s = comment_budget_s

    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        data = await self._get_json(
            client,
            REDDIT_SEARCH_URL,
            params={"q": query, "sort": "relevance", "t": "month", "limit": 10},
            headers={"User-Agent": USER_AGENT},
        )
        posts: list[SearchResult] = []
        for child in ((data.get("data") or {}).get("children") or [])[: self.max_results]:
            d = child.get("data") or {}
            if not d.get("title"):
                continue
            created = d.get("created_utc")
            posts.append(
                self._result(
                    title=d["title"],
                    url=f"{REDDIT_BASE_URL}{d.get('permalink', '')}",
                    snippet=(d.get("selftext") or "")[:TOP_COMMENT_CHARS],
                    community=d.get("subreddit") or "unknown",
                    engagement_score=float(d.get("score") or 0),
                    comment_count=int(d.get("num_comments") or 0),
                    published_at=(
                        datetime.fromtimestamp(float(created), tz=timezone.utc).isoformat()
                        if created
                        else None
                    ),
                )
            )

        head = posts[:ENRICHED_POST_COUNT]
        enriched = await asyncio.gather(*(self._with_top_comment(post, client) for post in head))
        return SourceOutcome.ok(self.kind, list(enriched) + posts[ENRICHED_POST_COUNT:])

    async def _with_top_comment(self, post: SearchResult, client: httpx.AsyncClient) -> SearchResult:
        try:
            comment = await asyncio.wait_for(self._fetch_top_comment(post.url, client), timeout=self.comment_budget_s)
        except Exception as e:
            logger.debug(f"Comment lookup failed for {post.url}: {e}")
            return post
        return replace(post, top_comment=comment) if comment else post

    async def _fetch_top_comment(self, post_url: str, client: httpx.AsyncClient) -> str | None:
        data = await self._get_json(client, post_url.rstrip("/") + ".json", headers={"User-Agent": USER_AGENT})
        if not isinstance(data, list) or len(data) < 2:
            return None

        for c in ((data[1].get("data") or {}).get("children") or []):
            if c.get("kind") != "t1":
                continue
            cdata = c.get("data") or {}
            body = (cdata.get("body") or "").strip()
            if len(body) < MIN_COMMENT_CHARS or cdata.get("author") == "[deleted]":
                continue
            return _truncate(body, TOP_COMMENT_CHARS)
        return None
