"""Link-aggregator source: Hacker News via the Algolia search API."""

import httpx

from models.source_outcome import SourceOutcome

from .base_adapter import BaseSourceAdapter
from .contracts import SourceKind

HN_SEARCH_URL = "https://hn.algolia.com/api/v1/search"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={object_id}"


class HackerNewsSearchAdapter(BaseSourceAdapter):
    kind = SourceKind.LINK_AGGREGATOR

    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        data = await self._get_json(
            client,
            HN_SEARCH_URL,
            params={"query": query, "tags": "story", "hitsPerPage": self.max_results},
        )
        results = []
        for hit in (data.get("hits") or [])[: self.max_results]:
            title = hit.get("title") or ""
            if not title:
                continue
            points = int(hit.get("points") or 0)
            results.append(
                self._result(
                    title=title,
                    url=hit.get("url") or HN_ITEM_URL.format(object_id=hit.get("objectID")),
                    engagement_score=float(points),
                    comment_count=int(hit.get("num_comments") or 0),
                    published_at=hit.get("created_at"),
                )
            )
        return SourceOutcome.ok(self.kind, results)
