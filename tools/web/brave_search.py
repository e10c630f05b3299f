"""Secondary web search source: Brave Search API."""

import httpx

from models.source_outcome import SourceOutcome

from .base_adapter import BaseSourceAdapter
from .contracts import SourceKind

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


class BraveSearchAdapter(BaseSourceAdapter):
    """Plain web results; merged under the AI summary source's citations."""

    kind = SourceKind.WEB
    requires_api_key = True

    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        data = await self._get_json(
            client,
            BRAVE_SEARCH_URL,
            params={"q": query, "count": self.max_results},
            headers={"X-Subscription-Token": self.api_key, "Accept": "application/json"},
        )
        results = []
        for item in ((data.get("web") or {}).get("results") or [])[: self.max_results]:
            url = (item.get("url") or "").strip()
            if not url:
                continue
            results.append(
                self._result(
                    title=item.get("title") or url,
                    url=url,
                    snippet=item.get("description") or "",
                    published_at=item.get("page_age"),
                )
            )
        return SourceOutcome.ok(self.kind, results)
