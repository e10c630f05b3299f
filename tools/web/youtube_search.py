"""Video source: YouTube Data API v3 search."""

import httpx

from models.source_outcome import SourceOutcome

from .base_adapter import BaseSourceAdapter
from .contracts import SourceKind

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_WATCH_URL = "https://youtube.com/watch?v={video_id}"


class YouTubeSearchAdapter(BaseSourceAdapter):
    kind = SourceKind.VIDEO
    requires_api_key = True

    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        data = await self._get_json(
            client,
            YOUTUBE_SEARCH_URL,
            params={
                "part": "snippet",
                "q": query,
                "maxResults": self.max_results,
                "type": "video",
                "key": self.api_key,
            },
        )
        results = []
        for item in (data.get("items") or [])[: self.max_results]:
            video_id = (item.get("id") or {}).get("videoId")
            if not video_id:
                continue
            snippet = item.get("snippet") or {}
            results.append(
                self._result(
                    title=snippet.get("title") or "",
                    url=YOUTUBE_WATCH_URL.format(video_id=video_id),
                    snippet=snippet.get("description") or "",
                    channel=snippet.get("channelTitle") or "",
                    published_at=snippet.get("publishedAt"),
                )
            )
        return SourceOutcome.ok(self.kind, results)
