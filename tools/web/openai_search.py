"""Primary AI search source: OpenAI Responses API with the web search tool.

Returns an AI-synthesized summary plus the URLs the model cited. Forum and
link-aggregator citations are skipped because those sources are queried
directly and carry richer structure there.
"""

from typing import Any

import httpx
import openai

from models.source_outcome import SourceError, SourceOutcome
from utils.logger import get_logger

from .base_adapter import BaseSourceAdapter
from .contracts import SourceKind, normalize_url

logger = get_logger(__name__)

DEFAULT_SEARCH_MODEL = "gpt-4.1-mini"
SKIPPED_CITATION_DOMAINS = ("reddit.com", "news.ycombinator.com")


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class OpenAIWebSearchAdapter(BaseSourceAdapter):
    """
    OpenAI web_search adapter (the highest-value source).
    """

    kind = SourceKind.AI_SUMMARY
    requires_api_key = True

    def __init__(self, api_key: str | None = None, max_results: int = 12, model_name: str = DEFAULT_SEARCH_MODEL, **kwargs):
        super().__init__(api_key, max_results=max_results, **kwargs)
        self.model_name = model_name

    def _build_input(self, query: str) -> str:
        return (
            f"Search the web thoroughly for: {query}. Include discussions, news articles, "
            "forum posts, and expert opinions. Provide a comprehensive summary with specific "
            "facts and data points."
        )

    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        # No SDK retries: a failed source simply contributes nothing this request.
        sdk = openai.AsyncOpenAI(api_key=self.api_key, http_client=client, max_retries=0)
        response = await sdk.responses.create(
            model=self.model_name,
            tools=[{"type": "web_search_preview"}],
            input=self._build_input(query),
        )
        summary, results = self._parse_output(_field(response, "output") or [])
        logger.debug(f"OpenAI web_search returned {len(results)} citations")
        return SourceOutcome.ok(self.kind, results, summary=summary)

    def _parse_output(self, output: list) -> tuple[str, list]:
        summary = ""
        results = []
        seen: set[str] = set()

        for item in output:
            if _field(item, "type") != "message":
                continue
            for content in _field(item, "content") or []:
                text = _field(content, "text")
                if _field(content, "type") in ("text", "output_text") and text:
                    summary = text
                for ann in _field(content, "annotations") or []:
                    url = _field(ann, "url")
                    if _field(ann, "type") != "url_citation" or not url:
                        continue
                    if any(domain in url for domain in SKIPPED_CITATION_DOMAINS):
                        continue
                    norm = normalize_url(url)
                    if norm in seen:
                        continue
                    seen.add(norm)
                    results.append(self._result(title=_field(ann, "title") or url, url=url))

        return summary, results[: self.max_results]

    def _map_exception(self, exc: Exception) -> SourceError:
        if isinstance(exc, openai.APIStatusError):
            return SourceError.from_status(self.kind, exc.status_code, str(exc))
        if isinstance(exc, openai.APITimeoutError):
            return SourceError(code="timeout", message="OpenAI request timed out", source=self.kind, retryable=True)
        if isinstance(exc, openai.APIConnectionError):
            return SourceError(
                code="provider_error",
                message=str(exc),
                source=self.kind,
                retryable=True,
                details={"exception_type": type(exc).__name__},
            )
        return super()._map_exception(exc)
