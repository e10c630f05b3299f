from abc import ABC, abstractmethod
from typing import Any

import httpx

from models.source_outcome import SourceError, SourceOutcome
from utils.logger import fields, get_logger

from .contracts import SearchResult, SourceKind

logger = get_logger(__name__)


class BaseSourceAdapter(ABC):
    """
    Abstract base class for search source adapters.

    Each adapter wraps one external search provider behind a uniform call:
    given a query, return a SourceOutcome holding a bounded list of
    SearchResults or a SourceError. ``search`` never raises; provider
    failures are mapped onto SourceError codes here so subclasses only
    implement the happy path in ``_search``.
    """

    kind: SourceKind
    requires_api_key: bool = False

    def __init__(self, api_key: str | None = None, max_results: int = 8, **kwargs):
        """
        Args:
            api_key: Provider credential (ignored by keyless sources)
            max_results: Upper bound on results returned
        """
        self.api_key = api_key
        self.max_results = max_results

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or not self.requires_api_key

    async def search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        if not self.is_configured:
            return SourceOutcome.failed(
                SourceError(
                    code="not_configured",
                    message=f"No API key configured for {self.kind.value}",
                    source=self.kind,
                )
            )

        try:
            return await self._search(query, client)
        except Exception as e:
            error = self._map_exception(e)
            logger.debug(
                f"{self.kind.value} search failed: {e}",
                extra=fields(source=self.kind.value, error_code=error.code, error_type=type(e).__name__),
            )
            return SourceOutcome.failed(error)

    @abstractmethod
    async def _search(self, query: str, client: httpx.AsyncClient) -> SourceOutcome:
        """Call the provider and parse its response. May raise."""

    def _map_exception(self, exc: Exception) -> SourceError:
        if isinstance(exc, httpx.HTTPStatusError):
            return SourceError.from_status(self.kind, exc.response.status_code, exc.response.text)
        if isinstance(exc, httpx.TimeoutException):
            return SourceError(code="timeout", message=str(exc) or "HTTP timeout", source=self.kind, retryable=True)
        if isinstance(exc, httpx.HTTPError):
            return SourceError(
                code="provider_error",
                message=str(exc),
                source=self.kind,
                retryable=True,
                details={"exception_type": type(exc).__name__},
            )
        if isinstance(exc, (ValueError, KeyError, TypeError)):
            # Unparseable or unexpected payload
            return SourceError(
                code="provider_error",
                message=f"Malformed response: {exc}",
                source=self.kind,
                details={"exception_type": type(exc).__name__},
            )
        return SourceError(
            code="unknown",
            message=f"Unexpected error: {exc!s}",
            source=self.kind,
            details={"exception_type": type(exc).__name__},
        )

    async def _get_json(self, client: httpx.AsyncClient, url: str, **kwargs) -> Any:
        response = await client.get(url, **kwargs)
        response.raise_for_status()
        return response.json()

    def _result(self, **kwargs) -> SearchResult:
        return SearchResult(source_kind=self.kind, **kwargs)
