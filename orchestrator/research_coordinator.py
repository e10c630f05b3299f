"""
ResearchCoordinator - Concurrent fan-out across independent search sources.

Provides both async and sync interfaces for querying every enabled source in
parallel, each under its own timeout budget, and merging what comes back into
a single ResearchContext.
"""

import asyncio
import concurrent.futures
import uuid

import httpx

from models.source_outcome import SourceOutcome
from tools.web.base_adapter import BaseSourceAdapter
from tools.web.contracts import ResearchContext, SearchResult, SourceKind
from tools.web.merge import dedupe_by_url, merge_web_like, rank_by_engagement
from tools.web.research_pack import format_context
from tools.web.source_registry import SourceRegistry
from tools.web.timeout_guard import call_with_timeout
from utils.logger import fields, get_logger

logger = get_logger(__name__)


class ResearchCoordinator:
    """
    Orchestrates parallel calls to every enabled search source.

    Example usage:
        coordinator = ResearchCoordinator(adapters, SourceRegistry.from_yaml())
        context = coordinator.aggregate_sync("open source AI models")
        print(context.formatted_text)
    """

    def __init__(self, adapters: dict[SourceKind, BaseSourceAdapter], registry: SourceRegistry):
        """
        Args:
            adapters: One adapter per source kind; kinds without an adapter are skipped
            registry: Per-source timeout budgets and result caps
        """
        self.adapters = adapters
        self.registry = registry

    def _resolve_kinds(self, enabled_kinds: list[SourceKind] | None) -> list[SourceKind]:
        kinds = enabled_kinds if enabled_kinds is not None else self.registry.default_kinds()
        resolved = []
        for kind in kinds:
            if kind in self.adapters and self.registry.is_enabled(kind) and kind not in resolved:
                resolved.append(kind)
        return resolved

    async def _fan_out(
        self, query: str, kinds: list[SourceKind], client: httpx.AsyncClient
    ) -> dict[SourceKind, SourceOutcome]:
        tasks = [
            call_with_timeout(self.adapters[kind], query, self.registry.budget_s(kind), client)
            for kind in kinds
        ]
        # No return_exceptions: call_with_timeout never raises
        outcomes = await asyncio.gather(*tasks)
        return dict(zip(kinds, outcomes))

    @staticmethod
    def _build_context(query: str, outcomes: dict[SourceKind, SourceOutcome]) -> ResearchContext:
        def results(kind: SourceKind) -> list[SearchResult]:
            outcome = outcomes.get(kind)
            return outcome.results_or_empty() if outcome else []

        ai_outcome = outcomes.get(SourceKind.AI_SUMMARY)
        summary = ai_outcome.summary if ai_outcome and ai_outcome.is_success else None

        buckets = {
            SourceKind.WEB: merge_web_like(results(SourceKind.AI_SUMMARY), results(SourceKind.WEB)),
            SourceKind.FORUM: rank_by_engagement(results(SourceKind.FORUM)),
            SourceKind.LINK_AGGREGATOR: rank_by_engagement(results(SourceKind.LINK_AGGREGATOR)),
            SourceKind.VIDEO: dedupe_by_url(results(SourceKind.VIDEO)),
        }
        return ResearchContext(
            query=query,
            results_by_source={kind: items for kind, items in buckets.items() if items},
            synthesized_summary=summary,
        )

    async def aggregate(
        self,
        query: str,
        enabled_kinds: list[SourceKind] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> ResearchContext:
        """
        Query all enabled sources concurrently and merge the results.

        Wall time is bounded by the slowest enabled source's budget. A source
        that errors or times out contributes an empty list and never fails
        the run.

        Args:
            query: Validated research topic
            enabled_kinds: Sources to query (defaults to the registry's enabled set)
            client: Shared HTTP client; a short-lived one is created when omitted

        Returns:
            ResearchContext with ``formatted_text`` populated
        """
        kinds = self._resolve_kinds(enabled_kinds)
        request_group_id = str(uuid.uuid4())

        logger.info(
            f"Starting research fan-out across {len(kinds)} sources",
            extra=fields(
                request_group_id=request_group_id,
                sources=[k.value for k in kinds],
                max_budget_s=self.registry.max_budget_s(kinds),
            ),
        )

        if client is None:
            async with httpx.AsyncClient() as own_client:
                outcomes = await self._fan_out(query, kinds, own_client)
        else:
            outcomes = await self._fan_out(query, kinds, client)

        context = self._build_context(query, outcomes)
        context.formatted_text = format_context(context)

        failed = [o for o in outcomes.values() if o.is_error]
        logger.info(
            f"Research fan-out complete: {len(outcomes) - len(failed)} ok, {len(failed)} failed",
            extra=fields(
                request_group_id=request_group_id,
                total_results=context.total_result_count,
                outcomes=[o.to_dict() for o in outcomes.values()],
            ),
        )
        return context

    def aggregate_sync(
        self,
        query: str,
        enabled_kinds: list[SourceKind] | None = None,
    ) -> ResearchContext:
        """
        Synchronous wrapper for aggregate.

        Handles the case where an event loop is already running by
        executing in a separate thread with its own loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.aggregate(query, enabled_kinds))
        return self._run_in_new_thread(query, enabled_kinds)

    def _run_in_new_thread(self, query: str, enabled_kinds: list[SourceKind] | None) -> ResearchContext:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.aggregate(query, enabled_kinds))
            return future.result()
