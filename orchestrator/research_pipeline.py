"""
ResearchPipeline - the full research run behind the HTTP and tool endpoints.

validate topic -> quota gate -> fan-out -> (optional) enrichment -> format -> persist
"""

import asyncio
from collections.abc import Callable

import httpx
from sqlalchemy.orm import Session

from config.config import MAX_TOPIC_CHARS
from db import create_brief
from db.session import SessionLocal
from models.quota import CallerIdentity
from models.research_outcome import (
    MalformedTopicError,
    NoResultsFound,
    QuotaExceeded,
    ResearchOutcome,
    ResearchSuccess,
)
from orchestrator.quota_gate import QuotaGate
from orchestrator.research_coordinator import ResearchCoordinator
from tools.web.contracts import ResearchContext, SourceKind
from tools.web.enrichment import Enricher
from tools.web.research_pack import format_context, sources_payload
from utils.logger import fields, get_logger

logger = get_logger(__name__)


def validate_topic(topic: str | None) -> str:
    """
    Trim and validate a research topic.

    Raises:
        MalformedTopicError: Missing, empty after trimming, or over MAX_TOPIC_CHARS
    """
    if topic is None:
        raise MalformedTopicError("Topic is required")
    cleaned = topic.strip()
    if not cleaned:
        raise MalformedTopicError("Topic must not be empty")
    if len(cleaned) > MAX_TOPIC_CHARS:
        raise MalformedTopicError(f"Topic must be at most {MAX_TOPIC_CHARS} characters")
    return cleaned


class ResearchPipeline:
    """
    Example usage:
        pipeline = create_pipeline_from_env()
        outcome = await pipeline.run_research("open source AI models", CallerIdentity(ip="1.2.3.4"))
        if isinstance(outcome, QuotaExceeded):
            ...
    """

    def __init__(
        self,
        coordinator: ResearchCoordinator,
        quota_gate: QuotaGate,
        enricher: Enricher | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.coordinator = coordinator
        self.quota_gate = quota_gate
        self.enricher = enricher
        self.session_factory = session_factory

    async def _enrich(self, context: ResearchContext, client: httpx.AsyncClient) -> bool:
        """Fold scraped page content into the AI summary. Returns True when it changed."""
        if self.enricher is None or not context.synthesized_summary:
            return False
        original = context.synthesized_summary
        updated = await self.enricher.enrich(context.results_for(SourceKind.WEB), original, client)
        context.synthesized_summary = updated
        return updated != original

    def _persist(
        self,
        context: ResearchContext,
        usage_key: str,
        brief_user_id: str | None,
        record_usage: bool = True,
    ) -> str | None:
        """
        Write the brief, and the usage row when ``record_usage``, in one transaction.

        Returns:
            Brief id, or None on failure
        """
        db = self.session_factory()
        try:
            brief_id = create_brief(
                db,
                topic=context.query,
                brief_text=context.formatted_text,
                sources=sources_payload(context),
                raw_data={
                    "summary": context.synthesized_summary,
                    "counts": {k.value: len(v) for k, v in context.results_by_source.items()},
                },
                user_id=brief_user_id,
            )
            if record_usage:
                self.quota_gate.record(db, usage_key, context.query, brief_id)
            db.commit()
            return brief_id
        except Exception as exc:
            db.rollback()
            logger.error(
                "Research persistence failed",
                extra=fields(identity=usage_key, error=str(exc), error_type=type(exc).__name__),
            )
            return None
        finally:
            db.close()

    async def run_research(
        self,
        topic: str | None,
        caller: CallerIdentity,
        enrich: bool = False,
        source_kinds: list[SourceKind] | None = None,
        skip_quota: bool = False,
        brief_user_id: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> ResearchOutcome:
        """
        Run one research request end to end.

        Args:
            topic: Raw topic string from the caller
            caller: Resolved caller identity
            enrich: Scrape top web results and fold them into the summary
            source_kinds: Sources to query (defaults to the registry's enabled set)
            skip_quota: Internal callers only; no quota check and no usage row
            brief_user_id: Account the brief is attributed to (defaults to caller's account)
            client: Shared HTTP client; a short-lived one is created when omitted

        Returns:
            ResearchSuccess, QuotaExceeded, or NoResultsFound

        Raises:
            MalformedTopicError: Before any quota or network work
        """
        cleaned = validate_topic(topic)
        usage_key = caller.usage_key

        if not skip_quota:
            quota = await asyncio.to_thread(self.quota_gate.check, usage_key)
            if not quota.allowed:
                return QuotaExceeded(used=quota.used, limit=quota.limit)

        if client is None:
            async with httpx.AsyncClient() as own_client:
                return await self._run(
                    cleaned, usage_key, enrich, source_kinds, brief_user_id, caller, own_client, skip_quota
                )
        return await self._run(
            cleaned, usage_key, enrich, source_kinds, brief_user_id, caller, client, skip_quota
        )

    async def _run(
        self,
        topic: str,
        usage_key: str,
        enrich: bool,
        source_kinds: list[SourceKind] | None,
        brief_user_id: str | None,
        caller: CallerIdentity,
        client: httpx.AsyncClient,
        skip_quota: bool = False,
    ) -> ResearchOutcome:
        context = await self.coordinator.aggregate(topic, source_kinds, client=client)

        if context.is_empty:
            # Nothing found: no usage row, no brief
            logger.info("Research found no results", extra=fields(topic=topic, identity=usage_key))
            return NoResultsFound(topic=topic)

        enriched = False
        if enrich:
            enriched = await self._enrich(context, client)
            context.formatted_text = format_context(context)

        brief_id = await asyncio.to_thread(
            self._persist, context, usage_key, brief_user_id or caller.account_id, not skip_quota
        )

        logger.info(
            "Research complete",
            extra=fields(
                topic=topic,
                identity=usage_key,
                source_count=context.total_result_count,
                enriched=enriched,
                brief_id=brief_id,
            ),
        )
        return ResearchSuccess(
            formatted_text=context.formatted_text,
            source_count=context.total_result_count,
            brief_id=brief_id,
            topic=topic,
            sources=tuple(sources_payload(context)),
            enriched=enriched,
        )
