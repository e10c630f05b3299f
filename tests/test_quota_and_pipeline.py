"""
Quota gate and end-to-end pipeline tests.

Uses an in-memory SQLite database and fake source adapters: no network.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import FakeAdapter, make_registry, make_result
from db import add_bonus_searches, record_usage
from db.tables import get_table
from models.quota import CallerIdentity
from models.research_outcome import MalformedTopicError, NoResultsFound, QuotaExceeded, ResearchSuccess
from orchestrator.quota_gate import month_start
from orchestrator.research_coordinator import ResearchCoordinator
from orchestrator.research_pipeline import ResearchPipeline, validate_topic
from tools.web.contracts import SourceKind

pytestmark = pytest.mark.integration


class FakeEnricher:
    def __init__(self, text):
        self.text = text
        self.calls = []

    async def enrich(self, top_results, raw_narrative, client):
        self.calls.append((list(top_results), raw_narrative))
        return self.text


def _pipeline(adapters, quota_gate, session_factory, enricher=None):
    coordinator = ResearchCoordinator(adapters, make_registry())
    return ResearchPipeline(coordinator, quota_gate, enricher=enricher, session_factory=session_factory)


def _scenario_adapters():
    """Primary: summary + 3 citations. Secondary: 5 results, 2 overlapping the citations."""
    ai = FakeAdapter(
        SourceKind.AI_SUMMARY,
        results=[
            make_result("https://huggingface.co/models", title="AI: HF", kind=SourceKind.AI_SUMMARY),
            make_result("https://ai.meta.com/llama/", title="AI: Llama", kind=SourceKind.AI_SUMMARY),
            make_result("https://mistral.ai/news", title="AI: Mistral", kind=SourceKind.AI_SUMMARY),
        ],
        summary="Open models are closing the gap.",
    )
    web = FakeAdapter(
        SourceKind.WEB,
        results=[
            make_result("https://HuggingFace.co/models/", title="Web: HF"),
            make_result("https://ai.meta.com/llama", title="Web: Llama"),
            make_result("https://github.com/open-llms", title="Web: GitHub"),
            make_result("https://arxiv.org/abs/1", title="Web: arXiv"),
            make_result("https://blog.example.com/oss-ai", title="Web: Blog"),
        ],
    )
    return {SourceKind.AI_SUMMARY: ai, SourceKind.WEB: web}


def _count(session_factory, table_name):
    db = session_factory()
    try:
        return db.execute(select(func.count()).select_from(get_table(table_name))).scalar_one()
    finally:
        db.close()


# -------------------------------------------------------------------
# Topic validation
# -------------------------------------------------------------------


@pytest.mark.parametrize("topic", ["", "   ", "x" * 201, None])
def test_malformed_topics_rejected_before_any_source_call(topic, quota_gate, session_factory):
    adapters = _scenario_adapters()
    pipeline = _pipeline(adapters, quota_gate, session_factory)

    with pytest.raises(MalformedTopicError):
        asyncio.run(pipeline.run_research(topic, CallerIdentity(ip="1.1.1.1")))

    assert all(a.calls == 0 for a in adapters.values())
    assert _count(session_factory, "search_usage") == 0


def test_validate_topic_trims_and_accepts_limit():
    assert validate_topic("  rust async  ") == "rust async"
    assert validate_topic("x" * 200) == "x" * 200


# -------------------------------------------------------------------
# Quota gate
# -------------------------------------------------------------------


def test_month_start_is_first_of_month_midnight():
    now = datetime(2025, 3, 17, 15, 42, 7, tzinfo=timezone.utc)
    assert month_start(now) == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_quota_counts_only_current_month_and_adds_bonus(quota_gate, session_factory):
    db = session_factory()
    try:
        record_usage(db, "fp:abc", topic="t1")
        record_usage(db, "fp:abc", topic="t2")
        record_usage(db, "fp:other", topic="t3")
        add_bonus_searches(db, "fp:abc", 3)
        add_bonus_searches(db, "fp:abc", 3)
        db.commit()
    finally:
        db.close()

    state = quota_gate.check("fp:abc")
    assert (state.used, state.limit, state.remaining, state.bonus) == (2, 9, 7, 6)

    # Usage before the period start does not count
    future = datetime.now(timezone.utc) + timedelta(days=1)
    assert quota_gate.check("fp:abc", since=future).used == 0


def test_identity_resolution_prefers_account_then_fingerprint_then_ip():
    assert CallerIdentity(ip="1.1.1.1", account_id="acct", fingerprint="fp1").usage_key == "acct"
    assert CallerIdentity(ip="1.1.1.1", fingerprint="fp1").usage_key == "fp:fp1"
    assert CallerIdentity(ip="1.1.1.1").usage_key == "1.1.1.1"
    assert CallerIdentity(ip="1.1.1.1", account_id="acct").is_authenticated
    assert not CallerIdentity(ip="1.1.1.1", fingerprint="fp1").is_authenticated


def test_quota_boundary_last_search_allowed_then_rejected(quota_gate, session_factory):
    caller = CallerIdentity(ip="9.9.9.9", fingerprint="boundary")
    db = session_factory()
    try:
        for _ in range(quota_gate.base_limit - 1):
            record_usage(db, caller.usage_key, topic="earlier")
        db.commit()
    finally:
        db.close()

    adapters = _scenario_adapters()
    pipeline = _pipeline(adapters, quota_gate, session_factory)

    first = asyncio.run(pipeline.run_research("open source AI models", caller))
    assert isinstance(first, ResearchSuccess)
    assert quota_gate.check(caller.usage_key).used == quota_gate.base_limit

    calls_before = sum(a.calls for a in adapters.values())
    second = asyncio.run(pipeline.run_research("open source AI models", caller))

    assert isinstance(second, QuotaExceeded)
    assert (second.used, second.limit) == (3, 3)
    assert second.to_dict() == {"quota_exceeded": True, "used": 3, "limit": 3}
    assert sum(a.calls for a in adapters.values()) == calls_before


def test_skip_quota_bypasses_exhausted_quota(quota_gate, session_factory):
    caller = CallerIdentity(ip="9.9.9.9", account_id="agent-user")
    db = session_factory()
    try:
        for _ in range(5):
            record_usage(db, caller.usage_key)
        db.commit()
    finally:
        db.close()

    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory)
    outcome = asyncio.run(pipeline.run_research("topic", caller, skip_quota=True, brief_user_id="agent-user"))

    assert isinstance(outcome, ResearchSuccess)
    assert outcome.brief_id is not None


def test_skip_quota_runs_do_not_consume_quota(quota_gate, session_factory):
    caller = CallerIdentity(ip="9.9.9.9", account_id="acct")
    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory)

    for _ in range(3):
        outcome = asyncio.run(pipeline.run_research("topic", caller, skip_quota=True, brief_user_id="acct"))
        assert isinstance(outcome, ResearchSuccess)

    assert quota_gate.check("acct").used == 0
    assert _count(session_factory, "search_usage") == 0
    assert _count(session_factory, "briefs") == 3


# -------------------------------------------------------------------
# End to end
# -------------------------------------------------------------------


def test_end_to_end_merges_primary_and_secondary_web_results(quota_gate, session_factory):
    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory)

    outcome = asyncio.run(pipeline.run_research("open source AI models", CallerIdentity(ip="2.2.2.2")))

    assert isinstance(outcome, ResearchSuccess)
    assert outcome.source_count == 6
    text = outcome.formatted_text
    assert text.count("WEB SOURCES:") == 1
    web_section = text.split("WEB SOURCES:\n")[1].split("\n\n")[0]
    entries = [line for line in web_section.splitlines() if line[:1].isdigit()]
    assert len(entries) == 6
    assert entries[0].startswith("1. AI: HF")
    assert entries[1].startswith("2. AI: Llama")
    assert "Web: HF" not in text and "Web: Llama" not in text
    assert "Open models are closing the gap." in text

    # One usage row and one brief, linked
    assert _count(session_factory, "search_usage") == 1
    assert _count(session_factory, "briefs") == 1
    assert outcome.brief_id is not None


def test_zero_results_returns_no_results_and_persists_nothing(quota_gate, session_factory):
    adapters = {
        SourceKind.AI_SUMMARY: FakeAdapter(SourceKind.AI_SUMMARY),
        SourceKind.WEB: FakeAdapter(SourceKind.WEB, exc=RuntimeError("down")),
        SourceKind.FORUM: FakeAdapter(SourceKind.FORUM),
    }
    pipeline = _pipeline(adapters, quota_gate, session_factory)

    outcome = asyncio.run(pipeline.run_research("zzqx nothing matches", CallerIdentity(ip="3.3.3.3")))

    assert isinstance(outcome, NoResultsFound)
    assert outcome.to_dict()["no_results_found"] is True
    assert _count(session_factory, "briefs") == 0
    assert _count(session_factory, "search_usage") == 0


def test_enrichment_updates_summary_in_formatted_text(quota_gate, session_factory):
    enricher = FakeEnricher("Open models are closing the gap, and MoE keeps costs down.")
    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory, enricher=enricher)

    outcome = asyncio.run(pipeline.run_research("open source AI models", CallerIdentity(ip="4.4.4.4"), enrich=True))

    assert outcome.enriched is True
    assert "MoE keeps costs down" in outcome.formatted_text
    top_results, narrative = enricher.calls[0]
    assert narrative == "Open models are closing the gap."
    assert len(top_results) == 6


def test_enrichment_not_requested_is_not_run(quota_gate, session_factory):
    enricher = FakeEnricher("changed")
    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory, enricher=enricher)

    outcome = asyncio.run(pipeline.run_research("open source AI models", CallerIdentity(ip="4.4.4.4")))

    assert outcome.enriched is False
    assert enricher.calls == []


def test_persistence_failure_still_returns_result(quota_gate, session_factory, monkeypatch):
    import orchestrator.research_pipeline as pipeline_module

    def _broken_create_brief(*_args, **_kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(pipeline_module, "create_brief", _broken_create_brief)
    pipeline = _pipeline(_scenario_adapters(), quota_gate, session_factory)

    outcome = asyncio.run(pipeline.run_research("open source AI models", CallerIdentity(ip="5.5.5.5")))

    assert isinstance(outcome, ResearchSuccess)
    assert outcome.brief_id is None
    assert _count(session_factory, "search_usage") == 0
