"""
Tests for per-source timeout isolation and the concurrent fan-out coordinator.
"""

import asyncio
import time

import httpx
import pytest

from conftest import FakeAdapter, make_registry, make_result
from orchestrator.research_coordinator import ResearchCoordinator
from tools.web.contracts import SourceKind
from tools.web.source_registry import SourceRegistry
from tools.web.timeout_guard import call_with_timeout

pytestmark = pytest.mark.unit


def _run_guard(adapter, budget_s):
    async def go():
        async with httpx.AsyncClient() as client:
            return await call_with_timeout(adapter, "query", budget_s, client)

    return asyncio.run(go())


def test_timeout_returns_error_outcome_and_cancels_call():
    adapter = FakeAdapter(SourceKind.WEB, results=[make_result("https://a.com")], delay_s=5.0)

    started = time.perf_counter()
    outcome = _run_guard(adapter, budget_s=0.1)
    elapsed = time.perf_counter() - started

    assert outcome.is_error
    assert outcome.error.code == "timeout"
    assert outcome.error.details["timeout_seconds"] == 0.1
    assert outcome.results_or_empty() == []
    assert adapter.cancelled is True
    assert elapsed < 2.0


def test_adapter_exception_becomes_error_outcome():
    adapter = FakeAdapter(SourceKind.FORUM, exc=RuntimeError("boom"))

    outcome = _run_guard(adapter, budget_s=1.0)

    assert outcome.is_error
    assert outcome.error.code == "unknown"
    assert outcome.results_or_empty() == []


def test_malformed_payload_maps_to_provider_error():
    adapter = FakeAdapter(SourceKind.VIDEO, exc=KeyError("items"))

    outcome = _run_guard(adapter, budget_s=1.0)

    assert outcome.error.code == "provider_error"


def test_fan_out_wall_time_is_max_not_sum():
    slow = FakeAdapter(SourceKind.AI_SUMMARY, results=[make_result("https://slow.com")], summary="S", delay_s=0.6)
    medium = FakeAdapter(SourceKind.WEB, results=[make_result("https://medium.com")], delay_s=0.5)
    fast = FakeAdapter(SourceKind.FORUM, results=[make_result("https://r.com/x", kind=SourceKind.FORUM)], delay_s=0.4)
    coordinator = ResearchCoordinator(
        {SourceKind.AI_SUMMARY: slow, SourceKind.WEB: medium, SourceKind.FORUM: fast},
        make_registry({SourceKind.AI_SUMMARY: 1.0, SourceKind.WEB: 1.0, SourceKind.FORUM: 1.0}),
    )

    started = time.perf_counter()
    context = coordinator.aggregate_sync("topic", [SourceKind.AI_SUMMARY, SourceKind.WEB, SourceKind.FORUM])
    elapsed = time.perf_counter() - started

    # Sequential would be 1.5s
    assert elapsed < 1.2
    assert context.total_result_count == 3


def test_slow_source_timeout_does_not_affect_siblings():
    slow = FakeAdapter(SourceKind.VIDEO, results=[make_result("https://yt.com/v")], delay_s=3.0)
    fast = FakeAdapter(SourceKind.WEB, results=[make_result("https://fast.com")])
    coordinator = ResearchCoordinator(
        {SourceKind.VIDEO: slow, SourceKind.WEB: fast},
        make_registry({SourceKind.VIDEO: 0.2, SourceKind.WEB: 1.0}),
    )

    started = time.perf_counter()
    context = coordinator.aggregate_sync("topic", [SourceKind.VIDEO, SourceKind.WEB])
    elapsed = time.perf_counter() - started

    assert elapsed < 1.5
    assert context.results_for(SourceKind.VIDEO) == []
    assert [r.url for r in context.results_for(SourceKind.WEB)] == ["https://fast.com"]


def test_failing_source_yields_empty_bucket_not_error():
    broken = FakeAdapter(SourceKind.LINK_AGGREGATOR, exc=httpx.ConnectError("down"))
    web = FakeAdapter(SourceKind.WEB, results=[make_result("https://ok.com")])
    coordinator = ResearchCoordinator({SourceKind.LINK_AGGREGATOR: broken, SourceKind.WEB: web}, make_registry())

    context = coordinator.aggregate_sync("topic", [SourceKind.LINK_AGGREGATOR, SourceKind.WEB])

    assert SourceKind.LINK_AGGREGATOR not in context.results_by_source
    assert context.total_result_count == 1
    assert "HACKER NEWS" not in context.formatted_text


def test_ai_citations_merge_into_web_bucket_with_summary():
    ai = FakeAdapter(
        SourceKind.AI_SUMMARY,
        results=[make_result("https://a.com", title="AI A", kind=SourceKind.AI_SUMMARY)],
        summary="Overview text",
    )
    web = FakeAdapter(SourceKind.WEB, results=[make_result("https://a.com/", title="Web A"), make_result("https://b.com")])
    coordinator = ResearchCoordinator({SourceKind.AI_SUMMARY: ai, SourceKind.WEB: web}, make_registry())

    context = coordinator.aggregate_sync("topic")

    assert SourceKind.AI_SUMMARY not in context.results_by_source
    assert [r.title for r in context.results_for(SourceKind.WEB)] == ["AI A", "Title for https://b.com"]
    assert context.synthesized_summary == "Overview text"


def test_unrequested_kinds_are_not_called():
    web = FakeAdapter(SourceKind.WEB, results=[make_result("https://a.com")])
    forum = FakeAdapter(SourceKind.FORUM)
    coordinator = ResearchCoordinator({SourceKind.WEB: web, SourceKind.FORUM: forum}, make_registry())

    coordinator.aggregate_sync("topic", [SourceKind.WEB])

    assert web.calls == 1
    assert forum.calls == 0


def test_kind_disabled_in_registry_is_not_called_even_when_requested():
    sources = {k.value: {"budget_s": 2.0, "max_results": 10} for k in SourceKind}
    sources["video"]["enabled"] = False
    registry = SourceRegistry.from_dict({"sources": sources})
    web = FakeAdapter(SourceKind.WEB, results=[make_result("https://a.com")])
    video = FakeAdapter(SourceKind.VIDEO, results=[make_result("https://youtube.com/watch?v=1", kind=SourceKind.VIDEO)])
    coordinator = ResearchCoordinator({SourceKind.WEB: web, SourceKind.VIDEO: video}, registry)

    context = coordinator.aggregate_sync("topic", [SourceKind.VIDEO, SourceKind.WEB])

    assert video.calls == 0
    assert web.calls == 1
    assert SourceKind.VIDEO not in context.results_by_source


def test_aggregate_sync_works_inside_running_loop():
    web = FakeAdapter(SourceKind.WEB, results=[make_result("https://a.com")])
    coordinator = ResearchCoordinator({SourceKind.WEB: web}, make_registry())

    async def inside_loop():
        return coordinator.aggregate_sync("topic", [SourceKind.WEB])

    context = asyncio.run(inside_loop())

    assert context.total_result_count == 1
