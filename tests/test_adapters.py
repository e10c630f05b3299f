"""
Source adapter tests against canned provider payloads (httpx.MockTransport, no network).
"""

import asyncio

import httpx
import pytest

from tools.web.brave_search import BraveSearchAdapter
from tools.web.contracts import SourceKind
from tools.web.hackernews_search import HackerNewsSearchAdapter
from tools.web.openai_search import OpenAIWebSearchAdapter
from tools.web.reddit_search import RedditSearchAdapter
from tools.web.youtube_search import YouTubeSearchAdapter

pytestmark = pytest.mark.unit


def _search(adapter, handler, query="open source AI models"):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await adapter.search(query, client)

    return asyncio.run(go())


# -------------------------------------------------------------------
# Brave
# -------------------------------------------------------------------


def test_brave_maps_web_results_and_sends_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["token"] = request.headers.get("X-Subscription-Token")
        seen["q"] = request.url.params.get("q")
        return httpx.Response(
            200,
            json={
                "web": {
                    "results": [
                        {"title": "Llama 3", "url": "https://ai.meta.com/llama", "description": "Meta's model"},
                        {"title": "No URL"},
                        {"title": "Mistral", "url": "https://mistral.ai", "page_age": "2025-01-02T00:00:00"},
                    ]
                }
            },
        )

    outcome = _search(BraveSearchAdapter("brave-key", max_results=5), handler)

    assert outcome.is_success
    assert seen == {"token": "brave-key", "q": "open source AI models"}
    assert [r.url for r in outcome.results] == ["https://ai.meta.com/llama", "https://mistral.ai"]
    assert outcome.results[0].snippet == "Meta's model"
    assert outcome.results[0].source_kind == SourceKind.WEB


def test_brave_without_key_is_not_configured_and_makes_no_call():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    outcome = _search(BraveSearchAdapter(None), handler)

    assert outcome.error.code == "not_configured"
    assert calls == []


@pytest.mark.parametrize(
    "status_code,expected",
    [(401, "auth"), (403, "auth"), (429, "rate_limit"), (400, "bad_request"), (503, "provider_error")],
)
def test_http_status_maps_to_error_code(status_code, expected):
    outcome = _search(BraveSearchAdapter("k"), lambda request: httpx.Response(status_code, text="nope"))

    assert outcome.is_error
    assert outcome.error.code == expected
    assert outcome.results_or_empty() == []


def test_malformed_json_is_provider_error():
    outcome = _search(HackerNewsSearchAdapter(), lambda request: httpx.Response(200, text="<html>"))

    assert outcome.error.code == "provider_error"


# -------------------------------------------------------------------
# Hacker News
# -------------------------------------------------------------------


def test_hackernews_maps_points_comments_and_falls_back_to_item_url():
    def handler(request):
        assert request.url.params.get("tags") == "story"
        return httpx.Response(
            200,
            json={
                "hits": [
                    {"title": "Show HN: OSS LLM", "url": "https://example.com/llm", "points": 120, "num_comments": 45,
                     "objectID": "1", "created_at": "2025-01-01T00:00:00Z"},
                    {"title": "Ask HN: best model?", "url": None, "points": 10, "num_comments": 3, "objectID": "42"},
                    {"title": "", "url": "https://skip.me", "objectID": "9"},
                ]
            },
        )

    outcome = _search(HackerNewsSearchAdapter(max_results=6), handler)

    assert len(outcome.results) == 2
    first, second = outcome.results
    assert first.engagement_score == 120 and first.comment_count == 45
    assert second.url == "https://news.ycombinator.com/item?id=42"
    assert second.source_kind == SourceKind.LINK_AGGREGATOR


# -------------------------------------------------------------------
# YouTube
# -------------------------------------------------------------------


def test_youtube_builds_watch_urls_and_channel():
    def handler(request):
        assert request.url.params.get("key") == "yt-key"
        return httpx.Response(
            200,
            json={
                "items": [
                    {"id": {"videoId": "abc"}, "snippet": {"title": "LLMs explained", "channelTitle": "AI Channel"}},
                    {"id": {"channelId": "x"}, "snippet": {"title": "A channel, not a video"}},
                ]
            },
        )

    outcome = _search(YouTubeSearchAdapter("yt-key", max_results=3), handler)

    assert [r.url for r in outcome.results] == ["https://youtube.com/watch?v=abc"]
    assert outcome.results[0].channel == "AI Channel"


# -------------------------------------------------------------------
# Reddit
# -------------------------------------------------------------------


def _reddit_post(i, **overrides):
    data = {
        "title": f"Post {i}",
        "permalink": f"/r/LocalLLaMA/comments/p{i}/post_{i}/",
        "subreddit": "LocalLLaMA",
        "score": 100 - i,
        "num_comments": 10 + i,
        "created_utc": 1735689600,
        "selftext": "body",
    }
    data.update(overrides)
    return {"kind": "t3", "data": data}


def _comments(body, author="someone"):
    return [{"data": {}}, {"data": {"children": [{"kind": "t1", "data": {"body": body, "author": author}}]}}]


def test_reddit_enriches_top_three_posts_with_first_substantive_comment():
    long_comment = "This is a genuinely useful comment about running models locally. " * 5
    comment_paths = []

    def handler(request):
        path = request.url.path
        if path == "/search.json":
            assert request.headers["User-Agent"].startswith("Pulse/")
            return httpx.Response(200, json={"data": {"children": [_reddit_post(i) for i in range(5)]}})
        comment_paths.append(path)
        if path.endswith("p0/post_0.json"):
            return httpx.Response(200, json=_comments(long_comment))
        if path.endswith("p1/post_1.json"):
            return httpx.Response(200, json=_comments("too short"))
        return httpx.Response(500)

    outcome = _search(RedditSearchAdapter(max_results=8, comment_budget_s=1.0), handler)

    assert outcome.is_success
    assert len(outcome.results) == 5
    assert len(comment_paths) == 3
    first, second, third = outcome.results[:3]
    assert first.top_comment.endswith("...")
    assert len(first.top_comment) == 203
    assert second.top_comment is None
    assert third.top_comment is None
    assert first.community == "LocalLLaMA"
    assert first.url == "https://reddit.com/r/LocalLLaMA/comments/p0/post_0/"
    assert first.published_at.startswith("2025-01-01")


def test_reddit_skips_deleted_comment_authors():
    def handler(request):
        if request.url.path == "/search.json":
            return httpx.Response(200, json={"data": {"children": [_reddit_post(0)]}})
        return httpx.Response(200, json=_comments("x" * 50, author="[deleted]"))

    outcome = _search(RedditSearchAdapter(), handler)

    assert outcome.results[0].top_comment is None


# -------------------------------------------------------------------
# OpenAI web search
# -------------------------------------------------------------------


def _responses_payload():
    return {
        "id": "resp_1",
        "object": "response",
        "created_at": 1735689600,
        "model": "gpt-4.1-mini",
        "status": "completed",
        "parallel_tool_calls": True,
        "tool_choice": "auto",
        "tools": [],
        "output": [
            {"type": "web_search_call", "id": "ws_1", "status": "completed"},
            {
                "type": "message",
                "id": "msg_1",
                "role": "assistant",
                "status": "completed",
                "content": [
                    {
                        "type": "output_text",
                        "text": "Open models are improving quickly.",
                        "annotations": [
                            {"type": "url_citation", "url": "https://a.com/", "title": "A", "start_index": 0, "end_index": 4},
                            {"type": "url_citation", "url": "https://A.com", "title": "A again", "start_index": 5, "end_index": 9},
                            {"type": "url_citation", "url": "https://www.reddit.com/r/x", "title": "R", "start_index": 0, "end_index": 1},
                            {"type": "url_citation", "url": "https://b.com/post", "title": "B", "start_index": 0, "end_index": 1},
                        ],
                    }
                ],
            },
        ],
    }


def test_openai_parses_summary_and_deduped_citations():
    def handler(request):
        assert request.url.path == "/v1/responses"
        assert request.headers["Authorization"] == "Bearer sk-test"
        return httpx.Response(200, json=_responses_payload())

    outcome = _search(OpenAIWebSearchAdapter("sk-test"), handler)

    assert outcome.is_success
    assert outcome.summary == "Open models are improving quickly."
    assert [r.url for r in outcome.results] == ["https://a.com/", "https://b.com/post"]
    assert all(r.source_kind == SourceKind.AI_SUMMARY for r in outcome.results)


def test_openai_auth_failure_maps_to_auth_error():
    outcome = _search(
        OpenAIWebSearchAdapter("sk-bad"),
        lambda request: httpx.Response(401, json={"error": {"message": "bad key", "type": "invalid_request_error"}}),
    )

    assert outcome.error.code == "auth"
    assert outcome.summary is None
