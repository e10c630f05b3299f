"""Render a ResearchContext into the text block that gets persisted as a brief."""

from .contracts import ResearchContext, SearchResult, SourceKind

CLOSING_INSTRUCTION = (
    "Synthesize these sources into a comprehensive, well-sourced response. "
    "Reference specific sources when relevant."
)


def _web_line(index: int, result: SearchResult) -> str:
    snippet = f" - {result.snippet}" if result.snippet else ""
    return f"{index}. {result.title}{snippet} ({result.url})"


def _forum_line(result: SearchResult) -> str:
    line = (
        f"- r/{result.community or 'unknown'}: {result.title} "
        f"({int(result.engagement_score)} upvotes, {result.comment_count} comments) - {result.url}"
    )
    if result.top_comment:
        line += f'\n  Top insight: "{result.top_comment}"'
    return line


def _aggregator_line(result: SearchResult) -> str:
    return f"- {result.title} ({int(result.engagement_score)} pts, {result.comment_count} comments) - {result.url}"


def _video_line(result: SearchResult) -> str:
    channel = f" by {result.channel}" if result.channel else ""
    return f"- {result.title}{channel} - {result.url}"


SECTIONS = (
    (SourceKind.FORUM, "FORUM DISCUSSIONS", _forum_line),
    (SourceKind.LINK_AGGREGATOR, "HACKER NEWS", _aggregator_line),
    (SourceKind.VIDEO, "VIDEOS", _video_line),
)


def format_context(context: ResearchContext) -> str:
    """
    Build the formatted research text.

    Pure function: the same context always yields the same string, since the
    output is persisted and later displayed verbatim.

    Args:
        context: Aggregated (and optionally enriched) research

    Returns:
        Header, AI overview, numbered web sources, one section per remaining
        non-empty source kind, and a closing instruction line
    """
    sections = [f'[DEEP RESEARCH - {context.total_result_count} sources analyzed for "{context.query}"]']

    if context.synthesized_summary:
        sections.append(f"\nAI-SYNTHESIZED OVERVIEW:\n{context.synthesized_summary}")

    web = context.results_for(SourceKind.WEB)
    if web:
        lines = [_web_line(i, r) for i, r in enumerate(web, start=1)]
        sections.append("\nWEB SOURCES:\n" + "\n".join(lines))

    for kind, heading, render in SECTIONS:
        results = context.results_for(kind)
        if results:
            sections.append(f"\n{heading}:\n" + "\n".join(render(r) for r in results))

    sections.append("\n" + CLOSING_INSTRUCTION)
    return "\n".join(sections)


def sources_payload(context: ResearchContext) -> list[dict]:
    """Raw source list stored alongside a brief."""
    return [
        {
            "title": r.title,
            "url": r.url,
            "source": r.source_kind.value,
            "snippet": r.snippet,
            "score": r.engagement_score,
            "comments": r.comment_count,
            "community": r.community,
            "channel": r.channel,
            "published_at": r.published_at,
        }
        for r in context.all_results()
    ]
