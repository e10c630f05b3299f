import argparse
import asyncio
import sys
import threading
import time

import httpx
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from orchestrator.research_pipeline import validate_topic
from tools.web.contracts import ResearchContext, SourceKind
from tools.web.factory import create_coordinator_from_env, create_enricher_from_env
from tools.web.research_pack import format_context


def parse_sources(value: str | None) -> list[SourceKind] | None:
    """Parse a comma-separated source list ("web,forum") into SourceKinds."""
    if not value:
        return None
    try:
        return [SourceKind(name.strip()) for name in value.split(",") if name.strip()]
    except ValueError as e:
        valid = ", ".join(k.value for k in SourceKind)
        raise argparse.ArgumentTypeError(f"{e}. Valid sources: {valid}") from e


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stderr.write(f'\r\033[93mResearching {char}\033[0m')
            sys.stderr.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stderr.write('\r' + ' ' * 20 + '\r')
    sys.stderr.flush()


async def research(topic: str, sources: list[SourceKind] | None, enrich: bool) -> ResearchContext:
    """Aggregate (and optionally enrich) without quota or persistence."""
    config = Config()
    coordinator = create_coordinator_from_env(config)
    async with httpx.AsyncClient() as client:
        context = await coordinator.aggregate(topic, sources, client=client)
        if enrich and context.synthesized_summary:
            enricher = create_enricher_from_env(config)
            if enricher is not None:
                context.synthesized_summary = await enricher.enrich(
                    context.results_for(SourceKind.WEB), context.synthesized_summary, client
                )
                context.formatted_text = format_context(context)
    return context


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Research a topic across multiple search sources")
    parser.add_argument("--topic", required=True, help="Topic to research (max 200 characters)")
    parser.add_argument(
        "--sources",
        type=parse_sources,
        default=None,
        help="Comma-separated sources: " + ",".join(k.value for k in SourceKind),
    )
    parser.add_argument("--enrich", action="store_true", help="Scrape top web results and fold them into the summary")
    args = parser.parse_args(argv)

    try:
        topic = validate_topic(args.topic)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()
    try:
        context = asyncio.run(research(topic, args.sources, args.enrich))
    finally:
        stop_animation.set()
        loading_thread.join()

    if context.is_empty:
        print(f'No results found for "{topic}". Try rephrasing the topic.', file=sys.stderr)
        return 1

    print(context.formatted_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
