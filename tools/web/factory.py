"""Factory for creating the research pipeline from environment configuration."""

from api.text_generation import TextGenerationClient
from config.config import Config, GenerationProvider
from orchestrator.quota_gate import QuotaGate
from orchestrator.research_coordinator import ResearchCoordinator
from orchestrator.research_pipeline import ResearchPipeline
from utils.logger import fields, get_logger

from .base_adapter import BaseSourceAdapter
from .brave_search import BraveSearchAdapter
from .contracts import SourceKind
from .enrichment import Enricher
from .hackernews_search import HackerNewsSearchAdapter
from .openai_search import OpenAIWebSearchAdapter
from .reddit_search import RedditSearchAdapter
from .source_registry import SourceRegistry
from .youtube_search import YouTubeSearchAdapter

logger = get_logger(__name__)


def create_adapters(config: Config, registry: SourceRegistry) -> dict[SourceKind, BaseSourceAdapter]:
    """One adapter per source kind, capped by the registry's max_results."""
    return {
        SourceKind.AI_SUMMARY: OpenAIWebSearchAdapter(
            config.OPENAI_API_KEY, max_results=registry.max_results(SourceKind.AI_SUMMARY)
        ),
        SourceKind.WEB: BraveSearchAdapter(config.BRAVE_API_KEY, max_results=registry.max_results(SourceKind.WEB)),
        SourceKind.FORUM: RedditSearchAdapter(
            max_results=registry.max_results(SourceKind.FORUM),
            comment_budget_s=registry.comment_lookup_budget_s(),
        ),
        SourceKind.LINK_AGGREGATOR: HackerNewsSearchAdapter(
            max_results=registry.max_results(SourceKind.LINK_AGGREGATOR)
        ),
        SourceKind.VIDEO: YouTubeSearchAdapter(
            config.YOUTUBE_API_KEY, max_results=registry.max_results(SourceKind.VIDEO)
        ),
    }


def create_coordinator_from_env(config: Config | None = None, registry: SourceRegistry | None = None) -> ResearchCoordinator:
    config = config or Config()
    registry = registry or SourceRegistry.from_yaml()
    return ResearchCoordinator(create_adapters(config, registry), registry)


def create_enricher_from_env(config: Config | None = None) -> Enricher | None:
    """
    Enricher for the configured generation provider.

    Returns:
        Enricher, or None when the provider is unknown or has no API key
        (enrichment is then skipped and runs return the unenriched summary)
    """
    config = config or Config()
    try:
        provider = GenerationProvider(config.GENERATION_PROVIDER)
    except ValueError:
        logger.warning(f"Unknown generation provider '{config.GENERATION_PROVIDER}'; enrichment disabled")
        return None

    api_key = config.generation_api_key()
    if not api_key:
        logger.warning(
            "No API key for generation provider; enrichment disabled",
            extra=fields(provider=provider.value),
        )
        return None
    return Enricher(TextGenerationClient(provider, api_key, model_name=config.GENERATION_MODEL))


def create_pipeline_from_env(config: Config | None = None) -> ResearchPipeline:
    """
    Create the ResearchPipeline from environment variables.

    Sources without credentials are still wired in; they report
    ``not_configured`` and contribute no results.
    """
    config = config or Config()
    for problem in config.validate():
        logger.warning(problem)

    logger.info("Creating research pipeline", extra=fields(**config.get_summary()))
    return ResearchPipeline(
        coordinator=create_coordinator_from_env(config),
        quota_gate=QuotaGate(base_limit=config.FREE_SEARCH_LIMIT),
        enricher=create_enricher_from_env(config),
    )
