import os
from dotenv import load_dotenv
from pathlib import Path
from enum import Enum

# Limits shared across the pipeline
MAX_TOPIC_CHARS = 200
MERGED_WEB_CAP = 12
MAX_ENRICH_URLS = 5
# Per page, before it goes into the enrichment prompt
MAX_SCRAPED_TEXT_CHARS = 3000
BRIEF_PREVIEW_CHARS = 200
TOP_COMMENT_CHARS = 200
MAX_SCRAPE_URLS_PER_REQUEST = 10


class GenerationProvider(Enum):
    """Supported text-generation providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class Config:
    """Configuration management for the research service."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Search source credentials
        self.OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
        self.BRAVE_API_KEY = os.getenv('BRAVE_API_KEY')
        self.YOUTUBE_API_KEY = os.getenv('YOUTUBE_API_KEY')

        # Text generation
        self.ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY')
        self.GOOGLE_GEMINI_API_KEY = os.getenv('GOOGLE_GEMINI_API_KEY')
        default_provider = (
            GenerationProvider.ANTHROPIC.value if self.ANTHROPIC_API_KEY else GenerationProvider.OPENAI.value
        )
        self.GENERATION_PROVIDER = os.getenv('GENERATION_PROVIDER', default_provider).strip().lower()
        self.GENERATION_MODEL = os.getenv('GENERATION_MODEL') or None

        # Quota
        self.FREE_SEARCH_LIMIT = int(os.getenv('FREE_SEARCH_LIMIT', '3'))
        self.REFERRAL_BONUS_SEARCHES = int(os.getenv('REFERRAL_BONUS_SEARCHES', '3'))

        # Internal callers (agent tools) that bypass quota
        self.INTERNAL_API_KEYS = [
            k.strip() for k in os.getenv('INTERNAL_API_KEYS', '').split(',') if k.strip()
        ]

        self.DATABASE_URL = os.getenv('DATABASE_URL')

    def generation_api_key(self) -> str | None:
        """Return the credential for the configured generation provider."""
        return {
            GenerationProvider.OPENAI.value: self.OPENAI_API_KEY,
            GenerationProvider.ANTHROPIC.value: self.ANTHROPIC_API_KEY,
            GenerationProvider.GOOGLE.value: self.GOOGLE_GEMINI_API_KEY,
        }.get(self.GENERATION_PROVIDER)

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Missing search credentials are not fatal: a source without its key
        reports itself as not configured and contributes no results.

        Returns:
            list[str]: Human-readable problems, empty when everything is set
        """
        problems = []
        valid_providers = [p.value for p in GenerationProvider]
        if self.GENERATION_PROVIDER not in valid_providers:
            problems.append(
                f"Unknown GENERATION_PROVIDER '{self.GENERATION_PROVIDER}'. "
                f"Must be one of: {', '.join(valid_providers)}"
            )
        elif not self.generation_api_key():
            problems.append(f"No API key set for generation provider '{self.GENERATION_PROVIDER}'")

        for name in ('OPENAI_API_KEY', 'BRAVE_API_KEY', 'YOUTUBE_API_KEY'):
            if not getattr(self, name):
                problems.append(f"{name} is not set; that source will be skipped")

        if not self.DATABASE_URL:
            problems.append("DATABASE_URL is not set")

        if self.FREE_SEARCH_LIMIT < 0:
            problems.append("FREE_SEARCH_LIMIT must not be negative")

        return problems

    def get_summary(self) -> dict:
        """Configuration summary for logging (without secrets)."""
        return {
            "generation_provider": self.GENERATION_PROVIDER,
            "generation_model": self.GENERATION_MODEL,
            "free_search_limit": self.FREE_SEARCH_LIMIT,
            "referral_bonus_searches": self.REFERRAL_BONUS_SEARCHES,
            "openai_configured": bool(self.OPENAI_API_KEY),
            "brave_configured": bool(self.BRAVE_API_KEY),
            "youtube_configured": bool(self.YOUTUBE_API_KEY),
            "internal_key_count": len(self.INTERNAL_API_KEYS),
        }
