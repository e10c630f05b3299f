"""Deep enrichment: scrape top web results and fold new facts into the narrative."""

import asyncio
from urllib.parse import urlparse

import httpx

from api.text_generation import TextGenerationClient, TextGenerationError
from config.config import MAX_ENRICH_URLS
from utils.logger import fields, get_logger

from .contracts import ScrapedPage, SearchResult
from .scraper import ScrapeError, fetch_and_extract, is_http_url

logger = get_logger(__name__)

# Hosts whose pages are already covered by a dedicated source or block scraping
EXCLUDED_DOMAINS = (
    "reddit.com",
    "youtube.com",
    "youtu.be",
    "news.ycombinator.com",
    "x.com",
    "twitter.com",
    "tiktok.com",
    "instagram.com",
    "facebook.com",
    "linkedin.com",
)

ENRICH_SYSTEM_PROMPT = (
    "You are a research editor. You will receive an existing research narrative and "
    "additional article content. Integrate any genuinely new facts, figures, or examples "
    "from the additional content into the narrative. Preserve the narrative's tone, "
    "structure, and headings. Do not remove existing content, do not repeat what is "
    "already said, and do not mention that any content was scraped, fetched, or added. "
    "Return only the updated narrative."
)


def _is_excluded(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == domain or host.endswith("." + domain) for domain in EXCLUDED_DOMAINS)


def filter_scrapable_urls(results: list[SearchResult], limit: int = MAX_ENRICH_URLS) -> list[str]:
    """HTTP(S) URLs from ``results`` worth scraping, in order, capped at ``limit``."""
    urls: list[str] = []
    for result in results:
        if len(urls) >= limit:
            break
        if is_http_url(result.url) and not _is_excluded(result.url) and result.url not in urls:
            urls.append(result.url)
    return urls


def build_enrichment_prompt(raw_narrative: str, pages: list[ScrapedPage]) -> str:
    articles = "\n\n".join(
        f"### {page.title}\n{page.description}\n\n{page.extracted_text}" for page in pages
    )
    return f"EXISTING NARRATIVE:\n{raw_narrative}\n\nADDITIONAL CONTENT:\n{articles}"


class Enricher:
    """Scrapes the top web results and asks the generation provider to merge them in."""

    def __init__(self, generator: TextGenerationClient, max_urls: int = MAX_ENRICH_URLS):
        self.generator = generator
        self.max_urls = max_urls

    async def _scrape_all(self, urls: list[str], client: httpx.AsyncClient) -> list[ScrapedPage]:
        async def scrape_one(url: str) -> ScrapedPage | None:
            try:
                return await fetch_and_extract(url, client)
            except ScrapeError as e:
                logger.info(f"Skipping page for enrichment: {e}", extra=fields(url=url))
                return None

        pages = await asyncio.gather(*(scrape_one(url) for url in urls))
        return [page for page in pages if page is not None]

    async def enrich(
        self,
        top_results: list[SearchResult],
        raw_narrative: str,
        client: httpx.AsyncClient,
    ) -> str:
        """
        Return ``raw_narrative`` with facts from the scraped pages integrated.

        Any failure leaves the narrative untouched: no scrapable URLs, every
        page failing, or the generation call failing all return the input
        string as-is.
        """
        urls = filter_scrapable_urls(top_results, self.max_urls)
        if not urls:
            return raw_narrative

        pages = await self._scrape_all(urls, client)
        logger.info(
            f"Enrichment scraped {len(pages)}/{len(urls)} pages",
            extra=fields(attempted=len(urls), scraped=len(pages)),
        )
        if not pages:
            return raw_narrative

        try:
            enriched = await self.generator.generate(
                system=ENRICH_SYSTEM_PROMPT,
                prompt=build_enrichment_prompt(raw_narrative, pages),
                client=client,
            )
        except TextGenerationError as e:
            logger.warning(f"Enrichment generation failed, keeping original narrative: {e}")
            return raw_narrative

        return enriched.strip()
