"""Fetch a web page and extract readable content with BeautifulSoup."""

import re
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from config.config import MAX_SCRAPED_TEXT_CHARS
from utils.logger import get_logger

from .contracts import ScrapedPage

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; PulseBot/1.0; +https://pulsed.app)"
DEFAULT_FETCH_TIMEOUT_S = 15.0

NOISE_SELECTORS = "script, style, nav, footer, header, aside, .advertisement, .ads, .social-share"
TITLE_SELECTORS = ['meta[property="og:title"]', 'meta[name="twitter:title"]', 'meta[name="title"]', "title", "h1"]
DESCRIPTION_SELECTORS = [
    'meta[property="og:description"]',
    'meta[name="twitter:description"]',
    'meta[name="description"]',
]
AUTHOR_SELECTORS = ['meta[name="author"]', 'meta[property="article:author"]', '[rel="author"]', ".author", ".byline"]
DATE_SELECTORS = [
    'meta[property="article:published_time"]',
    'meta[name="date"]',
    'meta[name="publishdate"]',
    "time[datetime]",
    ".publish-date",
    ".post-date",
]
CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    "main",
    ".content",
    ".post-content",
    ".entry-content",
    ".article-content",
    "#content",
    "#main-content",
]
TEXT_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote"]
MIN_BLOCK_CHARS = 20
MIN_CONTENT_CHARS = 100


class ScrapeError(Exception):
    """A page could not be fetched or yielded no readable content."""


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _first_value(soup: BeautifulSoup, selectors: list[str], attrs: tuple[str, ...] = ("content",)) -> str | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        value = next((element.get(a) for a in attrs if element.get(a)), None) or element.get_text()
        if value and value.strip():
            return value.strip()
    return None


def extract_main_text(soup: BeautifulSoup) -> str:
    container = None
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None and len(element.get_text(strip=True)) > MIN_CONTENT_CHARS:
            container = element
            break
    if container is None:
        container = soup.body or soup

    blocks = [
        block.get_text(" ", strip=True)
        for block in container.find_all(TEXT_TAGS)
        if len(block.get_text(strip=True)) > MIN_BLOCK_CHARS
    ]
    if blocks:
        return clean_text(" ".join(blocks))

    text = container.get_text(" ", strip=True)
    return clean_text(text) if len(text) > MIN_CONTENT_CHARS else ""


def extract_page(html: str, url: str, max_chars: int = MAX_SCRAPED_TEXT_CHARS) -> ScrapedPage:
    """Parse HTML into a ScrapedPage with text capped at ``max_chars``."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(NOISE_SELECTORS):
        element.decompose()

    description = _first_value(soup, DESCRIPTION_SELECTORS)
    if description is None:
        first_p = soup.find("p")
        description = clean_text(first_p.get_text())[:200] if first_p else ""

    return ScrapedPage(
        url=url,
        title=_first_value(soup, TITLE_SELECTORS) or "Untitled",
        description=description,
        extracted_text=extract_main_text(soup)[:max_chars],
        author=_first_value(soup, AUTHOR_SELECTORS),
        published_date=_first_value(soup, DATE_SELECTORS, attrs=("content", "datetime")),
    )


async def fetch_and_extract(
    url: str,
    client: httpx.AsyncClient,
    timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
    max_chars: int = MAX_SCRAPED_TEXT_CHARS,
) -> ScrapedPage:
    """
    Fetch ``url`` and extract readable content.

    Raises:
        ScrapeError: On HTTP failure or when the page has no extractable text
    """
    try:
        response = await client.get(
            url, headers={"User-Agent": USER_AGENT}, timeout=timeout_s, follow_redirects=True
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ScrapeError(f"Failed to fetch {url}: {e}") from e

    page = extract_page(response.text, url, max_chars=max_chars)
    if not page.extracted_text:
        raise ScrapeError(f"No readable content at {url}")
    logger.debug(f"Scraped {len(page.extracted_text)} chars from {url}")
    return page
