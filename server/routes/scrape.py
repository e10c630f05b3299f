"""Page scrape endpoint."""

import asyncio

import httpx
from fastapi import APIRouter, HTTPException, status

from config.config import MAX_SCRAPE_URLS_PER_REQUEST
from server.schemas.requests import ScrapeRequest
from server.schemas.responses import ScrapeResponseDTO, ScrapeResultDTO, ScrapeStatsDTO
from tools.web.scraper import ScrapeError, fetch_and_extract, is_http_url
from utils.logger import fields, get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Scrape"])


async def _scrape_one(url: str, client: httpx.AsyncClient) -> ScrapeResultDTO:
    try:
        page = await fetch_and_extract(url, client)
    except ScrapeError as e:
        return ScrapeResultDTO(url=url, success=False, error=str(e))
    return ScrapeResultDTO(
        url=url,
        success=True,
        title=page.title,
        description=page.description,
        content=page.extracted_text,
        author=page.author,
        published_date=page.published_date,
    )


async def scrape_urls(urls: list[str], client: httpx.AsyncClient) -> list[ScrapeResultDTO]:
    return list(await asyncio.gather(*(_scrape_one(url, client) for url in urls)))


@router.post("/scrape", response_model=ScrapeResponseDTO)
async def scrape(request: ScrapeRequest):
    """Fetch and extract readable content from up to ten HTTP(S) URLs in parallel."""
    if not request.urls:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URLs array is required")
    if len(request.urls) > MAX_SCRAPE_URLS_PER_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Maximum {MAX_SCRAPE_URLS_PER_REQUEST} URLs allowed per request",
        )

    valid_urls = [url for url in request.urls if is_http_url(url)]
    if not valid_urls:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid URLs provided")

    async with httpx.AsyncClient() as client:
        results = await scrape_urls(valid_urls, client)

    successful = sum(1 for r in results if r.success)
    logger.info(
        "Scrape complete",
        extra=fields(total=len(results), successful=successful),
    )
    return ScrapeResponseDTO(
        results=results,
        stats=ScrapeStatsDTO(total=len(results), successful=successful, failed=len(results) - successful),
    )
