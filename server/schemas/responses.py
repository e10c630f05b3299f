"""Pydantic response models (DTOs) for FastAPI endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ResearchResponseDTO(BaseModel):
    id: str | None = None
    topic: str
    formatted_text: str
    source_count: int
    sources: list[dict[str, Any]] = Field(default_factory=list)
    enriched: bool = False
    created_at: str

    @classmethod
    def from_success(cls, success):
        """Convert ResearchSuccess to DTO."""
        return cls(
            id=success.brief_id,
            topic=success.topic,
            formatted_text=success.formatted_text,
            source_count=success.source_count,
            sources=list(success.sources),
            enriched=success.enriched,
            created_at=success.created_at.isoformat(),
        )


class QuotaExceededDTO(BaseModel):
    quota_exceeded: bool = True
    used: int
    limit: int


class NoResultsDTO(BaseModel):
    no_results_found: bool = True
    topic: str


class QuotaResponseDTO(BaseModel):
    used: int
    limit: int
    remaining: int
    bonus_searches: int


class ReferralCodeDTO(BaseModel):
    code: str


class ReferralRedeemDTO(BaseModel):
    success: bool = True
    message: str


class ReferralStatusDTO(BaseModel):
    code: str | None = None
    referrals: int
    bonus_searches: int
    used: int
    limit: int
    remaining: int


class BriefDTO(BaseModel):
    id: str
    topic: str
    brief_text: str
    sources: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime | None = None


class BriefHistoryItemDTO(BaseModel):
    id: str
    topic: str | None = None
    brief_id: str | None = None
    preview: str = ""
    created_at: datetime | None = None


class ScrapeResultDTO(BaseModel):
    url: str
    success: bool
    title: str | None = None
    description: str | None = None
    content: str | None = None
    author: str | None = None
    published_date: str | None = None
    error: str | None = None


class ScrapeStatsDTO(BaseModel):
    total: int
    successful: int
    failed: int


class ScrapeResponseDTO(BaseModel):
    results: list[ScrapeResultDTO]
    stats: ScrapeStatsDTO


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
