"""Pydantic request models for FastAPI endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from tools.web.contracts import SourceKind


class ResearchRequest(BaseModel):
    # Length and emptiness are checked by the pipeline so they map to 400, not 422
    topic: Optional[str] = None
    fingerprint: Optional[str] = Field(None, max_length=128)
    enrich: bool = False
    sources: Optional[List[str]] = None

    @field_validator("sources")
    @classmethod
    def validate_sources(cls, value):
        if value is None:
            return value
        valid = {k.value for k in SourceKind}
        unknown = [s for s in value if s not in valid]
        if unknown:
            raise ValueError(f"Unknown sources: {', '.join(unknown)}. Must be among: {', '.join(sorted(valid))}")
        return value

    def source_kinds(self) -> list[SourceKind] | None:
        return [SourceKind(s) for s in self.sources] if self.sources is not None else None


class ToolResearchRequest(ResearchRequest):
    # Account the brief is saved against
    account_id: str = Field(..., min_length=1, max_length=255)


class ReferralGenerateRequest(BaseModel):
    fingerprint: Optional[str] = Field(None, max_length=128)


class ReferralRedeemRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=16)
    fingerprint: Optional[str] = Field(None, max_length=128)


class ScrapeRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)
