"""
Research outcomes - what ``run_research`` hands back to its caller.

Only three failure kinds ever reach a caller: malformed input (raised before
any work starts), an exhausted quota, and a run where no source found anything.
Source failures and enrichment failures are absorbed inside the pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union


class MalformedTopicError(ValueError):
    """Topic missing, empty after trimming, or longer than allowed."""


@dataclass(frozen=True)
class ResearchSuccess:
    formatted_text: str
    source_count: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    brief_id: str | None = None
    topic: str = ""
    sources: tuple[dict[str, Any], ...] = ()
    enriched: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.brief_id,
            "topic": self.topic,
            "formatted_text": self.formatted_text,
            "source_count": self.source_count,
            "sources": list(self.sources),
            "enriched": self.enriched,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class QuotaExceeded:
    used: int
    limit: int
    quota_exceeded: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"quota_exceeded": True, "used": self.used, "limit": self.limit}


@dataclass(frozen=True)
class NoResultsFound:
    topic: str
    no_results_found: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"no_results_found": True, "topic": self.topic}


ResearchOutcome = Union[ResearchSuccess, QuotaExceeded, NoResultsFound]
