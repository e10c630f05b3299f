"""
Models package for research outcomes, source outcomes and quota state.
"""

from .quota import CallerIdentity, QuotaState
from .research_outcome import (
    MalformedTopicError,
    NoResultsFound,
    QuotaExceeded,
    ResearchOutcome,
    ResearchSuccess,
)
from .source_outcome import SourceError, SourceOutcome

__all__ = [
    "CallerIdentity",
    "MalformedTopicError",
    "NoResultsFound",
    "QuotaExceeded",
    "QuotaState",
    "ResearchOutcome",
    "ResearchSuccess",
    "SourceError",
    "SourceOutcome",
]
