from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from tools.web.contracts import SearchResult, SourceKind

VALID_ERROR_CODES = {
    "timeout",
    "auth",
    "rate_limit",
    "bad_request",
    "provider_error",
    "not_configured",
    "unknown",
}


@dataclass(frozen=True)
class SourceError:
    code: str
    message: str
    source: SourceKind
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.code not in VALID_ERROR_CODES:
            object.__setattr__(self, "code", "unknown")

    @classmethod
    def from_status(cls, source: SourceKind, status_code: int, body: str = "") -> "SourceError":
        """Map an HTTP status from a provider onto an error code."""
        if status_code in (401, 403):
            code, retryable = "auth", False
        elif status_code == 429:
            code, retryable = "rate_limit", True
        elif 400 <= status_code < 500:
            code, retryable = "bad_request", False
        else:
            code, retryable = "provider_error", True
        return cls(
            code=code,
            message=f"HTTP {status_code}",
            source=source,
            retryable=retryable,
            details={"status_code": status_code, "body": body[:200]},
        )


@dataclass(frozen=True)
class SourceOutcome:
    """
    Result of one source call: either results or an error, never both.

    ``summary`` is only populated by the AI summary source.
    """

    source: SourceKind
    results: tuple[SearchResult, ...] = ()
    summary: str | None = None
    error: SourceError | None = None
    latency_ms: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def results_or_empty(self) -> list[SearchResult]:
        """Error outcomes contribute nothing."""
        return list(self.results) if self.is_success else []

    @classmethod
    def ok(
        cls,
        source: SourceKind,
        results: list[SearchResult],
        summary: str | None = None,
        latency_ms: int = 0,
    ) -> "SourceOutcome":
        return cls(source=source, results=tuple(results), summary=summary or None, latency_ms=latency_ms)

    @classmethod
    def failed(cls, error: SourceError, latency_ms: int = 0) -> "SourceOutcome":
        return cls(source=error.source, error=error, latency_ms=latency_ms)

    def with_latency(self, latency_ms: int) -> "SourceOutcome":
        return SourceOutcome(
            source=self.source,
            results=self.results,
            summary=self.summary,
            error=self.error,
            latency_ms=latency_ms,
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "result_count": len(self.results),
            "has_summary": bool(self.summary),
            "latency_ms": self.latency_ms,
            "error": (
                {
                    "code": self.error.code,
                    "message": self.error.message,
                    "retryable": self.error.retryable,
                    "details": self.error.details,
                }
                if self.error
                else None
            ),
            "timestamp": self.timestamp,
        }
