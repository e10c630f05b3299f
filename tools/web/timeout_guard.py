"""Per-source timeout isolation."""

import asyncio

import httpx

from models.source_outcome import SourceError, SourceOutcome
from utils.logger import fields, get_logger

from .base_adapter import BaseSourceAdapter

logger = get_logger(__name__)


async def call_with_timeout(
    adapter: BaseSourceAdapter,
    query: str,
    budget_s: float,
    client: httpx.AsyncClient,
) -> SourceOutcome:
    """
    Run one adapter call under its own timeout budget.

    On expiry the adapter task is cancelled, which aborts its in-flight HTTP
    request; sibling calls are unaffected. Timeouts and unexpected exceptions
    come back as error outcomes, never as raised exceptions.
    """
    loop = asyncio.get_running_loop()
    start_time = loop.time()

    def elapsed_ms() -> int:
        return int((loop.time() - start_time) * 1000)

    try:
        outcome = await asyncio.wait_for(adapter.search(query, client), timeout=budget_s)
        return outcome.with_latency(elapsed_ms())

    except asyncio.TimeoutError:
        logger.warning(
            f"Timeout for source {adapter.kind.value}",
            extra=fields(source=adapter.kind.value, timeout_s=budget_s),
        )
        error = SourceError(
            code="timeout",
            message=f"Source timed out after {budget_s}s",
            source=adapter.kind,
            retryable=True,
            details={"timeout_seconds": budget_s},
        )
        return SourceOutcome.failed(error, latency_ms=elapsed_ms())

    except Exception as e:
        logger.error(
            f"Unexpected error for source {adapter.kind.value}: {e}",
            extra=fields(source=adapter.kind.value, error=str(e), error_type=type(e).__name__),
        )
        error = SourceError(
            code="unknown",
            message=f"Unexpected error: {e!s}",
            source=adapter.kind,
            details={"exception_type": type(e).__name__},
        )
        return SourceOutcome.failed(error, latency_ms=elapsed_ms())
