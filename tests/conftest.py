import asyncio

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.engine import set_engine
from db.tables import init_db
from models.source_outcome import SourceOutcome
from orchestrator.quota_gate import QuotaGate
from tools.web.base_adapter import BaseSourceAdapter
from tools.web.contracts import SearchResult, SourceKind
from tools.web.source_registry import SourceRegistry


class FakeAdapter(BaseSourceAdapter):
    """
    In-memory source adapter. Counts calls, can sleep, raise, or return a summary.
    """

    def __init__(
        self,
        kind: SourceKind,
        results: list[SearchResult] | None = None,
        summary: str | None = None,
        delay_s: float = 0.0,
        exc: Exception | None = None,
    ):
        super().__init__(api_key="fake")
        self.kind = kind
        self.results = results or []
        self.summary = summary
        self.delay_s = delay_s
        self.exc = exc
        self.calls = 0
        self.cancelled = False

    async def _search(self, query, client):
        self.calls += 1
        try:
            if self.delay_s:
                await asyncio.sleep(self.delay_s)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.exc is not None:
            raise self.exc
        return SourceOutcome.ok(self.kind, self.results, summary=self.summary)


def make_result(url: str, title: str | None = None, kind: SourceKind = SourceKind.WEB, **kwargs) -> SearchResult:
    return SearchResult(title=title or f"Title for {url}", url=url, source_kind=kind, **kwargs)


def make_registry(budgets: dict[SourceKind, float] | None = None) -> SourceRegistry:
    budgets = budgets or {}
    return SourceRegistry.from_dict(
        {
            "sources": {
                kind.value: {"budget_s": budgets.get(kind, 2.0), "max_results": 10}
                for kind in SourceKind
            },
            "defaults": {"comment_lookup_budget_s": 1.0},
        }
    )


@pytest.fixture
def db_engine():
    """In-memory SQLite shared across threads, installed as the engine singleton."""
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    set_engine(engine)
    yield engine
    set_engine(None)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def quota_gate(session_factory):
    return QuotaGate(session_factory=session_factory, base_limit=3)


@pytest.fixture
def registry():
    return make_registry()
