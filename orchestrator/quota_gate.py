"""
QuotaGate - monthly free-search allowance per caller identity.

Usage is derived from appended ``search_usage`` rows every time it is read;
nothing is counted in process memory, so every server instance sees the
same numbers.
"""

from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from db import count_usage_since, get_bonus_searches, record_usage
from db.session import SessionLocal
from models.quota import QuotaState
from utils.logger import fields, get_logger

logger = get_logger(__name__)


def month_start(now: datetime | None = None) -> datetime:
    """Midnight UTC on the first day of the current month."""
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class QuotaGate:
    """
    Example usage:
        gate = QuotaGate(base_limit=3)
        state = gate.check("fp:abc123")
        if not state.allowed:
            ...
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, base_limit: int = 3):
        self.session_factory = session_factory
        self.base_limit = base_limit

    def state_in(self, db: Session, identity_key: str, since: datetime | None = None) -> QuotaState:
        """Quota state computed inside an existing session."""
        used = count_usage_since(db, identity_key, since or month_start())
        bonus = get_bonus_searches(db, identity_key)
        return QuotaState(used=used, base_limit=self.base_limit, bonus=bonus)

    def check(self, identity_key: str, since: datetime | None = None) -> QuotaState:
        """
        Read the caller's quota for the period starting at ``since``.

        Args:
            identity_key: Usage key (account id, "fp:<fingerprint>", or IP)
            since: Period start (defaults to the start of the current month)

        Returns:
            QuotaState; ``allowed`` is False once used >= base limit + bonus
        """
        db = self.session_factory()
        try:
            state = self.state_in(db, identity_key, since)
        finally:
            db.close()

        if not state.allowed:
            logger.info(
                "Quota exhausted",
                extra=fields(identity=identity_key, used=state.used, limit=state.limit),
            )
        return state

    def record(self, db: Session, identity_key: str, topic: str, brief_id: str | None = None) -> str:
        """
        Append one usage row in the caller's transaction.

        Note:
            Does NOT commit. Caller must commit.
        """
        return record_usage(db, identity_key, topic=topic, brief_id=brief_id)
