"""
Repository layer for research service database operations.
All CRUD functions using SQLAlchemy Core.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Returns None for missing rows, raises on database errors
- Uses SQLAlchemy Core (insert/select/update) not ORM
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, desc, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.config import BRIEF_PREVIEW_CHARS
from utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 20


# ============================================================================
# USAGE TRACKING
# ============================================================================


def count_usage_since(db: Session, identity: str, since: datetime) -> int:
    """
    Count usage rows recorded for ``identity`` at or after ``since``.

    Args:
        db: Database session
        identity: Usage key (account id, "fp:<fingerprint>", or IP)
        since: Start of the quota period

    Returns:
        int: Number of research runs in the period
    """
    from db.tables import get_table

    search_usage = get_table("search_usage")

    stmt = select(func.count()).select_from(search_usage).where(
        and_(search_usage.c.identity == identity, search_usage.c.created_at >= since)
    )
    return int(db.execute(stmt).scalar_one())


def record_usage(db: Session, identity: str, topic: str | None = None, brief_id: str | None = None) -> str:
    """
    Append one usage row.

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    search_usage = get_table("search_usage")

    usage_id = str(uuid.uuid4())
    db.execute(insert(search_usage).values(id=usage_id, identity=identity, topic=topic, brief_id=brief_id))

    logger.debug(f"Recorded usage {usage_id} for {identity}")
    return usage_id


def list_usage_history(db: Session, identity: str, limit: int = HISTORY_LIMIT) -> list[dict[str, Any]]:
    """
    Recent research runs for ``identity`` that produced a brief, newest first.

    Returns:
        list[dict]: ``id``, ``topic``, ``brief_id``, ``created_at`` and a
        ``preview`` of the brief text
    """
    from db.tables import get_table

    search_usage = get_table("search_usage")
    briefs = get_table("briefs")

    stmt = (
        select(
            search_usage.c.id,
            search_usage.c.topic,
            search_usage.c.brief_id,
            search_usage.c.created_at,
            briefs.c.brief_text,
        )
        .select_from(search_usage.outerjoin(briefs, briefs.c.id == search_usage.c.brief_id))
        .where(and_(search_usage.c.identity == identity, search_usage.c.brief_id.isnot(None)))
        .order_by(desc(search_usage.c.created_at))
        .limit(limit)
    )

    history = []
    for row in db.execute(stmt):
        item = dict(row._mapping)
        text = item.pop("brief_text") or ""
        item["preview"] = text[:BRIEF_PREVIEW_CHARS]
        history.append(item)
    return history


# ============================================================================
# REFERRAL BONUSES
# ============================================================================


def get_bonus_searches(db: Session, identity: str) -> int:
    from db.tables import get_table

    bonuses = get_table("referral_bonuses")

    stmt = select(bonuses.c.bonus_searches).where(bonuses.c.identity == identity)
    value = db.execute(stmt).scalar_one_or_none()
    return int(value or 0)


def add_bonus_searches(db: Session, identity: str, amount: int) -> None:
    """
    Add ``amount`` bonus searches to ``identity``.

    The increment is a single UPDATE; the row is inserted when absent. If a
    concurrent grant inserts it first, the insert is rolled back to a
    savepoint and the UPDATE is retried.

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    bonuses = get_table("referral_bonuses")

    increment = (
        update(bonuses)
        .where(bonuses.c.identity == identity)
        .values(bonus_searches=bonuses.c.bonus_searches + amount)
    )
    if db.execute(increment).rowcount == 0:
        try:
            with db.begin_nested():
                db.execute(insert(bonuses).values(identity=identity, bonus_searches=amount))
        except IntegrityError:
            logger.debug(f"Bonus row for {identity} created concurrently; retrying increment")
            db.execute(increment)

    logger.info(f"Granted {amount} bonus searches to {identity}")


# ============================================================================
# BRIEFS
# ============================================================================


def create_brief(
    db: Session,
    topic: str,
    brief_text: str,
    sources: list[dict[str, Any]],
    raw_data: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> str:
    """
    Persist a research brief.

    Returns:
        str: brief id

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    briefs = get_table("briefs")

    brief_id = str(uuid.uuid4())
    db.execute(
        insert(briefs).values(
            id=brief_id,
            topic=topic,
            brief_text=brief_text,
            sources=sources,
            raw_data=raw_data or {},
            user_id=user_id,
        )
    )

    logger.info(f"Created brief: {brief_id} for topic: {topic[:50]}")
    return brief_id


def get_brief(db: Session, brief_id: str) -> dict[str, Any] | None:
    from db.tables import get_table

    briefs = get_table("briefs")

    result = db.execute(select(briefs).where(briefs.c.id == brief_id)).first()
    if result:
        return dict(result._mapping)
    return None


# ============================================================================
# REFERRALS
# ============================================================================


def get_referral_code(db: Session, referrer_id: str) -> str | None:
    """Existing referral code owned by ``referrer_id``, if any."""
    from db.tables import get_table

    referrals = get_table("referrals")

    stmt = (
        select(referrals.c.referrer_code)
        .where(referrals.c.referrer_id == referrer_id)
        .order_by(referrals.c.created_at)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def referral_code_exists(db: Session, code: str) -> bool:
    from db.tables import get_table

    referrals = get_table("referrals")

    stmt = select(referrals.c.id).where(referrals.c.referrer_code == code).limit(1)
    return db.execute(stmt).first() is not None


def create_referral_code(db: Session, referrer_id: str, code: str) -> None:
    """
    Insert the code-holder row (no referee).

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    referrals = get_table("referrals")

    db.execute(
        insert(referrals).values(
            referrer_id=referrer_id,
            referrer_code=code,
            referee_id=None,
            referee_ip=None,
            bonus_applied=False,
        )
    )
    logger.info(f"Created referral code for {referrer_id}")


def find_referrer_by_code(db: Session, code: str) -> str | None:
    from db.tables import get_table

    referrals = get_table("referrals")

    stmt = select(referrals.c.referrer_id).where(referrals.c.referrer_code == code).limit(1)
    return db.execute(stmt).scalar_one_or_none()


def has_redeemed_referral(db: Session, referee_id: str) -> bool:
    from db.tables import get_table

    referrals = get_table("referrals")

    stmt = (
        select(referrals.c.id)
        .where(and_(referrals.c.referee_id == referee_id, referrals.c.bonus_applied.is_(True)))
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def record_referral_redemption(
    db: Session, referrer_id: str, code: str, referee_id: str, referee_ip: str | None
) -> None:
    """
    Insert a redemption row.

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    referrals = get_table("referrals")

    db.execute(
        insert(referrals).values(
            referrer_id=referrer_id,
            referrer_code=code,
            referee_id=referee_id,
            referee_ip=referee_ip,
            bonus_applied=True,
        )
    )


def count_successful_referrals(db: Session, referrer_id: str) -> int:
    from db.tables import get_table

    referrals = get_table("referrals")

    stmt = select(func.count()).select_from(referrals).where(
        and_(referrals.c.referrer_id == referrer_id, referrals.c.bonus_applied.is_(True))
    )
    return int(db.execute(stmt).scalar_one())
