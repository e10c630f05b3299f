"""
SQLAlchemy table definitions for the research service.

Tables are declared explicitly on one MetaData so the same schema runs on
PostgreSQL in production and SQLite in tests. ``init_db`` creates any that are
missing; it never alters existing tables.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

from utils.logger import get_logger

logger = get_logger(__name__)

metadata = MetaData()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


search_usage = Table(
    "search_usage",
    metadata,
    Column("id", String(36), primary_key=True, default=_new_id),
    # Account id, "fp:<fingerprint>", or IP address
    Column("identity", String(255), nullable=False, index=True),
    Column("topic", Text),
    Column("brief_id", String(36)),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow, index=True),
)

briefs = Table(
    "briefs",
    metadata,
    Column("id", String(36), primary_key=True, default=_new_id),
    Column("topic", Text, nullable=False),
    Column("brief_text", Text, nullable=False),
    Column("sources", JSON, nullable=False, default=list),
    Column("raw_data", JSON, nullable=False, default=dict),
    Column("user_id", String(255)),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

referrals = Table(
    "referrals",
    metadata,
    Column("id", String(36), primary_key=True, default=_new_id),
    Column("referrer_id", String(255), nullable=False, index=True),
    Column("referrer_code", String(16), nullable=False, index=True),
    # NULL on the code-holder row, set on each redemption row
    Column("referee_id", String(255), index=True),
    Column("referee_ip", String(64)),
    Column("bonus_applied", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

# At most one applied redemption per referee
Index(
    "uq_referrals_referee_redeemed",
    referrals.c.referee_id,
    unique=True,
    postgresql_where=referrals.c.bonus_applied.is_(True),
    sqlite_where=referrals.c.bonus_applied.is_(True),
)

referral_bonuses = Table(
    "referral_bonuses",
    metadata,
    Column("identity", String(255), primary_key=True),
    Column("bonus_searches", Integer, nullable=False, default=0),
)

_TABLES: dict[str, Table] = {
    t.name: t for t in (search_usage, briefs, referrals, referral_bonuses)
}

TABLE_NAMES = list(_TABLES)


def get_table(name: str) -> Table:
    """
    Get a table by name.

    Raises:
        ValueError: If table name is not recognized
    """
    if name not in _TABLES:
        raise ValueError(f"Unknown table name: {name}. Available tables: {', '.join(TABLE_NAMES)}")
    return _TABLES[name]


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    metadata.create_all(engine)
    logger.info(f"Ensured {len(TABLE_NAMES)} tables exist")
