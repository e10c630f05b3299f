"""
Database package for the research service.
Provides SQLAlchemy engine, session management, table definitions, and repository functions.
"""

from db.engine import get_engine, set_engine
from db.repository import (
    add_bonus_searches,
    count_successful_referrals,
    # Usage Tracking
    count_usage_since,
    # Briefs
    create_brief,
    create_referral_code,
    find_referrer_by_code,
    # Referral Bonuses
    get_bonus_searches,
    get_brief,
    # Referrals
    get_referral_code,
    has_redeemed_referral,
    list_usage_history,
    record_referral_redemption,
    record_usage,
    referral_code_exists,
)
from db.session import SessionLocal, get_db
from db.tables import get_table, init_db, metadata

__all__ = [
    "SessionLocal",
    "add_bonus_searches",
    "count_successful_referrals",
    "count_usage_since",
    "create_brief",
    "create_referral_code",
    "find_referrer_by_code",
    "get_bonus_searches",
    "get_brief",
    "get_db",
    "get_engine",
    "get_referral_code",
    "get_table",
    "has_redeemed_referral",
    "init_db",
    "list_usage_history",
    "metadata",
    "record_referral_redemption",
    "record_usage",
    "referral_code_exists",
    "set_engine",
]
