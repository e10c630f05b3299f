"""
Referral codes: each redemption grants bonus searches to both parties.
"""

import secrets
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import (
    add_bonus_searches,
    count_successful_referrals,
    create_referral_code,
    find_referrer_by_code,
    get_bonus_searches,
    get_referral_code,
    has_redeemed_referral,
    record_referral_redemption,
    referral_code_exists,
)
from db.session import SessionLocal
from orchestrator.quota_gate import QuotaGate
from utils.logger import fields, get_logger

logger = get_logger(__name__)

# No 0/O, 1/l/I
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
REFERRAL_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 5


class ReferralError(Exception):
    """Base class for rejected referral operations."""

    status_code = 400


class InvalidReferralCode(ReferralError):
    status_code = 404


class SelfReferralError(ReferralError):
    pass


class ReferralAlreadyRedeemed(ReferralError):
    pass


def generate_code() -> str:
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))


class ReferralService:
    def __init__(
        self,
        quota_gate: QuotaGate,
        session_factory: Callable[[], Session] = SessionLocal,
        bonus_searches: int = 3,
        code_generator: Callable[[], str] = generate_code,
    ):
        self.quota_gate = quota_gate
        self.session_factory = session_factory
        self.bonus_searches = bonus_searches
        self.code_generator = code_generator

    def generate(self, referrer_id: str) -> str:
        """Return the referrer's existing code, or create a new unique one."""
        db = self.session_factory()
        try:
            existing = get_referral_code(db, referrer_id)
            if existing:
                return existing

            code = self.code_generator()
            for _ in range(MAX_CODE_ATTEMPTS):
                if not referral_code_exists(db, code):
                    break
                code = self.code_generator()

            create_referral_code(db, referrer_id, code)
            db.commit()
            return code
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def redeem(self, referee_id: str, code: str, referee_ip: str | None = None) -> None:
        """
        Redeem ``code`` for ``referee_id``.

        Raises:
            InvalidReferralCode: No referrer owns the code
            SelfReferralError: The referee owns the code
            ReferralAlreadyRedeemed: The referee already redeemed a code
        """
        db = self.session_factory()
        try:
            referrer_id = find_referrer_by_code(db, code)
            if referrer_id is None:
                raise InvalidReferralCode("Invalid referral code")
            if referrer_id == referee_id:
                raise SelfReferralError("You cannot use your own referral code")
            if has_redeemed_referral(db, referee_id):
                raise ReferralAlreadyRedeemed("You have already used a referral code")

            record_referral_redemption(db, referrer_id, code, referee_id, referee_ip)
            add_bonus_searches(db, referrer_id, self.bonus_searches)
            add_bonus_searches(db, referee_id, self.bonus_searches)
            db.commit()
        except IntegrityError as e:
            # Unique per-referee index: a concurrent redemption won
            db.rollback()
            raise ReferralAlreadyRedeemed("You have already used a referral code") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info(
            "Referral redeemed",
            extra=fields(referrer=referrer_id, referee=referee_id, bonus=self.bonus_searches),
        )

    def status(self, identity: str) -> dict:
        db = self.session_factory()
        try:
            code = get_referral_code(db, identity)
            referrals = count_successful_referrals(db, identity)
            bonus = get_bonus_searches(db, identity)
            quota = self.quota_gate.state_in(db, identity)
        finally:
            db.close()

        return {
            "code": code,
            "referrals": referrals,
            "bonus_searches": bonus,
            "used": quota.used,
            "limit": quota.limit,
            "remaining": quota.remaining,
        }
