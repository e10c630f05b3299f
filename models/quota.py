"""
Quota models - caller identity and derived quota state.

Neither type is stored directly: usage lives as appended rows in
``search_usage`` and QuotaState is recomputed from those rows per request.
"""

from dataclasses import dataclass


FINGERPRINT_PREFIX = "fp:"


@dataclass(frozen=True)
class CallerIdentity:
    """
    Who is asking.

    Attributes:
        ip: Client IP address (always present, "unknown" when not resolvable)
        account_id: Authenticated account id, set by the upstream auth layer
        fingerprint: Client-generated pseudo-identifier for anonymous callers
    """

    ip: str
    account_id: str | None = None
    fingerprint: str | None = None

    @property
    def usage_key(self) -> str:
        """
        Identity that usage is counted against.

        Account id wins, then ``fp:<fingerprint>``, then the raw IP. An account's
        usage is never merged with the anonymous usage of the same browser.
        """
        if self.account_id:
            return self.account_id
        if self.fingerprint:
            return f"{FINGERPRINT_PREFIX}{self.fingerprint}"
        return self.ip

    @property
    def is_authenticated(self) -> bool:
        return bool(self.account_id)


@dataclass(frozen=True)
class QuotaState:
    used: int
    base_limit: int
    bonus: int = 0

    @property
    def limit(self) -> int:
        return self.base_limit + self.bonus

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def allowed(self) -> bool:
        return self.used < self.limit

    def to_dict(self) -> dict[str, int]:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "bonus_searches": self.bonus,
        }
