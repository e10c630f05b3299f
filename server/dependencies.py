"""FastAPI dependencies for caller identity, internal auth, and service access."""

from fastapi import Header, HTTPException, Query, Request, status

from config.config import Config
from models.quota import CallerIdentity
from server.utils import redact_sensitive_headers, resolve_client_ip
from utils.logger import fields, get_logger

logger = get_logger(__name__)


def get_config() -> Config:
    """Dependency to get configuration (singleton pattern)."""
    if not hasattr(get_config, "_instance"):
        get_config._instance = Config()
    return get_config._instance


def get_pipeline():
    """Dependency to get the research pipeline (singleton pattern)."""
    from tools.web.factory import create_pipeline_from_env

    if not hasattr(get_pipeline, "_instance"):
        get_pipeline._instance = create_pipeline_from_env(get_config())
    return get_pipeline._instance


def get_quota_gate():
    return get_pipeline().quota_gate


def get_referral_service():
    """Dependency to get the referral service (singleton pattern)."""
    from orchestrator.referrals import ReferralService

    if not hasattr(get_referral_service, "_instance"):
        get_referral_service._instance = ReferralService(
            quota_gate=get_quota_gate(),
            bonus_searches=get_config().REFERRAL_BONUS_SEARCHES,
        )
    return get_referral_service._instance


async def get_caller_identity(
    request: Request,
    x_account_id: str | None = Header(None),
    fp: str | None = Query(None, max_length=128),
) -> CallerIdentity:
    """
    Resolve who is calling.

    ``X-Account-Id`` is set by the upstream auth layer for logged-in users;
    anonymous callers pass their browser fingerprint as ``fp``.
    """
    return CallerIdentity(
        ip=resolve_client_ip(request),
        account_id=(x_account_id or "").strip() or None,
        fingerprint=(fp or "").strip() or None,
    )


async def get_internal_api_key(request: Request, x_api_key: str | None = Header(None)) -> str:
    """Validate X-API-Key for internal tool endpoints."""
    valid_keys = get_config().INTERNAL_API_KEYS
    request_id = getattr(request.state, "request_id", "unknown")
    redacted_headers = redact_sensitive_headers(dict(request.headers))

    if not valid_keys:
        logger.error(
            "Internal API authentication not configured",
            extra=fields(request_id=request_id, headers=redacted_headers),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal API authentication not configured",
        )

    if not x_api_key or x_api_key not in valid_keys:
        logger.warning(
            "Internal API authentication failed",
            extra=fields(request_id=request_id, headers=redacted_headers),
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key")

    return x_api_key
