"""Referral endpoints: generate a code, redeem one, and check status."""

from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, status

from models.quota import CallerIdentity
from orchestrator.referrals import ReferralError, ReferralService
from server.dependencies import get_caller_identity, get_referral_service
from server.schemas.requests import ReferralGenerateRequest, ReferralRedeemRequest
from server.schemas.responses import ReferralCodeDTO, ReferralRedeemDTO, ReferralStatusDTO

router = APIRouter(prefix="/v1/referrals", tags=["Referrals"])


def _identified(caller: CallerIdentity, fingerprint: str | None) -> CallerIdentity:
    """Referrals need a stable identity: an account or a fingerprint, never a bare IP."""
    if fingerprint and not caller.fingerprint:
        caller = replace(caller, fingerprint=fingerprint)
    if not caller.is_authenticated and not caller.fingerprint:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="fingerprint is required")
    return caller


@router.post("/generate", response_model=ReferralCodeDTO)
def generate_referral_code(
    request: ReferralGenerateRequest,
    caller: CallerIdentity = Depends(get_caller_identity),
    service: ReferralService = Depends(get_referral_service),
):
    """Return the caller's referral code, creating one on first use."""
    caller = _identified(caller, request.fingerprint)
    return ReferralCodeDTO(code=service.generate(caller.usage_key))


@router.post("/redeem", response_model=ReferralRedeemDTO)
def redeem_referral_code(
    request: ReferralRedeemRequest,
    caller: CallerIdentity = Depends(get_caller_identity),
    service: ReferralService = Depends(get_referral_service),
):
    """Redeem a referral code; both parties receive bonus searches."""
    caller = _identified(caller, request.fingerprint)
    try:
        service.redeem(caller.usage_key, request.code.strip(), referee_ip=caller.ip)
    except ReferralError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ReferralRedeemDTO(
        message=f"Referral redeemed! You both get {service.bonus_searches} bonus searches."
    )


@router.get("/status", response_model=ReferralStatusDTO)
def referral_status(
    caller: CallerIdentity = Depends(get_caller_identity),
    service: ReferralService = Depends(get_referral_service),
):
    caller = _identified(caller, None)
    return ReferralStatusDTO(**service.status(caller.usage_key))
