"""Quota status endpoint."""

from fastapi import APIRouter, Depends

from models.quota import CallerIdentity
from orchestrator.quota_gate import QuotaGate
from server.dependencies import get_caller_identity, get_quota_gate
from server.schemas.responses import QuotaResponseDTO

router = APIRouter(prefix="/v1", tags=["Quota"])


@router.get("/quota", response_model=QuotaResponseDTO)
def get_quota(
    caller: CallerIdentity = Depends(get_caller_identity),
    quota_gate: QuotaGate = Depends(get_quota_gate),
):
    """Searches used this month, the caller's limit including bonuses, and what remains."""
    state = quota_gate.check(caller.usage_key)
    return QuotaResponseDTO(**state.to_dict())
