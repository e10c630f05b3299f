"""Brief endpoints: fetch one persisted brief, list the caller's recent ones."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from db import get_brief, get_db, list_usage_history
from models.quota import CallerIdentity
from server.dependencies import get_caller_identity
from server.schemas.responses import BriefDTO, BriefHistoryItemDTO
from server.utils import is_valid_uuid

router = APIRouter(prefix="/v1/briefs", tags=["Briefs"])


# Declared before /{brief_id} so "history" is not taken as an id
@router.get("/history", response_model=list[BriefHistoryItemDTO])
def brief_history(
    caller: CallerIdentity = Depends(get_caller_identity),
    db: Session = Depends(get_db),
):
    """The caller's recent research runs with their brief ids, newest first."""
    return [BriefHistoryItemDTO(**row) for row in list_usage_history(db, caller.usage_key)]


@router.get("/{brief_id}", response_model=BriefDTO)
def fetch_brief(brief_id: str, db: Session = Depends(get_db)):
    if not is_valid_uuid(brief_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid brief ID. Must be a valid UUID."
        )
    brief = get_brief(db, brief_id)
    if brief is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Brief not found")
    return BriefDTO(
        id=brief["id"],
        topic=brief["topic"],
        brief_text=brief["brief_text"],
        sources=brief["sources"] or [],
        created_at=brief["created_at"],
    )
