"""Research endpoints: public topic research and the internal no-quota tool."""

from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from models.quota import CallerIdentity
from models.research_outcome import MalformedTopicError, NoResultsFound, QuotaExceeded, ResearchOutcome
from orchestrator.research_pipeline import ResearchPipeline
from server.dependencies import get_caller_identity, get_internal_api_key, get_pipeline
from server.schemas.requests import ResearchRequest, ToolResearchRequest
from server.schemas.responses import NoResultsDTO, QuotaExceededDTO, ResearchResponseDTO
from utils.logger import fields, get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Research"])

OUTCOME_RESPONSES = {
    status.HTTP_404_NOT_FOUND: {"model": NoResultsDTO},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": QuotaExceededDTO},
}


def outcome_to_response(outcome: ResearchOutcome):
    """Map a pipeline outcome onto an HTTP response."""
    if isinstance(outcome, QuotaExceeded):
        return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=outcome.to_dict())
    if isinstance(outcome, NoResultsFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=outcome.to_dict())
    return ResearchResponseDTO.from_success(outcome)


async def _run(pipeline: ResearchPipeline, request_id: str, **kwargs) -> ResearchOutcome:
    try:
        return await pipeline.run_research(**kwargs)
    except MalformedTopicError as e:
        logger.info("Rejected malformed topic", extra=fields(request_id=request_id, error=str(e)))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/research", response_model=ResearchResponseDTO, responses=OUTCOME_RESPONSES)
async def research(
    request: ResearchRequest,
    http_request: Request,
    caller: CallerIdentity = Depends(get_caller_identity),
    pipeline: ResearchPipeline = Depends(get_pipeline),
):
    """Research a topic across all enabled sources, subject to the caller's quota."""
    if request.fingerprint and not caller.fingerprint:
        caller = replace(caller, fingerprint=request.fingerprint)

    outcome = await _run(
        pipeline,
        getattr(http_request.state, "request_id", "unknown"),
        topic=request.topic,
        caller=caller,
        enrich=request.enrich,
        source_kinds=request.source_kinds(),
    )
    return outcome_to_response(outcome)


@router.post("/tools/research", response_model=ResearchResponseDTO, responses=OUTCOME_RESPONSES)
async def tool_research(
    request: ToolResearchRequest,
    http_request: Request,
    caller: CallerIdentity = Depends(get_caller_identity),
    pipeline: ResearchPipeline = Depends(get_pipeline),
    api_key: str = Depends(get_internal_api_key),
):
    """Internal research for agent tools: no quota check, brief attributed to ``account_id``."""
    outcome = await _run(
        pipeline,
        getattr(http_request.state, "request_id", "unknown"),
        topic=request.topic,
        caller=replace(caller, account_id=request.account_id),
        enrich=request.enrich,
        source_kinds=request.source_kinds(),
        skip_quota=True,
        brief_user_id=request.account_id,
    )
    return outcome_to_response(outcome)
