"""
Host insurance endpoints
========================

POST /api/v1/hosts/{host_id}/insurance/{kind}        -- submit policy details for review
POST /api/v1/hosts/{host_id}/insurance/{kind}/switch -- make an INACTIVE track the active one
"""

from fastapi import APIRouter, Depends, Request

from host_coverage.api.dependencies import get_actor, get_coverage_service
from host_coverage.api.middleware import limiter
from host_coverage.api.schemas import HostCoverageResponse, SubmissionRequest
from host_coverage.config import settings
from host_coverage.domain.enums import CoverageKind
from host_coverage.services.coverage import CoverageService

router = APIRouter(prefix="/hosts", tags=["hosts"])


@router.post(
    "/{host_id}/insurance/{kind}",
    status_code=202,
    response_model=HostCoverageResponse,
    summary="Submit insurance details for review",
    responses={202: {"description": "Submission queued for fleet review."}},
)
@limiter.limit(settings.rate_limit)
async def submit_insurance(
    request: Request,
    host_id: str,
    kind: CoverageKind,
    body: SubmissionRequest,
    actor: str = Depends(get_actor),
    service: CoverageService = Depends(get_coverage_service),
):
    state = await service.submit_track(
        host_id,
        kind,
        actor,
        provider=body.provider,
        policy_number=body.policy_number,
        expires_at=body.expires_at,
    )
    return HostCoverageResponse.from_state(state)


@router.post(
    "/{host_id}/insurance/{kind}/switch",
    response_model=HostCoverageResponse,
    summary="Switch the active insurance",
)
@limiter.limit(settings.rate_limit)
async def switch_insurance(
    request: Request,
    host_id: str,
    kind: CoverageKind,
    actor: str = Depends(get_actor),
    service: CoverageService = Depends(get_coverage_service),
):
    state = await service.switch_track(host_id, kind, actor)
    return HostCoverageResponse.from_state(state)
