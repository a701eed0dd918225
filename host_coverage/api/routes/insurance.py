"""
Fleet insurance endpoints
=========================

POST   /api/v1/fleet/hosts/{host_id}/insurance/{kind}/approve -- approve a pending track
POST   /api/v1/fleet/hosts/{host_id}/insurance/{kind}/reject  -- reject a pending track
DELETE /api/v1/fleet/hosts/{host_id}/insurance/{kind}         -- remove a track
GET    /api/v1/fleet/hosts/{host_id}/insurance                -- state and tier history
GET    /api/v1/fleet/hosts/{host_id}/activity                 -- audit trail and notifications

``kind`` is ``P2P`` or ``COMMERCIAL``.  The acting admin is read from
the ``X-Actor`` header.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from host_coverage.api.dependencies import get_actor, get_coverage_service
from host_coverage.api.middleware import limiter
from host_coverage.api.schemas import (
    ApproveRequest,
    AuditEntryResponse,
    HostActivityResponse,
    HostCoverageDetailResponse,
    HostCoverageResponse,
    NotificationResponse,
    RejectRequest,
    TierChangeResponse,
)
from host_coverage.config import settings
from host_coverage.domain.enums import CoverageKind
from host_coverage.services.coverage import CoverageService

router = APIRouter(prefix="/fleet/hosts", tags=["fleet"])


@router.post(
    "/{host_id}/insurance/{kind}/approve",
    response_model=HostCoverageResponse,
    summary="Approve a pending insurance submission",
    description=(
        "Moves the track to ACTIVE.  If the other track was ACTIVE it is "
        "set to INACTIVE, keeping its details for a later switch back."
    ),
)
@limiter.limit(settings.rate_limit)
async def approve_insurance(
    request: Request,
    host_id: str,
    kind: CoverageKind,
    body: Optional[ApproveRequest] = None,
    actor: str = Depends(get_actor),
    service: CoverageService = Depends(get_coverage_service),
):
    state = await service.approve_track(
        host_id, kind, actor, reason=body.reason if body else None
    )
    return HostCoverageResponse.from_state(state)


@router.post(
    "/{host_id}/insurance/{kind}/reject",
    response_model=HostCoverageResponse,
    summary="Reject a pending insurance submission",
)
@limiter.limit(settings.rate_limit)
async def reject_insurance(
    request: Request,
    host_id: str,
    kind: CoverageKind,
    body: Optional[RejectRequest] = None,
    actor: str = Depends(get_actor),
    service: CoverageService = Depends(get_coverage_service),
):
    state = await service.reject_track(
        host_id, kind, actor, body.reason if body else None
    )
    return HostCoverageResponse.from_state(state)


@router.delete(
    "/{host_id}/insurance/{kind}",
    response_model=HostCoverageResponse,
    summary="Remove an insurance track",
    description=(
        "Clears the track.  If the other track was INACTIVE it resumes "
        "automatically, which can raise the host's tier."
    ),
)
@limiter.limit(settings.rate_limit)
async def delete_insurance(
    request: Request,
    host_id: str,
    kind: CoverageKind,
    actor: str = Depends(get_actor),
    service: CoverageService = Depends(get_coverage_service),
):
    state = await service.delete_track(host_id, kind, actor)
    return HostCoverageResponse.from_state(state)


@router.get(
    "/{host_id}/insurance",
    response_model=HostCoverageDetailResponse,
    summary="Current coverage, tier and tier history",
)
@limiter.limit(settings.rate_limit)
async def get_insurance(
    request: Request,
    host_id: str,
    service: CoverageService = Depends(get_coverage_service),
):
    state, history = await service.get_coverage(host_id)
    base = HostCoverageResponse.from_state(state)
    return HostCoverageDetailResponse(
        **base.model_dump(),
        history=[TierChangeResponse.from_change(c) for c in history],
    )


@router.get(
    "/{host_id}/activity",
    response_model=HostActivityResponse,
    summary="Audit trail and queued host notifications",
)
@limiter.limit(settings.rate_limit)
async def get_activity(
    request: Request,
    host_id: str,
    service: CoverageService = Depends(get_coverage_service),
):
    audit, notifications = await service.get_activity(host_id)
    return HostActivityResponse(
        host_id=host_id,
        audit=[AuditEntryResponse.from_row(r) for r in audit],
        notifications=[NotificationResponse.from_row(n) for n in notifications],
    )
