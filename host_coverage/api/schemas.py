"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from host_coverage.domain.entities import CoverageTrack, HostState, TierChange
from host_coverage.infrastructure.models import ActivityLogModel, HostNotificationModel


# ── Requests ──────────────────────────────────────────────────────────


class ApproveRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(
        None,
        max_length=500,
        description="Shown to the host; required.",
    )


class SubmissionRequest(BaseModel):
    provider: Optional[str] = Field(None, max_length=120)
    policy_number: Optional[str] = Field(None, max_length=64)
    expires_at: Optional[date] = None


# ── Responses ─────────────────────────────────────────────────────────


class TrackResponse(BaseModel):
    status: str
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    expires_at: Optional[date] = None

    @classmethod
    def from_track(cls, track: CoverageTrack) -> TrackResponse:
        return cls(
            status=track.status.value,
            provider=track.provider,
            policy_number=track.policy_number,
            expires_at=track.expires_at,
        )


class HostCoverageResponse(BaseModel):
    host_id: str
    earnings_tier: str
    commission_rate: float
    host_earnings: float
    p2p: TrackResponse
    commercial: TrackResponse
    version: int

    @classmethod
    def from_state(cls, state: HostState) -> HostCoverageResponse:
        return cls(
            host_id=state.host_id,
            earnings_tier=state.earnings_tier.value,
            commission_rate=state.commission_rate,
            host_earnings=state.host_earnings,
            p2p=TrackResponse.from_track(state.p2p),
            commercial=TrackResponse.from_track(state.commercial),
            version=state.version,
        )


class TierChangeResponse(BaseModel):
    id: Optional[int] = None
    action: str
    insurance_type: str
    actor: str
    occurred_at: datetime
    previous_tier: str
    new_tier: str
    previous_commission: float
    new_commission: float
    reason: Optional[str] = None
    auto_action: Optional[str] = None

    @classmethod
    def from_change(cls, change: TierChange) -> TierChangeResponse:
        return cls(
            id=change.id,
            action=change.action.value,
            insurance_type=change.coverage_kind.value,
            actor=change.actor,
            occurred_at=change.occurred_at,
            previous_tier=change.previous_tier.value,
            new_tier=change.new_tier.value,
            previous_commission=change.previous_commission,
            new_commission=change.new_commission,
            reason=change.reason,
            auto_action=change.auto_action,
        )


class HostCoverageDetailResponse(HostCoverageResponse):
    history: list[TierChangeResponse] = []


class AuditEntryResponse(BaseModel):
    id: int
    action: str
    metadata: dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: ActivityLogModel) -> AuditEntryResponse:
        return cls(
            id=row.id,
            action=row.action,
            metadata=row.details,
            created_at=row.created_at,
        )


class NotificationResponse(BaseModel):
    id: int
    type: str
    subject: str
    message: str
    status: str
    priority: str
    response_required: bool
    action_required: Optional[str] = None
    action_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: HostNotificationModel) -> NotificationResponse:
        return cls(
            id=row.id,
            type=row.type,
            subject=row.subject,
            message=row.message,
            status=row.status,
            priority=row.priority,
            response_required=row.response_required,
            action_required=row.action_required,
            action_url=row.action_url,
        )


class HostActivityResponse(BaseModel):
    host_id: str
    audit: list[AuditEntryResponse]
    notifications: list[NotificationResponse]


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
