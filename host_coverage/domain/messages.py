"""Audit metadata and host notification payloads.

Both payloads are built from the same ``(before, after, change)`` triple
so they cannot disagree with each other or with the history entry.
"""

from __future__ import annotations

from typing import Any

from .entities import AuditRecord, CoverageTrack, HostNotice, HostState, TierChange
from .enums import ACTIVITY_FOR_ACTION, CoverageAction
from .tiers import quote_for

PROFILE_INSURANCE_URL = "/host/profile?tab=insurance"


def _details(change: TierChange, before: HostState, after: HostState) -> CoverageTrack:
    kind = change.coverage_kind
    track = after.track(kind)
    if track.provider or track.policy_number or track.expires_at:
        return track
    return before.track(kind)


def build_audit(change: TierChange, before: HostState, after: HostState) -> AuditRecord:
    details = _details(change, before, after)
    metadata: dict[str, Any] = {
        "hostId": after.host_id,
        "hostName": after.name,
        "insuranceType": change.coverage_kind.value,
        "actor": change.actor,
        "previousTier": change.previous_tier.value,
        "newTier": change.new_tier.value,
        "previousCommission": change.previous_commission,
        "newCommission": change.new_commission,
        "p2pStatus": change.p2p_status.value,
        "commercialStatus": change.commercial_status.value,
        "provider": details.provider,
        "policyNumber": details.policy_number,
        "expirationDate": (
            details.expires_at.isoformat() if details.expires_at else None
        ),
        "reason": change.reason,
        "autoAction": change.auto_action,
        "occurredAt": change.occurred_at.isoformat(),
    }
    return AuditRecord(
        entity_id=after.host_id,
        action=ACTIVITY_FOR_ACTION[change.action].value,
        metadata=metadata,
    )


def build_notice(change: TierChange, after: HostState) -> HostNotice:
    kind = change.coverage_kind.value
    other = change.coverage_kind.other.value
    quote = quote_for(change.new_tier)
    earning = f"earning {quote.earnings_percent} per booking"

    if change.action == CoverageAction.SUBMITTED:
        details = after.track(change.coverage_kind)
        return HostNotice(
            host_id=after.host_id,
            type="INSURANCE_SUBMITTED",
            subject=f"{kind} Insurance Submitted",
            message=(
                f"Your {kind} insurance from {details.provider} "
                f"(policy {details.policy_number}) has been received and is "
                f"under review. You are currently at {quote.tier.value} tier "
                f"{earning}."
            ),
            priority="normal",
        )

    if change.action == CoverageAction.APPROVED:
        message = (
            f"Great news! Your {kind} insurance has been approved. You're now "
            f"{earning} ({quote.tier.value} tier)."
        )
        if change.auto_action:
            message += (
                f" {change.auto_action}. You can switch between insurances anytime."
            )
        return HostNotice(
            host_id=after.host_id,
            type="INSURANCE_APPROVED",
            subject=f"{kind} Insurance Approved!",
            message=message,
        )

    if change.action == CoverageAction.REJECTED:
        return HostNotice(
            host_id=after.host_id,
            type="INSURANCE_REJECTED",
            subject=f"{kind} Insurance Needs Attention",
            message=f"Your {kind} insurance submission requires updates: {change.reason}",
            response_required=True,
            action_required="UPDATE_INSURANCE",
            action_url=PROFILE_INSURANCE_URL,
        )

    if change.action == CoverageAction.DELETED:
        message = (
            f"Your {kind} insurance has been removed. You are now at "
            f"{quote.tier.value} tier {earning}."
        )
        if change.auto_action:
            message += f" {change.auto_action}."
        return HostNotice(
            host_id=after.host_id,
            type="INSURANCE_REMOVED",
            subject=f"{kind} Insurance Removed",
            message=message,
        )

    # SWITCHED
    return HostNotice(
        host_id=after.host_id,
        type="INSURANCE_SWITCHED",
        subject=f"Now Using {kind} Insurance",
        message=(
            f"Your {kind} insurance is now active and your {other} insurance "
            f"has been set to INACTIVE. You're now {earning} "
            f"({quote.tier.value} tier)."
        ),
    )
