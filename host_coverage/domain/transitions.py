"""
Transition Engine
=================

Applies one coverage decision to a ``HostState`` snapshot and returns a
``Transition``: the new snapshot, the history entry, and the audit and
notification payloads.  Pure; persistence and locking live in
``host_coverage.services.coverage``.

Operations
----------
* ``approve`` -- PENDING -> ACTIVE.  An ACTIVE other track is demoted to
  INACTIVE with its details kept (auto-deactivation).
* ``reject``  -- PENDING -> REJECTED, details cleared.  Reason required.
* ``delete``  -- any submitted status -> NONE, details cleared.  An
  INACTIVE other track is promoted back to ACTIVE (reactivation).
* ``submit``  -- NONE / REJECTED / PENDING -> PENDING with new details.
* ``switch``  -- INACTIVE -> ACTIVE while the ACTIVE other track goes
  INACTIVE.

Every result is checked against both invariants before it is returned:
at most one ACTIVE track, and tier/commission equal to what
``resolve_tier`` derives from the two statuses.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional

from .entities import CoverageTrack, HostState, TierChange, Transition
from .enums import ACTION_PRECONDITIONS, CoverageAction, CoverageKind, CoverageStatus
from .errors import IncompleteSubmission, InvalidState, InvariantViolation, MissingReason
from .messages import build_audit, build_notice
from .tiers import resolve_tier


def check_invariants(state: HostState) -> None:
    """Raise ``InvariantViolation`` unless *state* is consistent."""
    active = state.active_kinds()
    if len(active) > 1:
        raise InvariantViolation(
            f"Host {state.host_id} has more than one ACTIVE track"
        )
    quote = resolve_tier(state.p2p.status, state.commercial.status)
    if (state.earnings_tier, state.commission_rate) != (
        quote.tier,
        quote.commission_rate,
    ):
        raise InvariantViolation(
            f"Host {state.host_id} tier {state.earnings_tier.value}/"
            f"{state.commission_rate} does not match {quote.tier.value}/"
            f"{quote.commission_rate}"
        )


def _require(state: HostState, kind: CoverageKind, action: CoverageAction) -> None:
    current = state.track(kind).status
    if current not in ACTION_PRECONDITIONS[action]:
        raise InvalidState(
            f"{kind.value} insurance is currently {current.value}; "
            f"cannot apply {action.value}"
        )


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _finish(
    before: HostState,
    after: HostState,
    *,
    action: CoverageAction,
    kind: CoverageKind,
    actor: str,
    now: datetime,
    reason: Optional[str] = None,
    auto_action: Optional[str] = None,
) -> Transition:
    """Re-derive the tier, bump the version and build every payload."""
    quote = resolve_tier(after.p2p.status, after.commercial.status)
    after = replace(
        after,
        earnings_tier=quote.tier,
        commission_rate=quote.commission_rate,
        version=before.version + 1,
    )
    check_invariants(after)

    change = TierChange(
        action=action,
        coverage_kind=kind,
        actor=actor,
        occurred_at=now,
        previous_tier=before.earnings_tier,
        new_tier=after.earnings_tier,
        previous_commission=before.commission_rate,
        new_commission=after.commission_rate,
        p2p_status=after.p2p.status,
        commercial_status=after.commercial.status,
        reason=reason,
        auto_action=auto_action,
    )
    return Transition(
        before=before,
        after=after,
        change=change,
        audit=build_audit(change, before, after),
        notice=build_notice(change, after),
    )


# ── Operations ────────────────────────────────────────────────────────


def approve(
    state: HostState,
    kind: CoverageKind,
    actor: str,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transition:
    _require(state, kind, CoverageAction.APPROVED)
    target = state.track(kind)
    if not target.is_complete:
        raise IncompleteSubmission(
            f"Host has not submitted complete {kind.value} insurance details"
        )

    after = state.with_track(kind, target.with_status(CoverageStatus.ACTIVE))
    auto_action = None
    other = state.track(kind.other)
    if other.is_active:
        after = after.with_track(
            kind.other, other.with_status(CoverageStatus.INACTIVE)
        )
        auto_action = f"{kind.other.value} insurance automatically set to INACTIVE"

    return _finish(
        state,
        after,
        action=CoverageAction.APPROVED,
        kind=kind,
        actor=actor,
        now=_now(now),
        reason=reason,
        auto_action=auto_action,
    )


def reject(
    state: HostState,
    kind: CoverageKind,
    actor: str,
    reason: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Transition:
    if not reason or not reason.strip():
        raise MissingReason("Rejection reason is required")
    _require(state, kind, CoverageAction.REJECTED)

    after = state.with_track(
        kind, state.track(kind).cleared(CoverageStatus.REJECTED)
    )
    return _finish(
        state,
        after,
        action=CoverageAction.REJECTED,
        kind=kind,
        actor=actor,
        now=_now(now),
        reason=reason.strip(),
    )


def delete(
    state: HostState,
    kind: CoverageKind,
    actor: str,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transition:
    _require(state, kind, CoverageAction.DELETED)

    after = state.with_track(kind, state.track(kind).cleared(CoverageStatus.NONE))
    auto_action = None
    other = state.track(kind.other)
    # Only a suppressed (INACTIVE) track resumes; PENDING still needs review.
    if other.status == CoverageStatus.INACTIVE:
        after = after.with_track(
            kind.other, other.with_status(CoverageStatus.ACTIVE)
        )
        auto_action = f"Your {kind.other.value} insurance has resumed automatically"

    return _finish(
        state,
        after,
        action=CoverageAction.DELETED,
        kind=kind,
        actor=actor,
        now=_now(now),
        reason=reason or f"{kind.value} insurance deleted by admin",
        auto_action=auto_action,
    )


def submit(
    state: HostState,
    kind: CoverageKind,
    actor: str,
    *,
    provider: Optional[str],
    policy_number: Optional[str],
    expires_at: Optional[date],
    now: Optional[datetime] = None,
) -> Transition:
    _require(state, kind, CoverageAction.SUBMITTED)
    track = CoverageTrack(
        status=CoverageStatus.PENDING,
        provider=(provider or "").strip() or None,
        policy_number=(policy_number or "").strip() or None,
        expires_at=expires_at,
    )
    if not track.is_complete:
        raise IncompleteSubmission(
            f"{kind.value} submission needs provider, policy number and expiry date"
        )

    return _finish(
        state,
        state.with_track(kind, track),
        action=CoverageAction.SUBMITTED,
        kind=kind,
        actor=actor,
        now=_now(now),
    )


def switch(
    state: HostState,
    kind: CoverageKind,
    actor: str,
    *,
    now: Optional[datetime] = None,
) -> Transition:
    _require(state, kind, CoverageAction.SWITCHED)
    other = state.track(kind.other)
    if not other.is_active:
        raise InvalidState(
            f"Cannot switch to {kind.value}: {kind.other.value} insurance is "
            f"{other.status.value}, not ACTIVE"
        )

    after = state.with_track(
        kind, state.track(kind).with_status(CoverageStatus.ACTIVE)
    ).with_track(kind.other, other.with_status(CoverageStatus.INACTIVE))
    return _finish(
        state,
        after,
        action=CoverageAction.SWITCHED,
        kind=kind,
        actor=actor,
        now=_now(now),
        auto_action=f"{kind.other.value} insurance set to INACTIVE",
    )
