"""
Domain entities for host insurance coverage.

Patterns used
-------------
- **Immutable snapshots**: ``HostState`` and ``CoverageTrack`` are frozen;
  every change produces a new snapshot, so a pre/post pair can be
  compared safely when building audit and notification payloads.
- **Typed append-only history**: ``TierChange`` is one history entry;
  entries are created once and never edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Optional

from .enums import CoverageAction, CoverageKind, CoverageStatus, EarningsTier
from .tiers import BASELINE


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class CoverageTrack:
    status: CoverageStatus = CoverageStatus.NONE
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    expires_at: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.status == CoverageStatus.ACTIVE

    @property
    def is_complete(self) -> bool:
        return bool(self.provider and self.policy_number and self.expires_at)

    def with_status(self, status: CoverageStatus) -> CoverageTrack:
        """Change status, keeping submitted details."""
        return replace(self, status=status)

    def cleared(self, status: CoverageStatus) -> CoverageTrack:
        """Drop submitted details and move to *status*."""
        return CoverageTrack(status=status)


# ── Aggregate ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HostState:
    host_id: str
    name: str = ""
    email: str = ""
    earnings_tier: EarningsTier = BASELINE.tier
    commission_rate: float = BASELINE.commission_rate
    p2p: CoverageTrack = field(default_factory=CoverageTrack)
    commercial: CoverageTrack = field(default_factory=CoverageTrack)
    version: int = 0

    @property
    def host_earnings(self) -> float:
        return round(1 - self.commission_rate, 2)

    def track(self, kind: CoverageKind) -> CoverageTrack:
        if kind == CoverageKind.COMMERCIAL:
            return self.commercial
        return self.p2p

    def with_track(self, kind: CoverageKind, track: CoverageTrack) -> HostState:
        if kind == CoverageKind.COMMERCIAL:
            return replace(self, commercial=track)
        return replace(self, p2p=track)

    def active_kinds(self) -> list[CoverageKind]:
        return [k for k in CoverageKind if self.track(k).is_active]


# ── History / side-effect payloads ────────────────────────────────────


@dataclass(frozen=True)
class TierChange:
    action: CoverageAction
    coverage_kind: CoverageKind
    actor: str
    occurred_at: datetime
    previous_tier: EarningsTier
    new_tier: EarningsTier
    previous_commission: float
    new_commission: float
    p2p_status: CoverageStatus
    commercial_status: CoverageStatus
    reason: Optional[str] = None
    auto_action: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class AuditRecord:
    entity_id: str
    action: str
    metadata: dict[str, Any]


@dataclass(frozen=True)
class HostNotice:
    host_id: str
    type: str
    subject: str
    message: str
    priority: str = "high"
    response_required: bool = False
    category: str = "documents"
    action_required: Optional[str] = None
    action_url: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    """Everything one successful operation produces, from one snapshot pair."""

    before: HostState
    after: HostState
    change: TierChange
    audit: AuditRecord
    notice: HostNotice

    @property
    def tier_changed(self) -> bool:
        return self.before.earnings_tier != self.after.earnings_tier
