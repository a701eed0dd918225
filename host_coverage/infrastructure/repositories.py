"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Rows are converted to and from the frozen
domain snapshots at this boundary; nothing above it touches ORM objects.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import HostModel, TierChangeModel
from host_coverage.domain.entities import CoverageTrack, HostState, TierChange
from host_coverage.domain.enums import CoverageKind
from host_coverage.domain.errors import ConcurrencyConflict, HostNotFound
from host_coverage.domain.tiers import BASELINE

_TRACK_PREFIX = {CoverageKind.P2P: "p2p", CoverageKind.COMMERCIAL: "commercial"}


def _track_from_row(row: HostModel, kind: CoverageKind) -> CoverageTrack:
    prefix = _TRACK_PREFIX[kind]
    return CoverageTrack(
        status=getattr(row, f"{prefix}_status"),
        provider=getattr(row, f"{prefix}_provider"),
        policy_number=getattr(row, f"{prefix}_policy_number"),
        expires_at=getattr(row, f"{prefix}_expires_at"),
    )


def _track_columns(kind: CoverageKind, track: CoverageTrack) -> dict:
    prefix = _TRACK_PREFIX[kind]
    return {
        f"{prefix}_status": track.status,
        f"{prefix}_provider": track.provider,
        f"{prefix}_policy_number": track.policy_number,
        f"{prefix}_expires_at": track.expires_at,
    }


def host_state_from_row(row: HostModel) -> HostState:
    return HostState(
        host_id=row.id,
        name=row.name,
        email=row.email,
        earnings_tier=row.earnings_tier,
        commission_rate=row.commission_rate,
        p2p=_track_from_row(row, CoverageKind.P2P),
        commercial=_track_from_row(row, CoverageKind.COMMERCIAL),
        version=row.version,
    )


class HostRepository:
    """Host Record Store: exclusive read plus version-checked write."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_host(
        self, host_id: str, *, name: str, email: str
    ) -> HostState:
        row = HostModel(
            id=host_id,
            name=name,
            email=email,
            earnings_tier=BASELINE.tier,
            commission_rate=BASELINE.commission_rate,
            version=0,
        )
        self.session.add(row)
        await self.session.flush()
        return host_state_from_row(row)

    async def get_host(self, host_id: str) -> HostState:
        row = await self.session.get(HostModel, host_id)
        if row is None:
            raise HostNotFound(f"Host {host_id} not found")
        return host_state_from_row(row)

    async def get_host_for_update(self, host_id: str) -> HostState:
        """SELECT ... FOR UPDATE so no other transaction writes the row meanwhile."""
        result = await self.session.execute(
            select(HostModel)
            .where(HostModel.id == host_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise HostNotFound(f"Host {host_id} not found")
        return host_state_from_row(row)

    async def commit_host(
        self,
        host_id: str,
        expected_version: int,
        state: HostState,
        *,
        changed_at: datetime,
        changed_by: str,
        reason: Optional[str],
    ) -> HostState:
        """Write *state* only if the stored version is still *expected_version*."""
        values = {
            "earnings_tier": state.earnings_tier,
            "commission_rate": state.commission_rate,
            "version": expected_version + 1,
            "last_tier_change": changed_at,
            "tier_change_by": changed_by,
            "tier_change_reason": reason,
        }
        values.update(_track_columns(CoverageKind.P2P, state.p2p))
        values.update(_track_columns(CoverageKind.COMMERCIAL, state.commercial))

        result = await self.session.execute(
            update(HostModel)
            .where(HostModel.id == host_id, HostModel.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflict(
                f"Host {host_id} changed since version {expected_version}; retry"
            )
        return state


class TierChangeRepository:
    """Append-only tier history: entries are added and listed, never changed."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, host_id: str, change: TierChange) -> TierChange:
        row = TierChangeModel(
            host_id=host_id,
            action=change.action,
            coverage_kind=change.coverage_kind,
            actor=change.actor,
            occurred_at=change.occurred_at,
            previous_tier=change.previous_tier,
            new_tier=change.new_tier,
            previous_commission=change.previous_commission,
            new_commission=change.new_commission,
            p2p_status=change.p2p_status,
            commercial_status=change.commercial_status,
            reason=change.reason,
            auto_action=change.auto_action,
        )
        self.session.add(row)
        await self.session.flush()
        return _change_from_row(row)

    async def list_for_host(self, host_id: str) -> list[TierChange]:
        result = await self.session.execute(
            select(TierChangeModel)
            .where(TierChangeModel.host_id == host_id)
            .order_by(TierChangeModel.id)
        )
        return [_change_from_row(r) for r in result.scalars().all()]


def _change_from_row(row: TierChangeModel) -> TierChange:
    return TierChange(
        id=row.id,
        action=row.action,
        coverage_kind=row.coverage_kind,
        actor=row.actor,
        occurred_at=row.occurred_at,
        previous_tier=row.previous_tier,
        new_tier=row.new_tier,
        previous_commission=row.previous_commission,
        new_commission=row.new_commission,
        p2p_status=row.p2p_status,
        commercial_status=row.commercial_status,
        reason=row.reason,
        auto_action=row.auto_action,
    )
