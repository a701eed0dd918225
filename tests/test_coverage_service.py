"""
Coverage service tests against a real (SQLite) database.

Demonstrates:
1. Each operation commits the host row, one history entry, one audit
   record and one notification together.
2. A failing emitter or store leaves nothing behind.
3. Concurrent decisions on one host are serialised: both invariants hold
   and the second audit record starts from the first one's tier.
4. A stale version is refused with ``ConcurrencyConflict``.
"""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from host_coverage.domain.enums import CoverageKind, CoverageStatus, EarningsTier
from host_coverage.domain.errors import (
    ConcurrencyConflict,
    EmitterUnavailable,
    HostNotFound,
    InvalidState,
    MissingReason,
    StoreUnavailable,
)
from host_coverage.domain.transitions import check_invariants
from host_coverage.infrastructure.emitter import ActivityReader, SqlActivityEmitter
from host_coverage.infrastructure.locks import LocalHostLocks
from host_coverage.infrastructure.models import (
    ActivityLogModel,
    HostModel,
    HostNotificationModel,
    TierChangeModel,
)
from host_coverage.infrastructure.repositories import (
    HostRepository,
    TierChangeRepository,
)
from host_coverage.services.coverage import CoverageService

P2P, COMMERCIAL = CoverageKind.P2P, CoverageKind.COMMERCIAL
ADMIN = "admin@fleet.test"


async def _counts(session_factory, host_id: str) -> tuple[int, int, int]:
    """(history, audit, notification) row counts for *host_id*."""
    async with session_factory() as session:
        history = await session.scalar(
            select(func.count()).select_from(TierChangeModel).where(
                TierChangeModel.host_id == host_id
            )
        )
        audit = await session.scalar(
            select(func.count()).select_from(ActivityLogModel).where(
                ActivityLogModel.entity_id == host_id
            )
        )
        notices = await session.scalar(
            select(func.count()).select_from(HostNotificationModel).where(
                HostNotificationModel.host_id == host_id
            )
        )
    return history, audit, notices


async def _audit(session_factory, host_id: str):
    async with session_factory() as session:
        return await ActivityReader(session).audit_for(host_id)


class FailingEmitter(SqlActivityEmitter):
    """Writes the audit row, then fails to queue the notification."""

    async def notify(self, *args, **kwargs) -> None:
        raise ConnectionError("notification queue unreachable")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_approve_updates_tier_and_records_everything(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        state = await service.approve_track(host, P2P, ADMIN)

        assert state.earnings_tier == EarningsTier.STANDARD
        assert state.commission_rate == 0.25
        assert state.p2p.status == CoverageStatus.ACTIVE
        assert state.version == 2
        assert await service.get_host(host) == state
        # submit + approve
        assert await _counts(session_factory, host) == (2, 2, 2)

    @pytest.mark.asyncio
    async def test_full_flow_with_suppression_and_resume(
        self, service, host, submit
    ):
        await submit(host, P2P)
        await service.approve_track(host, P2P, ADMIN)
        await submit(host, COMMERCIAL)

        premium = await service.approve_track(host, COMMERCIAL, ADMIN)
        assert premium.earnings_tier == EarningsTier.PREMIUM
        assert premium.p2p.status == CoverageStatus.INACTIVE

        switched = await service.switch_track(host, P2P, host)
        assert switched.earnings_tier == EarningsTier.STANDARD
        assert switched.commercial.status == CoverageStatus.INACTIVE

        resumed = await service.delete_track(host, P2P, ADMIN)
        assert resumed.p2p.status == CoverageStatus.NONE
        assert resumed.commercial.status == CoverageStatus.ACTIVE
        assert resumed.earnings_tier == EarningsTier.PREMIUM

        history = await service.get_history(host)
        assert [c.action.value for c in history] == [
            "SUBMITTED",
            "APPROVED",
            "SUBMITTED",
            "APPROVED",
            "SWITCHED",
            "DELETED",
        ]
        assert history[-1].auto_action == (
            "Your COMMERCIAL insurance has resumed automatically"
        )
        for prev, nxt in zip(history, history[1:]):
            assert nxt.previous_tier == prev.new_tier

    @pytest.mark.asyncio
    async def test_rejection_queues_actionable_notice(
        self, service, host, submit, session_factory
    ):
        await submit(host, COMMERCIAL)
        state = await service.reject_track(host, COMMERCIAL, ADMIN, "Expired policy")

        assert state.commercial.status == CoverageStatus.REJECTED
        assert state.commercial.policy_number is None
        assert state.earnings_tier == EarningsTier.BASIC

        async with session_factory() as session:
            notices = await ActivityReader(session).notifications_for(host)
        last = notices[-1]
        assert last.type == "INSURANCE_REJECTED"
        assert last.status == "QUEUED"
        assert last.response_required is True
        assert "Expired policy" in last.message

    @pytest.mark.asyncio
    async def test_host_record_tracks_last_change(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        await service.approve_track(host, P2P, ADMIN)

        async with session_factory() as session:
            row = await session.get(HostModel, host)
        assert row.tier_change_by == ADMIN
        assert row.tier_change_reason.startswith("P2P insurance approved")
        assert row.last_tier_change is not None


class TestFailures:
    @pytest.mark.asyncio
    async def test_unknown_host(self, service):
        with pytest.raises(HostNotFound):
            await service.approve_track("nobody", P2P, ADMIN)
        with pytest.raises(HostNotFound):
            await service.get_history("nobody")

    @pytest.mark.asyncio
    async def test_repeated_approval_is_invalid_and_writes_nothing(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        first = await service.approve_track(host, P2P, ADMIN)

        with pytest.raises(InvalidState):
            await service.approve_track(host, P2P, ADMIN)

        assert await service.get_host(host) == first
        assert await _counts(session_factory, host) == (2, 2, 2)

    @pytest.mark.asyncio
    async def test_missing_reason_writes_nothing(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        with pytest.raises(MissingReason):
            await service.reject_track(host, P2P, ADMIN, "  ")
        assert await _counts(session_factory, host) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_emitter_failure_rolls_back_everything(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        before = await service.get_host(host)

        failing = CoverageService(
            session_factory, LocalHostLocks(), emitter_factory=FailingEmitter
        )
        with pytest.raises(EmitterUnavailable):
            await failing.approve_track(host, P2P, ADMIN)

        after = await service.get_host(host)
        assert after == before
        assert after.earnings_tier == EarningsTier.BASIC
        assert after.p2p.status == CoverageStatus.PENDING
        # only the submission survives; the approval's audit row was rolled back
        assert await _counts(session_factory, host) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_store_failure_surfaces_as_unavailable(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        before = await service.get_host(host)

        boom = OperationalError(
            "INSERT INTO host_tier_changes", {}, Exception("disk I/O error")
        )
        with patch.object(TierChangeRepository, "append", AsyncMock(side_effect=boom)):
            with pytest.raises(StoreUnavailable):
                await service.approve_track(host, P2P, ADMIN)

        assert await service.get_host(host) == before
        assert await _counts(session_factory, host) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_stale_version_is_refused(self, host, submit, session_factory):
        await submit(host, P2P)

        async with session_factory() as session:
            repo = HostRepository(session)
            current = await repo.get_host(host)
            with pytest.raises(ConcurrencyConflict):
                await repo.commit_host(
                    host,
                    current.version - 1,
                    current,
                    changed_at=None,
                    changed_by=ADMIN,
                    reason=None,
                )
            await session.rollback()

    @pytest.mark.asyncio
    async def test_lock_timeout_is_a_conflict(self, session_factory, host, submit):
        await submit(host, P2P)
        locks = LocalHostLocks(wait_seconds=0.05)
        service = CoverageService(session_factory, locks)

        async with locks.hold(host):
            with pytest.raises(ConcurrencyConflict):
                await service.approve_track(host, P2P, ADMIN)

        state = await service.approve_track(host, P2P, ADMIN)
        assert state.p2p.status == CoverageStatus.ACTIVE


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_simultaneous_approvals_are_serialised(
        self, service, host, submit, session_factory
    ):
        await submit(host, P2P)
        await submit(host, COMMERCIAL)

        results = await asyncio.gather(
            service.approve_track(host, P2P, "admin-a@fleet.test"),
            service.approve_track(host, COMMERCIAL, "admin-b@fleet.test"),
        )
        final = await service.get_host(host)

        check_invariants(final)
        assert len(final.active_kinds()) == 1
        assert max(r.version for r in results) == final.version

        audit = [
            r for r in await _audit(session_factory, host)
            if r.action == "INSURANCE_APPROVED"
        ]
        assert len(audit) == 2
        first, second = audit[0].details, audit[1].details
        assert second["previousTier"] == first["newTier"]
        assert second["autoAction"] is not None
        assert final.earnings_tier.value == second["newTier"]
        assert final.p2p.status.value == second["p2pStatus"]
        assert final.commercial.status.value == second["commercialStatus"]


@pytest.mark.asyncio
async def test_submission_details_persist(service, host):
    state = await service.submit_track(
        host,
        COMMERCIAL,
        host,
        provider="Fleet Mutual",
        policy_number="FM-77",
        expires_at=date(2027, 5, 1),
    )
    stored = await service.get_host(host)
    assert stored.commercial.expires_at == date(2027, 5, 1)
    assert stored == state


class TestReads:
    @pytest.mark.asyncio
    async def test_coverage_and_history_agree(self, service, host, submit):
        await submit(host, P2P)
        await service.approve_track(host, P2P, ADMIN)

        state, history = await service.get_coverage(host)

        assert state.version == len(history) == 2
        assert history[-1].new_tier == state.earnings_tier
        assert history[-1].p2p_status == state.p2p.status

    @pytest.mark.asyncio
    async def test_activity_for_host(self, service, host, submit):
        await submit(host, COMMERCIAL)
        await service.approve_track(host, COMMERCIAL, ADMIN)

        audit, notices = await service.get_activity(host)

        assert [a.action for a in audit] == [
            "INSURANCE_SUBMITTED",
            "INSURANCE_APPROVED",
        ]
        assert audit[-1].details["newTier"] == "PREMIUM"
        assert [n.type for n in notices] == [
            "INSURANCE_SUBMITTED",
            "INSURANCE_APPROVED",
        ]

    @pytest.mark.asyncio
    async def test_reads_for_unknown_host(self, service):
        with pytest.raises(HostNotFound):
            await service.get_coverage("nobody")
        with pytest.raises(HostNotFound):
            await service.get_activity("nobody")
