"""
Coverage Service
================

Runs each coverage decision as one atomic unit of work per host:

1. take the host's lock (``HostLocks``)
2. ``SELECT ... FOR UPDATE`` the host row
3. compute the ``Transition`` with the pure engine
4. version-checked ``UPDATE`` of the host row
5. append the tier history entry
6. record the audit entry and queue the host notification
7. commit

Any failure in steps 2-7 rolls the whole session back, so there is never
a new tier without its history, audit and notification.  Domain errors
propagate unchanged; database failures surface as ``StoreUnavailable``
and emitter failures as ``EmitterUnavailable``.  Nothing is retried here:
on ``ConcurrencyConflict`` the caller re-issues the whole operation.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from host_coverage.domain import transitions
from host_coverage.domain.entities import HostState, TierChange, Transition
from host_coverage.domain.enums import CoverageKind
from host_coverage.domain.errors import (
    ConcurrencyConflict,
    CoverageError,
    EmitterUnavailable,
    StoreUnavailable,
)
from host_coverage.infrastructure.emitter import (
    ActivityEmitter,
    ActivityReader,
    SqlActivityEmitter,
)
from host_coverage.infrastructure.locks import HostLocks
from host_coverage.infrastructure.models import (
    ActivityLogModel,
    HostNotificationModel,
)
from host_coverage.infrastructure.repositories import (
    HostRepository,
    TierChangeRepository,
)

logger = logging.getLogger(__name__)

TransitionFn = Callable[[HostState], Transition]


class CoverageService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: HostLocks,
        emitter_factory: Callable[[AsyncSession], ActivityEmitter] = SqlActivityEmitter,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.emitter_factory = emitter_factory

    # ── Admin decisions ───────────────────────────────────────────────

    async def approve_track(
        self,
        host_id: str,
        kind: CoverageKind,
        actor: str,
        reason: Optional[str] = None,
    ) -> HostState:
        return await self._apply(
            host_id,
            lambda state: transitions.approve(state, kind, actor, reason=reason),
        )

    async def reject_track(
        self,
        host_id: str,
        kind: CoverageKind,
        actor: str,
        reason: Optional[str],
    ) -> HostState:
        return await self._apply(
            host_id,
            lambda state: transitions.reject(state, kind, actor, reason),
        )

    async def delete_track(
        self, host_id: str, kind: CoverageKind, actor: str
    ) -> HostState:
        return await self._apply(
            host_id, lambda state: transitions.delete(state, kind, actor)
        )

    # ── Host actions ──────────────────────────────────────────────────

    async def submit_track(
        self,
        host_id: str,
        kind: CoverageKind,
        actor: str,
        *,
        provider: Optional[str],
        policy_number: Optional[str],
        expires_at: Optional[date],
    ) -> HostState:
        return await self._apply(
            host_id,
            lambda state: transitions.submit(
                state,
                kind,
                actor,
                provider=provider,
                policy_number=policy_number,
                expires_at=expires_at,
            ),
        )

    async def switch_track(
        self, host_id: str, kind: CoverageKind, actor: str
    ) -> HostState:
        return await self._apply(
            host_id, lambda state: transitions.switch(state, kind, actor)
        )

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_host(self, host_id: str) -> HostState:
        async with self.session_factory() as session:
            try:
                return await HostRepository(session).get_host(host_id)
            except SQLAlchemyError as exc:
                raise StoreUnavailable(str(exc)) from exc

    async def get_history(self, host_id: str) -> list[TierChange]:
        async with self.session_factory() as session:
            try:
                await HostRepository(session).get_host(host_id)
                return await TierChangeRepository(session).list_for_host(host_id)
            except SQLAlchemyError as exc:
                raise StoreUnavailable(str(exc)) from exc

    async def get_coverage(
        self, host_id: str
    ) -> tuple[HostState, list[TierChange]]:
        """Host state and its history from one transaction.

        The host row is read ``FOR UPDATE``, so no transition can commit
        between the two reads and the history ends at the returned version.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    state = await HostRepository(session).get_host_for_update(host_id)
                    history = await TierChangeRepository(session).list_for_host(
                        host_id
                    )
            except SQLAlchemyError as exc:
                raise StoreUnavailable(str(exc)) from exc
        return state, history

    async def get_activity(
        self, host_id: str
    ) -> tuple[list[ActivityLogModel], list[HostNotificationModel]]:
        """Audit trail and queued notifications for one host, oldest first."""
        async with self.session_factory() as session:
            try:
                await HostRepository(session).get_host(host_id)
                reader = ActivityReader(session)
                audit = await reader.audit_for(host_id)
                notifications = await reader.notifications_for(host_id)
            except SQLAlchemyError as exc:
                raise StoreUnavailable(str(exc)) from exc
        return audit, notifications

    # ── Unit of work ──────────────────────────────────────────────────

    async def _apply(self, host_id: str, compute: TransitionFn) -> HostState:
        async with self.locks.hold(host_id):
            async with self.session_factory() as session:
                try:
                    transition = await self._run(session, host_id, compute)
                    await session.commit()
                except ConcurrencyConflict:
                    await session.rollback()
                    logger.warning("Version conflict on host %s", host_id)
                    raise
                except CoverageError:
                    await session.rollback()
                    raise
                except SQLAlchemyError as exc:
                    await session.rollback()
                    logger.exception("Store failure while updating host %s", host_id)
                    raise StoreUnavailable(str(exc)) from exc

        change = transition.change
        logger.info(
            "Host %s: %s %s (%s -> %s)",
            host_id,
            change.action.value,
            change.coverage_kind.value,
            change.previous_tier.value,
            change.new_tier.value,
        )
        return transition.after

    async def _run(
        self, session: AsyncSession, host_id: str, compute: TransitionFn
    ) -> Transition:
        hosts = HostRepository(session)
        current = await hosts.get_host_for_update(host_id)
        transition = compute(current)

        change = transition.change
        await hosts.commit_host(
            host_id,
            current.version,
            transition.after,
            changed_at=change.occurred_at,
            changed_by=change.actor,
            reason=_tier_change_reason(change),
        )
        await TierChangeRepository(session).append(host_id, change)
        await self._emit(session, transition)
        return transition

    async def _emit(self, session: AsyncSession, transition: Transition) -> None:
        emitter = self.emitter_factory(session)
        audit, notice = transition.audit, transition.notice
        try:
            await emitter.record_audit(audit.entity_id, audit.action, audit.metadata)
            await emitter.notify(
                notice.host_id,
                notice.subject,
                notice.message,
                notice.priority,
                notice.response_required,
                notice_type=notice.type,
                category=notice.category,
                action_required=notice.action_required,
                action_url=notice.action_url,
            )
        except CoverageError:
            raise
        except Exception as exc:
            logger.exception("Emitter failure for host %s", audit.entity_id)
            raise EmitterUnavailable(str(exc)) from exc


def _tier_change_reason(change: TierChange) -> str:
    kind = change.coverage_kind.value
    action = change.action.value.lower()
    text = f"{kind} insurance {action} - {change.new_tier.value} tier"
    if change.reason:
        text += f" ({change.reason})"
    if change.auto_action:
        text += f" ({change.auto_action})"
    return text
