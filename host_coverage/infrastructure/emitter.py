"""
Audit & Notification Emitter  (Strategy Pattern)
================================================

``ActivityEmitter`` is the collaborator the coverage service talks to
inside its unit of work.  ``SqlActivityEmitter`` writes the audit row
and the queued host notification through the *same* session as the host
update, so all of them commit or roll back together.  Delivery of the
queued notification (email, push, ...) happens elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ActivityLogModel, HostNotificationModel
from host_coverage.domain.errors import EmitterUnavailable


class ActivityEmitter(ABC):
    @abstractmethod
    async def record_audit(
        self, entity_id: str, action: str, metadata: dict[str, Any]
    ) -> None: ...

    @abstractmethod
    async def notify(
        self,
        host_id: str,
        subject: str,
        message: str,
        priority: str,
        response_required: bool,
        *,
        notice_type: str,
        category: str = "documents",
        action_required: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> None: ...


class SqlActivityEmitter(ActivityEmitter):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_audit(
        self, entity_id: str, action: str, metadata: dict[str, Any]
    ) -> None:
        self.session.add(
            ActivityLogModel(
                entity_type="HOST",
                entity_id=entity_id,
                action=action,
                details=metadata,
            )
        )
        await self._flush()

    async def notify(
        self,
        host_id: str,
        subject: str,
        message: str,
        priority: str,
        response_required: bool,
        *,
        notice_type: str,
        category: str = "documents",
        action_required: Optional[str] = None,
        action_url: Optional[str] = None,
    ) -> None:
        self.session.add(
            HostNotificationModel(
                host_id=host_id,
                type=notice_type,
                category=category,
                subject=subject,
                message=message,
                priority=priority,
                response_required=response_required,
                action_required=action_required,
                action_url=action_url,
            )
        )
        await self._flush()

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise EmitterUnavailable(f"Could not queue activity: {exc}") from exc


class ActivityReader:
    """Read side of the audit trail and notification queue."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def audit_for(self, entity_id: str) -> list[ActivityLogModel]:
        result = await self.session.execute(
            select(ActivityLogModel)
            .where(ActivityLogModel.entity_id == entity_id)
            .order_by(ActivityLogModel.id)
        )
        return list(result.scalars().all())

    async def notifications_for(self, host_id: str) -> list[HostNotificationModel]:
        result = await self.session.execute(
            select(HostNotificationModel)
            .where(HostNotificationModel.host_id == host_id)
            .order_by(HostNotificationModel.id)
        )
        return list(result.scalars().all())
