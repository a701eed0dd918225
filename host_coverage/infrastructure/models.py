"""
SQLAlchemy ORM models.

Tables
------
* ``hosts``              -- host aggregate: both coverage tracks, derived
  tier / commission and the ``version`` CAS token
* ``host_tier_changes``  -- append-only tier history, one row per transition
* ``activity_logs``      -- audit trail
* ``host_notifications`` -- host-facing messages queued for delivery

Indexes
-------
* **B-Tree** on ``host_id`` / ``entity_id`` for history, audit and inbox
  look-ups, on ``action`` for audit filtering.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from host_coverage.domain.enums import (
    CoverageAction,
    CoverageKind,
    CoverageStatus,
    EarningsTier,
)


class HostModel(Base):
    __tablename__ = "hosts"

    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)

    earnings_tier = Column(
        Enum(EarningsTier), default=EarningsTier.BASIC, nullable=False
    )
    commission_rate = Column(Float, default=0.60, nullable=False)

    # P2P track
    p2p_status = Column(
        Enum(CoverageStatus),
        default=CoverageStatus.NONE,
        nullable=False,
    )
    p2p_provider = Column(String(120), nullable=True)
    p2p_policy_number = Column(String(64), nullable=True)
    p2p_expires_at = Column(Date, nullable=True)

    # Commercial track
    commercial_status = Column(
        Enum(CoverageStatus),
        default=CoverageStatus.NONE,
        nullable=False,
    )
    commercial_provider = Column(String(120), nullable=True)
    commercial_policy_number = Column(String(64), nullable=True)
    commercial_expires_at = Column(Date, nullable=True)

    version = Column(Integer, default=0, nullable=False)
    last_tier_change = Column(DateTime(timezone=True), nullable=True)
    tier_change_reason = Column(Text, nullable=True)
    tier_change_by = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "NOT (p2p_status = 'ACTIVE' AND commercial_status = 'ACTIVE')",
            name="ck_hosts_single_active_track",
        ),
    )


class TierChangeModel(Base):
    __tablename__ = "host_tier_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    host_id = Column(String(64), ForeignKey("hosts.id"), nullable=False)
    action = Column(Enum(CoverageAction), nullable=False)
    coverage_kind = Column(Enum(CoverageKind), nullable=False)
    actor = Column(String(255), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    previous_tier = Column(Enum(EarningsTier), nullable=False)
    new_tier = Column(Enum(EarningsTier), nullable=False)
    previous_commission = Column(Float, nullable=False)
    new_commission = Column(Float, nullable=False)
    p2p_status = Column(Enum(CoverageStatus), nullable=False)
    commercial_status = Column(Enum(CoverageStatus), nullable=False)
    reason = Column(Text, nullable=True)
    auto_action = Column(Text, nullable=True)

    __table_args__ = (Index("idx_tier_changes_host", "host_id"),)


class ActivityLogModel(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(32), nullable=False, default="HOST")
    entity_id = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_activity_entity", "entity_id"),
        Index("idx_activity_action", "action"),
    )


class HostNotificationModel(Base):
    __tablename__ = "host_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    host_id = Column(String(64), ForeignKey("hosts.id"), nullable=False)
    type = Column(String(64), nullable=False)
    category = Column(String(32), nullable=False, default="documents")
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="QUEUED")
    priority = Column(String(20), nullable=False, default="high")
    response_required = Column(Boolean, nullable=False, default=False)
    action_required = Column(String(64), nullable=True)
    action_url = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_notifications_host", "host_id"),)
