"""Initial schema: hosts, tier history, activity log, host notifications.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

COVERAGE_STATUSES = ("NONE", "PENDING", "ACTIVE", "INACTIVE", "REJECTED")
TIERS = ("BASIC", "STANDARD", "PREMIUM")


def _status_enum() -> sa.Enum:
    return sa.Enum(*COVERAGE_STATUSES, name="coveragestatus")


def _tier_enum() -> sa.Enum:
    return sa.Enum(*TIERS, name="earningstier")


def upgrade() -> None:
    # ── hosts ─────────────────────────────────────────────────────────
    op.create_table(
        "hosts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("earnings_tier", _tier_enum(), nullable=False),
        sa.Column("commission_rate", sa.Float, nullable=False),
        sa.Column("p2p_status", _status_enum(), nullable=False),
        sa.Column("p2p_provider", sa.String(120), nullable=True),
        sa.Column("p2p_policy_number", sa.String(64), nullable=True),
        sa.Column("p2p_expires_at", sa.Date, nullable=True),
        sa.Column("commercial_status", _status_enum(), nullable=False),
        sa.Column("commercial_provider", sa.String(120), nullable=True),
        sa.Column("commercial_policy_number", sa.String(64), nullable=True),
        sa.Column("commercial_expires_at", sa.Date, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_tier_change", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tier_change_reason", sa.Text, nullable=True),
        sa.Column("tier_change_by", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # At most one ACTIVE track per host
        sa.CheckConstraint(
            "NOT (p2p_status = 'ACTIVE' AND commercial_status = 'ACTIVE')",
            name="ck_hosts_single_active_track",
        ),
    )

    # ── host_tier_changes ─────────────────────────────────────────────
    op.create_table(
        "host_tier_changes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("host_id", sa.String(64), sa.ForeignKey("hosts.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "SUBMITTED",
                "APPROVED",
                "REJECTED",
                "DELETED",
                "SWITCHED",
                name="coverageaction",
            ),
            nullable=False,
        ),
        sa.Column(
            "coverage_kind",
            sa.Enum("P2P", "COMMERCIAL", name="coveragekind"),
            nullable=False,
        ),
        sa.Column("actor", sa.String(255), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "previous_tier",
            postgresql.ENUM(*TIERS, name="earningstier", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "new_tier",
            postgresql.ENUM(*TIERS, name="earningstier", create_type=False),
            nullable=False,
        ),
        sa.Column("previous_commission", sa.Float, nullable=False),
        sa.Column("new_commission", sa.Float, nullable=False),
        sa.Column(
            "p2p_status",
            postgresql.ENUM(*COVERAGE_STATUSES, name="coveragestatus", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "commercial_status",
            postgresql.ENUM(*COVERAGE_STATUSES, name="coveragestatus", create_type=False),
            nullable=False,
        ),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("auto_action", sa.Text, nullable=True),
    )
    op.create_index("idx_tier_changes_host", "host_tier_changes", ["host_id"])

    # ── activity_logs ─────────────────────────────────────────────────
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_activity_entity", "activity_logs", ["entity_id"])
    op.create_index("idx_activity_action", "activity_logs", ["action"])

    # ── host_notifications ────────────────────────────────────────────
    op.create_table(
        "host_notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("host_id", sa.String(64), sa.ForeignKey("hosts.id"), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("response_required", sa.Boolean, nullable=False),
        sa.Column("action_required", sa.String(64), nullable=True),
        sa.Column("action_url", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_notifications_host", "host_notifications", ["host_id"])


def downgrade() -> None:
    op.drop_table("host_notifications")
    op.drop_table("activity_logs")
    op.drop_table("host_tier_changes")
    op.drop_table("hosts")
    op.execute("DROP TYPE IF EXISTS coverageaction")
    op.execute("DROP TYPE IF EXISTS coveragekind")
    op.execute("DROP TYPE IF EXISTS coveragestatus")
    op.execute("DROP TYPE IF EXISTS earningstier")
