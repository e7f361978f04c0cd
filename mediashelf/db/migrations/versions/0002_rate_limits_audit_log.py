"""rate limits, admin audit log, invite intended email

Revision ID: 0002_rate_limits_audit
Revises: 0001_initial
Create Date: 2026-02-02
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = "0002_rate_limits_audit"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if "rate_limits" not in tables:
        op.create_table(
            "rate_limits",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(length=400), nullable=False),
            sa.Column("attempts", sa.Integer(), server_default="1", nullable=False),
            sa.Column("first_attempt", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.Column("blocked_until", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
            sa.UniqueConstraint("key", name="rate_limits_key_key"),
        )
        op.create_index("ix_rate_limits_blocked_until", "rate_limits", ["blocked_until"])
        op.create_index("ix_rate_limits_first_attempt", "rate_limits", ["first_attempt"])

    if "admin_audit_log" not in tables:
        op.create_table(
            "admin_audit_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("admin_user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("target_user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True),
            sa.Column("details", JSONB(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        )
        op.create_index("ix_admin_audit_log_admin_user_id", "admin_audit_log", ["admin_user_id"])
        op.create_index("ix_admin_audit_log_target_user_id", "admin_audit_log", ["target_user_id"])
        op.create_index("ix_admin_audit_log_action", "admin_audit_log", ["action"])
        op.create_index("ix_admin_audit_log_created_at", "admin_audit_log", ["created_at"])

    invite_columns = {c["name"] for c in inspector.get_columns("invite_codes")}
    if "intended_email" not in invite_columns:
        op.add_column("invite_codes", sa.Column("intended_email", sa.String(length=320), nullable=True))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    invite_columns = {c["name"] for c in inspector.get_columns("invite_codes")}
    if "intended_email" in invite_columns:
        op.drop_column("invite_codes", "intended_email")

    if "admin_audit_log" in tables:
        op.drop_index("ix_admin_audit_log_created_at", table_name="admin_audit_log")
        op.drop_index("ix_admin_audit_log_action", table_name="admin_audit_log")
        op.drop_index("ix_admin_audit_log_target_user_id", table_name="admin_audit_log")
        op.drop_index("ix_admin_audit_log_admin_user_id", table_name="admin_audit_log")
        op.drop_table("admin_audit_log")

    if "rate_limits" in tables:
        op.drop_index("ix_rate_limits_first_attempt", table_name="rate_limits")
        op.drop_index("ix_rate_limits_blocked_until", table_name="rate_limits")
        op.drop_table("rate_limits")
