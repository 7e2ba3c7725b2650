"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

Creates all initial tables for DevCall:
- Users and roles
- Developer and customer profiles, skills
- Bookings
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_primary", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        sa.CheckConstraint("role IN ('developer', 'customer')", name="ck_user_roles_role"),
    )

    # ==================== PROFILES ====================
    op.create_table(
        "developer_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("full_name", sa.String(200)),
        sa.Column("bio", sa.Text),
        sa.Column("hourly_rate", sa.Numeric(10, 2)),
        sa.Column("location", sa.String(200)),
        sa.Column("education", sa.Text),
        sa.Column("github_profile", sa.String(500)),
        sa.Column("linkedin_profile", sa.String(500)),
        sa.Column("wallet_address", sa.String(200)),
        sa.Column("profile_picture", sa.Text),
        sa.Column("is_available", sa.Boolean, server_default=sa.true(), index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_developer_profiles_rate"),
    )

    op.create_table(
        "customer_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("full_name", sa.String(200)),
        sa.Column("organization", sa.String(200)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False, index=True),
    )

    op.create_table(
        "developer_skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("developer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("developer_profiles.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("skill_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("years_of_experience", sa.Integer, server_default="0"),
        sa.UniqueConstraint("developer_id", "skill_id", name="uq_developer_skills_developer_skill"),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customer_profiles.id"), nullable=False, index=True),
        sa.Column("developer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("developer_profiles.id"), nullable=False, index=True),
        sa.Column("booking_time", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("duration", sa.Numeric(3, 1), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), server_default="upcoming", index=True),
        sa.Column("payment_status", sa.String(20), server_default="pending"),
        sa.Column("call_status", sa.String(20)),
        sa.Column("call_link", sa.Text, nullable=False),
        sa.Column("project_details", postgresql.JSONB, nullable=False),
        sa.Column("transaction_hash", sa.String(200)),
        sa.Column("validation_attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("validation_timestamp", sa.DateTime(timezone=True)),
        sa.Column("payment_validated", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('pending', 'upcoming', 'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'validating', 'pending_payment', 'paid', 'cancelled')",
            name="ck_bookings_payment_status",
        ),
        sa.CheckConstraint(
            "call_status IS NULL OR call_status IN ('completed', 'failed')",
            name="ck_bookings_call_status",
        ),
        sa.CheckConstraint(
            "duration >= 0.5 AND duration <= 4.0",
            name="ck_bookings_duration",
        ),
    )
    op.create_index("ix_bookings_developer_time", "bookings", ["developer_id", "booking_time"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_bookings_developer_time", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("developer_skills")
    op.drop_table("skills")
    op.drop_table("customer_profiles")
    op.drop_table("developer_profiles")
    op.drop_table("user_roles")
    op.drop_table("users")
