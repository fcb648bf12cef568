"""create internship portal tables

Revision ID: a1c0f2b3d4e5
Revises:
Create Date: 2026-10-17 09:00:00.000000

This migration creates:
1. internship_applications - one row per accepted application
   (email address and university roll number unique)
2. certificates - at most one per application, year-scoped serial numbers
3. rate_limit_events / email_cooldowns - durable throttle state
   (only used when THROTTLE_BACKEND=database)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c0f2b3d4e5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create application, certificate and throttle tables."""
    op.create_table(
        "internship_applications",
        sa.Column("id", sa.Uuid(), nullable=False),
        # Personal information
        sa.Column("student_name", sa.String(length=100), nullable=False),
        sa.Column("father_name", sa.String(length=100), nullable=False),
        sa.Column("mother_name", sa.String(length=100), nullable=False),
        sa.Column("gender", sa.String(length=20), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        # Academic information
        sa.Column("internship_topic", sa.String(length=100), nullable=False),
        sa.Column("course", sa.String(length=100), nullable=True),
        sa.Column("college_name", sa.String(length=200), nullable=False),
        sa.Column("honours_subject", sa.String(length=100), nullable=False),
        sa.Column("current_semester", sa.String(length=50), nullable=False),
        sa.Column("class_roll_no", sa.String(length=50), nullable=False),
        sa.Column("university_name", sa.String(length=200), nullable=True),
        sa.Column("university_roll_number", sa.String(length=50), nullable=False),
        sa.Column("university_registration_number", sa.String(length=50), nullable=False),
        # Contact information
        sa.Column("contact_number", sa.String(length=20), nullable=False),
        sa.Column("whatsapp_number", sa.String(length=20), nullable=True),
        sa.Column("email_address", sa.String(length=254), nullable=False),
        # Images (URL or data URL)
        sa.Column("photo", sa.Text(), nullable=True),
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email_address"),
        sa.UniqueConstraint("university_roll_number"),
    )
    op.create_index(
        "ix_internship_applications_created_at",
        "internship_applications",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "certificates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("application_id", sa.Uuid(), nullable=False),
        sa.Column("serial_number", sa.String(length=50), nullable=False),
        sa.Column("serial_year", sa.Integer(), nullable=False),
        sa.Column("serial_sequence", sa.Integer(), nullable=False),
        sa.Column("rts_reg_number", sa.String(length=100), nullable=False),
        sa.Column("marks", sa.Integer(), nullable=False),
        sa.Column("grade", sa.String(length=30), nullable=False),
        sa.Column("grade_point", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("certificate_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["application_id"],
            ["internship_applications.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id"),
        sa.UniqueConstraint("serial_number"),
        sa.UniqueConstraint(
            "serial_year", "serial_sequence", name="uq_certificates_serial_year_seq"
        ),
    )

    op.create_table(
        "rate_limit_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rate_limit_events_key", "rate_limit_events", ["key"], unique=False)

    op.create_table(
        "email_cooldowns",
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("last_submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("email"),
    )


def downgrade() -> None:
    """Drop all portal tables."""
    op.drop_table("email_cooldowns")
    op.drop_index("ix_rate_limit_events_key", table_name="rate_limit_events")
    op.drop_table("rate_limit_events")
    op.drop_table("certificates")
    op.drop_index(
        "ix_internship_applications_created_at", table_name="internship_applications"
    )
    op.drop_table("internship_applications")
