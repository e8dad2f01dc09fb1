"""Create relief_applications and token_events tables.

Revision ID: 0001_relief_applications
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "0001_relief_applications"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- relief_applications ---
    op.create_table(
        "relief_applications",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("applicant_id", sa.Text(), nullable=False),
        sa.Column("fund_code", sa.Text(), nullable=False),
        sa.Column("submitted_by", sa.Text(), nullable=False),
        sa.Column("profile_snapshot", JSONB(), nullable=False),
        sa.Column("event_data", JSONB(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("reasons", JSONB(), nullable=False),
        sa.Column("policy_hits", JSONB(), nullable=True),
        sa.Column("award_amount", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("decisioned_date", sa.Text(), nullable=False),
        sa.Column("twelve_month_grant_remaining", sa.Numeric(12, 2), nullable=False),
        sa.Column("lifetime_grant_remaining", sa.Numeric(12, 2), nullable=False),
        sa.Column("share_story", sa.Boolean(), server_default="false", nullable=False),
        sa.Column(
            "receive_additional_info",
            sa.Boolean(),
            server_default="false",
            nullable=False,
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('Submitted','Awarded','Declined')",
            name="ck_relief_applications_status",
        ),
    )
    op.create_index(
        "idx_relief_applications_applicant_fund",
        "relief_applications",
        ["applicant_id", "fund_code", "submitted_at"],
    )
    op.create_index(
        "idx_relief_applications_submitted_by",
        "relief_applications",
        ["submitted_by"],
    )

    # --- token_events ---
    op.create_table(
        "token_events",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("fund_code", sa.Text(), nullable=True),
        sa.Column("feature", sa.Text(), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("input_tokens", sa.Integer(), server_default="0", nullable=False),
        sa.Column("cached_input_tokens", sa.Integer(), server_default="0", nullable=False),
        sa.Column("output_tokens", sa.Integer(), server_default="0", nullable=False),
        sa.Column("cost", sa.Numeric(12, 6), server_default="0", nullable=False),
        sa.Column("environment", sa.Text(), nullable=False),
        sa.Column("account", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_token_events_user", "token_events", ["user_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("idx_token_events_user", table_name="token_events")
    op.drop_table("token_events")
    op.drop_index("idx_relief_applications_submitted_by", table_name="relief_applications")
    op.drop_index("idx_relief_applications_applicant_fund", table_name="relief_applications")
    op.drop_table("relief_applications")
