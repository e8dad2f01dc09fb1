"""ReliefApplication ORM model.

Maps to the ``relief_applications`` table.  One row per submission; rows
are append-only and never change status after they are written.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from grantrelief.models.db.base import Base, JSONDocument, TimestampMixin

__all__ = ["ReliefApplication"]


class ReliefApplication(TimestampMixin, Base):
    __tablename__ = "relief_applications"
    __table_args__ = (
        Index(
            "idx_relief_applications_applicant_fund",
            "applicant_id",
            "fund_code",
            "submitted_at",
        ),
        Index("idx_relief_applications_submitted_by", "submitted_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # Ownership
    applicant_id: Mapped[str] = mapped_column(Text, nullable=False)
    fund_code: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_by: Mapped[str] = mapped_column(Text, nullable=False)

    # Snapshots
    profile_snapshot: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    event_data: Mapped[dict] = mapped_column(JSONDocument, nullable=False)

    # Decision
    status: Mapped[str] = mapped_column(Text, nullable=False)
    reasons: Mapped[list] = mapped_column(JSONDocument, nullable=False)
    policy_hits: Mapped[Optional[list]] = mapped_column(JSONDocument, nullable=True)
    award_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0
    )
    decisioned_date: Mapped[str] = mapped_column(Text, nullable=False)
    twelve_month_grant_remaining: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    lifetime_grant_remaining: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )

    # Consent
    share_story: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    receive_additional_info: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
