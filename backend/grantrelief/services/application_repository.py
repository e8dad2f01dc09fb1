"""Append-only persistence for relief application records.

Records are keyed by applicant and fund code.  Reads used for balance
seeding always order by ``submitted_at``; nothing relies on insertion
order.
"""

import logging
import uuid
from datetime import timezone
from typing import Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grantrelief.models.application_models import ApplicationRecord, UserProfile
from grantrelief.models.db.relief_application import ReliefApplication
from grantrelief.models.eligibility import EventSubmission, PolicyHit

logger = logging.getLogger(__name__)


class ApplicationNotFoundError(Exception):
    """No application exists with the requested id."""


class ApplicationRepository(Protocol):
    async def append(self, record: ApplicationRecord) -> ApplicationRecord: ...

    async def list_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> List[ApplicationRecord]: ...

    async def latest_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> Optional[ApplicationRecord]: ...

    async def list_submitted_by(self, submitter_id: str) -> List[ApplicationRecord]: ...

    async def get(self, application_id: str) -> ApplicationRecord: ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryApplicationRepository:
    """Process-local store used in tests and when no database is configured."""

    def __init__(self) -> None:
        self._records: Dict[str, ApplicationRecord] = {}

    async def append(self, record: ApplicationRecord) -> ApplicationRecord:
        if record.id in self._records:
            raise ValueError(f"Application {record.id} already exists")
        self._records[record.id] = record
        return record

    async def list_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> List[ApplicationRecord]:
        matches = [
            r
            for r in self._records.values()
            if r.applicant_id == applicant_id and r.fund_code == fund_code
        ]
        return sorted(matches, key=lambda r: r.submitted_at)

    async def latest_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> Optional[ApplicationRecord]:
        history = await self.list_for_applicant(applicant_id, fund_code)
        return history[-1] if history else None

    async def list_submitted_by(self, submitter_id: str) -> List[ApplicationRecord]:
        matches = [r for r in self._records.values() if r.submitted_by == submitter_id]
        return sorted(matches, key=lambda r: r.submitted_at)

    async def get(self, application_id: str) -> ApplicationRecord:
        try:
            return self._records[application_id]
        except KeyError:
            raise ApplicationNotFoundError(application_id) from None


# ---------------------------------------------------------------------------
# SQLAlchemy
# ---------------------------------------------------------------------------


def _to_row(record: ApplicationRecord) -> ReliefApplication:
    return ReliefApplication(
        id=uuid.UUID(record.id),
        applicant_id=record.applicant_id,
        fund_code=record.fund_code,
        submitted_by=record.submitted_by,
        profile_snapshot=record.profile_snapshot.model_dump(),
        event_data=record.event_submission().model_dump(),
        status=record.status,
        reasons=list(record.reasons),
        policy_hits=[hit.model_dump() for hit in record.policy_hits],
        award_amount=record.award_amount,
        decisioned_date=record.decisioned_date,
        twelve_month_grant_remaining=record.twelve_month_grant_remaining,
        lifetime_grant_remaining=record.lifetime_grant_remaining,
        share_story=record.share_story,
        receive_additional_info=record.receive_additional_info,
        submitted_at=record.submitted_at,
    )


def _to_record(row: ReliefApplication) -> ApplicationRecord:
    submitted_at = row.submitted_at
    # SQLite drops tzinfo on the way back
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)

    return ApplicationRecord(
        **EventSubmission.model_validate(row.event_data).model_dump(),
        id=str(row.id),
        applicant_id=row.applicant_id,
        fund_code=row.fund_code,
        profile_snapshot=UserProfile.model_validate(row.profile_snapshot),
        submitted_at=submitted_at,
        status=row.status,
        reasons=list(row.reasons),
        policy_hits=[PolicyHit.model_validate(h) for h in row.policy_hits or []],
        award_amount=float(row.award_amount or 0),
        decisioned_date=row.decisioned_date,
        twelve_month_grant_remaining=float(row.twelve_month_grant_remaining),
        lifetime_grant_remaining=float(row.lifetime_grant_remaining),
        share_story=row.share_story,
        receive_additional_info=row.receive_additional_info,
        submitted_by=row.submitted_by,
    )


class SqlApplicationRepository:
    """Records persisted to the ``relief_applications`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, record: ApplicationRecord) -> ApplicationRecord:
        async with self._session_factory() as session:
            session.add(_to_row(record))
            await session.commit()
        return record

    async def list_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> List[ApplicationRecord]:
        query = (
            select(ReliefApplication)
            .where(
                ReliefApplication.applicant_id == applicant_id,
                ReliefApplication.fund_code == fund_code,
            )
            .order_by(ReliefApplication.submitted_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def latest_for_applicant(
        self, applicant_id: str, fund_code: str
    ) -> Optional[ApplicationRecord]:
        query = (
            select(ReliefApplication)
            .where(
                ReliefApplication.applicant_id == applicant_id,
                ReliefApplication.fund_code == fund_code,
            )
            .order_by(ReliefApplication.submitted_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return _to_record(row) if row is not None else None

    async def list_submitted_by(self, submitter_id: str) -> List[ApplicationRecord]:
        query = (
            select(ReliefApplication)
            .where(ReliefApplication.submitted_by == submitter_id)
            .order_by(ReliefApplication.submitted_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def get(self, application_id: str) -> ApplicationRecord:
        try:
            key = uuid.UUID(application_id)
        except ValueError:
            raise ApplicationNotFoundError(application_id) from None

        async with self._session_factory() as session:
            row = await session.get(ReliefApplication, key)
            if row is None:
                raise ApplicationNotFoundError(application_id)
            return _to_record(row)
