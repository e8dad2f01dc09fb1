"""
Integration Tests for the SQLAlchemy Application Repository

Runs SqlApplicationRepository and SqlTokenEventStore against an in-memory
SQLite database (aiosqlite) created from the ORM metadata.

Usage:
    cd backend && pytest tests/test_application_repository.py -v
"""

import asyncio
import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from grantrelief.models.application_models import ApplicationRecord, UserProfile
from grantrelief.models.db import Base
from grantrelief.models.eligibility import PolicyHit
from grantrelief.models.token_usage import TokenContext
from grantrelief.services.application_repository import (
    ApplicationNotFoundError,
    InMemoryApplicationRepository,
    SqlApplicationRepository,
)
from grantrelief.services.token_tracker import SqlTokenEventStore, TokenUsageTracker

BASE_TIME = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# FIXTURES AND TEST DATA FACTORIES
# ============================================================================

def make_record(
    minutes: int = 0,
    applicant_id: str = "user-1",
    fund_code: str = "E4E",
    submitted_by: str = None,
    twelve_month: float = 9000,
) -> ApplicationRecord:
    """Factory function for an application record."""
    return ApplicationRecord(
        id=str(uuid.uuid4()),
        applicant_id=applicant_id,
        fund_code=fund_code,
        profile_snapshot=UserProfile(first_name="Ada", employment_start_date="2019-03-01"),
        submitted_at=BASE_TIME + timedelta(minutes=minutes),
        status="Awarded",
        reasons=["Application meets all automatic approval criteria."],
        policy_hits=[PolicyHit(rule_id="R1", passed=True, detail="Event specified as 'Flood'.")],
        award_amount=1000,
        decisioned_date="2026-06-01",
        twelve_month_grant_remaining=twelve_month,
        lifetime_grant_remaining=49000,
        share_story=True,
        submitted_by=submitted_by or applicant_id,
        event="Flood",
        event_date="2026-05-28",
        requested_amount=1000,
        evacuated="No",
        power_loss="Yes",
        power_loss_days=2,
    )


def with_database(scenario):
    """Run ``scenario(session_factory)`` against a fresh in-memory database."""

    async def runner():
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            return await scenario(factory)
        finally:
            await engine.dispose()

    return asyncio.run(runner())


# ============================================================================
# SqlApplicationRepository
# ============================================================================

class TestSqlApplicationRepository:
    def test_round_trip(self):
        record = make_record()

        async def scenario(factory):
            repo = SqlApplicationRepository(factory)
            await repo.append(record)
            return await repo.get(record.id)

        fetched = with_database(scenario)

        assert fetched == record
        assert fetched.submitted_at.tzinfo is not None

    def test_history_ordered_by_submission_time(self):
        records = [make_record(30, twelve_month=7000), make_record(0), make_record(10, twelve_month=8000)]

        async def scenario(factory):
            repo = SqlApplicationRepository(factory)
            for record in records:
                await repo.append(record)
            history = await repo.list_for_applicant("user-1", "E4E")
            latest = await repo.latest_for_applicant("user-1", "E4E")
            return history, latest

        history, latest = with_database(scenario)

        assert [r.twelve_month_grant_remaining for r in history] == [9000, 8000, 7000]
        assert latest.id == records[0].id

    def test_history_partitioned_by_fund_and_applicant(self):
        async def scenario(factory):
            repo = SqlApplicationRepository(factory)
            await repo.append(make_record(fund_code="JHH"))
            await repo.append(make_record(applicant_id="user-2"))
            return (
                await repo.list_for_applicant("user-1", "E4E"),
                await repo.latest_for_applicant("user-1", "E4E"),
            )

        history, latest = with_database(scenario)
        assert history == []
        assert latest is None

    def test_list_submitted_by(self):
        proxy = make_record(5, submitted_by="admin-1")

        async def scenario(factory):
            repo = SqlApplicationRepository(factory)
            await repo.append(make_record())
            await repo.append(proxy)
            return await repo.list_submitted_by("admin-1")

        assert [r.id for r in with_database(scenario)] == [proxy.id]

    @pytest.mark.parametrize("application_id", [str(uuid.uuid4()), "not-a-uuid"])
    def test_get_missing(self, application_id):
        async def scenario(factory):
            await SqlApplicationRepository(factory).get(application_id)

        with pytest.raises(ApplicationNotFoundError):
            with_database(scenario)


# ============================================================================
# InMemoryApplicationRepository
# ============================================================================

class TestInMemoryApplicationRepository:
    def test_duplicate_id_rejected(self):
        repo = InMemoryApplicationRepository()
        record = make_record()

        async def scenario():
            await repo.append(record)
            await repo.append(record)

        with pytest.raises(ValueError):
            asyncio.run(scenario())

    def test_latest_by_timestamp(self):
        repo = InMemoryApplicationRepository()
        newest = make_record(20, twelve_month=5000)

        async def scenario():
            await repo.append(newest)
            await repo.append(make_record(0))
            return await repo.latest_for_applicant("user-1", "E4E")

        assert asyncio.run(scenario()).id == newest.id


# ============================================================================
# SqlTokenEventStore
# ============================================================================

class TestSqlTokenEventStore:
    def test_events_persisted(self):
        context = TokenContext(user_id="user-1", session_id="decision-1", fund_code="E4E")

        async def scenario(factory):
            store = SqlTokenEventStore(factory)
            tracker = TokenUsageTracker(store, environment="Development", account="Test")
            await tracker.log_event(context, "Final Decision", "gpt-4.1", 1000, 500)
            return await store.list_events("user-1")

        [event] = with_database(scenario)
        assert event.feature == "Final Decision"
        assert event.cost == pytest.approx(0.006)
