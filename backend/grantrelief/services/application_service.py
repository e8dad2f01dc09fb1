"""Submission pipeline for relief applications.

One submission runs as a single await-chain:

    gate -> history -> opening balances -> rules engine -> AI final review
         -> record build -> append

Submissions for the same (applicant, fund) pair are serialized so the
"latest record" that seeds the next opening balance is never raced.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from grantrelief.fund_config import Fund, get_fund_by_code, resolve_limits
from grantrelief.models.application_models import (
    AgreementData,
    ApplicationFormData,
    ApplicationRecord,
    ApplicationStatus,
    BalanceResponse,
    UserProfile,
)
from grantrelief.models.eligibility import (
    DecisionValue,
    EligibilityDecision,
    EligibilityInput,
    EventSubmission,
    FundLimits,
)
from grantrelief.models.identity import FundIdentity
from grantrelief.models.token_usage import TokenContext
from grantrelief.services.adjudicator import (
    AdjudicationFallback,
    FinalReviewAdjudicator,
)
from grantrelief.services.application_repository import ApplicationRepository
from grantrelief.services.balance_tracker import prior_balances
from grantrelief.services.eligibility_engine import evaluate_application_eligibility
from grantrelief.services.eligibility_gate import ensure_can_apply
from grantrelief.services.token_tracker import new_session_id

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Decision -> status mapping
# ---------------------------------------------------------------------------
STATUS_BY_DECISION: dict[str, ApplicationStatus] = {
    "Approved": "Awarded",
    "Denied": "Declined",
    "Review": "Submitted",
}


def status_from_decision(decision: DecisionValue) -> ApplicationStatus:
    return STATUS_BY_DECISION[decision]


def build_application_record(
    applicant_id: str,
    fund_code: str,
    profile: UserProfile,
    event_data: EventSubmission,
    agreement: AgreementData,
    decision: EligibilityDecision,
    submitted_by: str,
    submitted_at: Optional[datetime] = None,
    application_id: Optional[str] = None,
) -> ApplicationRecord:
    """Merge the final decision with the submitted form into a new record.

    The stored event facts carry the normalized power-loss days, and the
    decision's post-award balances become the record's remaining balances.
    """
    event_fields = event_data.model_dump()
    event_fields["power_loss_days"] = (
        decision.normalized.power_loss_days
        if event_data.power_loss == "No"
        else event_data.power_loss_days
    )

    return ApplicationRecord(
        **event_fields,
        id=application_id or str(uuid.uuid4()),
        applicant_id=applicant_id,
        fund_code=fund_code,
        profile_snapshot=profile.model_copy(deep=True),
        submitted_at=submitted_at or datetime.now(timezone.utc),
        status=status_from_decision(decision.decision),
        reasons=list(decision.reasons),
        policy_hits=list(decision.policy_hits),
        award_amount=decision.recommended_award,
        decisioned_date=decision.decisioned_date,
        twelve_month_grant_remaining=decision.remaining_12mo,
        lifetime_grant_remaining=decision.remaining_lifetime,
        share_story=bool(agreement.share_story),
        receive_additional_info=bool(agreement.receive_additional_info),
        submitted_by=submitted_by,
    )


class ApplicationSubmissionService:
    """Runs the decision pipeline and owns the per-applicant serialization."""

    def __init__(
        self,
        repository: ApplicationRepository,
        adjudicator: FinalReviewAdjudicator,
        fund_lookup: Callable[[Optional[str]], Optional[Fund]] = get_fund_by_code,
    ) -> None:
        self.repository = repository
        self.adjudicator = adjudicator
        self.fund_lookup = fund_lookup
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, str], int] = {}

    # ------------------------------------------------------------------
    # Fund resolution
    # ------------------------------------------------------------------

    def _resolve_fund(self, fund_code: str) -> Tuple[str, FundLimits]:
        fund = self.fund_lookup(fund_code)
        if fund is None:
            logger.warning("Unknown fund %s, using default limits", fund_code)
            return (fund_code or "").strip().upper(), resolve_limits(None)
        return fund.code, resolve_limits(fund)

    @asynccontextmanager
    async def _serialized(self, key: Tuple[str, str]) -> AsyncIterator[None]:
        """Hold the (applicant, fund) lock; drop it once nobody is waiting."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    # ------------------------------------------------------------------
    # submit
    # ------------------------------------------------------------------

    async def submit(
        self,
        applicant_id: str,
        fund_code: str,
        form: ApplicationFormData,
        identity: Optional[FundIdentity],
        session_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ApplicationRecord:
        """Submit an application on the applicant's own behalf.

        Raises:
            SubmissionNotAllowedError: If the identity gate rejects the caller.
        """
        ensure_can_apply(identity, fund_code)
        return await self._process(
            applicant_id=applicant_id,
            fund_code=fund_code,
            form=form,
            submitted_by=applicant_id,
            session_id=session_id,
            today=today,
        )

    async def submit_proxy(
        self,
        admin_id: str,
        applicant_id: str,
        fund_code: str,
        form: ApplicationFormData,
        session_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ApplicationRecord:
        """Submit on behalf of an applicant; the admin is recorded as submitter."""
        logger.info("Proxy submission by %s for applicant %s", admin_id, applicant_id)
        return await self._process(
            applicant_id=applicant_id,
            fund_code=fund_code,
            form=form,
            submitted_by=admin_id,
            session_id=session_id,
            today=today,
        )

    async def _process(
        self,
        applicant_id: str,
        fund_code: str,
        form: ApplicationFormData,
        submitted_by: str,
        session_id: Optional[str],
        today: Optional[date],
    ) -> ApplicationRecord:
        code, limits = self._resolve_fund(fund_code)

        async with self._serialized((applicant_id, code)):
            history = await self.repository.list_for_applicant(applicant_id, code)
            opening = prior_balances(history, limits)

            application_id = str(uuid.uuid4())
            preliminary = evaluate_application_eligibility(
                EligibilityInput(
                    id=application_id,
                    employment_start_date=form.profile_data.employment_start_date,
                    event_data=form.event_data,
                    current_twelve_month_remaining=opening.twelve_month_remaining,
                    current_lifetime_remaining=opening.lifetime_remaining,
                    single_request_max=limits.single_request_max,
                ),
                today=today,
            )

            outcome = await self.adjudicator.review(
                form.event_data,
                opening.twelve_month_remaining,
                opening.lifetime_remaining,
                preliminary,
                context=TokenContext(
                    user_id=submitted_by,
                    session_id=session_id or new_session_id("decision"),
                    fund_code=code,
                ),
            )
            if isinstance(outcome, AdjudicationFallback):
                logger.warning(
                    "Application %s decided by rules engine only", application_id
                )

            record = build_application_record(
                applicant_id=applicant_id,
                fund_code=code,
                profile=form.profile_data,
                event_data=form.event_data,
                agreement=form.agreement_data,
                decision=outcome.decision,
                submitted_by=submitted_by,
                application_id=application_id,
            )
            await self.repository.append(record)

        logger.info(
            "Application %s recorded with status %s", record.id, record.status
        )
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def current_balances(self, applicant_id: str, fund_code: str) -> BalanceResponse:
        """Opening balances the applicant's next application would start from."""
        code, limits = self._resolve_fund(fund_code)
        latest = await self.repository.latest_for_applicant(applicant_id, code)
        opening = prior_balances([latest] if latest else [], limits)
        return BalanceResponse(
            fund_code=code,
            twelve_month_remaining=opening.twelve_month_remaining,
            lifetime_remaining=opening.lifetime_remaining,
            single_request_max=limits.single_request_max,
        )

    async def list_history(self, applicant_id: str, fund_code: str) -> List[ApplicationRecord]:
        code, _ = self._resolve_fund(fund_code)
        return await self.repository.list_for_applicant(applicant_id, code)

    async def list_proxy_submissions(self, admin_id: str) -> List[ApplicationRecord]:
        records = await self.repository.list_submitted_by(admin_id)
        return [r for r in records if r.applicant_id != admin_id]

    async def get_application(self, application_id: str) -> ApplicationRecord:
        """Raises ApplicationNotFoundError for an unknown id."""
        return await self.repository.get(application_id)
