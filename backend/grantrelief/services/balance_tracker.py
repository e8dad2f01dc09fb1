"""Opening grant balances derived from an applicant's application history."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from grantrelief.models.application_models import ApplicationRecord
from grantrelief.models.eligibility import FundLimits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriorBalances:
    """Remaining 12-month and lifetime amounts before the next award."""

    twelve_month_remaining: float
    lifetime_remaining: float


def most_recent_application(
    history: Sequence[ApplicationRecord],
) -> Optional[ApplicationRecord]:
    """Return the latest record by submission time, or None for no history.

    Ties on ``submitted_at`` keep the later list position.
    """
    latest: Optional[ApplicationRecord] = None
    for record in history:
        if latest is None or record.submitted_at >= latest.submitted_at:
            latest = record
    return latest


def prior_balances(
    history: Sequence[ApplicationRecord],
    fund_limits: FundLimits,
) -> PriorBalances:
    """Compute the opening balances for an applicant's next application.

    Args:
        history: The applicant's records for a single fund, in any order.
        fund_limits: The fund's configured caps, used when there is no history.

    Returns:
        Fund maximums for a first application, otherwise the post-decision
        balances carried on the most recent record.
    """
    latest = most_recent_application(history)
    if latest is None:
        return PriorBalances(
            twelve_month_remaining=fund_limits.twelve_month_max,
            lifetime_remaining=fund_limits.lifetime_max,
        )

    logger.debug("Seeding balances from application %s", latest.id)
    return PriorBalances(
        twelve_month_remaining=latest.twelve_month_grant_remaining,
        lifetime_remaining=latest.lifetime_grant_remaining,
    )
