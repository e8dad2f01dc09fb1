"""
Deterministic Eligibility Rules Engine

Evaluates a submitted relief application against the program rules and
produces an approve/deny/review decision with an itemized audit trail.

Rules (evaluated in this order, one policy hit each):
- R1 Event presence: a named event, or the free-text name for "other"
- R2 Recency window: event date within [today - 90 days, today]
- R3 Tenure ordering: employment started on or before the event
- R4 Balance sufficiency: 0 < requested <= 12-month and lifetime remaining
- R5 Absolute cap: requested <= the fund's single-request maximum
- R6 Conditional completeness: evacuation / power-loss details (Review)
- R7 Normalization: power-loss days forced to 0 when power loss is "No"

The decision starts at Approved and can only get worse as rules fail.
R6 is skipped once the application is Denied, so Denied always wins over
Review.  The function is pure: identical inputs and ``today`` give an
identical decision.
"""

import logging
import math
from datetime import date, timedelta
from typing import List, Optional

from grantrelief.fund_config import OTHER_EVENT
from grantrelief.models.eligibility import (
    EligibilityDecision,
    EligibilityInput,
    EventSubmission,
    NormalizedEvent,
    PolicyHit,
    round_to_cents,
)

logger = logging.getLogger(__name__)


# ============================================================================
# RULE PARAMETERS
# ============================================================================

RECENCY_WINDOW_DAYS = 90
DEFAULT_SINGLE_REQUEST_MAX = 10000.0

DEFAULT_APPROVAL_REASON = "Application meets all automatic approval criteria."


# ============================================================================
# HELPERS
# ============================================================================


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` (or full ISO timestamp) string into a date.

    Returns:
        The calendar date, or None when the value is empty or malformed
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except (ValueError, AttributeError):
        return None


def normalize_event_name(event_data: EventSubmission) -> str:
    """Resolve the event name, using the free-text name for "other"."""
    if event_data.event == OTHER_EVENT:
        return (event_data.other_event or "").strip()
    return (event_data.event or "").strip()


def _money(amount: float) -> str:
    return f"${amount:.2f}"


def _missing_evacuation_fields(event_data: EventSubmission) -> List[str]:
    missing = []
    if not event_data.evacuating_from_primary:
        missing.append("evacuating from primary residence")
    elif event_data.evacuating_from_primary == "No" and not (
        event_data.evacuation_reason or ""
    ).strip():
        missing.append("evacuation reason")
    if not event_data.stayed_with_family_or_friend:
        missing.append("stayed with family or friend")
    if parse_iso_date(event_data.evacuation_start_date) is None:
        missing.append("evacuation start date")
    if not event_data.evacuation_nights or event_data.evacuation_nights <= 0:
        missing.append("number of nights")
    return missing


# ============================================================================
# ENGINE
# ============================================================================


def evaluate_application_eligibility(
    application: EligibilityInput,
    today: Optional[date] = None,
) -> EligibilityDecision:
    """
    Run the deterministic rules against one application.

    Args:
        application: Normalized application plus opening balances and cap
        today: Evaluation date (defaults to the current date)

    Returns:
        EligibilityDecision with reasons, policy hits, recommended award
        and post-award balances
    """
    today = today or date.today()
    window_start = today - timedelta(days=RECENCY_WINDOW_DAYS)

    event_data = application.event_data
    twelve_month_remaining = application.current_twelve_month_remaining
    lifetime_remaining = application.current_lifetime_remaining
    single_request_max = (
        application.single_request_max
        if application.single_request_max is not None
        else DEFAULT_SINGLE_REQUEST_MAX
    )

    policy_hits: List[PolicyHit] = []
    reasons: List[str] = []
    decision = "Approved"

    event_date_str = event_data.event_date or ""
    event_date = parse_iso_date(event_data.event_date)
    requested_amount = float(event_data.requested_amount or 0)
    normalized_event = normalize_event_name(event_data)

    # R1 - event presence
    if not normalized_event:
        decision = "Denied"
        reasons.append(
            "An event type must be selected. If "
            f"'{OTHER_EVENT}' is chosen, the specific event must be provided."
        )
        policy_hits.append(PolicyHit(
            rule_id="R1",
            passed=False,
            detail=(
                f"Event field ('{event_data.event}', other: "
                f"'{event_data.other_event or ''}') resulted in an empty event name."
            ),
        ))
    else:
        policy_hits.append(PolicyHit(
            rule_id="R1", passed=True, detail=f"Event specified as '{normalized_event}'."
        ))

    # R2 - recency window
    if event_date is None or event_date < window_start or event_date > today:
        decision = "Denied"
        reasons.append(
            f"Event date is older than {RECENCY_WINDOW_DAYS} days or invalid. "
            f"Event must be between {window_start.isoformat()} and today."
        )
        policy_hits.append(PolicyHit(
            rule_id="R2",
            passed=False,
            detail=(
                f"Event date '{event_date_str}' is outside the {RECENCY_WINDOW_DAYS}-day "
                f"window {window_start.isoformat()} to {today.isoformat()}."
            ),
        ))
    else:
        policy_hits.append(PolicyHit(
            rule_id="R2", passed=True, detail=f"Event date '{event_date_str}' is recent."
        ))

    # R3 - tenure ordering
    employment_start = parse_iso_date(application.employment_start_date)
    if employment_start is None or (event_date is not None and employment_start > event_date):
        decision = "Denied"
        reasons.append("Employment start date is invalid or after the event date.")
        policy_hits.append(PolicyHit(
            rule_id="R3",
            passed=False,
            detail=(
                f"Employment start date '{application.employment_start_date or ''}' "
                f"is invalid or after event date '{event_date_str}'."
            ),
        ))
    else:
        policy_hits.append(PolicyHit(
            rule_id="R3", passed=True, detail="Employment start date is valid."
        ))

    # R4 - balance sufficiency; every comparison against NaN is False
    if not math.isfinite(requested_amount):
        decision = "Denied"
        reasons.append("Requested amount must be a valid number.")
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=False,
            detail=f"Requested amount '{requested_amount}' is not a finite number.",
        ))
    elif not (math.isfinite(twelve_month_remaining) and math.isfinite(lifetime_remaining)):
        decision = "Denied"
        reasons.append("Remaining grant balances could not be determined.")
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=False,
            detail=(
                f"Remaining balances '{twelve_month_remaining}' (12-month) and "
                f"'{lifetime_remaining}' (lifetime) are not finite numbers."
            ),
        ))
    elif requested_amount <= 0:
        decision = "Denied"
        reasons.append("Requested amount must be greater than zero.")
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=False,
            detail=f"Requested amount of {_money(requested_amount)} is not greater than zero.",
        ))
    elif requested_amount > twelve_month_remaining:
        decision = "Denied"
        reasons.append(
            f"Requested amount of {_money(requested_amount)} exceeds the remaining "
            f"12-month limit of {_money(twelve_month_remaining)}."
        )
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=False,
            detail=(
                f"Requested amount {_money(requested_amount)} exceeds 12-month "
                f"limit {_money(twelve_month_remaining)}."
            ),
        ))
    elif requested_amount > lifetime_remaining:
        decision = "Denied"
        reasons.append(
            f"Requested amount of {_money(requested_amount)} exceeds the remaining "
            f"lifetime limit of {_money(lifetime_remaining)}."
        )
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=False,
            detail=(
                f"Requested amount {_money(requested_amount)} exceeds lifetime "
                f"limit {_money(lifetime_remaining)}."
            ),
        ))
    else:
        policy_hits.append(PolicyHit(
            rule_id="R4",
            passed=True,
            detail=f"Requested amount {_money(requested_amount)} is within remaining balances.",
        ))

    # R5 - absolute cap
    if requested_amount > single_request_max:
        decision = "Denied"
        reasons.append(
            f"Requested amount of {_money(requested_amount)} exceeds the maximum "
            f"single request of {_money(single_request_max)}."
        )
        policy_hits.append(PolicyHit(
            rule_id="R5",
            passed=False,
            detail=(
                f"Requested amount {_money(requested_amount)} exceeds absolute cap "
                f"of {_money(single_request_max)}."
            ),
        ))
    else:
        policy_hits.append(PolicyHit(
            rule_id="R5",
            passed=True,
            detail=f"Requested amount {_money(requested_amount)} is within absolute cap.",
        ))

    # R6 - conditional completeness, never overrides Denied
    if decision != "Denied":
        problems: List[str] = []
        if event_data.evacuated == "Yes":
            missing = _missing_evacuation_fields(event_data)
            if missing:
                reasons.append(
                    "Evacuation was indicated, but required details are missing "
                    f"or invalid: {', '.join(missing)}."
                )
                problems.append(f"evacuation fields missing ({', '.join(missing)})")
        if event_data.power_loss == "Yes":
            if not event_data.power_loss_days or event_data.power_loss_days <= 0:
                reasons.append(
                    "Power loss was indicated, but the number of days without "
                    "power is missing or invalid."
                )
                problems.append(
                    f"power loss days invalid ({event_data.power_loss_days or 'N/A'})"
                )

        if problems:
            decision = "Review"
            policy_hits.append(PolicyHit(
                rule_id="R6",
                passed=False,
                detail="Conditional details incomplete: " + "; ".join(problems) + ".",
            ))
        else:
            policy_hits.append(PolicyHit(
                rule_id="R6", passed=True, detail="Conditional event details are complete."
            ))

    # R7 - stale power-loss days
    normalized_power_loss_days = event_data.power_loss_days or 0
    if event_data.power_loss == "No" and normalized_power_loss_days > 0:
        policy_hits.append(PolicyHit(
            rule_id="R7",
            passed=True,
            detail=(
                f"Power loss was 'No' but power loss days was "
                f"{normalized_power_loss_days}. Coerced to 0."
            ),
        ))
        normalized_power_loss_days = 0

    if not reasons and decision == "Approved":
        reasons.append(DEFAULT_APPROVAL_REASON)

    recommended_award = 0.0
    remaining_12mo = twelve_month_remaining
    remaining_lifetime = lifetime_remaining
    if decision == "Approved":
        recommended_award = round_to_cents(
            min(requested_amount, twelve_month_remaining, lifetime_remaining)
        )
        remaining_12mo = round_to_cents(remaining_12mo - recommended_award)
        remaining_lifetime = round_to_cents(remaining_lifetime - recommended_award)

    logger.debug(
        "Rules decision for application %s: %s (award %.2f, %d policy hits)",
        application.id,
        decision,
        recommended_award,
        len(policy_hits),
    )

    return EligibilityDecision(
        decision=decision,
        reasons=reasons,
        policy_hits=policy_hits,
        recommended_award=recommended_award,
        remaining_12mo=remaining_12mo,
        remaining_lifetime=remaining_lifetime,
        normalized=NormalizedEvent(
            event=normalized_event,
            event_date=event_date.isoformat() if event_date else event_date_str,
            evacuated=event_data.evacuated or "",
            power_loss_days=normalized_power_loss_days,
        ),
        decisioned_date=today.isoformat(),
    )
