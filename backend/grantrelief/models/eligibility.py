"""Pydantic schemas for the grant eligibility decision pipeline.

Covers the applicant-supplied event facts, fund dollar limits, and the
decision object produced by the rules engine and refined by the AI final
review.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

YesNo = Literal["Yes", "No", ""]
DecisionValue = Literal["Approved", "Denied", "Review"]
FinalDecisionValue = Literal["Approved", "Denied"]


def round_to_cents(amount: float) -> float:
    """Money is stored with two decimal places; keep floats on the same grid."""
    return round(amount, 2)


class FundLimits(BaseModel):
    """Per-fund dollar caps. Immutable program configuration."""

    twelve_month_max: float = Field(10000, ge=0, allow_inf_nan=False)
    lifetime_max: float = Field(50000, ge=0, allow_inf_nan=False)
    single_request_max: float = Field(10000, ge=0, allow_inf_nan=False)

    class Config:
        frozen = True


class EventSubmission(BaseModel):
    """Applicant-supplied facts about one incident.

    Dates are kept as the submitted strings; the rules engine decides
    whether they parse, so a malformed date becomes a Denied decision
    rather than a request error.
    """

    event: str = ""
    other_event: Optional[str] = None
    event_date: Optional[str] = None
    requested_amount: float = Field(0, allow_inf_nan=False)

    evacuated: YesNo = ""
    evacuating_from_primary: YesNo = ""
    evacuation_reason: Optional[str] = None
    stayed_with_family_or_friend: YesNo = ""
    evacuation_start_date: Optional[str] = None
    evacuation_nights: Optional[int] = None

    power_loss: YesNo = ""
    power_loss_days: Optional[int] = None

    additional_details: Optional[str] = Field(None, max_length=10000)

    @field_validator("requested_amount")
    @classmethod
    def requested_amount_in_cents(cls, v: float) -> float:
        return round_to_cents(v)


class PolicyHit(BaseModel):
    """One audit-trail entry: a single rule's outcome and explanation."""

    rule_id: str
    passed: bool
    detail: str


class NormalizedEvent(BaseModel):
    """Cleaned snapshot of the input fields the rules engine relied on."""

    event: str
    event_date: str
    evacuated: str
    power_loss_days: int


class EligibilityInput(BaseModel):
    """Everything the rules engine needs to decide one application."""

    id: str
    employment_start_date: Optional[str] = None
    event_data: EventSubmission
    current_twelve_month_remaining: float = Field(..., allow_inf_nan=False)
    current_lifetime_remaining: float = Field(..., allow_inf_nan=False)
    single_request_max: float = Field(10000, allow_inf_nan=False)


class EligibilityDecision(BaseModel):
    """Outcome of the decision pipeline."""

    decision: DecisionValue
    reasons: List[str] = Field(..., min_length=1)
    policy_hits: List[PolicyHit] = Field(default_factory=list)
    recommended_award: float = Field(0, allow_inf_nan=False)
    remaining_12mo: float = Field(..., allow_inf_nan=False)
    remaining_lifetime: float = Field(..., allow_inf_nan=False)
    normalized: NormalizedEvent
    decisioned_date: str


class AdjudicatorVerdict(BaseModel):
    """Structured reply expected from the AI final reviewer."""

    final_decision: FinalDecisionValue = Field(..., alias="finalDecision")
    final_reason: str = Field(..., alias="finalReason", min_length=1)
    final_award: float = Field(..., alias="finalAward", allow_inf_nan=False)

    class Config:
        populate_by_name = True
