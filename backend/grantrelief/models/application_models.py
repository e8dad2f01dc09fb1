"""Pydantic request/response schemas for relief applications."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from grantrelief.models.eligibility import EventSubmission, PolicyHit, YesNo

ApplicationStatus = Literal["Submitted", "Awarded", "Declined"]


class Address(BaseModel):
    country: str = ""
    street1: str = ""
    street2: Optional[str] = None
    city: str = ""
    state: str = ""
    zip: str = ""


class UserProfile(BaseModel):
    """Applicant profile as captured on the application form."""

    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    suffix: Optional[str] = None
    email: str = ""
    mobile_number: str = ""
    primary_address: Address = Field(default_factory=Address)
    mailing_address: Optional[Address] = None
    employment_start_date: str = ""
    eligibility_type: str = ""
    household_income: Optional[float] = None
    household_size: Optional[int] = None
    homeowner: YesNo = ""
    preferred_language: Optional[str] = None
    fund_code: Optional[str] = None


class AgreementData(BaseModel):
    share_story: Optional[bool] = None
    receive_additional_info: Optional[bool] = None


class ApplicationFormData(BaseModel):
    """Request body for submitting an application."""

    profile_data: UserProfile
    event_data: EventSubmission
    agreement_data: AgreementData = Field(default_factory=AgreementData)


class ProxyApplicationRequest(ApplicationFormData):
    """Admin submission on behalf of an applicant."""

    applicant_id: str = Field(..., min_length=1)
    fund_code: str = Field(..., min_length=1)


class ApplicationRecord(EventSubmission):
    """Persisted application: event facts plus the adjudicated outcome."""

    id: str
    applicant_id: str
    fund_code: str
    profile_snapshot: UserProfile
    submitted_at: datetime
    status: ApplicationStatus
    reasons: List[str]
    policy_hits: List[PolicyHit] = Field(default_factory=list)
    award_amount: float = Field(0, allow_inf_nan=False)
    decisioned_date: str
    twelve_month_grant_remaining: float = Field(..., allow_inf_nan=False)
    lifetime_grant_remaining: float = Field(..., allow_inf_nan=False)
    share_story: bool = False
    receive_additional_info: bool = False
    submitted_by: str

    class Config:
        from_attributes = True

    def event_submission(self) -> EventSubmission:
        """Return just the embedded event facts."""
        return EventSubmission(
            **{name: getattr(self, name) for name in EventSubmission.model_fields}
        )


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationRecord]
    total: int


class BalanceResponse(BaseModel):
    """Opening balances for an applicant's next application."""

    fund_code: str
    twelve_month_remaining: float
    lifetime_remaining: float
    single_request_max: float
