"""
Relief Grant API Models

Pydantic models for data validation and serialization.
"""

from .eligibility import (
    AdjudicatorVerdict,
    EligibilityDecision,
    EligibilityInput,
    EventSubmission,
    FundLimits,
    NormalizedEvent,
    PolicyHit,
)

from .application_models import (
    Address,
    AgreementData,
    ApplicationFormData,
    ApplicationListResponse,
    ApplicationRecord,
    BalanceResponse,
    ProxyApplicationRequest,
    UserProfile,
)

from .identity import FundIdentity

from .token_usage import TokenContext, TokenEvent
