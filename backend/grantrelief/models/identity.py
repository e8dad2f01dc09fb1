"""Fund identity schemas used by the submission gate."""

from typing import Literal

from pydantic import BaseModel

ClassVerificationStatus = Literal["pending", "passed", "failed"]
EligibilityStatus = Literal["Eligible", "Not Eligible", "Pending"]


class FundIdentity(BaseModel):
    """An applicant's standing with one fund."""

    applicant_id: str
    fund_code: str
    class_verification_status: ClassVerificationStatus = "pending"
    eligibility_status: EligibilityStatus = "Pending"
