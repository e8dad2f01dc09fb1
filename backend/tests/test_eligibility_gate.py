"""
Unit Tests for the Identity/Eligibility Gate

Usage:
    cd backend && pytest tests/test_eligibility_gate.py -v
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from grantrelief.models.identity import FundIdentity
from grantrelief.services.eligibility_gate import (
    SubmissionNotAllowedError,
    ensure_can_apply,
)


def make_identity(**overrides) -> FundIdentity:
    data = {
        "applicant_id": "user-1",
        "fund_code": "E4E",
        "class_verification_status": "passed",
        "eligibility_status": "Eligible",
    }
    data.update(overrides)
    return FundIdentity(**data)


class TestEnsureCanApply:
    def test_verified_eligible_identity_passes(self):
        ensure_can_apply(make_identity(), "E4E")

    def test_fund_code_match_ignores_case(self):
        ensure_can_apply(make_identity(fund_code="e4e"), "E4E")

    def test_missing_identity(self):
        with pytest.raises(SubmissionNotAllowedError, match="No fund identity"):
            ensure_can_apply(None, "E4E")

    @pytest.mark.parametrize("cv_status", ["pending", "failed"])
    def test_class_verification_required(self, cv_status):
        with pytest.raises(SubmissionNotAllowedError, match="Class verification"):
            ensure_can_apply(make_identity(class_verification_status=cv_status), "E4E")

    @pytest.mark.parametrize("eligibility", ["Pending", "Not Eligible"])
    def test_eligible_status_required(self, eligibility):
        with pytest.raises(SubmissionNotAllowedError, match="only eligible applicants"):
            ensure_can_apply(make_identity(eligibility_status=eligibility), "E4E")

    def test_identity_for_other_fund_rejected(self):
        with pytest.raises(SubmissionNotAllowedError, match="not registered with fund JHH"):
            ensure_can_apply(make_identity(), "JHH")
