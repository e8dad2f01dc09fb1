"""
Integration Tests for the Applications API Endpoints

Tests the HTTP surface through FastAPI's TestClient with the submission
service swapped for an in-memory instance:
- POST/GET /api/v1/me/applications
- GET /api/v1/me/balances
- POST/GET /api/v1/admin/proxy-applications
- GET /api/v1/applications/{application_id}
- GET /api/v1/health

Usage:
    cd backend && pytest tests/test_applications_api.py -v
"""

import json
import os
import sys
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fastapi.testclient import TestClient

from grantrelief.auth import create_access_token
from grantrelief.deps import get_submission_service
from grantrelief.main import app
from grantrelief.services.adjudicator import (
    AI_REVIEW_FALLBACK_REASON,
    FinalReviewAdjudicator,
)
from grantrelief.services.application_repository import InMemoryApplicationRepository
from grantrelief.services.application_service import ApplicationSubmissionService


# ============================================================================
# FIXTURES AND TEST DATA FACTORIES
# ============================================================================

def make_token(
    user_id: str = "user-1",
    role: str = "user",
    fund_code: str = "E4E",
    class_verification_status: str = "passed",
    eligibility_status: str = "Eligible",
) -> dict:
    token = create_access_token({
        "id": user_id,
        "email": f"{user_id}@example.com",
        "role": role,
        "fund_code": fund_code,
        "class_verification_status": class_verification_status,
        "eligibility_status": eligibility_status,
    })
    return {"Authorization": f"Bearer {token}"}


def make_body(requested_amount: float = 1000, **event_overrides) -> dict:
    event = {
        "event": "Flood",
        "event_date": (date.today() - timedelta(days=3)).isoformat(),
        "requested_amount": requested_amount,
        "evacuated": "No",
        "power_loss": "No",
    }
    event.update(event_overrides)
    return {
        "profile_data": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "employment_start_date": "2019-03-01",
        },
        "event_data": event,
        "agreement_data": {"share_story": False, "receive_additional_info": True},
    }


@pytest.fixture
def client():
    # AI review unavailable: every decision comes from the rules engine
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(side_effect=RuntimeError("offline"))
    service = ApplicationSubmissionService(
        InMemoryApplicationRepository(),
        FinalReviewAdjudicator(client=openai_client, model="gpt-4.1"),
    )
    app.dependency_overrides[get_submission_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============================================================================
# Health
# ============================================================================

class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================================
# Applicant endpoints
# ============================================================================

class TestSubmitApplication:
    def test_requires_authentication(self, client):
        response = client.post("/api/v1/me/applications", json=make_body())
        assert response.status_code == 401

    def test_rejects_bad_token(self, client):
        response = client.post(
            "/api/v1/me/applications",
            json=make_body(),
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_submit_and_decide(self, client):
        response = client.post("/api/v1/me/applications", json=make_body(2500), headers=make_token())

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "Awarded"
        assert data["award_amount"] == 2500
        assert data["twelve_month_grant_remaining"] == 7500
        assert data["lifetime_grant_remaining"] == 47500
        assert data["reasons"][-1] == AI_REVIEW_FALLBACK_REASON
        assert data["submitted_by"] == "user-1"
        assert data["receive_additional_info"] is True

    def test_gate_rejection_is_forbidden(self, client):
        response = client.post(
            "/api/v1/me/applications",
            json=make_body(),
            headers=make_token(eligibility_status="Pending"),
        )
        assert response.status_code == 403

    def test_invalid_payload_is_unprocessable(self, client):
        response = client.post(
            "/api/v1/me/applications",
            json=make_body(evacuated="Maybe"),
            headers=make_token(),
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_amount_is_unprocessable(self, client, literal):
        # json.loads turns these literals into non-finite floats
        raw = json.dumps(make_body(0)).replace(
            '"requested_amount": 0', f'"requested_amount": {literal}'
        )
        headers = {**make_token(), "Content-Type": "application/json"}

        response = client.post("/api/v1/me/applications", content=raw, headers=headers)
        history = client.get("/api/v1/me/applications", headers=make_token()).json()

        assert response.status_code == 422
        assert history["total"] == 0


class TestHistoryAndBalances:
    def test_history_and_balances_follow_submissions(self, client):
        headers = make_token()
        client.post("/api/v1/me/applications", json=make_body(2000), headers=headers)
        client.post("/api/v1/me/applications", json=make_body(500), headers=headers)

        history = client.get("/api/v1/me/applications", headers=headers).json()
        balances = client.get("/api/v1/me/balances", headers=headers).json()

        assert history["total"] == 2
        assert [a["award_amount"] for a in history["applications"]] == [2000, 500]
        assert balances["twelve_month_remaining"] == 7500
        assert balances["lifetime_remaining"] == 47500
        assert balances["single_request_max"] == 10000

    def test_balances_for_other_fund(self, client):
        response = client.get("/api/v1/me/balances?fund_code=jhh", headers=make_token())
        assert response.json()["twelve_month_remaining"] == 5000

    def test_fund_code_required_without_identity(self, client):
        response = client.get("/api/v1/me/balances", headers=make_token(fund_code=None))
        assert response.status_code == 400


# ============================================================================
# Admin proxy endpoints
# ============================================================================

class TestProxyApplications:
    def test_non_admin_forbidden(self, client):
        body = {**make_body(), "applicant_id": "user-1", "fund_code": "E4E"}
        response = client.post("/api/v1/admin/proxy-applications", json=body, headers=make_token())
        assert response.status_code == 403

    def test_admin_submits_on_behalf(self, client):
        admin = make_token(user_id="admin-1", role="admin", fund_code=None)
        body = {**make_body(750), "applicant_id": "user-1", "fund_code": "E4E"}

        created = client.post("/api/v1/admin/proxy-applications", json=body, headers=admin)
        listed = client.get("/api/v1/admin/proxy-applications", headers=admin)
        balances = client.get("/api/v1/me/balances", headers=make_token()).json()

        assert created.status_code == 201
        assert created.json()["applicant_id"] == "user-1"
        assert created.json()["submitted_by"] == "admin-1"
        assert listed.json()["total"] == 1
        assert balances["twelve_month_remaining"] == 9250


# ============================================================================
# Single application
# ============================================================================

class TestGetApplication:
    def test_visibility(self, client):
        created = client.post("/api/v1/me/applications", json=make_body(), headers=make_token()).json()
        url = f"/api/v1/applications/{created['id']}"

        assert client.get(url, headers=make_token()).status_code == 200
        assert client.get(url, headers=make_token(user_id="user-2")).status_code == 404
        assert client.get(url, headers=make_token(user_id="admin-1", role="admin")).status_code == 200

    def test_unknown_application(self, client):
        response = client.get("/api/v1/applications/does-not-exist", headers=make_token())
        assert response.status_code == 404
