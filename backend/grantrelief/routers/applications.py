"""Applications router for relief grant submissions.

Provides submission, history and balance endpoints for applicants, plus
proxy submission for administrators.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from grantrelief.deps import (
    _safe_error,
    get_current_user,
    get_submission_service,
    identity_from_user,
    require_admin,
)
from grantrelief.models.application_models import (
    ApplicationFormData,
    ApplicationListResponse,
    ApplicationRecord,
    BalanceResponse,
    ProxyApplicationRequest,
)
from grantrelief.services.application_repository import ApplicationNotFoundError
from grantrelief.services.application_service import ApplicationSubmissionService
from grantrelief.services.eligibility_gate import SubmissionNotAllowedError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["applications"])


def _fund_code_for(current_user: dict, fund_code: Optional[str]) -> str:
    code = fund_code or current_user.get("fund_code")
    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="fund_code is required",
        )
    return code


# ---------------------------------------------------------------------------
# POST  /me/applications
# ---------------------------------------------------------------------------


@router.post(
    "/me/applications",
    response_model=ApplicationRecord,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application(
    body: ApplicationFormData,
    current_user: dict = Depends(get_current_user),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """Submit an application against the caller's active fund identity.

    Args:
        body: Profile, event and consent sections of the form.
        current_user: Authenticated user (injected).
        service: Submission pipeline (injected).

    Returns:
        The persisted ApplicationRecord with its final decision.

    Raises:
        HTTPException 403: The identity gate rejected the caller.
    """
    identity = identity_from_user(current_user)
    fund_code = current_user.get("fund_code") or ""
    try:
        record = await service.submit(
            applicant_id=current_user["id"],
            fund_code=fund_code,
            form=body,
            identity=identity,
        )
    except SubmissionNotAllowedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        ) from e
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("submitting application", e),
        ) from e

    return record


# ---------------------------------------------------------------------------
# GET  /me/applications
# ---------------------------------------------------------------------------


@router.get("/me/applications", response_model=ApplicationListResponse)
async def list_my_applications(
    fund_code: Optional[str] = Query(None, description="Fund code (defaults to active identity)"),
    current_user: dict = Depends(get_current_user),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """List the caller's applications for one fund, oldest first."""
    code = _fund_code_for(current_user, fund_code)
    try:
        applications = await service.list_history(current_user["id"], code)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("listing applications", e),
        ) from e

    return ApplicationListResponse(applications=applications, total=len(applications))


# ---------------------------------------------------------------------------
# GET  /me/balances
# ---------------------------------------------------------------------------


@router.get("/me/balances", response_model=BalanceResponse)
async def get_my_balances(
    fund_code: Optional[str] = Query(None, description="Fund code (defaults to active identity)"),
    current_user: dict = Depends(get_current_user),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """Opening 12-month and lifetime balances for the caller's next application."""
    code = _fund_code_for(current_user, fund_code)
    try:
        return await service.current_balances(current_user["id"], code)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("fetching balances", e),
        ) from e


# ---------------------------------------------------------------------------
# POST  /admin/proxy-applications
# ---------------------------------------------------------------------------


@router.post(
    "/admin/proxy-applications",
    response_model=ApplicationRecord,
    status_code=status.HTTP_201_CREATED,
)
async def submit_proxy_application(
    body: ProxyApplicationRequest,
    current_user: dict = Depends(require_admin),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """Submit an application on behalf of an applicant.

    The admin is recorded as the submitter; the applicant's own history
    seeds the opening balances.
    """
    try:
        record = await service.submit_proxy(
            admin_id=current_user["id"],
            applicant_id=body.applicant_id,
            fund_code=body.fund_code,
            form=body,
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("submitting proxy application", e),
        ) from e

    return record


# ---------------------------------------------------------------------------
# GET  /admin/proxy-applications
# ---------------------------------------------------------------------------


@router.get("/admin/proxy-applications", response_model=ApplicationListResponse)
async def list_proxy_applications(
    current_user: dict = Depends(require_admin),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """List applications the calling admin submitted on others' behalf."""
    try:
        applications = await service.list_proxy_submissions(current_user["id"])
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("listing proxy applications", e),
        ) from e

    return ApplicationListResponse(applications=applications, total=len(applications))


# ---------------------------------------------------------------------------
# GET  /applications/{application_id}
# ---------------------------------------------------------------------------


@router.get("/applications/{application_id}", response_model=ApplicationRecord)
async def get_application(
    application_id: str,
    current_user: dict = Depends(get_current_user),
    service: ApplicationSubmissionService = Depends(get_submission_service),
):
    """Get one application; visible to its applicant and to admins.

    Raises:
        HTTPException 404: Application not found (or not visible to caller).
    """
    try:
        record = await service.get_application(application_id)
    except ApplicationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found",
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_safe_error("fetching application", e),
        ) from e

    if current_user.get("role") != "admin" and record.applicant_id != current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found",
        )
    return record
