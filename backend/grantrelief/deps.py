"""Shared dependencies for the relief grant API routers.

Centralises the submission service singleton, the authentication
dependencies, and small utility helpers so that every router module can
``from grantrelief.deps import …`` without pulling in ``main``.
"""

import logging
from typing import Optional

from grantrelief.auth import get_current_user, identity_from_user, require_admin
from grantrelief.database import async_session_factory
from grantrelief.services.adjudicator import FinalReviewAdjudicator
from grantrelief.services.application_repository import (
    InMemoryApplicationRepository,
    SqlApplicationRepository,
)
from grantrelief.services.application_service import ApplicationSubmissionService
from grantrelief.services.token_tracker import (
    InMemoryTokenEventStore,
    SqlTokenEventStore,
    TokenUsageTracker,
)

logger = logging.getLogger(__name__)

__all__ = [
    "_safe_error",
    "build_submission_service",
    "get_current_user",
    "get_submission_service",
    "identity_from_user",
    "require_admin",
]


# ---------------------------------------------------------------------------
# Small utility helpers
# ---------------------------------------------------------------------------


def _safe_error(operation: str, e: Exception) -> str:
    """Log the full exception but return a safe message without internal details.

    This prevents leaking stack traces, file paths, or database internals
    to API consumers while preserving full diagnostics in server logs.
    """
    logger.exception("Error during %s", operation)
    return f"{operation} failed. Please try again or contact support."


# ---------------------------------------------------------------------------
# Submission service (singleton)
# ---------------------------------------------------------------------------
_submission_service: Optional[ApplicationSubmissionService] = None


def build_submission_service() -> ApplicationSubmissionService:
    """Wire the pipeline against the database when configured, else in memory."""
    if async_session_factory is not None:
        repository = SqlApplicationRepository(async_session_factory)
        token_store = SqlTokenEventStore(async_session_factory)
    else:
        repository = InMemoryApplicationRepository()
        token_store = InMemoryTokenEventStore()

    adjudicator = FinalReviewAdjudicator(tracker=TokenUsageTracker(token_store))
    return ApplicationSubmissionService(repository, adjudicator)


def get_submission_service() -> ApplicationSubmissionService:
    """FastAPI dependency returning the process-wide submission service."""
    global _submission_service
    if _submission_service is None:
        _submission_service = build_submission_service()
    return _submission_service
