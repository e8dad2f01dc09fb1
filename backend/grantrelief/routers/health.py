"""Health-check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from grantrelief.database import async_session_factory
from grantrelief.openai_provider import is_configured

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    """Health check"""
    return {"status": "ok", "message": "Relief Grant API is running"}


@router.get("/api/v1/health")
async def health_check():
    """Liveness plus which optional collaborators are available."""
    capabilities = ["rules_engine"]
    degraded = []

    # Without Azure OpenAI every decision falls back to the rules engine
    if is_configured():
        capabilities.append("ai_final_review")
    else:
        degraded.append("ai_final_review")

    storage = "database" if async_session_factory is not None else "memory"

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "storage": storage,
            "ai": "available" if "ai_final_review" in capabilities else "unavailable",
        },
        "capabilities": capabilities,
        "degraded": degraded if degraded else None,
        "mode": "full" if not degraded else "degraded",
    }
