"""
Relief Grant API - FastAPI backend for the relief grant decision pipeline
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grantrelief import __version__

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

from grantrelief.routers import applications, health  # noqa: E402

# Initialize FastAPI app
app = FastAPI(
    title="Relief Grant API",
    description="Eligibility decisions and application records for relief grant funds",
    version=__version__,
)

# =============================================================================
# CORS Configuration
# =============================================================================
# Production uses strict HTTPS origins only; development allows localhost.

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

if ENVIRONMENT == "production":
    ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", "").split(",")
    ALLOWED_ORIGINS = []
    for origin in ALLOWED_ORIGINS_RAW:
        origin = origin.strip()
        if not origin:
            continue
        if not origin.startswith("https://") or "localhost" in origin:
            logger.warning("[CORS] Rejecting origin in production: %s", origin)
            continue
        ALLOWED_ORIGINS.append(origin)
else:
    default_origins = "http://localhost:3000,http://localhost:5173"
    ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", default_origins).split(",")
        if origin.strip()
    ]

logger.info("[CORS] Environment: %s, allowed origins: %s", ENVIRONMENT, ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# =============================================================================
# Routers
# =============================================================================
app.include_router(health.router)
app.include_router(applications.router)
