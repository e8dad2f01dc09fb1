"""Bearer-token authentication for the relief grant API.

Tokens are issued by the identity provider that owns registration and
class verification; this service only verifies them.  Tokens are HS256
JWTs checked with python-jose and carry the caller's active fund identity:

    sub, email, role ("user" | "admin"), fund_code,
    class_verification_status, eligibility_status

``create_access_token`` exists for local development and tests.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from grantrelief.models.identity import FundIdentity

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWT configuration
# ---------------------------------------------------------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "relief-dev-secret-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_HOURS = 24

# ---------------------------------------------------------------------------
# HTTPBearer scheme
# ---------------------------------------------------------------------------
security = HTTPBearer(auto_error=False)


def create_access_token(user_data: dict[str, Any]) -> str:
    """Create a signed JWT carrying the user's id, role and fund identity."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_data["id"],
        "email": user_data.get("email", ""),
        "role": user_data.get("role", "user"),
        "fund_code": user_data.get("fund_code"),
        "class_verification_status": user_data.get("class_verification_status", "pending"),
        "eligibility_status": user_data.get("eligibility_status", "Pending"),
        "exp": now + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict[str, Any]:
    """FastAPI dependency -- extract and validate the Bearer JWT."""
    token: Optional[str] = None

    if credentials is not None:
        token = credentials.credentials
    else:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    user_id: str = payload.get("sub", "")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    return {
        "id": user_id,
        "email": payload.get("email", ""),
        "role": payload.get("role", "user"),
        "fund_code": payload.get("fund_code"),
        "class_verification_status": payload.get("class_verification_status", "pending"),
        "eligibility_status": payload.get("eligibility_status", "Pending"),
    }


async def require_admin(
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """FastAPI dependency -- the caller must hold the admin role."""
    if current_user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def identity_from_user(user: dict[str, Any]) -> Optional[FundIdentity]:
    """Build the caller's active fund identity from token claims."""
    if not user.get("fund_code"):
        return None
    try:
        return FundIdentity(
            applicant_id=user["id"],
            fund_code=user["fund_code"],
            class_verification_status=user.get("class_verification_status", "pending"),
            eligibility_status=user.get("eligibility_status", "Pending"),
        )
    except ValueError as e:
        logger.warning("Ignoring malformed identity claims for %s: %s", user.get("id"), e)
        return None
