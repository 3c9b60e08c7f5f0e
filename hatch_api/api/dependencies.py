"""
API Dependencies

FastAPI dependency injection for authentication, authorization and services.

Security: JWT tokens are verified cryptographically using Supabase JWKS (ES256)
with HS256 fallback via the JWT secret. Never decode without verification.
Authorization is role-based: ``require_admin`` checks the profile's role
column, and ``verify_admin_api_key`` guards scheduler endpoints.
"""

import logging
import secrets
from typing import Annotated, Optional
from uuid import UUID

import jwt
from jwt import PyJWKClient
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from hatch_api.config.settings import get_settings
from hatch_api.infrastructure.db.dependencies import UserProfileRepoDep
from hatch_api.infrastructure.db.models.user_profile import ROLE_ADMIN, ROLE_USER, UserProfile
from hatch_api.infrastructure.exceptions import ForbiddenError


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# PyJWKClient caches keys internally and refreshes them periodically.
_jwks_client: Optional[PyJWKClient] = None


class AuthenticatedUser(BaseModel):
    """Identity taken from a verified Supabase JWT."""
    id: UUID
    email: Optional[str] = None


def _get_jwks_client() -> PyJWKClient:
    """Return a singleton PyJWKClient for the Supabase JWKS endpoint."""
    global _jwks_client
    if _jwks_client is None:
        settings = get_settings()
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def _decode_with_jwks(token: str, issuer: str) -> dict:
    """Verify JWT using Supabase JWKS endpoint (ES256 asymmetric keys)."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["ES256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _decode_with_secret(token: str, secret: str, issuer: str) -> dict:
    """Verify JWT using HS256 symmetric secret (legacy Supabase signing)."""
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """
    Verify a Supabase JWT and return the caller's identity.

    Verification strategy (in order):
      1. JWKS (ES256), which follows key rotation automatically.
      2. HS256 with ``SUPABASE_JWT_SECRET`` for legacy signing.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise _unauthorized("Missing authorization token")

    token = credentials.credentials
    settings = get_settings()
    issuer = f"{settings.supabase_url}/auth/v1"

    payload: Optional[dict] = None

    try:
        payload = _decode_with_jwks(token, issuer)
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    if payload is None and settings.supabase_jwt_secret:
        try:
            payload = _decode_with_secret(
                token, settings.supabase_jwt_secret, issuer
            )
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise _unauthorized("Invalid or unverifiable token")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user_id = UUID(subject)
    except ValueError:
        raise _unauthorized("Invalid token: malformed user ID")

    email = payload.get("email")
    return AuthenticatedUser(id=user_id, email=email.lower() if email else None)


async def get_current_profile(
    repo: UserProfileRepoDep,
    user: AuthenticatedUser = Depends(get_current_user),
) -> UserProfile:
    """
    Profile of the authenticated user, created on first access.

    A new profile gets the admin role when its email is listed in
    ADMIN_EMAILS; after that only the stored role counts.
    """
    settings = get_settings()
    role = ROLE_ADMIN if user.email and user.email in settings.admin_emails else ROLE_USER
    profile, created = await repo.get_or_create(user.id, email=user.email, role=role)
    if created:
        logger.info(f"[AUTH] Created profile for {user.id} (role={profile.role})")
    return profile


CurrentProfile = Annotated[UserProfile, Depends(get_current_profile)]


async def require_admin(profile: CurrentProfile) -> UserProfile:
    """
    The single admin gate for every /api/admin route.

    Raises:
        ForbiddenError: the caller's role is not admin
    """
    if not profile.is_admin:
        logger.warning(f"[AUTH] Non-admin {profile.id} attempted an admin operation")
        raise ForbiddenError(
            "Admin access required",
            details={"user_id": str(profile.id)},
        )
    return profile


AdminProfile = Annotated[UserProfile, Depends(require_admin)]


async def verify_admin_api_key(
    x_admin_key: str = Header(..., description="Admin API key for scheduled jobs")
) -> bool:
    """
    Verify the X-Admin-Key header used by the external scheduler.

    Raises:
        HTTPException 503: ADMIN_API_KEY is not configured
        HTTPException 403: key mismatch
    """
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    # Constant-time comparison
    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )

    return True


# =============================================================================
# Re-export service dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from hatch_api.infrastructure.db.dependencies import (  # noqa: E402, F401
    AttendanceServiceDep,
    EventServiceDep,
    PaymentServiceDep,
    SessionDep,
    SubscriptionServiceDep,
)
