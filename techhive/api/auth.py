"""Authentication API endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request

from techhive.api.dependencies import (
    get_credential_issuer,
    get_current_principal,
    get_rate_limiter,
    get_revocations,
)
from techhive.api.responses import success_response
from techhive.errors import RateLimited
from techhive.models.auth import CredentialKind, LoginRequest, Principal
from techhive.services.auth_service import CredentialIssuer, TokenRevocationList
from techhive.services.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
def login(
    request: Request,
    body: Optional[LoginRequest] = None,
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Login with email and password.

    Declared sync so the bcrypt check runs in the threadpool.

    Returns:
        Envelope with token, user summary, token type and lifetime

    Raises:
        MissingCredentials 400: If email or password is absent
        InvalidCredentials 401: If no account matches
        RateLimited 429: If the rate limiter rejects the caller
    """
    client_key = request.client.host if request.client else "unknown"
    if not limiter.allow(f"login:{client_key}"):
        logger.warning("login_rate_limited", client_ip=client_key)
        raise RateLimited()

    body = body or LoginRequest()
    result = issuer.login(body.email, body.password)
    return success_response(request, result, message="Login successful")


@router.post("/logout")
async def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    revocations: TokenRevocationList = Depends(get_revocations),
):
    """Revoke the presented token. API-key callers have nothing to revoke."""
    token = getattr(request.state, "access_token", None)
    if principal.kind is CredentialKind.JWT and token:
        revocations.revoke(token)
    logger.info("user_logged_out", principal_id=principal.id)
    return success_response(request, message="Logged out successfully")


@router.post("/refresh")
async def refresh(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    revocations: TokenRevocationList = Depends(get_revocations),
):
    """Exchange a valid token for a fresh one; the old token is revoked."""
    result = issuer.refresh(
        principal, getattr(request.state, "access_token", None), revocations
    )
    return success_response(request, result, message="Token refreshed successfully")


@router.get("/me")
async def get_me(
    request: Request,
    principal: Principal = Depends(get_current_principal),
):
    """Return the authenticated principal."""
    return success_response(request, principal)
