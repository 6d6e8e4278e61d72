"""FastAPI dependencies for authentication and authorization."""

from typing import Callable, Optional

import structlog
from fastapi import Depends, Request

from techhive.models.auth import CredentialKind, Principal
from techhive.models.user import Role
from techhive.services.access_service import authorize
from techhive.services.auth_service import (
    CredentialIssuer,
    TokenAuthenticator,
    TokenRevocationList,
    extract_token,
)
from techhive.services.rate_limiter import RateLimiter
from techhive.services.user_service import UserService


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_authenticator(request: Request) -> TokenAuthenticator:
    return request.app.state.authenticator


def get_credential_issuer(request: Request) -> CredentialIssuer:
    return request.app.state.credential_issuer


def get_revocations(request: Request) -> TokenRevocationList:
    return request.app.state.revocations


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def _attach(request: Request, principal: Principal) -> Principal:
    request.state.principal = principal
    if principal.kind is CredentialKind.JWT:
        request.state.access_token = extract_token(request.headers)
    structlog.contextvars.bind_contextvars(
        principal_id=principal.id, principal_role=principal.role.value
    )
    return principal


async def get_current_principal(
    request: Request,
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> Principal:
    """Authenticate the request from its headers.

    Raises:
        AuthenticationFailed: A subclass naming the failed check (401)
    """
    principal = authenticator.authenticate(request.headers)
    return _attach(request, principal)


async def get_optional_principal(
    request: Request,
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> Optional[Principal]:
    """Authenticate only if credentials were sent; None otherwise."""
    principal = authenticator.authenticate_optional(request.headers)
    if principal is None:
        return None
    return _attach(request, principal)


def require_roles(*roles: Role) -> Callable:
    """Build a dependency admitting principals whose role is in ``roles``.

    With no roles, any authenticated principal is admitted.

    Raises:
        InsufficientPermissions: If the principal's role is not admitted (403)
    """

    async def dependency(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        return authorize(principal, roles)

    return dependency
