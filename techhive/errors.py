"""API error hierarchy.

Every failure the API reports carries an HTTP status and a stable
machine-readable ``code``. Handlers in :mod:`techhive.main` turn these into
the standard response envelope.
"""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import status


class ApiError(Exception):
    """Base class for errors that map directly onto an API response.

    Attributes:
        message: Human-readable message placed in the envelope ``error`` field
        status_code: HTTP status of the response
        code: Stable error code constant
        extra: Additional top-level envelope fields (e.g. ``errors``)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 400
# ---------------------------------------------------------------------------


class ValidationFailed(ApiError):
    """Request payload failed validation; carries every message found."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        super().__init__(message, extra={"errors": self.errors})


class MissingCredentials(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "MISSING_CREDENTIALS"
    default_message = "Email and password are required"


class MissingIdentifier(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "MISSING_IDENTIFIER"
    default_message = "User ID is required"


class InvalidRange(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_RANGE"
    default_message = "Invalid age range"


class InvalidJson(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_JSON"
    default_message = "Invalid JSON format in request body"


class InvalidRole(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_ROLE"
    default_message = "Invalid role. Must be one of: admin, manager, user"


# ---------------------------------------------------------------------------
# 401
# ---------------------------------------------------------------------------


class AuthenticationFailed(ApiError):
    """Base class for every 401 outcome of the authentication pipeline."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class TokenRequired(AuthenticationFailed):
    code = "TOKEN_REQUIRED"
    default_message = (
        "Access token is required. Provide a valid JWT token in Authorization "
        "header or API key in x-api-key header"
    )


class InvalidTokenFormat(AuthenticationFailed):
    code = "INVALID_TOKEN_FORMAT"
    default_message = "Invalid token format. Token must be a valid JWT"


class TokenRevoked(AuthenticationFailed):
    code = "TOKEN_REVOKED"
    default_message = "Token has been revoked"


class InvalidTokenSignature(AuthenticationFailed):
    code = "INVALID_TOKEN_SIGNATURE"
    default_message = "Invalid token signature or malformed token"


class TokenNotYetValid(AuthenticationFailed):
    code = "TOKEN_NOT_ACTIVE"
    default_message = "Token is not yet valid"


class InvalidTokenPayload(AuthenticationFailed):
    code = "INVALID_TOKEN_PAYLOAD"
    default_message = "Invalid token payload. Missing required fields"


class UserNotFound(AuthenticationFailed):
    code = "USER_NOT_FOUND"
    default_message = "User associated with this token no longer exists"


class TokenExpired(AuthenticationFailed):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired. Please login again"


class InvalidApiKey(AuthenticationFailed):
    code = "INVALID_API_KEY"
    default_message = "Invalid API key provided"


class InvalidCredentials(AuthenticationFailed):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class AuthRequired(AuthenticationFailed):
    code = "AUTH_REQUIRED"
    default_message = "Authentication required"


# ---------------------------------------------------------------------------
# 403 / 404 / 409 / 429
# ---------------------------------------------------------------------------


class InsufficientPermissions(ApiError):
    """Caller is authenticated but its role is not allowed on the route."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_PERMISSIONS"

    def __init__(self, required_roles: Iterable[str], user_role: str):
        required = list(required_roles)
        super().__init__(
            f"Access denied. Required roles: {', '.join(required)}. "
            f"Your role: {user_role}",
            extra={"requiredRoles": required, "userRole": user_role},
        )


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource conflict"


class DuplicateEmail(Conflict):
    code = "DUPLICATE_EMAIL"
    default_message = "User with this email already exists"


class RateLimited(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    default_message = "Too many requests. Please try again later"
