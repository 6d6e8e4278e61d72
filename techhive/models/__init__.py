"""Models package exports."""

from techhive.models.auth import (
    Account,
    AccountSummary,
    CredentialKind,
    LoginRequest,
    LoginResult,
    Principal,
)
from techhive.models.response import ApiResponse
from techhive.models.user import (
    CreateUserRequest,
    Role,
    UpdateUserRequest,
    User,
    UserFilters,
    UserStats,
)

__all__ = [
    "Account",
    "AccountSummary",
    "ApiResponse",
    "CreateUserRequest",
    "CredentialKind",
    "LoginRequest",
    "LoginResult",
    "Principal",
    "Role",
    "UpdateUserRequest",
    "User",
    "UserFilters",
    "UserStats",
]
