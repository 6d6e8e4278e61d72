"""Services package exports."""

from techhive.services.access_service import authorize
from techhive.services.auth_service import (
    AccountRegistry,
    CredentialIssuer,
    TokenAuthenticator,
    TokenRevocationList,
)
from techhive.services.logging_service import configure_logging, get_logger
from techhive.services.user_service import UserService
from techhive.services.user_store import UserStore

__all__ = [
    "AccountRegistry",
    "CredentialIssuer",
    "TokenAuthenticator",
    "TokenRevocationList",
    "UserService",
    "UserStore",
    "authorize",
    "configure_logging",
    "get_logger",
]
