"""API package exports."""

from techhive.api.auth import router as auth_router
from techhive.api.middleware import (
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from techhive.api.routes import router
from techhive.api.users import router as users_router

__all__ = [
    "RequestIdMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "auth_router",
    "router",
    "users_router",
]
