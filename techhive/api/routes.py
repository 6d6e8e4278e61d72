"""Service-level routes: health and API description."""

from fastapi import APIRouter, Request

from techhive import __version__
from techhive.api.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint.

    Returns:
        Status, version and user count
    """
    store = request.app.state.user_store
    return success_response(
        request,
        {"status": "healthy", "version": __version__, "users": len(store)},
    )


@router.get("/api")
async def api_info(request: Request):
    """Describe the service and its endpoints."""
    return success_response(
        request,
        {
            "name": "TechHive User Management API",
            "version": __version__,
            "endpoints": {
                "auth": {
                    "POST /auth/login": "Authenticate and get a JWT token",
                    "POST /auth/logout": "Revoke the current token",
                    "POST /auth/refresh": "Exchange a token for a fresh one",
                    "GET /auth/me": "Current principal",
                },
                "users": {
                    "GET /users/test": "Test endpoint (public)",
                    "GET /users": "Get all users (authenticated)",
                    "POST /users": "Create user (admin/manager)",
                    "PUT /users/:id": "Update user (admin/manager)",
                    "DELETE /users/:id": "Delete user (admin only)",
                },
            },
        },
    )
