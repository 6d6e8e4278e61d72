"""User management API endpoints."""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query, Request, status

from techhive.api.dependencies import (
    get_optional_principal,
    get_user_service,
    require_roles,
)
from techhive.api.responses import success_response
from techhive.errors import InvalidRole, ValidationFailed
from techhive.models.auth import Principal
from techhive.models.user import Role, UserFilters
from techhive.services.user_service import UserService
from techhive.services.validation import (
    parse_age_range,
    validate_create,
    validate_update,
    validate_user_id,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

ANY_ROLE = (Role.ADMIN, Role.MANAGER, Role.USER)
STAFF = (Role.ADMIN, Role.MANAGER)

ENDPOINTS = [
    "GET /users - Get all users with filtering",
    "POST /users - Create new user",
    "GET /users/stats - Get user statistics",
    "GET /users/search?q=term - Search users",
    "GET /users/age?minAge=X&maxAge=Y - Filter by age",
    "GET /users/role/:role - Get users by role",
    "GET /users/:id - Get user by ID",
    "PUT /users/:id - Update user",
    "DELETE /users/:id - Delete user",
    "PATCH /users/:id/toggle-status - Toggle user active status",
]


def _parse_role(raw: str) -> Role:
    if raw not in Role.values():
        raise InvalidRole()
    return Role(raw)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("/test")
async def test_route(request: Request):
    """Smoke-test endpoint; no authentication required."""
    return success_response(
        request,
        {"authentication": "Not required for this endpoint", "endpoints": ENDPOINTS},
        message="TechHive User Management API - User routes working!",
    )


@router.get("/public-info")
async def public_info(
    request: Request,
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    """Public endpoint that validates credentials only when they are sent."""
    message = "Public information endpoint"
    if principal is not None:
        message += " (authentication detected but not required)"
    return success_response(
        request,
        {"authProvided": principal is not None},
        message=message,
    )


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    payload: Any = Body(default=None),
    principal: Principal = Depends(require_roles(*STAFF)),
    service: UserService = Depends(get_user_service),
):
    """Create a user (admin, manager).

    Raises:
        ValidationFailed 400: With every violated field rule
        DuplicateEmail 409: If the email is already used
    """
    user = service.create_user(validate_create(payload))
    logger.info("api_user_created", principal_id=principal.id, user_id=user.id)
    return success_response(
        request,
        user,
        message="User created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
async def list_users(
    request: Request,
    active: Optional[str] = Query(default=None),
    role: Optional[str] = Query(default=None),
    min_age: Optional[str] = Query(default=None, alias="minAge"),
    max_age: Optional[str] = Query(default=None, alias="maxAge"),
    search: Optional[str] = Query(default=None),
    principal: Principal = Depends(require_roles(*ANY_ROLE)),
    service: UserService = Depends(get_user_service),
):
    """List users matching every supplied filter (all roles)."""
    min_value, max_value = parse_age_range(min_age, max_age)
    filters = UserFilters(
        active_only=True if active == "true" else None,
        role=_parse_role(role) if role else None,
        min_age=min_value,
        max_age=max_value,
        search=search if search and search.strip() else None,
    )
    users = service.list_users(filters)
    return success_response(
        request, users, count=len(users), filters=filters.echo()
    )


@router.get("/stats")
async def user_stats(
    request: Request,
    principal: Principal = Depends(require_roles(*STAFF)),
    service: UserService = Depends(get_user_service),
):
    """Aggregate statistics (admin, manager)."""
    return success_response(request, service.stats())


@router.get("/search")
async def search_users(
    request: Request,
    q: Optional[str] = Query(default=None),
    principal: Principal = Depends(require_roles(*ANY_ROLE)),
    service: UserService = Depends(get_user_service),
):
    """Search name or email (all roles).

    Raises:
        ValidationFailed 400: If ``q`` is missing or blank
    """
    if q is None or not q.strip():
        raise ValidationFailed(
            ['Search query parameter "q" is required'],
            message='Search query parameter "q" is required',
        )
    term = q.strip()
    users = service.search_users(term)
    return success_response(request, users, count=len(users), searchQuery=term)


@router.get("/age")
async def users_by_age(
    request: Request,
    min_age: Optional[str] = Query(default=None, alias="minAge"),
    max_age: Optional[str] = Query(default=None, alias="maxAge"),
    principal: Principal = Depends(require_roles(*ANY_ROLE)),
    service: UserService = Depends(get_user_service),
):
    """Users within an age range (all roles).

    Raises:
        InvalidRange 400: If a bound is invalid or min > max
    """
    min_value, max_value = parse_age_range(min_age, max_age)
    users = service.list_users(UserFilters(min_age=min_value, max_age=max_value))
    age_filter = {
        key: value
        for key, value in (("minAge", min_value), ("maxAge", max_value))
        if value is not None
    }
    return success_response(request, users, count=len(users), ageFilter=age_filter)


@router.get("/role/{role}")
async def users_by_role(
    request: Request,
    role: str,
    principal: Principal = Depends(require_roles(*STAFF)),
    service: UserService = Depends(get_user_service),
):
    """Users holding a role (admin, manager).

    Raises:
        InvalidRole 400: If ``role`` is not admin, manager or user
    """
    parsed = _parse_role(role)
    users = service.users_by_role(parsed)
    return success_response(request, users, count=len(users), role=parsed.value)


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------


@router.get("/{user_id}")
async def get_user(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_roles(*ANY_ROLE)),
    service: UserService = Depends(get_user_service),
):
    """Get one user (all roles)."""
    return success_response(request, service.get_user(validate_user_id(user_id)))


@router.put("/{user_id}")
async def update_user(
    request: Request,
    user_id: str,
    payload: Any = Body(default=None),
    principal: Principal = Depends(require_roles(*STAFF)),
    service: UserService = Depends(get_user_service),
):
    """Update the supplied fields of a user (admin, manager)."""
    user_id = validate_user_id(user_id)
    user = service.update_user(user_id, validate_update(payload))
    logger.info("api_user_updated", principal_id=principal.id, user_id=user_id)
    return success_response(request, user, message="User updated successfully")


@router.patch("/{user_id}/toggle-status")
async def toggle_user_status(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_roles(*STAFF)),
    service: UserService = Depends(get_user_service),
):
    """Flip a user's active flag (admin, manager)."""
    user = service.toggle_user_status(validate_user_id(user_id))
    state = "activated" if user.is_active else "deactivated"
    return success_response(request, user, message=f"User {state} successfully")


@router.delete("/{user_id}")
async def delete_user(
    request: Request,
    user_id: str,
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    service: UserService = Depends(get_user_service),
):
    """Delete a user (admin only)."""
    user_id = validate_user_id(user_id)
    service.delete_user(user_id)
    logger.info("api_user_deleted", principal_id=principal.id, user_id=user_id)
    return success_response(request, message="User deleted successfully")
