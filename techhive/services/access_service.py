"""Role-based access decisions."""

from typing import Collection, Optional

from techhive.errors import AuthRequired, InsufficientPermissions
from techhive.models.auth import Principal
from techhive.models.user import Role


def authorize(principal: Optional[Principal], allowed_roles: Collection[Role]) -> Principal:
    """Permit or reject a principal for a route.

    An empty ``allowed_roles`` admits any authenticated principal.

    Args:
        principal: Authenticated principal, or None if the request has none
        allowed_roles: Roles the route admits

    Returns:
        The principal, unchanged, when access is allowed

    Raises:
        AuthRequired: If there is no principal
        InsufficientPermissions: If the principal's role is not admitted
    """
    if principal is None:
        raise AuthRequired()

    if allowed_roles and principal.role not in allowed_roles:
        raise InsufficientPermissions(
            [Role(r).value for r in allowed_roles], principal.role.value
        )

    return principal
