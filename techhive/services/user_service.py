"""User management service: CRUD, filtering, search and statistics."""

from collections import Counter
from typing import Optional

import structlog

from techhive.errors import NotFound
from techhive.models.user import (
    CreateUserRequest,
    Role,
    UpdateUserRequest,
    User,
    UserFilters,
    UserStats,
)
from techhive.services.user_store import UserStore
from techhive.services.validation import check_age_range

logger = structlog.get_logger(__name__)


def matches(user: User, filters: UserFilters) -> bool:
    """True if ``user`` satisfies every constraint present in ``filters``."""
    if filters.active_only and not user.is_active:
        return False
    if filters.role is not None and user.role != filters.role:
        return False
    if filters.min_age is not None and user.age < filters.min_age:
        return False
    if filters.max_age is not None and user.age > filters.max_age:
        return False
    if filters.search:
        term = filters.search.lower()
        if term not in user.name.lower() and term not in user.email.lower():
            return False
    return True


class UserService:
    """Service for user CRUD operations and queries over a :class:`UserStore`."""

    def __init__(self, store: UserStore):
        self.store = store

    def create_user(self, request: CreateUserRequest) -> User:
        """Create a user.

        Raises:
            DuplicateEmail: If the email is already taken (case-insensitive)
        """
        return self.store.insert(request)

    def get_user(self, user_id: str) -> User:
        """Get a user by id.

        Raises:
            NotFound: If no such user exists
        """
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFound("User")
        return user

    def update_user(self, user_id: str, request: UpdateUserRequest) -> User:
        """Apply the fields present in ``request``; omitted fields are untouched."""
        return self.store.update(user_id, request.changes())

    def toggle_user_status(self, user_id: str) -> User:
        """Flip ``is_active`` for a user."""
        updated = self.store.toggle_active(user_id)
        logger.info(
            "user_status_toggled", user_id=user_id, is_active=updated.is_active
        )
        return updated

    def delete_user(self, user_id: str) -> None:
        self.store.delete(user_id)

    def list_users(self, filters: Optional[UserFilters] = None) -> list[User]:
        """Users matching all filters, in insertion order.

        Raises:
            InvalidRange: If the age bounds are negative or inverted
        """
        filters = filters or UserFilters()
        check_age_range(filters.min_age, filters.max_age)
        if filters.search is not None and not filters.search.strip():
            filters = filters.model_copy(update={"search": None})
        return [user for user in self.store.all() if matches(user, filters)]

    def search_users(self, term: Optional[str]) -> list[User]:
        """Case-insensitive substring search on name or email.

        A blank term returns no users rather than all of them.
        """
        if term is None or not term.strip():
            return []
        return self.list_users(UserFilters(search=term.strip()))

    def users_by_role(self, role: Role) -> list[User]:
        return self.list_users(UserFilters(role=role))

    def stats(self) -> UserStats:
        """Recompute aggregate statistics from a snapshot of the store."""
        users = self.store.all()
        total = len(users)
        active = sum(1 for user in users if user.is_active)
        by_role = Counter(user.role.value for user in users)
        average_age = (
            round(sum(user.age for user in users) / total, 2) if total else 0
        )
        return UserStats(
            total=total,
            active=active,
            inactive=total - active,
            by_role=dict(by_role),
            average_age=average_age,
        )
