"""In-memory user store.

Records live in an insertion-ordered dict keyed by id, with a secondary
lower-cased email index. A single lock serializes writes (so the email
uniqueness check and the insert that follows it are one unit) and snapshot
reads. Callers always receive copies of the stored records.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional
from uuid import uuid4

import structlog

from techhive.errors import DuplicateEmail, NotFound
from techhive.models.user import CreateUserRequest, Role, User

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def demo_users() -> list[User]:
    """The sample records the service starts with."""

    def at(day: int) -> datetime:
        return datetime(2025, 1, day, tzinfo=timezone.utc)

    return [
        User(id="1", name="John Doe", email="john@example.com", age=30,
             role=Role.USER, is_active=True, created_at=at(1), updated_at=at(1)),
        User(id="2", name="Jane Smith", email="jane@example.com", age=28,
             role=Role.MANAGER, is_active=True, created_at=at(2), updated_at=at(2)),
        User(id="3", name="Admin User", email="admin@techhive.com", age=35,
             role=Role.ADMIN, is_active=True, created_at=at(1), updated_at=at(1)),
        User(id="4", name="Manager Test", email="manager@techhive.com", age=32,
             role=Role.MANAGER, is_active=False, created_at=at(3), updated_at=at(15)),
        User(id="5", name="Test User", email="test@example.com", age=25,
             role=Role.USER, is_active=True, created_at=at(10), updated_at=at(10)),
    ]


class UserStore:
    """Thread-safe repository of user records."""

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        clock: Clock = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._email_index: dict[str, str] = {}
        self._issued_ids: set[str] = set()
        self._clock = clock
        self._id_factory = id_factory

        for user in users or ():
            self._put(user.model_copy())

    def _put(self, user: User) -> None:
        email = _normalize_email(user.email)
        if email in self._email_index and self._email_index[email] != user.id:
            raise DuplicateEmail()
        self._users[user.id] = user
        self._email_index[email] = user.id
        self._issued_ids.add(user.id)

    def _new_id(self) -> str:
        # Ids are never reused, even after a delete.
        user_id = self._id_factory()
        while user_id in self._issued_ids:
            user_id = self._id_factory()
        return user_id

    def insert(self, request: CreateUserRequest) -> User:
        """Create a user from a validated payload.

        Raises:
            DuplicateEmail: If another user already has the email (any case)
        """
        email = _normalize_email(request.email)
        with self._lock:
            if email in self._email_index:
                logger.warning("user_create_duplicate_email")
                raise DuplicateEmail()

            now = self._clock()
            user = User(
                id=self._new_id(),
                name=request.name.strip(),
                email=email,
                age=request.age,
                role=request.role,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            self._put(user)

        logger.info("user_created", user_id=user.id, role=user.role.value)
        return user.model_copy()

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup by email."""
        with self._lock:
            user_id = self._email_index.get(_normalize_email(email))
            if user_id is None:
                return None
            return self._users[user_id].model_copy()

    def update(self, user_id: str, changes: dict) -> User:
        """Apply ``changes`` to a user and refresh ``updated_at``.

        ``id`` and ``created_at`` are never changed. ``updated_at`` always
        moves strictly forward.

        Raises:
            NotFound: If no user has ``user_id``
            DuplicateEmail: If the new email belongs to another user
        """
        changes = {
            k: v for k, v in changes.items() if k not in {"id", "created_at", "updated_at"}
        }
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "email" in changes:
            changes["email"] = _normalize_email(changes["email"])

        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise NotFound("User")

            old_email = _normalize_email(current.email)
            new_email = changes.get("email", old_email)
            owner = self._email_index.get(new_email)
            if owner is not None and owner != user_id:
                logger.warning("user_update_duplicate_email", user_id=user_id)
                raise DuplicateEmail()

            now = self._clock()
            if now <= current.updated_at:
                now = current.updated_at + timedelta(microseconds=1)

            updated = current.model_copy(update={**changes, "updated_at": now})
            # Round-trip through validation so a bad value can't slip in.
            updated = User.model_validate(updated.model_dump())

            if new_email != old_email:
                del self._email_index[old_email]
            self._users[user_id] = updated
            self._email_index[new_email] = user_id

        logger.info("user_updated", user_id=user_id, fields_updated=sorted(changes))
        return updated.model_copy()

    def toggle_active(self, user_id: str) -> User:
        """Flip ``is_active``; the read and the write happen under one lock.

        Raises:
            NotFound: If no user has ``user_id``
        """
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise NotFound("User")
            return self.update(user_id, {"is_active": not current.is_active})

    def delete(self, user_id: str) -> None:
        """Physically remove a user.

        Raises:
            NotFound: If no user has ``user_id``
        """
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                logger.warning("user_delete_not_found", user_id=user_id)
                raise NotFound("User")
            del self._email_index[_normalize_email(user.email)]

        logger.info("user_deleted", user_id=user_id)

    def all(self) -> list[User]:
        """Snapshot of every user in insertion order."""
        with self._lock:
            return [user.model_copy() for user in self._users.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)
