"""User record models and query value objects."""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys (``isActive``, ``createdAt``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    """Closed set of roles a user or principal can hold."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]


class User(CamelModel):
    """A user record held by the store."""

    id: str
    name: str
    email: str
    age: int = Field(ge=0, le=150)
    role: Role = Role.USER
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class CreateUserRequest(CamelModel):
    """A create payload that passed the validation layer.

    Attributes:
        name: Display name (trimmed length >= 2)
        email: Email address (normalized by the store)
        age: Age in years (0-150)
        role: Role for the new user, defaults to ``user``
    """

    name: str
    email: str
    age: int = Field(ge=0, le=150)
    role: Role = Role.USER


class UpdateUserRequest(CamelModel):
    """An update payload that passed the validation layer.

    Only fields explicitly set (see ``model_fields_set``) are applied.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    def changes(self) -> dict:
        """Return only the fields the caller supplied."""
        return self.model_dump(exclude_unset=True)


class UserFilters(CamelModel):
    """Query constraints for listing users. Absent fields impose nothing."""

    active_only: Optional[bool] = None
    role: Optional[Role] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    search: Optional[str] = None

    def echo(self) -> dict:
        """Filters as echoed back to API consumers."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserStats(CamelModel):
    """Aggregate counts computed from the live store."""

    total: int = 0
    active: int = 0
    inactive: int = 0
    by_role: Dict[str, int] = Field(default_factory=dict)
    average_age: float = 0
