"""Validation of incoming user payloads, path ids and query ranges.

Create and update payloads are checked field by field and every problem is
reported at once through :class:`~techhive.errors.ValidationFailed`.
"""

import re
from typing import Any, Optional

from techhive.errors import InvalidRange, MissingIdentifier, ValidationFailed
from techhive.models.user import CreateUserRequest, Role, UpdateUserRequest

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_MIN_LENGTH = 2
AGE_MIN = 0
AGE_MAX = 150

NAME_ERROR = "Name must be at least 2 characters long"
EMAIL_ERROR = "Valid email is required"
AGE_ERROR = "Age must be a number between 0 and 150"
ROLE_ERROR = f"Role must be one of: {', '.join(Role.values())}"
IS_ACTIVE_ERROR = "isActive must be a boolean"

_MISSING = object()


def _valid_name(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) >= NAME_MIN_LENGTH


def _valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def _coerce_age(value: Any) -> Optional[int]:
    """Return the age as an int, or None if it is not a whole number in range."""
    # bool is an int subclass; true/false are not ages
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    age = int(value)
    if age < AGE_MIN or age > AGE_MAX:
        return None
    return age


def _coerce_role(value: Any) -> Optional[Role]:
    if isinstance(value, str) and value in Role.values():
        return Role(value)
    return None


def _require_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationFailed(["Request body must be a JSON object"])
    return payload


def validate_create(payload: Any) -> CreateUserRequest:
    """Validate a create payload.

    Args:
        payload: Decoded JSON body

    Returns:
        CreateUserRequest ready for the store

    Raises:
        ValidationFailed: With every violated rule
    """
    body = _require_object(payload)
    errors: list[str] = []

    name = body.get("name")
    email = body.get("email")
    age = _coerce_age(body.get("age"))
    role_raw = body.get("role", _MISSING)
    role = Role.USER

    if not _valid_name(name):
        errors.append(NAME_ERROR)
    if not _valid_email(email):
        errors.append(EMAIL_ERROR)
    if age is None:
        errors.append(AGE_ERROR)
    if role_raw is not _MISSING and role_raw is not None:
        role = _coerce_role(role_raw)
        if role is None:
            errors.append(ROLE_ERROR)

    if errors:
        raise ValidationFailed(errors)

    return CreateUserRequest(name=name.strip(), email=email.strip(), age=age, role=role)


def validate_update(payload: Any) -> UpdateUserRequest:
    """Validate an update payload; only fields present are checked.

    A field present with ``null`` counts as present and fails its rule.

    Raises:
        ValidationFailed: With every violated rule
    """
    body = _require_object(payload)
    errors: list[str] = []
    fields: dict[str, Any] = {}

    if "name" in body:
        if _valid_name(body["name"]):
            fields["name"] = body["name"].strip()
        else:
            errors.append(NAME_ERROR)

    if "email" in body:
        if _valid_email(body["email"]):
            fields["email"] = body["email"].strip()
        else:
            errors.append(EMAIL_ERROR)

    if "age" in body:
        age = _coerce_age(body["age"])
        if age is None:
            errors.append(AGE_ERROR)
        else:
            fields["age"] = age

    if "role" in body:
        role = _coerce_role(body["role"])
        if role is None:
            errors.append(ROLE_ERROR)
        else:
            fields["role"] = role

    if "isActive" in body:
        if isinstance(body["isActive"], bool):
            fields["is_active"] = body["isActive"]
        else:
            errors.append(IS_ACTIVE_ERROR)

    if errors:
        raise ValidationFailed(errors)

    return UpdateUserRequest(**fields)


def validate_user_id(user_id: Optional[str]) -> str:
    """Return the trimmed path id or raise MissingIdentifier if blank."""
    if user_id is None or not user_id.strip():
        raise MissingIdentifier()
    return user_id.strip()


def _parse_bound(raw: Optional[str], name: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidRange(f"{name} must be a valid number >= 0")
    return int(text)


def parse_age_range(
    min_raw: Optional[str], max_raw: Optional[str]
) -> tuple[Optional[int], Optional[int]]:
    """Parse ``minAge``/``maxAge`` query strings.

    Raises:
        InvalidRange: If a bound is not a non-negative integer or min > max
    """
    min_age = _parse_bound(min_raw, "minAge")
    max_age = _parse_bound(max_raw, "maxAge")
    check_age_range(min_age, max_age)
    return min_age, max_age


def check_age_range(min_age: Optional[int], max_age: Optional[int]) -> None:
    """Raise InvalidRange unless both bounds are >= 0 and min <= max."""
    if min_age is not None and min_age < 0:
        raise InvalidRange("minAge must be a valid number >= 0")
    if max_age is not None and max_age < 0:
        raise InvalidRange("maxAge must be a valid number >= 0")
    if min_age is not None and max_age is not None and min_age > max_age:
        raise InvalidRange("minAge cannot be greater than maxAge")
