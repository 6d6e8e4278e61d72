"""Authentication models: accounts, principals and login payloads."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from techhive.models.user import CamelModel, Role


class CredentialKind(str, Enum):
    """How a principal proved its identity."""

    JWT = "jwt"
    API_KEY = "api-key"


class Account(BaseModel):
    """An entry in the credential registry."""

    id: str
    name: str
    email: str
    role: Role
    password_hash: str


class Principal(CamelModel):
    """The authenticated identity attached to a request.

    Attributes:
        id: Subject identifier
        email: Subject email
        role: Role used for authorization decisions
        kind: Credential that authenticated the request
        issued_at: Token ``iat`` (signed tokens only)
        expires_at: Token ``exp`` (signed tokens only)
    """

    id: str
    email: str
    role: Role
    kind: CredentialKind
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    """Login credentials. Presence is checked by the credential issuer."""

    email: Optional[str] = None
    password: Optional[str] = None


class AccountSummary(CamelModel):
    """Public fields of an account returned on login."""

    id: str
    name: str
    email: str
    role: Role


class LoginResult(CamelModel):
    """Successful login payload.

    Attributes:
        token: Signed bearer token
        user: Public fields of the authenticated account
        token_type: Always "Bearer"
        expires_in: Token lifetime in seconds
    """

    token: str
    user: AccountSummary
    token_type: str = "Bearer"
    expires_in: int
