"""Authentication: credential registry, token issuing and token checking."""

import secrets
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Mapping, NamedTuple, Optional

import bcrypt
import jwt
import structlog

from techhive.config import Settings
from techhive.errors import (
    InvalidApiKey,
    InvalidCredentials,
    InvalidTokenFormat,
    InvalidTokenPayload,
    InvalidTokenSignature,
    MissingCredentials,
    TokenExpired,
    TokenNotYetValid,
    TokenRequired,
    TokenRevoked,
    UserNotFound,
)
from techhive.models.auth import (
    Account,
    AccountSummary,
    CredentialKind,
    LoginResult,
    Principal,
)
from techhive.models.user import Role

logger = structlog.get_logger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
BEARER_PREFIX = "Bearer "
API_KEY_HEADER = "x-api-key"
ACCESS_TOKEN_HEADER = "x-access-token"
API_KEY_PRINCIPAL_ID = "api-key-user"
API_KEY_PRINCIPAL_EMAIL = "api@techhive.com"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountSeed(NamedTuple):
    id: str
    name: str
    email: str
    password: str
    role: Role


DEFAULT_ACCOUNTS = (
    AccountSeed("1", "Admin User", "admin@techhive.com", "admin123", Role.ADMIN),
    AccountSeed("2", "Manager User", "manager@techhive.com", "manager123", Role.MANAGER),
    AccountSeed("3", "Regular User", "user@techhive.com", "user123", Role.USER),
)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain-text password to hash
        rounds: bcrypt work factor

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(
        password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )


class AccountRegistry:
    """Fixed registry of accounts that may log in."""

    def __init__(self, accounts: Iterable[Account]):
        self._lock = threading.Lock()
        self._by_id: dict[str, Account] = {a.id: a for a in accounts}

    @classmethod
    def from_seeds(
        cls, seeds: Iterable[AccountSeed] = DEFAULT_ACCOUNTS, rounds: int = 12
    ) -> "AccountRegistry":
        """Build a registry, hashing each seed's plain-text password."""
        return cls(
            Account(
                id=seed.id,
                name=seed.name,
                email=seed.email,
                role=seed.role,
                password_hash=hash_password(seed.password, rounds),
            )
            for seed in seeds
        )

    def find_by_email(self, email: str) -> Optional[Account]:
        wanted = email.strip().lower()
        with self._lock:
            for account in self._by_id.values():
                if account.email.lower() == wanted:
                    return account
        return None

    def resolve(self, account_id: str, email: str) -> Optional[Account]:
        """Return the account only if both id and email still match."""
        with self._lock:
            account = self._by_id.get(account_id)
        if account is None or account.email.lower() != email.lower():
            return None
        return account

    def remove(self, account_id: str) -> bool:
        with self._lock:
            return self._by_id.pop(account_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)


class TokenRevocationList:
    """Process-lifetime set of revoked tokens. Entries are never evicted."""

    def __init__(self):
        self._lock = threading.Lock()
        self._revoked: set[str] = set()

    def revoke(self, token: str) -> None:
        with self._lock:
            self._revoked.add(token)
        logger.info("token_revoked", revoked_count=len(self))

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)


class CredentialIssuer:
    """Authenticates email/password pairs and mints signed tokens."""

    def __init__(
        self,
        settings: Settings,
        accounts: AccountRegistry,
        clock: Clock = _utcnow,
    ):
        self.settings = settings
        self.accounts = accounts
        self._clock = clock

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self.settings.jwt_expire_hours * 3600

    def create_access_token(self, account_id: str, email: str, role: Role) -> str:
        """Create a signed JWT access token.

        Args:
            account_id: Subject identifier (placed in 'sub' claim)
            email: Subject email
            role: Subject role

        Returns:
            Encoded JWT string
        """
        now = self._clock()
        payload = {
            "sub": account_id,
            "email": email,
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_in),
            "iss": self.settings.jwt_issuer,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self.settings.jwt_secret, algorithm=JWT_ALGORITHM)
        logger.debug(
            "access_token_created",
            account_id=account_id,
            expires_hours=self.settings.jwt_expire_hours,
        )
        return token

    def login(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        """Exchange an email/password pair for a signed token.

        Raises:
            MissingCredentials: If either value is missing or blank
            InvalidCredentials: If no account matches the pair
        """
        if not email or not email.strip() or not password:
            raise MissingCredentials()

        account = self.accounts.find_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            logger.warning("login_failed")
            raise InvalidCredentials()

        token = self.create_access_token(account.id, account.email, account.role)
        logger.info("user_logged_in", account_id=account.id, role=account.role.value)
        return self._result(token, account)

    def refresh(self, principal: Principal, old_token: Optional[str],
                revocations: TokenRevocationList) -> LoginResult:
        """Issue a new token for a token-authenticated principal and revoke the old one.

        Raises:
            TokenRequired: If the principal did not authenticate with a token
            UserNotFound: If the account disappeared since authentication
        """
        if principal.kind is not CredentialKind.JWT or not old_token:
            raise TokenRequired("Valid token required for refresh")

        account = self.accounts.resolve(principal.id, principal.email)
        if account is None:
            raise UserNotFound()

        token = self.create_access_token(account.id, account.email, account.role)
        revocations.revoke(old_token)
        logger.info("token_refreshed", account_id=account.id)
        return self._result(token, account)

    def _result(self, token: str, account: Account) -> LoginResult:
        return LoginResult(
            token=token,
            user=AccountSummary(
                id=account.id,
                name=account.name,
                email=account.email,
                role=account.role,
            ),
            token_type="Bearer",
            expires_in=self.expires_in,
        )


def extract_token(headers: Mapping[str, str]) -> Optional[str]:
    """Pull a bearer token from ``Authorization`` or ``x-access-token``."""
    auth_header = headers.get("authorization")
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        token = auth_header[len(BEARER_PREFIX):].strip()
        if token:
            return token
    alternate = headers.get(ACCESS_TOKEN_HEADER)
    if alternate and alternate.strip():
        return alternate.strip()
    return None


def has_jwt_structure(token: str) -> bool:
    """True if the token is three non-empty dot-separated segments."""
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


class TokenAuthenticator:
    """Resolves request credentials into a :class:`Principal`.

    Checks run in a fixed order and the first failure wins:

    1. ``x-api-key`` (terminal on mismatch, never falls through)
    2. presence and shape of the bearer token
    3. revocation list
    4. signature, expiry and not-before
    5. required claims
    6. the subject still exists in the account registry
    7. explicit expiry check against the authenticator's clock
    """

    def __init__(
        self,
        settings: Settings,
        accounts: AccountRegistry,
        revocations: TokenRevocationList,
        clock: Clock = _utcnow,
    ):
        self.settings = settings
        self.accounts = accounts
        self.revocations = revocations
        self._clock = clock

    def authenticate(self, headers: Mapping[str, str]) -> Principal:
        """Authenticate a request from its headers.

        Args:
            headers: Case-insensitive header mapping (e.g. Starlette ``Headers``)

        Returns:
            Authenticated Principal

        Raises:
            AuthenticationFailed: A subclass naming the failed check
        """
        api_key = headers.get(API_KEY_HEADER)
        if api_key:
            return self._authenticate_api_key(api_key)

        token = extract_token(headers)
        if token is None:
            raise TokenRequired()
        return self.authenticate_token(token)

    def authenticate_optional(self, headers: Mapping[str, str]) -> Optional[Principal]:
        """Like :meth:`authenticate`, but None when no credentials were sent."""
        if not (
            headers.get(API_KEY_HEADER)
            or headers.get("authorization")
            or headers.get(ACCESS_TOKEN_HEADER)
        ):
            return None
        return self.authenticate(headers)

    def _authenticate_api_key(self, api_key: str) -> Principal:
        if not secrets.compare_digest(
            api_key.encode("utf-8"), self.settings.api_key.encode("utf-8")
        ):
            logger.warning("api_key_rejected")
            raise InvalidApiKey()
        return Principal(
            id=API_KEY_PRINCIPAL_ID,
            email=API_KEY_PRINCIPAL_EMAIL,
            role=Role.ADMIN,
            kind=CredentialKind.API_KEY,
        )

    def authenticate_token(self, token: str) -> Principal:
        """Run the signed-token checks on a raw token string."""
        if not has_jwt_structure(token):
            raise InvalidTokenFormat()

        if self.revocations.is_revoked(token):
            raise TokenRevoked()

        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self.settings.jwt_issuer,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.ImmatureSignatureError:
            raise TokenNotYetValid()
        except jwt.InvalidTokenError as e:
            logger.warning("token_rejected", reason=type(e).__name__)
            raise InvalidTokenSignature()

        subject = payload.get("sub")
        email = payload.get("email")
        role_raw = payload.get("role")
        if not subject or not email or not role_raw or role_raw not in Role.values():
            raise InvalidTokenPayload()

        if self.accounts.resolve(str(subject), str(email)) is None:
            logger.warning("token_subject_missing", account_id=str(subject))
            raise UserNotFound()

        expires_at = _timestamp(payload.get("exp"))
        if expires_at is not None and expires_at < self._clock():
            raise TokenExpired()

        return Principal(
            id=str(subject),
            email=str(email),
            role=Role(role_raw),
            kind=CredentialKind.JWT,
            issued_at=_timestamp(payload.get("iat")),
            expires_at=expires_at,
        )


def _timestamp(value) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None
