"""Unit tests for the credential issuer and token authenticator."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from starlette.datastructures import Headers

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
from techhive.models.auth import CredentialKind
from techhive.models.user import Role
from techhive.services.auth_service import (
    JWT_ALGORITHM,
    AccountRegistry,
    CredentialIssuer,
    TokenAuthenticator,
    TokenRevocationList,
    extract_token,
    has_jwt_structure,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret"
API_KEY = "unit-test-api-key"


@pytest.fixture
def settings():
    return Settings(_env_file=None, jwt_secret=SECRET, api_key=API_KEY, bcrypt_rounds=4)


@pytest.fixture
def registry():
    return AccountRegistry.from_seeds(rounds=4)


@pytest.fixture
def revocations():
    return TokenRevocationList()


@pytest.fixture
def issuer(settings, registry):
    return CredentialIssuer(settings, registry)


@pytest.fixture
def authenticator(settings, registry, revocations):
    return TokenAuthenticator(settings, registry, revocations)


def _headers(**values) -> Headers:
    return Headers({k.replace("_", "-"): v for k, v in values.items()})


def _token(payload: dict, secret: str = SECRET) -> str:
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def _claims(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "1",
        "email": "admin@techhive.com",
        "role": "admin",
        "iat": now,
        "exp": now + timedelta(hours=1),
        "iss": "techhive-api",
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_roundtrip(self):
        hashed = hash_password("s3cret", rounds=4)
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)


class TestAccountRegistry:
    """Tests for AccountRegistry lookups."""

    def test_default_accounts(self, registry):
        assert len(registry) == 3
        assert registry.find_by_email("ADMIN@techhive.com").role is Role.ADMIN

    def test_resolve_requires_id_and_email(self, registry):
        assert registry.resolve("1", "admin@techhive.com") is not None
        assert registry.resolve("1", "manager@techhive.com") is None
        assert registry.resolve("99", "admin@techhive.com") is None

    def test_remove(self, registry):
        assert registry.remove("3") is True
        assert registry.remove("3") is False
        assert registry.resolve("3", "user@techhive.com") is None


class TestLogin:
    """Tests for CredentialIssuer.login."""

    def test_login_issues_token(self, issuer, settings):
        result = issuer.login("admin@techhive.com", "admin123")
        assert result.token_type == "Bearer"
        assert result.expires_in == 24 * 3600
        assert result.user.id == "1"
        assert result.user.role is Role.ADMIN

        claims = jwt.decode(result.token, SECRET, algorithms=[JWT_ALGORITHM])
        assert claims["sub"] == "1"
        assert claims["email"] == "admin@techhive.com"
        assert claims["role"] == "admin"
        assert claims["iss"] == settings.jwt_issuer
        assert claims["exp"] - claims["iat"] == 24 * 3600

    @pytest.mark.parametrize(
        "email,password",
        [(None, "admin123"), ("admin@techhive.com", None), ("  ", "x"), ("", "")],
    )
    def test_missing_credentials(self, issuer, email, password):
        with pytest.raises(MissingCredentials) as exc_info:
            issuer.login(email, password)
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "email,password",
        [("admin@techhive.com", "wrong"), ("ghost@techhive.com", "admin123")],
    )
    def test_invalid_credentials_same_message(self, issuer, email, password):
        with pytest.raises(InvalidCredentials) as exc_info:
            issuer.login(email, password)
        assert exc_info.value.message == "Invalid email or password"

    def test_refresh_rotates_token(self, issuer, authenticator, revocations):
        old = issuer.login("manager@techhive.com", "manager123").token
        principal = authenticator.authenticate_token(old)
        result = issuer.refresh(principal, old, revocations)
        assert result.user.id == "2"
        assert revocations.is_revoked(old)
        assert authenticator.authenticate_token(result.token).id == "2"

    def test_refresh_with_api_key_principal(self, issuer, authenticator, revocations):
        principal = authenticator.authenticate(_headers(x_api_key=API_KEY))
        with pytest.raises(TokenRequired):
            issuer.refresh(principal, None, revocations)


class TestTokenHelpers:
    """Tests for token extraction and shape checks."""

    def test_bearer_header(self):
        assert extract_token(_headers(authorization="Bearer abc")) == "abc"

    def test_alternate_header(self):
        assert extract_token(_headers(x_access_token="abc")) == "abc"

    def test_non_bearer_scheme_ignored(self):
        assert extract_token(_headers(authorization="Basic abc")) is None

    def test_empty_bearer_falls_back_to_alternate(self):
        headers = _headers(authorization="Bearer ", x_access_token="alt")
        assert extract_token(headers) == "alt"

    @pytest.mark.parametrize("token,ok", [("a.b.c", True), ("a.b", False), ("a..c", False), ("a.b.c.d", False)])
    def test_structure(self, token, ok):
        assert has_jwt_structure(token) is ok


class TestAuthenticate:
    """Tests for TokenAuthenticator.authenticate, in check order."""

    def test_api_key_authenticates_as_admin(self, authenticator):
        principal = authenticator.authenticate(_headers(x_api_key=API_KEY))
        assert principal.role is Role.ADMIN
        assert principal.kind is CredentialKind.API_KEY
        assert principal.id == "api-key-user"

    def test_api_key_wins_over_bad_bearer(self, authenticator):
        principal = authenticator.authenticate(
            _headers(x_api_key=API_KEY, authorization="Bearer not-a-token")
        )
        assert principal.kind is CredentialKind.API_KEY

    def test_wrong_api_key_does_not_fall_through(self, authenticator, issuer):
        token = issuer.login("admin@techhive.com", "admin123").token
        with pytest.raises(InvalidApiKey):
            authenticator.authenticate(
                _headers(x_api_key="nope", authorization=f"Bearer {token}")
            )

    def test_no_credentials(self, authenticator):
        with pytest.raises(TokenRequired):
            authenticator.authenticate(_headers())

    def test_malformed_token(self, authenticator):
        with pytest.raises(InvalidTokenFormat):
            authenticator.authenticate(_headers(authorization="Bearer abc.def"))

    def test_revoked_token(self, authenticator, issuer, revocations):
        token = issuer.login("user@techhive.com", "user123").token
        revocations.revoke(token)
        with pytest.raises(TokenRevoked):
            authenticator.authenticate(_headers(authorization=f"Bearer {token}"))

    def test_bad_signature(self, authenticator):
        token = _token(_claims(), secret="some-other-secret")
        with pytest.raises(InvalidTokenSignature):
            authenticator.authenticate_token(token)

    def test_wrong_issuer(self, authenticator):
        with pytest.raises(InvalidTokenSignature):
            authenticator.authenticate_token(_token(_claims(iss="someone-else")))

    def test_missing_issuer(self, authenticator):
        claims = _claims()
        del claims["iss"]
        with pytest.raises(InvalidTokenSignature):
            authenticator.authenticate_token(_token(claims))

    def test_garbage_segments(self, authenticator):
        with pytest.raises(InvalidTokenSignature):
            authenticator.authenticate_token("aaa.bbb.ccc")

    def test_expired_token(self, authenticator):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = _token(_claims(iat=past, exp=past + timedelta(hours=1)))
        with pytest.raises(TokenExpired) as exc_info:
            authenticator.authenticate_token(token)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_not_yet_valid(self, authenticator):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        token = _token(_claims(nbf=future))
        with pytest.raises(TokenNotYetValid):
            authenticator.authenticate_token(token)

    @pytest.mark.parametrize("missing", ["sub", "email", "role"])
    def test_missing_claims(self, authenticator, missing):
        claims = _claims()
        del claims[missing]
        with pytest.raises(InvalidTokenPayload):
            authenticator.authenticate_token(_token(claims))

    def test_unknown_role_claim(self, authenticator):
        with pytest.raises(InvalidTokenPayload):
            authenticator.authenticate_token(_token(_claims(role="superuser")))

    def test_subject_no_longer_exists(self, authenticator, issuer, registry):
        token = issuer.login("user@techhive.com", "user123").token
        registry.remove("3")
        with pytest.raises(UserNotFound):
            authenticator.authenticate_token(token)

    def test_subject_email_mismatch(self, authenticator):
        token = _token(_claims(email="someone@techhive.com"))
        with pytest.raises(UserNotFound):
            authenticator.authenticate_token(token)

    def test_explicit_expiry_check_uses_clock(self, settings, registry, revocations):
        late = datetime.now(timezone.utc) + timedelta(days=2)
        authenticator = TokenAuthenticator(
            settings, registry, revocations, clock=lambda: late
        )
        with pytest.raises(TokenExpired):
            authenticator.authenticate_token(_token(_claims()))

    def test_valid_token(self, authenticator, issuer):
        token = issuer.login("manager@techhive.com", "manager123").token
        principal = authenticator.authenticate(_headers(x_access_token=token))
        assert principal.id == "2"
        assert principal.role is Role.MANAGER
        assert principal.kind is CredentialKind.JWT
        assert principal.issued_at is not None
        assert principal.expires_at > principal.issued_at

    def test_optional_without_credentials(self, authenticator):
        assert authenticator.authenticate_optional(_headers()) is None

    def test_optional_with_bad_credentials_still_fails(self, authenticator):
        with pytest.raises(InvalidApiKey):
            authenticator.authenticate_optional(_headers(x_api_key="bad"))


class TestRevocationList:
    def test_revoke(self, revocations):
        assert not revocations.is_revoked("t")
        revocations.revoke("t")
        revocations.revoke("t")
        assert revocations.is_revoked("t")
        assert len(revocations) == 1
