"""
Authentication Tests

Tests for Supabase JWT validation, profile sync and the FastAPI
identity dependencies.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4
from unittest.mock import Mock, patch

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from verisource.auth import (
    AuthConfig,
    TokenError,
    ensure_profile,
    extract_identity,
    get_auth_config,
    get_current_profile,
    get_profile,
    require_admin,
    resolve_identity,
    verify_access_token,
)
from verisource.database import PlanTier, Profile, UserRole

from tests.conftest import ADMIN_EMAIL, JWT_SECRET


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def auth_config():
    """Create test auth config."""
    return AuthConfig(
        supabase_url="https://test.supabase.co",
        supabase_jwt_secret=JWT_SECRET,
        jwt_algorithm="HS256",
        jwt_audience="authenticated",
        auth_enabled=True,
        **{"__ADMIN_EMAILS_DO_NOT_AUTO_LOAD__": [ADMIN_EMAIL]},
    )


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


# =============================================================================
# JWT VALIDATION TESTS
# =============================================================================

class TestJWTValidation:
    """Tests for JWT token validation."""

    def test_valid_token(self, auth_config, make_token):
        """Test that a valid token is accepted."""
        user_id = uuid4()
        payload = verify_access_token(make_token(user_id=user_id), config=auth_config)

        assert payload["sub"] == str(user_id)
        assert payload["email"] == "user@test.com"

    def test_uses_environment_config(self, make_token):
        """Without an explicit config the cached environment config is used."""
        assert verify_access_token(make_token())["aud"] == "authenticated"

    def test_expired_token(self, auth_config, make_token):
        """Test that expired tokens are rejected."""
        token = make_token(expires_in=timedelta(hours=-1))

        with pytest.raises(TokenError, match="expired"):
            verify_access_token(token, config=auth_config)

    def test_invalid_signature(self, auth_config, make_token):
        """Test that tokens with invalid signatures are rejected."""
        token = make_token(secret="wrong-secret-of-a-sufficient-length")

        with pytest.raises(TokenError, match="signature"):
            verify_access_token(token, config=auth_config)

    def test_invalid_audience(self, auth_config, make_token):
        """Test that tokens with wrong audience are rejected."""
        token = make_token(aud="wrong-audience")

        with pytest.raises(TokenError, match="audience"):
            verify_access_token(token, config=auth_config)

    def test_malformed_token(self, auth_config):
        with pytest.raises(TokenError, match="decode"):
            verify_access_token("not-a-jwt", config=auth_config)

    def test_missing_secret(self, make_token):
        config = AuthConfig(supabase_url="https://test.supabase.co", supabase_jwt_secret="")

        with pytest.raises(TokenError, match="SUPABASE_JWT_SECRET"):
            verify_access_token(make_token(), config=config)

    def test_asymmetric_requires_url(self, make_token):
        config = AuthConfig(supabase_url="", jwt_algorithm="RS256")

        with pytest.raises(TokenError, match="SUPABASE_URL"):
            verify_access_token(make_token(), config=config)


class TestExtractIdentity:
    """Tests for identity extraction from JWT payload."""

    def test_extract_identity(self):
        payload = {
            "sub": "user-123",
            "email": "user@test.com",
            "user_metadata": {"full_name": "Test User", "country": "BD"},
        }

        identity = extract_identity(payload)

        assert identity == {
            "id": "user-123",
            "email": "user@test.com",
            "name": "Test User",
            "country": "BD",
        }

    def test_extract_identity_minimal(self):
        identity = extract_identity({"sub": "user-123"})

        assert identity["id"] == "user-123"
        assert identity["email"] is None
        assert identity["name"] is None


# =============================================================================
# CONFIG TESTS
# =============================================================================

class TestAuthConfig:

    def test_project_ref(self, auth_config):
        assert auth_config.supabase_project_ref == "test"
        assert auth_config.is_configured is True

    def test_admin_emails_from_env(self, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAILS", " a@test.com, b@test.com ,")
        get_auth_config.cache_clear()

        assert get_auth_config().admin_emails == ["a@test.com", "b@test.com"]

    def test_comma_separated_admin_emails_not_auto_loaded(self, monkeypatch):
        """A plain comma list in ADMIN_EMAILS must not reach the env JSON decoder."""
        monkeypatch.setenv("ADMIN_EMAILS", "a@test.com,b@test.com")

        assert AuthConfig().admin_emails == []

    def test_admin_emails_env_resolves_identity(self, db, make_token, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAILS", "boss@test.com,ops@test.com")
        get_auth_config.cache_clear()

        token = make_token(user_id=uuid4(), email="ops@test.com")
        identity = asyncio.run(resolve_identity(credentials=bearer(token), db=db))

        assert identity.user_id is not None
        assert identity.degraded_reason is None
        assert db.get(Profile, identity.user_id).role == UserRole.ADMIN

    def test_anonymous_fallback_defaults_on(self):
        assert get_auth_config().anonymous_fallback_on_auth_failure is True


# =============================================================================
# PROFILE SYNC TESTS
# =============================================================================

class TestProfileSync:
    """Tests for profile creation on first access."""

    def test_creates_free_profile(self, db):
        user_id = uuid4()
        profile = ensure_profile(db, {"sub": str(user_id), "email": "new@test.com"})

        assert profile.id == user_id
        assert profile.plan == PlanTier.FREE
        assert profile.analysis_count == 0
        assert profile.role == UserRole.USER

    def test_admin_email_promoted(self, db):
        profile = ensure_profile(db, {"sub": str(uuid4()), "email": ADMIN_EMAIL})
        assert profile.role == UserRole.ADMIN

    def test_existing_profile_returned(self, db, make_profile):
        existing = make_profile(plan=PlanTier.PRO, analysis_count=7)

        profile = ensure_profile(db, {"sub": str(existing.id), "email": existing.email})

        assert profile.plan == PlanTier.PRO
        assert profile.analysis_count == 7
        assert db.query(Profile).count() == 1

    def test_invalid_subject(self, db):
        with pytest.raises(TokenError, match="valid user id"):
            ensure_profile(db, {"sub": "not-a-uuid", "email": "x@test.com"})

    def test_get_profile(self, db, make_profile):
        existing = make_profile()

        assert get_profile(db, existing.id).email == existing.email
        assert get_profile(db, uuid4()) is None


# =============================================================================
# DEPENDENCY TESTS
# =============================================================================

class TestResolveIdentity:
    """Optional auth used by the analysis endpoint."""

    def test_no_credentials_is_anonymous(self, db):
        identity = asyncio.run(resolve_identity(credentials=None, db=db))

        assert identity.is_anonymous
        assert identity.plan == PlanTier.FREE
        assert identity.degraded_reason is None

    def test_valid_token(self, db, make_profile, make_token):
        profile = make_profile(plan=PlanTier.PRO)
        token = make_token(user_id=profile.id, email=profile.email)

        identity = asyncio.run(resolve_identity(credentials=bearer(token), db=db))

        assert identity.user_id == profile.id
        assert identity.plan == PlanTier.PRO

    def test_invalid_token_downgrades_to_anonymous(self, db, make_token):
        token = make_token(expires_in=timedelta(hours=-1))

        identity = asyncio.run(resolve_identity(credentials=bearer(token), db=db))

        assert identity.is_anonymous
        assert "expired" in identity.degraded_reason

    def test_invalid_token_rejected_when_fallback_off(self, db, make_token, monkeypatch):
        monkeypatch.setenv("ANONYMOUS_FALLBACK_ON_AUTH_FAILURE", "false")
        get_auth_config.cache_clear()

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(resolve_identity(credentials=bearer("garbage"), db=db))

        assert exc_info.value.status_code == 401

    def test_auth_disabled_uses_dev_profile(self, db, monkeypatch):
        monkeypatch.setenv("AUTH_ENABLED", "false")
        get_auth_config.cache_clear()

        identity = asyncio.run(resolve_identity(credentials=None, db=db))

        assert identity.profile.email == "dev@verisource.local"
        assert identity.plan == PlanTier.PRO


class TestStrictAuth:
    """Strict auth used by admin surfaces."""

    def test_missing_credentials(self, db):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(get_current_profile(credentials=None, db=db))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Unauthorized"

    def test_invalid_token_not_downgraded(self, db):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(get_current_profile(credentials=bearer("garbage"), db=db))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid authentication"

    def test_suspended_profile(self, db, make_profile, make_token):
        profile = make_profile(is_suspended=True)
        token = make_token(user_id=profile.id, email=profile.email)

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(get_current_profile(credentials=bearer(token), db=db))

        assert exc_info.value.status_code == 403

    def test_require_admin_rejects_user(self):
        user = Mock(is_admin=False)

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(require_admin(current_profile=user))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Admin access required"

    def test_require_admin_allows_admin(self):
        admin = Mock(is_admin=True)
        assert asyncio.run(require_admin(current_profile=admin)) is admin

    def test_uses_patched_config(self, db, auth_config):
        disabled = auth_config.model_copy(update={"auth_enabled": False})

        with patch("verisource.auth.dependencies.get_auth_config", return_value=disabled):
            profile = asyncio.run(get_current_profile(credentials=None, db=db))

        assert profile.is_admin
