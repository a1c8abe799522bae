"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, profile and token factories, and a fake
detection engine for all test modules.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from verisource.auth.config import get_auth_config
from verisource.database import session as db_session
from verisource.database.models import Base, PlanTier, Profile, UserRole
from verisource.engine.gateway import DetectionEngineGateway, DetectionResult
from verisource.errors import EngineFailure

JWT_SECRET = "super-secret-jwt-key-for-testing"
ADMIN_EMAIL = "admin@test.com"


# ============================================================================
# Environment
# ============================================================================

@pytest.fixture(autouse=True)
def auth_env(monkeypatch):
    """Deterministic auth configuration for every test."""
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("AUTH_ENABLED", "true")
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.delenv("ANONYMOUS_FALLBACK_ON_AUTH_FAILURE", raising=False)
    get_auth_config.cache_clear()
    yield
    get_auth_config.cache_clear()


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite shared across threads and sessions."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    db_session.configure_engine(test_engine)
    yield test_engine
    db_session.configure_engine(None)
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return db_session.get_session_factory()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_profile(db):
    """Factory to create committed profiles."""
    def _create(
        plan: PlanTier = PlanTier.FREE,
        role: UserRole = UserRole.USER,
        analysis_count: int = 0,
        email: Optional[str] = None,
        is_suspended: bool = False,
    ) -> Profile:
        user_id = uuid4()
        profile = Profile(
            id=user_id,
            email=email or f"user-{user_id.hex[:8]}@test.com",
            name="Test User",
            plan=plan,
            role=role,
            analysis_count=analysis_count,
            is_suspended=is_suspended,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile
    return _create


def analysis_count_of(session_factory, user_id) -> int:
    """Read analysis_count through a fresh session."""
    session = session_factory()
    try:
        return session.get(Profile, user_id).analysis_count
    finally:
        session.close()


# ============================================================================
# Tokens
# ============================================================================

@pytest.fixture
def make_token():
    """Factory to create signed access tokens."""
    def _create(
        user_id=None,
        email: str = "user@test.com",
        secret: str = JWT_SECRET,
        expires_in: timedelta = timedelta(hours=1),
        **claims,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id or uuid4()),
            "email": email,
            "role": "authenticated",
            "aud": "authenticated",
            "user_metadata": {"full_name": "Test User"},
            "exp": int((now + expires_in).timestamp()),
            "iat": int(now.timestamp()),
        }
        payload.update(claims)
        return jwt.encode(payload, secret, algorithm="HS256")
    return _create


@pytest.fixture
def auth_header(make_token):
    """Authorization header for an existing profile."""
    def _header(profile: Profile) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id=profile.id, email=profile.email)}"}
    return _header


# ============================================================================
# Detection Engine
# ============================================================================

DEFAULT_ENGINE_RESPONSE: Dict[str, Any] = {
    "overall_confidence": 82.5,
    "verdict": "authentic",
    "rationale": ["No compression inconsistencies", "EXIF metadata intact"],
    "processing_time_ms": 1200,
    "algorithms": [
        {"name": "ELA", "score": 85, "status": "authentic", "details": "Uniform error levels"},
    ],
}


class FakeDetectionEngine(DetectionEngineGateway):
    """Scriptable in-process detection engine."""

    def __init__(
        self,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.response = response or dict(DEFAULT_ENGINE_RESPONSE)
        self.error = error
        self.delay = delay
        self.calls = []

    async def analyze(self, input_type, payload, file_name=None, options=None) -> DetectionResult:
        self.calls.append({
            "input_type": input_type,
            "payload": payload,
            "file_name": file_name,
            "options": options or {},
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return DetectionResult.from_dict(self.response)


@pytest.fixture
def fake_engine():
    return FakeDetectionEngine()


@pytest.fixture
def failing_engine():
    return FakeDetectionEngine(error=EngineFailure("Detection engine returned HTTP 502"))
