"""
Test configuration and fixtures for PMOS tests.

Provides:
- Test database with SQLite in-memory for speed
- FastAPI test client built by create_app() around that database
- Authentication helpers (session token generation)
- Common fixtures for managers, team members and dual-role users
"""

import os
import sys
import logging
from datetime import datetime, timedelta, timezone
from typing import Generator, Dict, Optional

# Settings are read at import time of main; keep them test-friendly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings
from database import Base
from main import create_app
import models

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_JWT_SECRET = "test-jwt-secret"
TEST_CRON_SECRET = "cron-test-secret"


@pytest.fixture(scope="function")
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url=SQLALCHEMY_TEST_DATABASE_URL,
        jwt_secret=TEST_JWT_SECRET,
        cron_secret=TEST_CRON_SECRET,
        log_level="WARNING",
    )


@pytest.fixture(scope="function")
def session_factory() -> Generator[sessionmaker, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    This ensures test isolation and fast execution.
    """
    logger.debug("Creating test database")

    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def test_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def app(settings: Settings, session_factory: sessionmaker):
    return create_app(settings=settings, session_factory=session_factory)


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """
    Create FastAPI test client that does not follow redirects, so tests can
    assert on the gate's redirect decisions.
    """
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def create_auth_token(
    user_id: str,
    email: Optional[str] = None,
    expires_delta: timedelta = timedelta(minutes=15),
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Helper to create a session token like the auth provider issues.

    Args:
        user_id: Subject of the token
        email: Optional email claim
        expires_delta: Expiration time from now (negative for expired tokens)
        secret: Signing key

    Returns:
        Encoded JWT string
    """
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers_for(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user_id)}"}


@pytest.fixture(scope="function")
def manager_user(test_db: Session) -> models.User:
    """
    Create a user with a manager account only.
    """
    user = models.User(id="u1-manager", email="manager@example.com", full_name="Manager One")
    test_db.add(user)
    test_db.commit()
    test_db.refresh(user)
    logger.info(f"Created manager user with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def team_member_user_id(test_db: Session, manager_user: models.User) -> str:
    """
    Create an accepted team membership whose user has no manager account.
    """
    member = models.TeamMember(
        manager_id=manager_user.id,
        user_id="u2-member",
        email="member@example.com",
        full_name="Member Two",
        invite_accepted_at=datetime.now(timezone.utc),
    )
    test_db.add(member)
    test_db.commit()
    logger.info(f"Created team member with user ID: {member.user_id}")
    return member.user_id


@pytest.fixture(scope="function")
def dual_role_user(test_db: Session, manager_user: models.User) -> models.User:
    """
    Create a user who owns a manager account and is also on another manager's team.
    """
    user = models.User(id="u4-both", email="both@example.com", full_name="Both Four")
    test_db.add(user)
    test_db.commit()
    test_db.add(models.TeamMember(
        manager_id=manager_user.id,
        user_id=user.id,
        email=user.email,
    ))
    test_db.commit()
    test_db.refresh(user)
    return user


@pytest.fixture(scope="function")
def manager_headers(manager_user: models.User) -> Dict[str, str]:
    return auth_headers_for(manager_user.id)


@pytest.fixture(scope="function")
def team_member_headers(team_member_user_id: str) -> Dict[str, str]:
    return auth_headers_for(team_member_user_id)


@pytest.fixture(scope="function")
def no_role_headers() -> Dict[str, str]:
    """Headers for a signed-in user with neither a manager nor a membership record."""
    return auth_headers_for("u3-nobody")
