"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generator, List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables for tests BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test_jwt_secret_for_testing_only_0123456789")
os.environ.setdefault("ALLOWED_EMAIL_DOMAIN", "example.org")
os.environ.setdefault("ADMIN_BOOTSTRAP_EMAILS", "boss@example.org")
os.environ.setdefault("SITE_URL", "https://surveys.example.org")
os.environ.setdefault("ENVIRONMENT", "development")

import jwt

from survey_studio.config import get_settings
from survey_studio.models import Invite, Survey, SurveyVersion, User
from survey_studio.models.database import Base
from survey_studio.schemas.question import Question

TEST_JWT_SECRET = os.environ["AUTH_JWT_SECRET"]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        StaticPool keeps a single connection so the in-memory database is
        shared with TestClient's worker threads.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(engine)

    yield engine

    # Drop all tables after test
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test engine (same options as SessionLocal)."""
    return sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session.

    Yields:
        Session: SQLAlchemy session for testing

    Note:
        Session is rolled back after each test to ensure isolation.
    """
    session = session_factory()

    yield session

    # Rollback any uncommitted changes
    session.rollback()
    session.close()


def _make_user(db: Session, user_id: str, email: str, name: str, role: str) -> User:
    user = User(id=user_id, email=email, full_name=name, role=role)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_user(db_session) -> User:
    return _make_user(db_session, "admin-oid", "boss@example.org", "Ada Admin", "admin")


@pytest.fixture
def creator_user(db_session) -> User:
    return _make_user(db_session, "creator-oid", "cora@example.org", "Cora Creator", "creator")


@pytest.fixture
def other_creator(db_session) -> User:
    return _make_user(db_session, "other-oid", "otto@example.org", "Otto Other", "creator")


@pytest.fixture
def participant_user(db_session) -> User:
    return _make_user(db_session, "participant-oid", "pat@example.org", "Pat Participant", "participant")


@pytest.fixture
def sample_questions() -> List[Question]:
    """A short survey with a conditional follow-up question.

    q2 is only shown when q1 is answered "Yes".
    """
    return [
        Question(id="q1", label="Did you attend?", type="yes_no", required=True),
        Question(
            id="q2",
            label="What did you like?",
            type="long_text",
            required=True,
            logic={"questionId": "q1", "equals": "Yes"},
        ),
        Question(id="q3", label="Age", type="number", required=True, min=18, max=65),
    ]


@pytest.fixture
def published_survey(db_session, creator_user, sample_questions) -> Survey:
    """A survey owned by creator_user with version 1 published."""
    survey = Survey(owner_user_id=creator_user.id, title="Event feedback", description="After the event", status="published")
    db_session.add(survey)
    db_session.flush()
    db_session.add(SurveyVersion(
        survey_id=survey.id,
        version=1,
        is_published=True,
        title=survey.title,
        description=survey.description,
        tags=[],
        questions_json=[q.to_payload() for q in sample_questions],
        created_by=creator_user.id,
    ))
    db_session.commit()
    return survey


@pytest.fixture
def make_invite(db_session) -> Callable[..., Invite]:
    """Factory creating invites with a unique 64 character token."""
    counter = {"n": 0}

    def _make(survey: Survey, status: str = "sent", expires_at=None) -> Invite:
        counter["n"] += 1
        invite = Invite(
            survey_id=survey.id,
            token=f"{counter['n']:064d}",
            status=status,
            expires_at=expires_at,
        )
        db_session.add(invite)
        db_session.commit()
        return invite

    return _make


def make_token(
    subject: str,
    email: str,
    /,
    name: str = "Test User",
    expires_in: timedelta = timedelta(hours=1),
    secret: str = TEST_JWT_SECRET,
    **claims,
) -> str:
    """Encode an HS256 identity token like the identity provider would."""
    payload = {
        "sub": subject,
        "preferred_username": email,
        "name": name,
        "exp": datetime.now(timezone.utc) + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm=get_settings().auth_jwt_algorithm)


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Build an Authorization header for an existing user."""
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user.id, user.email, user.full_name)}"}
    return _headers


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Expose make_token to tests that need custom claims."""
    return make_token
