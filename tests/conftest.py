import os
import re
from typing import Generator
from unittest.mock import MagicMock

# Override settings for tests before importing app modules
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["COOKIE_SECURE"] = "false"
os.environ["EMAIL_BACKEND"] = "console"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.main import create_app
from app.models import Base, Database, User
from app.services.auth_service import AuthService
from app.services.email_service import EmailSender
from app.services.security import build_password_context, get_password_hash

CODE_PATTERN = re.compile(r"verification code is: ([A-Z0-9]{6})")
PASSWORD_CONTEXT = build_password_context(settings.BCRYPT_ROUNDS)


@pytest.fixture(scope="function")
def database() -> Generator[Database, None, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    test_database = Database(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield test_database
    finally:
        Base.metadata.drop_all(bind=engine)
        test_database.dispose()


@pytest.fixture
def db(database: Database) -> Generator[Session, None, None]:
    with database.session() as session:
        yield session


@pytest.fixture
def email_sender() -> MagicMock:
    return MagicMock(spec=EmailSender)


@pytest.fixture
def service(database: Database, email_sender: MagicMock) -> AuthService:
    return AuthService(database, email_sender, settings)


@pytest.fixture
def client(database: Database, email_sender: MagicMock) -> Generator[TestClient, None, None]:
    """Create a test client bound to the test database."""
    application = create_app(database=database, email_sender=email_sender)
    yield TestClient(application)


@pytest.fixture
def sent_code(email_sender: MagicMock):
    """Return a callable extracting the code from the most recent verification email."""

    def _last_code() -> str:
        text_body = email_sender.send.call_args.kwargs["text_body"]
        match = CODE_PATTERN.search(text_body)
        assert match is not None, text_body
        return match.group(1)

    return _last_code


@pytest.fixture
def verified_user(db: Session) -> User:
    user = User(
        name="Test User",
        email="test@example.com",
        password_hash=get_password_hash("testpassword123", PASSWORD_CONTEXT),
        email_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def unverified_user(db: Session) -> User:
    user = User(
        name="Pending User",
        email="pending@example.com",
        password_hash=get_password_hash("testpassword123", PASSWORD_CONTEXT),
        email_verified=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def session_token(service: AuthService, verified_user: User) -> str:
    return service.login("test@example.com", "testpassword123").token


@pytest.fixture
def auth_headers(session_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {session_token}"}
