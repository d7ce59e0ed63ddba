"""Pytest configuration and fixtures for CannaMap tests."""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cannamap.api.deps import get_db
from cannamap.main import app
from cannamap.models.base import Base
from cannamap.models.location import Location
from cannamap.models.user import User
from cannamap.schemas.location import LocationCreate
from cannamap.services.auth import get_password_hash
from cannamap.services.location import create_location

# Use SQLite in-memory for tests (fast, isolated)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# bcrypt is slow; hash once for every fixture user
TEST_PASSWORD = "testpassword123"
_TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close the session here, let the db fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory for extra users (voters)."""

    def _make_user(username: str, is_active: bool = True) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=_TEST_PASSWORD_HASH,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("testuser")


@pytest.fixture
def auth_headers(client: TestClient, test_user: User) -> dict[str, str]:
    """Get authentication headers for the test user."""
    response = client.post(
        "/api/auth/login",
        data={"username": "testuser", "password": TEST_PASSWORD},
    )
    assert response.status_code == 200, f"Login failed: {response.json()}"
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_location(db: Session, test_user: User) -> Location:
    """Create a test location with the default (unvoted) aggregate."""
    return create_location(
        db,
        LocationCreate(
            name="Green Leaf Dispensary",
            address="1 Main St",
            latitude=34.0522,
            longitude=-118.2437,
        ),
        created_by_user_id=test_user.id,
    )
