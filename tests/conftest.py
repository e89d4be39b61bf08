"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockgenius.auth.utils import create_access_token
from stockgenius.db.models import Base, Category, Item

# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


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
    from stockgenius.dependencies import get_db
    from stockgenius.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner_token() -> str:
    """Access token for the test owner."""
    return create_access_token(OWNER_ID)


@pytest.fixture
def authenticated_client(client: TestClient, owner_token: str) -> TestClient:
    """Create a test client that sends the owner's bearer token."""
    client.headers.update({"Authorization": f"Bearer {owner_token}"})
    return client


@pytest.fixture
def test_category(db: Session) -> Category:
    """Create a test category."""
    category = Category(user_id=OWNER_ID, name="Fasteners")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def test_item(db: Session, test_category: Category) -> Item:
    """Create a test item in the test category."""
    item = Item(
        user_id=OWNER_ID,
        name="Bolt M6",
        description="Zinc plated",
        category_id=test_category.id,
        photos=["https://cdn.example.com/bolt.jpg"],
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item
