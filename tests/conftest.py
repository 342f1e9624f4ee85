"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

from src.database import Base, SessionLocal, engine, get_db
from src.main import app
from src.models.trainer import Trainer


@pytest.fixture
def tables() -> Generator[None, None, None]:
    """Create all tables for a test and drop them afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(tables) -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def trainer(db_session: Session) -> Trainer:
    """A stored trainer."""
    trainer = Trainer(name="Ana Souza", email="ana@example.com")
    db_session.add(trainer)
    db_session.commit()
    db_session.refresh(trainer)
    return trainer


@pytest.fixture
def auth_headers(trainer: Trainer) -> dict[str, str]:
    """Headers authenticating requests as the stored trainer."""
    return {"X-Trainer-Id": str(trainer.id)}
