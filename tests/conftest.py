"""
Pytest configuration and shared fixtures for all tests.
"""
import pytest
from sqlalchemy.orm import sessionmaker

from porter_registry import database
from porter_registry.app import crud, models  # noqa: F401  (registers the tables)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with the registry tables."""
    engine = database.make_engine("sqlite://")
    database.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db):
    return crud.create_service(db, {"host": "10.0.0.1", "port": 8080})


@pytest.fixture
def gate(db, service):
    return crud.create_gate(db, {"service_id": service.id, "host": "0.0.0.0", "port": 443})
