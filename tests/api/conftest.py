"""Shared test fixtures for API tests."""

import logging
import os

# Use mock provider for tests to avoid API calls
os.environ.setdefault("MODEL_ID", "mock:test-model")

import pytest
from fastapi.testclient import TestClient

from interview_coach.api.dependencies import get_provider, get_storage
from interview_coach.api.main import app
from interview_coach.core.models import UserCreate
from interview_coach.core.services.user_service import UserService
from interview_coach.core.storage import DatabaseManager
from tests.db_utils import unique_db_path

logger = logging.getLogger(__name__)


@pytest.fixture(scope="function")
def test_db(monkeypatch):
    """Create a temporary database for testing."""
    db_path = unique_db_path()
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("MODEL_ID", "mock:test-model")

    # Fresh instances pick up the new database path
    get_storage.cache_clear()
    get_provider.cache_clear()

    yield str(db_path)

    try:
        get_storage().close()
    except Exception as e:  # noqa: BLE001
        logger.debug(f"Failed to dispose database engine for {db_path}: {e}")
    get_storage.cache_clear()
    get_provider.cache_clear()

    try:
        if db_path.exists():
            db_path.unlink()
    except OSError as e:
        logger.debug(f"Failed to delete test database file {db_path}: {e}")


@pytest.fixture
def api_user_id(test_db) -> str:
    """A user known to the service, as the gateway would have provisioned it."""
    db_manager = DatabaseManager(db_path=test_db)
    try:
        with db_manager.SessionLocal() as db_session:
            user = UserService(db_session).create_user(UserCreate(email="api@example.com", name="API Candidate"))
            db_session.commit()
            return user.id
    finally:
        db_manager.close()


@pytest.fixture
def client(api_user_id):
    """A client whose requests carry the gateway's user header."""
    with TestClient(app, headers={"X-User-ID": api_user_id}) as test_client:
        yield test_client


@pytest.fixture
def anonymous_client(test_db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def trial_client(client):
    """Client for a user with a running free trial."""
    response = client.post("/api/v1/subscriptions/trial")
    assert response.status_code == 201
    return client
