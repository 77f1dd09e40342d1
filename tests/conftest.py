"""Shared fixtures: throwaway SQLite databases and seeded users."""

import logging
import os
from datetime import timedelta

# Use mock provider for tests to avoid API calls
os.environ.setdefault("MODEL_ID", "mock:test-model")

import pytest

from interview_coach.core.models import UserCreate
from interview_coach.core.services.subscription_service import SubscriptionService, utc_now
from interview_coach.core.services.user_service import UserService
from interview_coach.core.storage import DatabaseManager
from tests.db_utils import unique_db_path

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def quota_env(monkeypatch):
    """Pin quota settings so tests do not depend on the developer's environment."""
    monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", "20")
    monkeypatch.setenv("PRO_DAILY_PROMPT_LIMIT", "20")
    monkeypatch.setenv("TRIAL_PERIOD_DAYS", "7")


@pytest.fixture
def db_manager():
    """A fresh SQLite database per test."""
    db_path = unique_db_path()
    manager = DatabaseManager(db_path=str(db_path))

    yield manager

    manager.close()
    try:
        if db_path.exists():
            db_path.unlink()
    except OSError as e:
        logger.debug(f"Failed to delete test database file {db_path}: {e}")


def create_user(db_manager: DatabaseManager, email: str = "candidate@example.com") -> str:
    with db_manager.SessionLocal() as db_session:
        user = UserService(db_session).create_user(UserCreate(email=email, name="Test Candidate"))
        db_session.commit()
        return user.id


@pytest.fixture
def user_id(db_manager) -> str:
    """A user without any subscription."""
    return create_user(db_manager)


@pytest.fixture
def trial_user_id(db_manager, user_id) -> str:
    """A user whose free trial started an hour ago."""
    SubscriptionService(db_manager).start_trial(user_id, now=utc_now() - timedelta(hours=1))
    return user_id
