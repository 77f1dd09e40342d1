import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from interview_coach.core.services import (
    DifficultyService,
    PromptUsageService,
    QuestionGenerationService,
    QuotaConfig,
    SubscriptionService,
    UserService,
)
from interview_coach.core.storage import DatabaseManager, StorageError
from interview_coach.providers.base import Provider

DEFAULT_MODEL_ID = "anthropic:claude-3-5-haiku-20241022"


@lru_cache
def get_storage() -> DatabaseManager:
    """Get storage instance (cached)."""
    database_url = os.getenv("DATABASE_URL", "sqlite:///./interview_coach.db")

    # Parse SQLite URL format: sqlite:///path/to/db.db
    if database_url.startswith("sqlite:///"):
        db_path = database_url[10:]
    elif database_url.startswith("sqlite://"):
        db_path = database_url[9:]
    else:
        db_path = database_url

    return DatabaseManager(db_path)


@lru_cache
def get_provider() -> Provider:
    """Get the configured language model provider (cached)."""
    return Provider.from_id(os.getenv("MODEL_ID", DEFAULT_MODEL_ID))


def get_quota_config() -> QuotaConfig:
    """Quota limits, re-read from the environment on each request."""
    return QuotaConfig()


def get_subscription_service(config: Annotated[QuotaConfig, Depends(get_quota_config)]) -> SubscriptionService:
    return SubscriptionService(get_storage(), config)


def get_prompt_usage_service(
    subscription_service: Annotated[SubscriptionService, Depends(get_subscription_service)],
    config: Annotated[QuotaConfig, Depends(get_quota_config)],
) -> PromptUsageService:
    return PromptUsageService(get_storage(), subscription_service, config)


def get_difficulty_service() -> DifficultyService:
    return DifficultyService(get_storage())


def get_question_generation_service(
    usage_service: Annotated[PromptUsageService, Depends(get_prompt_usage_service)],
    difficulty_service: Annotated[DifficultyService, Depends(get_difficulty_service)],
) -> QuestionGenerationService:
    return QuestionGenerationService(
        provider=get_provider(),
        usage_service=usage_service,
        difficulty_service=difficulty_service,
        model_id=os.getenv("MODEL_ID", DEFAULT_MODEL_ID),
    )


def get_current_user_id(request: Request) -> str:
    """Get current user ID from request state, provisioning the user row on first sight."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    with get_storage().SessionLocal() as db_session:
        try:
            UserService(db_session).ensure_user(user_id)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            raise StorageError(f"Failed to provision user {user_id}: {e}") from e
    return user_id
