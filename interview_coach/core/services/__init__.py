"""Core services for the interview coach."""

from .difficulty_service import DifficultyService
from .prompt_usage_service import PromptUsageService
from .question_generation_service import QuestionGenerationService
from .quota_config import QuotaConfig
from .subscription_service import SubscriptionService
from .user_service import UserService

__all__ = [
    "DifficultyService",
    "PromptUsageService",
    "QuestionGenerationService",
    "QuotaConfig",
    "SubscriptionService",
    "UserService",
]
