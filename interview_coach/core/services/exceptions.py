"""Service layer exceptions for business logic errors."""

from datetime import datetime


class QuotaExceededError(Exception):
    """Raised when a user has used all of today's prompts."""

    def __init__(self, current: int, limit: int, reset_time: datetime):
        self.current = current
        self.limit = limit
        self.reset_time = reset_time
        super().__init__(f"Daily prompt quota exceeded ({current}/{limit} prompts used today)")


class SubscriptionError(Exception):
    """Base class for subscription preconditions that block prompt usage."""

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(message)


class NoSubscriptionError(SubscriptionError):
    """Raised when a user has no trial or active subscription."""

    def __init__(self, user_id: str):
        super().__init__(user_id, "No active subscription found")


class SubscriptionExpiredError(SubscriptionError):
    """Raised when a user's trial or billing period has lapsed."""

    def __init__(self, user_id: str, expired_at: datetime | None = None):
        self.expired_at = expired_at
        super().__init__(user_id, "Subscription has expired")


class TrialAlreadyUsedError(SubscriptionError):
    """Raised when a user asks for a second free trial."""

    def __init__(self, user_id: str):
        super().__init__(user_id, "Free trial has already been used")


class UserNotFoundError(Exception):
    """Raised when a user is not found in the database."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")
