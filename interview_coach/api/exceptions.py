from datetime import datetime

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from interview_coach.core.logging import log_event
from interview_coach.core.services.exceptions import (
    NoSubscriptionError,
    QuotaExceededError,
    SubscriptionError,
    SubscriptionExpiredError,
    TrialAlreadyUsedError,
    UserNotFoundError,
)
from interview_coach.core.storage import StorageError, UsageUpdateError


def seconds_until(reset_time: datetime) -> int:
    """Whole seconds from now until ``reset_time`` (server-local), never negative."""
    return max(0, int((reset_time - datetime.now()).total_seconds()))


async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    """Daily prompt limit reached."""
    return JSONResponse(
        status_code=HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "DailyLimitExceeded",
            "message": str(exc),
            "details": {
                "current_count": exc.current,
                "limit": exc.limit,
                "reset_time": exc.reset_time.isoformat(),
            },
        },
        headers={"Retry-After": str(seconds_until(exc.reset_time))},
    )


async def subscription_exception_handler(request: Request, exc: SubscriptionError) -> JSONResponse:
    """Missing, lapsed or already-consumed subscription."""
    if isinstance(exc, NoSubscriptionError):
        error = "NoSubscription"
    elif isinstance(exc, SubscriptionExpiredError):
        error = "SubscriptionExpired"
    elif isinstance(exc, TrialAlreadyUsedError):
        error = "TrialAlreadyUsed"
    else:
        error = "SubscriptionError"

    log_event("api.subscription_denied", component="api", user_id=exc.user_id, error=error)
    return JSONResponse(status_code=HTTP_403_FORBIDDEN, content={"error": error, "message": str(exc), "details": None})


async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_404_NOT_FOUND, content={"error": "UserNotFound", "message": str(exc), "details": None}
    )


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Handle storage-related exceptions."""
    if isinstance(exc, UsageUpdateError):
        message = "Usage counter could not be updated"
    else:
        message = "Database operation failed"
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "StorageError", "message": message, "details": None},
    )
