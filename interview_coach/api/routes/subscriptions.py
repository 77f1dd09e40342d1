from typing import Annotated

from fastapi import APIRouter, Depends, status

from interview_coach.api.dependencies import get_current_user_id, get_subscription_service
from interview_coach.api.schemas import SubscriptionResponse
from interview_coach.core.models import Subscription
from interview_coach.core.services import SubscriptionService
from interview_coach.core.services.exceptions import NoSubscriptionError
from interview_coach.core.services.subscription_service import is_subscription_active, utc_now

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _to_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        tier=subscription.tier,
        status=subscription.status,
        active=is_subscription_active(subscription, utc_now()),
        trial_end_date=subscription.trial_end_date,
        current_period_end=subscription.current_period_end,
    )


@router.post("/trial", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def start_trial(
    user_id: Annotated[str, Depends(get_current_user_id)],
    subscription_service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    return _to_response(subscription_service.start_trial(user_id))


@router.get("/me", response_model=SubscriptionResponse)
def get_my_subscription(
    user_id: Annotated[str, Depends(get_current_user_id)],
    subscription_service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    subscription = subscription_service.get_subscription(user_id)
    if subscription is None:
        raise NoSubscriptionError(user_id)
    return _to_response(subscription)
