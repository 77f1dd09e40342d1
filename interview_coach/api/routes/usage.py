"""Daily prompt quota routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from interview_coach.api.dependencies import get_current_user_id, get_prompt_usage_service
from interview_coach.api.schemas import UsageHistoryResponse
from interview_coach.core.models import TrackResult, UsageStatus
from interview_coach.core.services import PromptUsageService

router = APIRouter(prefix="/prompts/usage", tags=["usage"])


@router.get("", response_model=UsageStatus)
@router.put("", response_model=UsageStatus)
def check_usage(
    user_id: Annotated[str, Depends(get_current_user_id)],
    usage_service: Annotated[PromptUsageService, Depends(get_prompt_usage_service)],
) -> UsageStatus:
    """Whether the caller may send another prompt today. Does not consume one."""
    return usage_service.can_make_prompt(user_id)


@router.post("", response_model=TrackResult)
def track_usage(
    user_id: Annotated[str, Depends(get_current_user_id)],
    usage_service: Annotated[PromptUsageService, Depends(get_prompt_usage_service)],
) -> TrackResult:
    """Consume one prompt. 429 once today's limit is reached, 403 without a usable subscription."""
    return usage_service.track_prompt(user_id)


@router.get("/history", response_model=UsageHistoryResponse)
def usage_history(
    user_id: Annotated[str, Depends(get_current_user_id)],
    usage_service: Annotated[PromptUsageService, Depends(get_prompt_usage_service)],
    days: Annotated[int, Query(ge=1, le=90)] = 7,
) -> UsageHistoryResponse:
    return UsageHistoryResponse(days=days, usage=usage_service.get_usage_history(user_id, days=days))
