"""Performance history and adaptive difficulty routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from interview_coach.api.dependencies import get_current_user_id, get_difficulty_service
from interview_coach.api.schemas import (
    ConfidenceScoreRequest,
    ConfidenceScoreResponse,
    DifficultyAdjustmentResponse,
    DifficultyResponse,
    QuestionResultCreateRequest,
)
from interview_coach.core.logging import log_event
from interview_coach.core.models import QuestionResult
from interview_coach.core.services import DifficultyService

router = APIRouter(prefix="/performance", tags=["performance"])


@router.post("/results", response_model=QuestionResult, status_code=status.HTTP_201_CREATED)
def record_result(
    request: QuestionResultCreateRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    difficulty_service: Annotated[DifficultyService, Depends(get_difficulty_service)],
) -> QuestionResult:
    result = QuestionResult(**request.model_dump())
    return difficulty_service.record_result(user_id, result)


@router.get("/difficulty", response_model=DifficultyResponse)
def get_difficulty(
    user_id: Annotated[str, Depends(get_current_user_id)],
    difficulty_service: Annotated[DifficultyService, Depends(get_difficulty_service)],
) -> DifficultyResponse:
    """Current level plus how the recent window looks, without changing anything."""
    current = difficulty_service.get_current_difficulty(user_id)
    recent = difficulty_service.get_recent_results(user_id)
    preview = difficulty_service.preview_adjustment(user_id)
    return DifficultyResponse(
        current_difficulty=current,
        recent_results=recent,
        metrics=preview.metrics,
        encouragement=difficulty_service.engine.get_encouragement(preview.metrics),
    )


@router.post("/difficulty/adjust", response_model=DifficultyAdjustmentResponse)
def adjust_difficulty(
    user_id: Annotated[str, Depends(get_current_user_id)],
    difficulty_service: Annotated[DifficultyService, Depends(get_difficulty_service)],
) -> DifficultyAdjustmentResponse:
    previous = difficulty_service.get_current_difficulty(user_id)
    adjustment = difficulty_service.adjust_difficulty(user_id)
    return DifficultyAdjustmentResponse(
        previous_difficulty=previous,
        new_difficulty=adjustment.new_difficulty,
        reason=adjustment.reason,
        metrics=adjustment.metrics,
        insufficient_data=adjustment.insufficient_data,
        encouragement=difficulty_service.engine.get_encouragement(adjustment.metrics),
    )


@router.post("/confidence", response_model=ConfidenceScoreResponse)
def score_confidence(
    request: ConfidenceScoreRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    difficulty_service: Annotated[DifficultyService, Depends(get_difficulty_service)],
) -> ConfidenceScoreResponse:
    score = difficulty_service.engine.score_answer_confidence(request.answer_text, request.expected_keywords)
    log_event("confidence.scored", component="api", user_id=user_id, confidence_score=score)
    return ConfidenceScoreResponse(confidence_score=score)
