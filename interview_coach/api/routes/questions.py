from typing import Annotated

from fastapi import APIRouter, Depends

from interview_coach.api.dependencies import get_current_user_id, get_question_generation_service
from interview_coach.api.schemas import AnswerFeedbackRequest, AnswerFeedbackResponse, QuestionsResponse
from interview_coach.core.models import QuestionGenerationRequest
from interview_coach.core.services import QuestionGenerationService

router = APIRouter(prefix="/questions", tags=["questions"])


@router.post("/generate", response_model=QuestionsResponse)
def generate_questions(
    request: QuestionGenerationRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    question_service: Annotated[QuestionGenerationService, Depends(get_question_generation_service)],
) -> QuestionsResponse:
    """Consume one prompt and return questions at the caller's current difficulty."""
    questions, difficulty = question_service.generate_questions(user_id, request)
    return QuestionsResponse(questions=questions, difficulty=difficulty)


@router.post("/feedback", response_model=AnswerFeedbackResponse)
def answer_feedback(
    request: AnswerFeedbackRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    question_service: Annotated[QuestionGenerationService, Depends(get_question_generation_service)],
) -> AnswerFeedbackResponse:
    """Consume one prompt, return coaching feedback and record the attempt."""
    feedback, result = question_service.evaluate_answer(
        user_id,
        question_text=request.question_text,
        answer_text=request.answer_text,
        expected_keywords=request.expected_keywords,
        time_spent_seconds=request.time_spent_seconds,
        question_id=request.question_id,
        difficulty=request.difficulty,
    )
    return AnswerFeedbackResponse(feedback=feedback, result=result)
