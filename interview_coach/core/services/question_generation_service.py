from interview_coach.core.logging import log_event, mask_text, span
from interview_coach.core.models import (
    AnswerFeedback,
    GeneratedQuestion,
    QuestionGenerationRequest,
    QuestionResult,
)
from interview_coach.core.services.difficulty_service import DifficultyService
from interview_coach.core.services.prompt_usage_service import PromptUsageService
from interview_coach.providers.base import Provider

# Feedback score at or above which an answer counts as correct
PASSING_SCORE = 60


class QuestionGenerationService:
    """Metered access to the language model for questions and answer feedback."""

    def __init__(
        self,
        provider: Provider,
        usage_service: PromptUsageService,
        difficulty_service: DifficultyService,
        model_id: str,
    ):
        self.provider = provider
        self.usage_service = usage_service
        self.difficulty_service = difficulty_service
        self.model_id = model_id

    def generate_questions(
        self, user_id: str, request: QuestionGenerationRequest
    ) -> tuple[list[GeneratedQuestion], float]:
        """Consume one prompt and generate questions pitched at the user's difficulty."""
        difficulty = self.difficulty_service.get_current_difficulty(user_id)
        self.usage_service.track_prompt(user_id)

        parameters = self.difficulty_service.engine.get_question_parameters(difficulty)
        with span(
            "llm.generate_questions",
            component="pipeline",
            operation="generate_questions",
            provider_model=self.model_id,
            user_id=user_id,
            count=request.count,
            difficulty=difficulty,
        ):
            questions = self.provider.generate_questions(request, parameters, difficulty)

        return questions[: request.count], difficulty

    def evaluate_answer(
        self,
        user_id: str,
        question_text: str,
        answer_text: str,
        expected_keywords: list[str],
        time_spent_seconds: float,
        question_id: str | None = None,
        difficulty: float | None = None,
    ) -> tuple[AnswerFeedback, QuestionResult]:
        """Consume one prompt, get model feedback and append the outcome to the user's history."""
        if difficulty is None:
            difficulty = self.difficulty_service.get_current_difficulty(user_id)
        self.usage_service.track_prompt(user_id)

        with span(
            "llm.analyze_answer",
            component="pipeline",
            operation="analyze_answer",
            provider_model=self.model_id,
            user_id=user_id,
            answer_len=len(answer_text),
        ):
            feedback = self.provider.analyze_answer(question_text, answer_text)

        confidence = self.difficulty_service.engine.score_answer_confidence(answer_text, expected_keywords)
        result = QuestionResult(
            question_id=question_id,
            difficulty=difficulty,
            was_correct=feedback.overall_score >= PASSING_SCORE,
            time_spent_seconds=time_spent_seconds,
            confidence_score=confidence,
        )
        self.difficulty_service.record_result(user_id, result)

        log_event(
            "feedback.evaluated",
            component="pipeline",
            operation="analyze_answer",
            user_id=user_id,
            overall_score=feedback.overall_score,
            confidence_score=confidence,
            was_correct=result.was_correct,
            answer_preview=mask_text(answer_text[:80]),
        )
        return feedback, result
