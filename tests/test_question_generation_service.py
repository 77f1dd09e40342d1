from datetime import date
from unittest.mock import Mock

import pytest

from interview_coach.core.models import QuestionGenerationRequest
from interview_coach.core.services.difficulty_service import DifficultyService
from interview_coach.core.services.exceptions import NoSubscriptionError, QuotaExceededError
from interview_coach.core.services.prompt_usage_service import PromptUsageService
from interview_coach.core.services.question_generation_service import QuestionGenerationService
from tests.mocks.mock_provider import MockProvider


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def question_service(db_manager, provider):
    return QuestionGenerationService(
        provider=provider,
        usage_service=PromptUsageService(db_manager),
        difficulty_service=DifficultyService(db_manager),
        model_id="mock:test-model",
    )


def prompts_used_today(db_manager, user_id: str) -> int:
    return PromptUsageService(db_manager).can_make_prompt(user_id, usage_date=date.today()).current_count


class TestGenerateQuestions:
    def test_generates_requested_count_at_current_difficulty(self, question_service, provider, trial_user_id):
        request = QuestionGenerationRequest(industry="finance", question_type="technical", count=3)

        questions, difficulty = question_service.generate_questions(trial_user_id, request)

        assert len(questions) == 3
        assert difficulty == 5.0
        assert all(q.difficulty == 5.0 and q.type == "technical" for q in questions)
        assert provider.last_parameters.complexity == "intermediate"

    def test_one_prompt_per_call_regardless_of_count(self, question_service, db_manager, trial_user_id):
        question_service.generate_questions(trial_user_id, QuestionGenerationRequest(count=5))
        question_service.generate_questions(trial_user_id, QuestionGenerationRequest(count=1))

        assert prompts_used_today(db_manager, trial_user_id) == 2

    def test_quota_exceeded_skips_provider(self, db_manager, trial_user_id, monkeypatch):
        monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", "1")
        provider = Mock()
        provider.generate_questions.return_value = []
        service = QuestionGenerationService(
            provider=provider,
            usage_service=PromptUsageService(db_manager),
            difficulty_service=DifficultyService(db_manager),
            model_id="mock:test-model",
        )

        service.generate_questions(trial_user_id, QuestionGenerationRequest())
        with pytest.raises(QuotaExceededError):
            service.generate_questions(trial_user_id, QuestionGenerationRequest())

        assert provider.generate_questions.call_count == 1

    def test_requires_subscription(self, question_service, user_id):
        with pytest.raises(NoSubscriptionError):
            question_service.generate_questions(user_id, QuestionGenerationRequest())

    def test_request_count_is_capped(self):
        with pytest.raises(ValueError):
            QuestionGenerationRequest(count=6)


class TestEvaluateAnswer:
    def test_records_result_with_heuristic_confidence(self, question_service, db_manager, trial_user_id):
        answer = " ".join(["detail"] * 40) + " the result was strong teamwork"

        feedback, result = question_service.evaluate_answer(
            trial_user_id,
            question_text="Tell me about teamwork.",
            answer_text=answer,
            expected_keywords=["teamwork"],
            time_spent_seconds=90,
            question_id="q-1",
        )

        # 45 words -> mock score 90
        assert feedback.overall_score == 90
        assert result.was_correct is True
        assert result.difficulty == 5.0
        # keywords 1.0, under 50 words 0.5, STAR word present
        assert result.confidence_score == pytest.approx(0.4 + 0.15 + 0.3)

        recent = question_service.difficulty_service.get_recent_results(trial_user_id)
        assert [r.question_id for r in recent] == ["q-1"]
        assert prompts_used_today(db_manager, trial_user_id) == 1

    def test_low_score_counts_as_incorrect(self, question_service, trial_user_id):
        _, result = question_service.evaluate_answer(
            trial_user_id,
            question_text="Why us?",
            answer_text="Because.",
            expected_keywords=[],
            time_spent_seconds=5,
            difficulty=3.0,
        )

        assert result.was_correct is False
        assert result.difficulty == 3.0
