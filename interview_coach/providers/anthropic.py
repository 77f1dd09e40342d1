import os

from anthropic import Anthropic, APIStatusError

from interview_coach.core.difficulty_engine import difficulty_engine
from interview_coach.core.logging import span
from interview_coach.core.models import (
    AnswerFeedback,
    GeneratedQuestion,
    QuestionGenerationRequest,
    QuestionParameters,
)
from interview_coach.core.prompts import SYSTEM_INSTRUCTIONS, analyze_answer_prompt, generate_questions_prompt

from .base import Provider
from .exceptions import (
    FallbackFactory,
    OverloadedError,
    extract_text,
    handle_provider_operation,
    parse_json_response,
)

OVERLOADED_STATUS_CODES = {429, 529}


class ProviderImpl(Provider):
    def __init__(self, model: str):
        self.model = model
        self.client = Anthropic(api_key=os.environ.get("ANTHROPIC_API_KEY"))

    def _create_message(self, system: str, prompt: str, max_tokens: int):
        try:
            return self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIStatusError as e:
            if e.status_code in OVERLOADED_STATUS_CODES:
                raise OverloadedError(str(e)) from e
            raise

    def generate_questions(
        self, request: QuestionGenerationRequest, parameters: QuestionParameters, difficulty: float
    ) -> list[GeneratedQuestion]:
        prompt = generate_questions_prompt(request, parameters, difficulty)

        def _do_operation():
            with span(
                "llm.generate_questions",
                component="provider",
                operation="generate_questions",
                provider="anthropic",
                model=self.model,
                prompt_len=len(prompt),
            ):
                response = self._create_message(SYSTEM_INSTRUCTIONS["questions"], prompt, max_tokens=1500)
                questions_data = parse_json_response(
                    extract_text(response),
                    {"operation": "generate_questions", "provider": "anthropic", "model": self.model},
                )
                return [GeneratedQuestion(**q) for q in questions_data][: request.count]

        return handle_provider_operation(
            operation="generate_questions",
            provider="anthropic",
            model=self.model,
            operation_func=_do_operation,
            fallback_factory=lambda: FallbackFactory.template_questions(request, parameters, difficulty),
        )

    def analyze_answer(self, question_text: str, answer_text: str) -> AnswerFeedback:
        prompt = analyze_answer_prompt(question_text, answer_text)

        def _do_operation():
            with span(
                "llm.analyze_answer",
                component="provider",
                operation="analyze_answer",
                provider="anthropic",
                model=self.model,
                prompt_len=len(prompt),
            ):
                response = self._create_message(SYSTEM_INSTRUCTIONS["feedback"], prompt, max_tokens=800)
                feedback_data = parse_json_response(
                    extract_text(response),
                    {"operation": "analyze_answer", "provider": "anthropic", "model": self.model},
                )
                return AnswerFeedback(**feedback_data)

        return handle_provider_operation(
            operation="analyze_answer",
            provider="anthropic",
            model=self.model,
            operation_func=_do_operation,
            fallback_factory=lambda: FallbackFactory.default_answer_feedback(
                difficulty_engine.score_answer_confidence(answer_text, [])
            ),
        )
