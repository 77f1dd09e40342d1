from interview_coach.core.models import (
    AnswerFeedback,
    GeneratedQuestion,
    QuestionGenerationRequest,
    QuestionParameters,
)


class Provider:
    @staticmethod
    def from_id(model_id: str) -> "Provider":
        # parse like "anthropic:claude-3-5-haiku-20241022"
        if ":" not in model_id:
            raise ValueError(
                f"Model ID must be in format 'vendor:model', got: '{model_id}'. "
                f"Use 'anthropic:claude-3-5-haiku-20241022' or similar."
            )

        vendor, model = model_id.split(":", 1)

        provider_map = {
            "anthropic": lambda: __import__("interview_coach.providers.anthropic", fromlist=["ProviderImpl"]),
        }

        if vendor not in provider_map:
            # Test-only vendor that never leaves the process
            if vendor == "mock":
                mock_module = __import__("tests.mocks.mock_provider", fromlist=["MockProvider"])
                return mock_module.MockProvider(model)
            raise ValueError(f"Unknown provider '{vendor}'")

        impl = provider_map[vendor]()
        return impl.ProviderImpl(model)

    def generate_questions(
        self, request: QuestionGenerationRequest, parameters: QuestionParameters, difficulty: float
    ) -> list[GeneratedQuestion]:
        """Generate interview questions shaped by the candidate's difficulty level."""
        raise NotImplementedError

    def analyze_answer(self, question_text: str, answer_text: str) -> AnswerFeedback:
        """Score a practice answer and suggest improvements."""
        raise NotImplementedError
