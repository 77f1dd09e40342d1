import json
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import ValidationError

from interview_coach.core.logging import log_event
from interview_coach.core.models import (
    AnswerFeedback,
    GeneratedQuestion,
    QuestionGenerationRequest,
    QuestionParameters,
)
from interview_coach.core.prompts import QUESTION_TEMPLATES, industry_profile

T = TypeVar("T")


class ProviderError(Exception):
    """Base exception for provider operations."""

    pass


class ProviderResponseError(ProviderError):
    """Raised when provider returns invalid response."""

    pass


class ProviderParseError(ProviderError):
    """Raised when response cannot be parsed."""

    pass


class OverloadedError(ProviderError):
    """Raised when provider is overloaded (429/529 errors)."""

    pass


def retry_with_exponential_backoff(
    operation_func: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
) -> T:
    """
    Retry operation with exponential backoff.

    Args:
        operation_func: Function to execute that may raise OverloadedError
        max_retries: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries

    Returns:
        Result from operation_func

    Raises:
        OverloadedError: If all retries exhausted
    """
    for attempt in range(max_retries):
        try:
            return operation_func()
        except OverloadedError:
            if attempt == max_retries - 1:
                raise
            # +/- 10% jitter
            delay = min(base_delay * (2**attempt), max_delay)
            jitter = delay * random.uniform(-0.1, 0.1)
            time.sleep(max(0, delay + jitter))
    raise OverloadedError("Max retries exceeded")


def handle_provider_operation(
    operation: str,
    provider: str,
    model: str,
    operation_func: Callable[[], T],
    fallback_factory: Callable[[], T],
) -> T:
    """
    Execute a provider operation, degrading to the offline fallback on failure.

    Args:
        operation: The operation being performed (e.g., "generate_questions")
        provider: The provider name (e.g., "anthropic")
        model: The model being used
        operation_func: Function to execute that may raise exceptions
        fallback_factory: Function that creates fallback response on error

    Returns:
        Result from operation_func or fallback response on error
    """
    try:
        return operation_func()
    except ValidationError as e:
        log_event(
            "llm.validation_error",
            component="provider",
            operation=operation,
            provider=provider,
            model=model,
            error_type="ValidationError",
            error_msg=str(e),
            level=logging.ERROR,
        )
        return _use_fallback(operation, "validation_error", fallback_factory)
    except OverloadedError as e:
        log_event(
            "llm.overloaded_error",
            component="provider",
            operation=operation,
            provider=provider,
            model=model,
            error_type="OverloadedError",
            error_msg=str(e),
            level=logging.WARNING,
        )
        try:
            return retry_with_exponential_backoff(operation_func)
        except OverloadedError:
            return _use_fallback(operation, "overloaded_retries_exhausted", fallback_factory)
    except (ProviderParseError, json.JSONDecodeError, KeyError, TypeError) as e:
        log_event(
            "llm.parse_error",
            component="provider",
            operation=operation,
            provider=provider,
            model=model,
            error_type=type(e).__name__,
            error_msg=str(e),
            level=logging.WARNING,
        )
        return _use_fallback(operation, "parse_error", fallback_factory)
    except Exception as e:
        # Network failures, auth errors and anything else the SDK raises
        log_event(
            "llm.provider_error",
            component="provider",
            operation=operation,
            provider=provider,
            model=model,
            error_type=type(e).__name__,
            error_msg=str(e),
            level=logging.ERROR,
        )
        return _use_fallback(operation, "provider_error", fallback_factory)


def _use_fallback(operation: str, reason: str, fallback_factory: Callable[[], T]) -> T:
    log_event("llm.using_fallback", component="provider", operation=operation, reason=reason, level=logging.WARNING)
    return fallback_factory()


class FallbackFactory:
    """Deterministic responses used when the model cannot be reached."""

    @staticmethod
    def template_questions(
        request: QuestionGenerationRequest, parameters: QuestionParameters, difficulty: float
    ) -> list[GeneratedQuestion]:
        profile = industry_profile(request.industry)
        keywords: list[str] = list(profile["keywords"])
        templates = QUESTION_TEMPLATES[request.question_type]

        questions = []
        for i in range(request.count):
            keyword = keywords[i % len(keywords)]
            text = templates[i % len(templates)].format(keyword=keyword)
            follow_ups = [f"What would you do differently next time with {keyword}?"][: parameters.follow_up_count]
            questions.append(
                GeneratedQuestion(
                    text=text,
                    type=request.question_type,
                    category=keyword,
                    difficulty=difficulty,
                    expected_keywords=[keyword] + [k for k in keywords if k != keyword][:2],
                    follow_up_questions=follow_ups,
                    time_to_answer=parameters.time_limit,
                )
            )
        return questions

    @staticmethod
    def default_answer_feedback(confidence_score: float) -> AnswerFeedback:
        score = round(confidence_score * 100)
        return AnswerFeedback(
            overall_score=score,
            strengths=["You gave a complete answer"] if score >= 60 else [],
            improvements=["Structure the answer as Situation, Task, Action, Result"] if score < 80 else [],
            summary="Automated feedback is unavailable right now; this score is based on keywords, length and structure.",
        )


def parse_json_response(content: str, error_context: dict[str, Any]) -> Any:
    """
    Parse JSON response with unified error handling.

    Raises:
        ProviderParseError: If parsing fails
    """
    if not content:
        raise ProviderParseError("Empty response content")

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        log_event(
            "llm.json_parse_error",
            component="provider",
            operation=error_context.get("operation", "unknown"),
            provider=error_context.get("provider", "unknown"),
            model=error_context.get("model", "unknown"),
            error_msg=str(e),
            content_length=len(content),
        )
        raise ProviderParseError(f"Invalid JSON response: {e}") from e


def extract_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    try:
        content = ""
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "text":
                content += block.text
        return content
    except (AttributeError, TypeError) as e:
        raise ProviderResponseError(f"Failed to extract content: {e}") from e
