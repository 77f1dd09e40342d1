from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from interview_coach.core.models import (
    AnswerFeedback,
    DailyUsage,
    GeneratedQuestion,
    PerformanceMetrics,
    QuestionResult,
)


class UsageHistoryResponse(BaseModel):
    days: int
    usage: list[DailyUsage]


class QuestionResultCreateRequest(BaseModel):
    question_id: str | None = Field(default=None, max_length=128)
    difficulty: float = Field(..., ge=1, le=10)
    was_correct: bool
    time_spent_seconds: float = Field(..., ge=0)
    confidence_score: float = Field(..., ge=0, le=1)


class DifficultyResponse(BaseModel):
    current_difficulty: float
    recent_results: list[QuestionResult]
    metrics: PerformanceMetrics
    encouragement: str


class DifficultyAdjustmentResponse(BaseModel):
    previous_difficulty: float
    new_difficulty: float
    reason: str
    metrics: PerformanceMetrics
    insufficient_data: bool
    encouragement: str


class ConfidenceScoreRequest(BaseModel):
    answer_text: str = Field(..., max_length=20000)
    expected_keywords: list[str] = Field(default_factory=list, max_length=50)


class ConfidenceScoreResponse(BaseModel):
    confidence_score: float


class QuestionsResponse(BaseModel):
    questions: list[GeneratedQuestion]
    difficulty: float


class AnswerFeedbackRequest(BaseModel):
    question_id: str | None = Field(default=None, max_length=128)
    question_text: str = Field(..., min_length=1, max_length=2000)
    answer_text: str = Field(..., min_length=1, max_length=20000)
    expected_keywords: list[str] = Field(default_factory=list, max_length=50)
    time_spent_seconds: float = Field(..., ge=0)
    difficulty: float | None = Field(default=None, ge=1, le=10)

    @field_validator("question_text", "answer_text")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text cannot be empty or only whitespace")
        return v.strip()


class AnswerFeedbackResponse(BaseModel):
    feedback: AnswerFeedback
    result: QuestionResult


class SubscriptionResponse(BaseModel):
    tier: str
    status: str
    active: bool
    trial_end_date: datetime | None = None
    current_period_end: datetime | None = None
