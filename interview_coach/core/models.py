from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field


class UsageReason(str, Enum):
    """Why a prompt is or is not available."""

    AVAILABLE = "available"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    NO_SUBSCRIPTION = "no_subscription"
    SUBSCRIPTION_EXPIRED = "subscription_expired"


class UsageStatus(BaseModel):
    allowed: bool
    reason: UsageReason
    current_count: int = 0
    remaining: int = 0
    limit: int = 0
    reset_time: datetime
    usage_date: date


class TrackResult(BaseModel):
    success: bool
    new_count: int
    limit: int
    remaining: int
    reset_time: datetime
    usage_date: date


class DailyUsage(BaseModel):
    usage_date: date
    prompt_count: int
    prompt_limit: int


class Subscription(BaseModel):
    user_id: str
    tier: Literal["trial", "pro"]
    status: Literal["trial", "active", "canceled", "expired", "past_due"]
    trial_end_date: datetime | None = None
    current_period_end: datetime | None = None


class User(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    current_difficulty: float = 5.0
    created_at: datetime
    updated_at: datetime


class UserCreate(BaseModel):
    email: str
    name: str | None = None


class QuestionResult(BaseModel):
    """One answered question in a user's performance history."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    question_id: str | None = None
    difficulty: float = Field(ge=1, le=10)
    was_correct: bool
    time_spent_seconds: float = Field(ge=0)
    confidence_score: float = Field(ge=0, le=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


ConfidenceTrend = Literal["improving", "stable", "declining"]


class PerformanceMetrics(BaseModel):
    success_rate: float
    avg_time_ratio: float
    confidence_trend: ConfidenceTrend


class DifficultyAdjustment(BaseModel):
    new_difficulty: float
    reason: str
    metrics: PerformanceMetrics
    insufficient_data: bool = False


class QuestionParameters(BaseModel):
    complexity: Literal["basic", "intermediate", "advanced", "expert"]
    time_limit: int
    follow_up_count: int
    requires_examples: bool
    requires_analysis: bool


class QuestionGenerationRequest(BaseModel):
    industry: str = "technology"
    role: str | None = None
    experience_level: Literal["entry", "mid", "senior", "executive"] = "mid"
    question_type: Literal["behavioral", "technical", "situational", "cultural"] = "behavioral"
    count: int = Field(default=1, ge=1, le=5)


class GeneratedQuestion(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    text: str
    type: Literal["behavioral", "technical", "situational", "cultural"]
    category: str
    difficulty: float
    expected_keywords: list[str] = []
    follow_up_questions: list[str] = []
    time_to_answer: int | None = None


class AnswerFeedback(BaseModel):
    overall_score: int = Field(ge=0, le=100)
    strengths: list[str] = []
    improvements: list[str] = []
    summary: str
