"""Adaptive question difficulty.

Recommends the next difficulty level (1-10, in steps of 0.5) from a user's
most recent question results, aiming for a success rate around 75%. Time
spent and self-confidence trend act as small secondary corrections.
"""

import math
from collections.abc import Sequence

from interview_coach.core.models import (
    ConfidenceTrend,
    DifficultyAdjustment,
    PerformanceMetrics,
    QuestionParameters,
    QuestionResult,
)

TARGET_SUCCESS_RATE = 0.75
SUCCESS_RATE_TOLERANCE = 0.05

# Largest change allowed from a single adjustment
MAX_DIFFICULTY_CHANGE = 0.5
MIN_QUESTIONS_FOR_ADJUSTMENT = 3
HISTORY_WINDOW = 10

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
DEFAULT_DIFFICULTY = 5.0

# Expected seconds to answer, keyed by integer difficulty level
TIME_EXPECTATIONS: dict[int, int] = {
    1: 30,
    2: 45,
    3: 60,
    4: 90,
    5: 120,
    6: 150,
    7: 180,
    8: 240,
    9: 300,
    10: 360,
}
DEFAULT_EXPECTED_TIME = 120

CONFIDENCE_TREND_THRESHOLD = 0.1

INSUFFICIENT_DATA_REASON = "Insufficient data for adjustment"
OPTIMAL_REASON = "Performance is optimal at current level"

STAR_MARKERS = ("situation", "task", "action", "result")
SEQUENCE_MARKERS = ("first", "then", "finally")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_to_half(value: float) -> float:
    """Round to the nearest 0.5, ties going up."""
    return _round_half_up(value * 2) / 2


def expected_time_for_difficulty(difficulty: float) -> int:
    return TIME_EXPECTATIONS.get(_round_half_up(difficulty), DEFAULT_EXPECTED_TIME)


class DifficultyEngine:
    """Stateless difficulty recommender. Safe to share between requests."""

    def calculate_next_difficulty(
        self, history: Sequence[QuestionResult], current_difficulty: float
    ) -> DifficultyAdjustment:
        """Recommend the next difficulty from the most recent results (oldest first)."""
        if len(history) < MIN_QUESTIONS_FOR_ADJUSTMENT:
            return DifficultyAdjustment(
                new_difficulty=current_difficulty,
                reason=INSUFFICIENT_DATA_REASON,
                metrics=PerformanceMetrics(success_rate=0.0, avg_time_ratio=1.0, confidence_trend="stable"),
                insufficient_data=True,
            )

        metrics = self.calculate_performance_metrics(history)
        new_difficulty, reason = self._determine_adjustment(metrics, current_difficulty)
        return DifficultyAdjustment(new_difficulty=new_difficulty, reason=reason, metrics=metrics)

    def calculate_performance_metrics(self, history: Sequence[QuestionResult]) -> PerformanceMetrics:
        recent = list(history)[-HISTORY_WINDOW:]
        if not recent:
            return PerformanceMetrics(success_rate=0.0, avg_time_ratio=1.0, confidence_trend="stable")

        success_rate = sum(1 for r in recent if r.was_correct) / len(recent)
        avg_time_ratio = sum(r.time_spent_seconds / expected_time_for_difficulty(r.difficulty) for r in recent) / len(
            recent
        )

        return PerformanceMetrics(
            success_rate=success_rate,
            avg_time_ratio=avg_time_ratio,
            confidence_trend=self.calculate_confidence_trend(recent),
        )

    def calculate_confidence_trend(self, recent: Sequence[QuestionResult]) -> ConfidenceTrend:
        if len(recent) < MIN_QUESTIONS_FOR_ADJUSTMENT:
            return "stable"

        midpoint = len(recent) // 2
        first_half = recent[:midpoint]
        second_half = recent[midpoint:]

        first_avg = sum(r.confidence_score for r in first_half) / len(first_half)
        second_avg = sum(r.confidence_score for r in second_half) / len(second_half)
        difference = second_avg - first_avg

        if difference > CONFIDENCE_TREND_THRESHOLD:
            return "improving"
        if difference < -CONFIDENCE_TREND_THRESHOLD:
            return "declining"
        return "stable"

    def _determine_adjustment(self, metrics: PerformanceMetrics, current_difficulty: float) -> tuple[float, str]:
        adjustment = 0.0
        reasons: list[str] = []

        if metrics.success_rate > TARGET_SUCCESS_RATE + SUCCESS_RATE_TOLERANCE:
            adjustment += 0.3
            reasons.append(f"High success rate ({metrics.success_rate * 100:.0f}%)")
            if metrics.success_rate > 0.9:
                adjustment += 0.2
                reasons.append("Very high performance")
        elif metrics.success_rate < TARGET_SUCCESS_RATE - SUCCESS_RATE_TOLERANCE:
            adjustment -= 0.3
            reasons.append(f"Low success rate ({metrics.success_rate * 100:.0f}%)")
            if metrics.success_rate < 0.5:
                adjustment -= 0.2
                reasons.append("Struggling with current level")

        if metrics.avg_time_ratio < 0.7:
            adjustment += 0.1
            reasons.append("Quick response times")
        elif metrics.avg_time_ratio > 1.3:
            adjustment -= 0.1
            reasons.append("Extended response times")

        if metrics.confidence_trend == "improving" and metrics.success_rate > 0.7:
            adjustment += 0.1
            reasons.append("Growing confidence")
        elif metrics.confidence_trend == "declining" and metrics.success_rate < 0.7:
            adjustment -= 0.1
            reasons.append("Declining confidence")

        adjustment = _clamp(adjustment, -MAX_DIFFICULTY_CHANGE, MAX_DIFFICULTY_CHANGE)
        new_difficulty = round_to_half(_clamp(current_difficulty + adjustment, MIN_DIFFICULTY, MAX_DIFFICULTY))

        reason = ", ".join(reasons) if reasons else OPTIMAL_REASON
        return new_difficulty, reason

    def get_question_parameters(self, difficulty: float) -> QuestionParameters:
        """Map a difficulty level onto the shape of question to ask."""
        if difficulty <= 2.5:
            return QuestionParameters(
                complexity="basic", time_limit=60, follow_up_count=0, requires_examples=False, requires_analysis=False
            )
        if difficulty <= 5:
            return QuestionParameters(
                complexity="intermediate",
                time_limit=120,
                follow_up_count=1,
                requires_examples=True,
                requires_analysis=False,
            )
        if difficulty <= 7.5:
            return QuestionParameters(
                complexity="advanced", time_limit=180, follow_up_count=2, requires_examples=True, requires_analysis=True
            )
        return QuestionParameters(
            complexity="expert", time_limit=300, follow_up_count=3, requires_examples=True, requires_analysis=True
        )

    def score_answer_confidence(self, answer_text: str, expected_keywords: Sequence[str]) -> float:
        """Heuristic answer quality in [0, 1].

        40% keyword coverage, 30% answer length, 30% structure (STAR words or
        first/then/finally sequencing). An empty keyword list scores zero on
        coverage.
        """
        answer_lower = answer_text.lower()
        word_count = len(answer_text.split())

        keywords = [k for k in expected_keywords if k.strip()]
        if keywords:
            matches = sum(1 for keyword in keywords if keyword.lower() in answer_lower)
            keyword_score = matches / len(keywords)
        else:
            keyword_score = 0.0

        if word_count < 50:
            length_score = 0.5
        elif word_count < 100:
            length_score = 0.75
        elif word_count > 400:
            length_score = 0.85
        else:
            length_score = 1.0

        has_structure = any(marker in answer_lower for marker in STAR_MARKERS) or all(
            marker in answer_lower for marker in SEQUENCE_MARKERS
        )
        structure_score = 1.0 if has_structure else 0.7

        score = keyword_score * 0.4 + length_score * 0.3 + structure_score * 0.3
        return _clamp(score, 0.0, 1.0)

    def get_encouragement(self, metrics: PerformanceMetrics) -> str:
        improving = metrics.confidence_trend == "improving"
        if metrics.success_rate > 0.8 and improving:
            return "Excellent work! You're mastering these questions. Ready for a challenge?"
        if metrics.success_rate > 0.7:
            return "Great job! You're in the optimal learning zone."
        if metrics.success_rate > 0.5 and improving:
            return "You're improving! Keep up the momentum."
        if metrics.success_rate > 0.5:
            return "You're doing well. Focus on structure and key points."
        if improving:
            return "Don't give up! Your confidence is growing, and success will follow."
        return "Take your time. Remember to use the STAR method for behavioral questions."


difficulty_engine = DifficultyEngine()


def calculate_next_difficulty(history: Sequence[QuestionResult], current_difficulty: float) -> DifficultyAdjustment:
    return difficulty_engine.calculate_next_difficulty(history, current_difficulty)


def score_answer_confidence(answer_text: str, expected_keywords: Sequence[str]) -> float:
    return difficulty_engine.score_answer_confidence(answer_text, expected_keywords)
