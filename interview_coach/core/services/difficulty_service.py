from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from interview_coach.core.database_models import QuestionResultTable, UserTable
from interview_coach.core.difficulty_engine import HISTORY_WINDOW, DifficultyEngine, difficulty_engine
from interview_coach.core.logging import log_event, span
from interview_coach.core.models import DifficultyAdjustment, QuestionResult
from interview_coach.core.services.exceptions import UserNotFoundError
from interview_coach.core.storage import DatabaseManager, ResultSaveError


class DifficultyService:
    """Stores question outcomes and keeps each user's difficulty level current."""

    def __init__(self, storage: DatabaseManager, engine: DifficultyEngine | None = None):
        self.storage = storage
        self.engine = engine or difficulty_engine

    def record_result(self, user_id: str, result: QuestionResult) -> QuestionResult:
        """Append a result to the user's history."""
        with self.storage.SessionLocal() as db_session:
            self._get_user(db_session, user_id)
            row = QuestionResultTable(
                id=result.id,
                user_id=user_id,
                question_id=result.question_id,
                difficulty=result.difficulty,
                was_correct=result.was_correct,
                time_spent_seconds=result.time_spent_seconds,
                confidence_score=result.confidence_score,
                created_at=result.timestamp,
            )
            try:
                db_session.add(row)
                db_session.commit()
            except SQLAlchemyError as e:
                db_session.rollback()
                raise ResultSaveError(f"Failed to save question result for user {user_id}: {e}") from e

        log_event(
            "difficulty.result_recorded",
            component="difficulty",
            operation="record_result",
            user_id=user_id,
            difficulty=result.difficulty,
            was_correct=result.was_correct,
        )
        return result

    def get_recent_results(self, user_id: str, limit: int = HISTORY_WINDOW) -> list[QuestionResult]:
        """Most recent results, oldest first."""
        if limit <= 0:
            raise ValueError("limit must be positive")

        with self.storage.SessionLocal() as db_session:
            self._get_user(db_session, user_id)
            return self._load_window(db_session, user_id, limit)

    def get_current_difficulty(self, user_id: str) -> float:
        with self.storage.SessionLocal() as db_session:
            return self._get_user(db_session, user_id).current_difficulty

    def preview_adjustment(self, user_id: str) -> DifficultyAdjustment:
        """What the next adjustment would be, without saving it."""
        with self.storage.SessionLocal() as db_session:
            user = self._get_user(db_session, user_id)
            history = self._load_window(db_session, user_id, HISTORY_WINDOW)
            return self.engine.calculate_next_difficulty(history, user.current_difficulty)

    def adjust_difficulty(self, user_id: str) -> DifficultyAdjustment:
        """Recompute the user's difficulty from recent history and persist it."""
        with span("difficulty.adjust", component="difficulty", operation="adjust", user_id=user_id):
            with self.storage.SessionLocal() as db_session:
                user = self._get_user(db_session, user_id)
                previous = user.current_difficulty
                history = self._load_window(db_session, user_id, HISTORY_WINDOW)
                adjustment = self.engine.calculate_next_difficulty(history, previous)

                if adjustment.new_difficulty != previous:
                    try:
                        user.current_difficulty = adjustment.new_difficulty
                        db_session.commit()
                    except SQLAlchemyError as e:
                        db_session.rollback()
                        raise ResultSaveError(f"Failed to save difficulty for user {user_id}: {e}") from e

        log_event(
            "difficulty.adjusted",
            component="difficulty",
            operation="adjust",
            user_id=user_id,
            previous_difficulty=previous,
            new_difficulty=adjustment.new_difficulty,
            reason=adjustment.reason,
            success_rate=adjustment.metrics.success_rate,
            avg_time_ratio=adjustment.metrics.avg_time_ratio,
            confidence_trend=adjustment.metrics.confidence_trend,
            window=len(history),
        )
        return adjustment

    def _get_user(self, db_session: DBSession, user_id: str) -> UserTable:
        user = db_session.get(UserTable, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _load_window(self, db_session: DBSession, user_id: str, limit: int) -> list[QuestionResult]:
        rows = db_session.execute(
            select(QuestionResultTable)
            .where(QuestionResultTable.user_id == user_id)
            .order_by(QuestionResultTable.seq.desc())
            .limit(limit)
        ).scalars()
        results = [
            QuestionResult(
                id=r.id,
                question_id=r.question_id,
                difficulty=r.difficulty,
                was_correct=r.was_correct,
                time_spent_seconds=r.time_spent_seconds,
                confidence_score=r.confidence_score,
                timestamp=r.created_at,
            )
            for r in rows
        ]
        results.reverse()
        return results
