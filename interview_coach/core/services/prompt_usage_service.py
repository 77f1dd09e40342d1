"""Daily prompt quota tracking.

Each user gets a counter row per calendar day. Increments go through a single
guarded UPDATE (``prompt_count < prompt_limit``) so concurrent requests can
never push a day past its limit, however many processes serve traffic.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from interview_coach.core.database_models import PromptUsageTable
from interview_coach.core.logging import log_event, span
from interview_coach.core.models import DailyUsage, TrackResult, UsageReason, UsageStatus
from interview_coach.core.services.exceptions import (
    NoSubscriptionError,
    QuotaExceededError,
    SubscriptionExpiredError,
)
from interview_coach.core.services.quota_config import QuotaConfig
from interview_coach.core.services.subscription_service import SubscriptionService
from interview_coach.core.storage import DatabaseManager, UsageUpdateError


def next_reset_time(usage_date: date) -> datetime:
    """Server-local midnight at the end of ``usage_date``."""
    return datetime.combine(usage_date + timedelta(days=1), time.min)


class PromptUsageService:
    """Checks and consumes a user's daily prompt allowance."""

    def __init__(
        self,
        storage: DatabaseManager,
        subscription_service: SubscriptionService | None = None,
        config: QuotaConfig | None = None,
    ):
        self.storage = storage
        self.config = config or QuotaConfig()
        self.subscription_service = subscription_service or SubscriptionService(storage, self.config)

    def can_make_prompt(
        self, user_id: str, usage_date: date | None = None, now: datetime | None = None
    ) -> UsageStatus:
        """Report whether another prompt is allowed today. Never changes the count."""
        self._validate_user_id(user_id)
        usage_date = usage_date or date.today()
        reset_time = next_reset_time(usage_date)

        with span("quota.can_make_prompt", component="quota", operation="can_make_prompt", user_id=user_id):
            with self.storage.SessionLocal() as db_session:
                try:
                    subscription = self.subscription_service.require_active(db_session, user_id, now)
                except NoSubscriptionError:
                    return self._blocked_status(UsageReason.NO_SUBSCRIPTION, usage_date, reset_time)
                except SubscriptionExpiredError:
                    return self._blocked_status(UsageReason.SUBSCRIPTION_EXPIRED, usage_date, reset_time)

                try:
                    self._ensure_usage_row(db_session, user_id, usage_date, subscription.tier)
                    db_session.commit()
                    count, limit = self._read_usage(db_session, user_id, usage_date)
                except SQLAlchemyError as e:
                    db_session.rollback()
                    raise UsageUpdateError(f"Failed to read prompt usage for user {user_id}: {e}") from e

        allowed = count < limit
        return UsageStatus(
            allowed=allowed,
            reason=UsageReason.AVAILABLE if allowed else UsageReason.DAILY_LIMIT_EXCEEDED,
            current_count=count,
            remaining=max(0, limit - count),
            limit=limit,
            reset_time=reset_time,
            usage_date=usage_date,
        )

    def track_prompt(self, user_id: str, usage_date: date | None = None, now: datetime | None = None) -> TrackResult:
        """Consume one prompt for the day.

        Raises:
            NoSubscriptionError / SubscriptionExpiredError: the user may not prompt at all
            QuotaExceededError: today's limit is already reached; nothing is changed
        """
        self._validate_user_id(user_id)
        usage_date = usage_date or date.today()
        reset_time = next_reset_time(usage_date)

        with span("quota.track_prompt", component="quota", operation="track_prompt", user_id=user_id):
            with self.storage.SessionLocal() as db_session:
                subscription = self.subscription_service.require_active(db_session, user_id, now)

                try:
                    self._ensure_usage_row(db_session, user_id, usage_date, subscription.tier)
                    incremented = self._try_increment(db_session, user_id, usage_date)
                    count, limit = self._read_usage(db_session, user_id, usage_date)
                    db_session.commit()
                except SQLAlchemyError as e:
                    db_session.rollback()
                    raise UsageUpdateError(f"Failed to track prompt usage for user {user_id}: {e}") from e

        if not incremented:
            log_event(
                "quota.exceeded",
                component="quota",
                operation="track_prompt",
                user_id=user_id,
                usage_date=usage_date.isoformat(),
                current=count,
                limit=limit,
            )
            raise QuotaExceededError(current=count, limit=limit, reset_time=reset_time)

        log_event(
            "quota.prompt_tracked",
            component="quota",
            operation="track_prompt",
            user_id=user_id,
            usage_date=usage_date.isoformat(),
            new_count=count,
            limit=limit,
        )
        return TrackResult(
            success=True,
            new_count=count,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
            usage_date=usage_date,
        )

    def get_usage_history(self, user_id: str, days: int = 7, today: date | None = None) -> list[DailyUsage]:
        """Per-day usage rows for the last ``days`` days, newest first."""
        self._validate_user_id(user_id)
        if days <= 0:
            raise ValueError("days must be positive")

        today = today or date.today()
        since = today - timedelta(days=days - 1)
        with self.storage.SessionLocal() as db_session:
            rows = db_session.execute(
                select(PromptUsageTable)
                .where(
                    PromptUsageTable.user_id == user_id,
                    PromptUsageTable.usage_date >= since,
                    PromptUsageTable.usage_date <= today,
                )
                .order_by(PromptUsageTable.usage_date.desc())
            ).scalars()
            return [
                DailyUsage(usage_date=r.usage_date, prompt_count=r.prompt_count, prompt_limit=r.prompt_limit)
                for r in rows
            ]

    def _ensure_usage_row(self, db_session: DBSession, user_id: str, usage_date: date, tier: str) -> None:
        """Create the day's counter at zero if it does not exist yet. Concurrent creators are no-ops."""
        stmt = (
            sqlite_insert(PromptUsageTable)
            .values(
                user_id=user_id,
                usage_date=usage_date,
                prompt_count=0,
                prompt_limit=self.config.daily_limit_for_tier(tier),
            )
            .on_conflict_do_nothing(index_elements=["user_id", "usage_date"])
        )
        db_session.execute(stmt)

    def _try_increment(self, db_session: DBSession, user_id: str, usage_date: date) -> bool:
        stmt = (
            update(PromptUsageTable)
            .where(
                PromptUsageTable.user_id == user_id,
                PromptUsageTable.usage_date == usage_date,
                PromptUsageTable.prompt_count < PromptUsageTable.prompt_limit,
            )
            .values(prompt_count=PromptUsageTable.prompt_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = db_session.execute(stmt)
        return result.rowcount == 1

    def _read_usage(self, db_session: DBSession, user_id: str, usage_date: date) -> tuple[int, int]:
        row = db_session.execute(
            select(PromptUsageTable.prompt_count, PromptUsageTable.prompt_limit).where(
                PromptUsageTable.user_id == user_id, PromptUsageTable.usage_date == usage_date
            )
        ).one()
        return row.prompt_count, row.prompt_limit

    def _blocked_status(self, reason: UsageReason, usage_date: date, reset_time: datetime) -> UsageStatus:
        log_event("quota.blocked", component="quota", operation="can_make_prompt", reason=reason.value)
        return UsageStatus(allowed=False, reason=reason, reset_time=reset_time, usage_date=usage_date)

    def _validate_user_id(self, user_id: str) -> None:
        if not user_id or not user_id.strip():
            raise ValueError("user_id cannot be empty")
