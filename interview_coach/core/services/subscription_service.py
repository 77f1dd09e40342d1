from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession

from interview_coach.core.database_models import SubscriptionTable, UserTable
from interview_coach.core.logging import log_event
from interview_coach.core.models import Subscription
from interview_coach.core.services.exceptions import (
    NoSubscriptionError,
    SubscriptionExpiredError,
    TrialAlreadyUsedError,
    UserNotFoundError,
)
from interview_coach.core.services.quota_config import QuotaConfig
from interview_coach.core.storage import DatabaseManager

# Only these statuses can grant access; the end date decides whether they still do
USABLE_STATUSES = ("trial", "active")


def utc_now() -> datetime:
    """Naive UTC timestamp, matching what SQLite hands back for DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def normalize_now(now: datetime | None) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is not None:
        return now.astimezone(UTC).replace(tzinfo=None)
    return now


def access_end(subscription: SubscriptionTable | Subscription) -> datetime | None:
    if subscription.status == "trial":
        return subscription.trial_end_date
    return subscription.current_period_end


def is_subscription_active(subscription: SubscriptionTable | Subscription, now: datetime) -> bool:
    """A trial is live until trial_end_date, a paid plan until current_period_end."""
    if subscription.status not in USABLE_STATUSES:
        return False
    end = access_end(subscription)
    return end is not None and end > now


class SubscriptionService:
    """Trial and subscription state that gates prompt usage."""

    def __init__(self, storage: DatabaseManager, config: QuotaConfig | None = None):
        self.storage = storage
        self.config = config or QuotaConfig()

    def get_subscription(self, user_id: str) -> Subscription | None:
        with self.storage.SessionLocal() as db_session:
            row = self._get_row(db_session, user_id)
            return self._table_to_model(row) if row else None

    def require_active(self, db_session: DBSession, user_id: str, now: datetime | None = None) -> SubscriptionTable:
        """Return the user's usable subscription or raise why there is none."""
        now = normalize_now(now)
        row = db_session.execute(
            select(SubscriptionTable).where(
                SubscriptionTable.user_id == user_id, SubscriptionTable.status.in_(USABLE_STATUSES)
            )
        ).scalar_one_or_none()

        if row is None:
            raise NoSubscriptionError(user_id)
        if not is_subscription_active(row, now):
            raise SubscriptionExpiredError(user_id, access_end(row))
        return row

    def start_trial(self, user_id: str, now: datetime | None = None) -> Subscription:
        """Open the one-time free trial for a user."""
        now = normalize_now(now)
        with self.storage.SessionLocal() as db_session:
            if db_session.get(UserTable, user_id) is None:
                raise UserNotFoundError(user_id)
            if self._get_row(db_session, user_id) is not None:
                raise TrialAlreadyUsedError(user_id)

            row = SubscriptionTable(
                user_id=user_id,
                tier="trial",
                status="trial",
                trial_end_date=now + timedelta(days=self.config.trial_period_days),
            )
            db_session.add(row)
            db_session.commit()
            db_session.refresh(row)

            log_event(
                "subscription.trial_started",
                component="subscription",
                operation="start_trial",
                user_id=user_id,
                trial_end_date=row.trial_end_date.isoformat(),
            )
            return self._table_to_model(row)

    def activate_subscription(self, user_id: str, current_period_end: datetime, tier: str = "pro") -> Subscription:
        """Record a paid billing period, replacing any trial."""
        with self.storage.SessionLocal() as db_session:
            if db_session.get(UserTable, user_id) is None:
                raise UserNotFoundError(user_id)

            row = self._get_row(db_session, user_id)
            if row is None:
                row = SubscriptionTable(user_id=user_id)
                db_session.add(row)

            row.tier = tier
            row.status = "active"
            row.current_period_end = normalize_now(current_period_end)
            db_session.commit()
            db_session.refresh(row)

            log_event(
                "subscription.activated",
                component="subscription",
                operation="activate",
                user_id=user_id,
                tier=tier,
                current_period_end=row.current_period_end.isoformat(),
            )
            return self._table_to_model(row)

    def _get_row(self, db_session: DBSession, user_id: str) -> SubscriptionTable | None:
        return db_session.execute(
            select(SubscriptionTable).where(SubscriptionTable.user_id == user_id)
        ).scalar_one_or_none()

    def _table_to_model(self, row: SubscriptionTable) -> Subscription:
        return Subscription(
            user_id=row.user_id,
            tier=row.tier,
            status=row.status,
            trial_end_date=row.trial_end_date,
            current_period_end=row.current_period_end,
        )
