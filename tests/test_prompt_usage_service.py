"""Tests for PromptUsageService against a real SQLite database."""

import threading
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select

from interview_coach.core.database_models import PromptUsageTable
from interview_coach.core.models import UsageReason
from interview_coach.core.services.exceptions import (
    NoSubscriptionError,
    QuotaExceededError,
    SubscriptionExpiredError,
)
from interview_coach.core.services.prompt_usage_service import PromptUsageService, next_reset_time
from interview_coach.core.services.quota_config import QuotaConfig
from interview_coach.core.services.subscription_service import SubscriptionService, utc_now

TODAY = date(2025, 3, 14)


@pytest.fixture
def low_limit_service(db_manager, monkeypatch):
    """A service built after the trial limit drops to 3, so its config sees it."""
    monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", "3")
    return PromptUsageService(db_manager)


@pytest.fixture
def usage_service(db_manager):
    return PromptUsageService(db_manager)


def stored_count(db_manager, user_id: str, usage_date: date) -> int | None:
    with db_manager.SessionLocal() as db_session:
        return db_session.execute(
            select(PromptUsageTable.prompt_count).where(
                PromptUsageTable.user_id == user_id, PromptUsageTable.usage_date == usage_date
            )
        ).scalar_one_or_none()


class TestNextResetTime:
    def test_is_midnight_of_following_day(self):
        assert next_reset_time(TODAY) == datetime(2025, 3, 15, 0, 0)

    def test_crosses_month_boundary(self):
        assert next_reset_time(date(2025, 1, 31)) == datetime(2025, 2, 1)


class TestCanMakePrompt:
    def test_fresh_day_is_available(self, usage_service, trial_user_id):
        status = usage_service.can_make_prompt(trial_user_id, usage_date=TODAY)

        assert status.allowed is True
        assert status.reason == UsageReason.AVAILABLE
        assert status.current_count == 0
        assert status.limit == 20
        assert status.remaining == 20
        assert status.reset_time == datetime(2025, 3, 15)

    def test_does_not_consume_a_prompt(self, usage_service, db_manager, trial_user_id):
        for _ in range(3):
            usage_service.can_make_prompt(trial_user_id, usage_date=TODAY)

        assert stored_count(db_manager, trial_user_id, TODAY) == 0

    def test_reports_limit_reached(self, low_limit_service, trial_user_id):
        for _ in range(3):
            low_limit_service.track_prompt(trial_user_id, usage_date=TODAY)

        status = low_limit_service.can_make_prompt(trial_user_id, usage_date=TODAY)

        assert status.allowed is False
        assert status.reason == UsageReason.DAILY_LIMIT_EXCEEDED
        assert status.current_count == 3
        assert status.remaining == 0

    def test_no_subscription(self, usage_service, user_id):
        status = usage_service.can_make_prompt(user_id, usage_date=TODAY)

        assert status.allowed is False
        assert status.reason == UsageReason.NO_SUBSCRIPTION
        assert status.remaining == 0

    def test_expired_trial(self, usage_service, trial_user_id):
        status = usage_service.can_make_prompt(trial_user_id, usage_date=TODAY, now=utc_now() + timedelta(days=8))

        assert status.allowed is False
        assert status.reason == UsageReason.SUBSCRIPTION_EXPIRED

    def test_empty_user_id_rejected(self, usage_service):
        with pytest.raises(ValueError, match="user_id cannot be empty"):
            usage_service.can_make_prompt("  ")


class TestTrackPrompt:
    def test_increments_count(self, usage_service, db_manager, trial_user_id):
        first = usage_service.track_prompt(trial_user_id, usage_date=TODAY)
        second = usage_service.track_prompt(trial_user_id, usage_date=TODAY)

        assert first.success is True
        assert first.new_count == 1
        assert second.new_count == 2
        assert second.remaining == 18
        assert second.limit == 20
        assert stored_count(db_manager, trial_user_id, TODAY) == 2

    def test_raises_at_limit_without_changing_count(self, low_limit_service, db_manager, trial_user_id):
        for _ in range(3):
            low_limit_service.track_prompt(trial_user_id, usage_date=TODAY)

        with pytest.raises(QuotaExceededError) as exc_info:
            low_limit_service.track_prompt(trial_user_id, usage_date=TODAY)

        assert exc_info.value.current == 3
        assert exc_info.value.limit == 3
        assert exc_info.value.reset_time == datetime(2025, 3, 15)
        assert stored_count(db_manager, trial_user_id, TODAY) == 3

    def test_new_day_starts_from_zero(self, low_limit_service, trial_user_id):
        for _ in range(3):
            low_limit_service.track_prompt(trial_user_id, usage_date=TODAY)

        result = low_limit_service.track_prompt(trial_user_id, usage_date=TODAY + timedelta(days=1))

        assert result.new_count == 1
        assert result.remaining == 2

    def test_limit_is_snapshotted_per_day(self, usage_service, db_manager, trial_user_id, monkeypatch):
        usage_service.track_prompt(trial_user_id, usage_date=TODAY)

        monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", "1")
        service_with_new_limit = PromptUsageService(db_manager)

        assert service_with_new_limit.track_prompt(trial_user_id, usage_date=TODAY).limit == 20
        assert service_with_new_limit.can_make_prompt(trial_user_id, usage_date=TODAY + timedelta(days=1)).limit == 1

    def test_zero_limit_blocks_immediately(self, usage_service, trial_user_id, monkeypatch):
        monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", "0")

        with pytest.raises(QuotaExceededError):
            PromptUsageService(usage_service.storage).track_prompt(trial_user_id, usage_date=TODAY)

    def test_requires_subscription(self, usage_service, db_manager, user_id):
        with pytest.raises(NoSubscriptionError):
            usage_service.track_prompt(user_id, usage_date=TODAY)

        assert stored_count(db_manager, user_id, TODAY) is None

    def test_rejects_expired_subscription(self, usage_service, trial_user_id):
        with pytest.raises(SubscriptionExpiredError):
            usage_service.track_prompt(trial_user_id, usage_date=TODAY, now=utc_now() + timedelta(days=30))

    def test_pro_tier_uses_pro_limit(self, db_manager, user_id, monkeypatch):
        monkeypatch.setenv("PRO_DAILY_PROMPT_LIMIT", "50")
        config = QuotaConfig()
        SubscriptionService(db_manager, config).activate_subscription(user_id, utc_now() + timedelta(days=30))

        result = PromptUsageService(db_manager, config=config).track_prompt(user_id, usage_date=TODAY)

        assert result.limit == 50

    def test_concurrent_requests_never_exceed_limit(self, usage_service, db_manager, trial_user_id):
        successes = []
        rejections = []
        errors = []
        lock = threading.Lock()

        def worker():
            for _ in range(5):
                try:
                    usage_service.track_prompt(trial_user_id, usage_date=TODAY)
                    with lock:
                        successes.append(1)
                except QuotaExceededError:
                    with lock:
                        rejections.append(1)
                except Exception as e:  # noqa: BLE001
                    with lock:
                        errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(successes) == 20
        assert len(rejections) == 20
        assert stored_count(db_manager, trial_user_id, TODAY) == 20


class TestUsageHistory:
    def test_returns_recent_days_newest_first(self, usage_service, trial_user_id):
        for offset, prompts in [(0, 2), (1, 1), (3, 4), (10, 1)]:
            for _ in range(prompts):
                usage_service.track_prompt(trial_user_id, usage_date=TODAY - timedelta(days=offset))

        history = usage_service.get_usage_history(trial_user_id, days=7, today=TODAY)

        assert [(h.usage_date, h.prompt_count) for h in history] == [
            (TODAY, 2),
            (TODAY - timedelta(days=1), 1),
            (TODAY - timedelta(days=3), 4),
        ]
        assert all(h.prompt_limit == 20 for h in history)

    def test_rejects_non_positive_days(self, usage_service, trial_user_id):
        with pytest.raises(ValueError):
            usage_service.get_usage_history(trial_user_id, days=0)


class TestQuotaConfig:
    def test_defaults(self, monkeypatch):
        for name in ("TRIAL_DAILY_PROMPT_LIMIT", "PRO_DAILY_PROMPT_LIMIT", "TRIAL_PERIOD_DAYS"):
            monkeypatch.delenv(name, raising=False)
        config = QuotaConfig()

        assert config.daily_limit_for_tier("trial") == 20
        assert config.daily_limit_for_tier("pro") == 20
        assert config.trial_period_days == 7

    @pytest.mark.parametrize("raw", ["abc", "-1", "999999"])
    def test_invalid_values_fall_back_to_default(self, monkeypatch, raw):
        monkeypatch.setenv("TRIAL_DAILY_PROMPT_LIMIT", raw)
        assert QuotaConfig().trial_daily_limit == 20
