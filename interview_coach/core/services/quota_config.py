"""Prompt quota and trial configuration service."""

import os

# One plan, one limit: 20 prompts per day for trial and paid users alike
DEFAULT_TRIAL_DAILY_PROMPT_LIMIT = 20
DEFAULT_PRO_DAILY_PROMPT_LIMIT = 20
DEFAULT_TRIAL_PERIOD_DAYS = 7

MAX_DAILY_PROMPT_LIMIT = 10_000


class QuotaConfig:
    """Reads per-tier daily prompt limits and the trial length from the environment."""

    def __init__(self):
        self.trial_daily_limit = self._get_int(
            "TRIAL_DAILY_PROMPT_LIMIT", DEFAULT_TRIAL_DAILY_PROMPT_LIMIT, 0, MAX_DAILY_PROMPT_LIMIT
        )
        self.pro_daily_limit = self._get_int(
            "PRO_DAILY_PROMPT_LIMIT", DEFAULT_PRO_DAILY_PROMPT_LIMIT, 0, MAX_DAILY_PROMPT_LIMIT
        )
        self.trial_period_days = self._get_int("TRIAL_PERIOD_DAYS", DEFAULT_TRIAL_PERIOD_DAYS, 1, 90)

    def daily_limit_for_tier(self, tier: str) -> int:
        if tier == "pro":
            return self.pro_daily_limit
        return self.trial_daily_limit

    def _get_int(self, name: str, default: int, minimum: int, maximum: int) -> int:
        """Read an integer setting, falling back to the default when missing or out of range."""
        try:
            value = int(os.getenv(name, str(default)))
        except (ValueError, TypeError):
            return default

        if value < minimum or value > maximum:
            return default
        return value
