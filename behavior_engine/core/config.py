"""
Settings and environment management module for the behavior engine.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Defaults matching the production behavior rules
- Singleton pattern via @lru_cache for efficient access

Every value here is a *default*. Service functions accept explicit arguments
that always take precedence; settings are consulted only when an argument is
omitted.

Environment Variables (prefix BEHAVIOR_):
- BEHAVIOR_DEFAULT_WINDOW_DAYS: Metrics window (30, 90 or 180; default 90)
- BEHAVIOR_LATE_CANCEL_THRESHOLD_HOURS: "Late" cancellation cut-off (default 12)
- BEHAVIOR_RECENCY_WEIGHTING: Enable recency weighting (default true)
- BEHAVIOR_INDIVIDUAL_SERVICE_IDS: JSON list of individual-session service ids

Usage:
    from behavior_engine.core.config import get_settings

    settings = get_settings()
    window_days = settings.default_window_days
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Attributes:
        default_window_days: Trailing window for metrics aggregation.
        late_cancel_threshold_hours: Cancellations closer to start than this are late.
        recency_weighting: Whether events are weighted by age bucket.
        recency_weight_last_30: Weight for events at most 30 days old.
        recency_weight_31_to_90: Weight for events 31-90 days old.
        recency_weight_91_to_180: Weight for events 91-180 days old.
        strategy_max_per_day: Default notification cap per day.
        strategy_max_per_week: Default notification cap per week.
        strategy_cooldown_minutes_after_ignored: Cooldown once too many prompts are ignored.
        strategy_ignored_before_cooldown: Ignored prompts before the cooldown applies.
        strategy_preferred_hours_start: Start of preferred send window (hour of day).
        strategy_preferred_hours_end: End of preferred send window (hour of day).
        inactive_days_threshold: Days since last visit that trigger an inactive call.
        inactive_days_ceiling: Clients gone longer than this are considered lost.
        refund_reengage_days: Look-back for refunded cancellations.
        upcoming_reminder_days: Look-ahead for upcoming appointment reminders.
        rebook_min_days: Lower bound for rebooking offers.
        rebook_max_days: Upper bound for rebooking offers.
        upsell_min_individual_sessions: Individual sessions before a group upsell.
        individual_service_ids: Service ids classified as individual sessions.
    """

    model_config = SettingsConfigDict(
        env_prefix='BEHAVIOR_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Metrics window and recency weighting
    # =========================================================================

    default_window_days: int = 90
    late_cancel_threshold_hours: float = 12.0
    recency_weighting: bool = True
    recency_weight_last_30: float = 1.5
    recency_weight_31_to_90: float = 1.0
    recency_weight_91_to_180: float = 0.5

    # =========================================================================
    # Notification strategy defaults (anti-spam policy)
    # =========================================================================

    strategy_max_per_day: int = 3
    strategy_max_per_week: int = 10
    # 24h
    strategy_cooldown_minutes_after_ignored: int = 1440
    strategy_ignored_before_cooldown: int = 3
    strategy_preferred_hours_start: int = 18
    strategy_preferred_hours_end: int = 21

    # =========================================================================
    # Recommendation heuristics
    # =========================================================================

    inactive_days_threshold: int = 60
    inactive_days_ceiling: int = 365
    refund_reengage_days: int = 30
    upcoming_reminder_days: int = 2
    rebook_min_days: int = 7
    rebook_max_days: int = 45
    upsell_min_individual_sessions: int = 5

    # Default individual service id from the seed catalogue
    individual_service_ids: List[str] = ['s-1']


@lru_cache()
def get_settings() -> Settings:
    """
    Get the engine settings singleton.

    Returns:
        Settings: The cached settings instance.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
