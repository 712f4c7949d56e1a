"""
Notification Strategy Service

Builds the outreach policy for one client from its scores and tags: channel
ranking, throttles, anti-spam cooldown, preferred send hours and a content
hint. The policy is consumed by the external notification dispatcher; this
module never sends anything.

Tag-driven adjustments:
- Ignores Notifications -> maxPerDay=1, maxPerWeek=3
- else Super Substitute -> maxPerDay=min(5, default+1), maxPerWeek=min(15, default+3)

Content hint (first match wins):
    short (Super Substitute) > detailed (reactivity < 30)
    > reminder (Frequently Cancels) > standard
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from behavior_engine.core.config import get_settings
from behavior_engine.models.enums import ContentHint, NotificationChannel
from behavior_engine.models.schemas import (
    BehaviorMetrics,
    BehaviorScores,
    ChannelAffinity,
    NotificationStrategy,
    TagAssignment,
)
from behavior_engine.services.tags import (
    TAG_ID_FREQUENTLY_CANCELS,
    TAG_ID_IGNORES_NOTIFICATIONS,
    TAG_ID_SUPER_SUBSTITUTE,
)


# Reactivity below this asks for more explanatory content
LOW_REACTIVITY_THRESHOLD = 30

# Throttle for clients that ignore notifications
IGNORED_MAX_PER_DAY = 1
IGNORED_MAX_PER_WEEK = 3

# Ceilings for the super-substitute boost
SUPER_SUBSTITUTE_MAX_PER_DAY_CAP = 5
SUPER_SUBSTITUTE_MAX_PER_WEEK_CAP = 15


@dataclass(frozen=True)
class StrategyOptions:
    """
    Overrides for the default outreach policy.

    Any field left as None falls back to the engine settings.
    """
    max_per_day: Optional[int] = None
    max_per_week: Optional[int] = None
    cooldown_minutes_after_ignored: Optional[int] = None
    ignored_before_cooldown: Optional[int] = None
    preferred_hours_start: Optional[int] = None
    preferred_hours_end: Optional[int] = None


def rank_channels(affinity: ChannelAffinity) -> Tuple[NotificationChannel, ...]:
    """
    All four channels sorted by affinity descending.

    Ties keep the declaration order PUSH, EMAIL, SMS, IN_APP (stable sort).
    """
    return tuple(sorted(
        NotificationChannel,
        key=lambda channel: -affinity.score_for(channel),
    ))


def build_notification_strategy(
    metrics: BehaviorMetrics,
    scores: BehaviorScores,
    tags: Iterable[TagAssignment],
    options: Optional[StrategyOptions] = None,
) -> NotificationStrategy:
    """
    Build the notification strategy for one client.

    Args:
        metrics: Metrics snapshot (kept in the signature for future
            window-aware policies).
        scores: Scores for the same snapshot.
        tags: Tags assigned for the same snapshot.
        options: Policy overrides (default: engine settings).

    Returns:
        NotificationStrategy for the dispatcher.
    """
    settings = get_settings()
    options = options or StrategyOptions()

    def _pick(value: Optional[int], default: int) -> int:
        return value if value is not None else default

    default_per_day = _pick(options.max_per_day, settings.strategy_max_per_day)
    default_per_week = _pick(options.max_per_week, settings.strategy_max_per_week)

    tag_ids = {tag.tagId for tag in tags}
    has_frequently_cancels = TAG_ID_FREQUENTLY_CANCELS in tag_ids
    has_super_substitute = TAG_ID_SUPER_SUBSTITUTE in tag_ids
    has_ignores_notifications = TAG_ID_IGNORES_NOTIFICATIONS in tag_ids

    channel_order = rank_channels(scores.channelAffinity)

    max_per_day = default_per_day
    max_per_week = default_per_week
    if has_ignores_notifications:
        max_per_day = IGNORED_MAX_PER_DAY
        max_per_week = IGNORED_MAX_PER_WEEK
    elif has_super_substitute:
        max_per_day = min(SUPER_SUBSTITUTE_MAX_PER_DAY_CAP, default_per_day + 1)
        max_per_week = min(SUPER_SUBSTITUTE_MAX_PER_WEEK_CAP, default_per_week + 3)

    if has_super_substitute:
        content_hint = ContentHint.SHORT
    elif scores.reactivityScore < LOW_REACTIVITY_THRESHOLD:
        content_hint = ContentHint.DETAILED
    elif has_frequently_cancels:
        content_hint = ContentHint.REMINDER
    else:
        content_hint = ContentHint.STANDARD

    return NotificationStrategy(
        preferredChannel=channel_order[0],
        channelOrder=channel_order,
        maxPerDay=max_per_day,
        maxPerWeek=max_per_week,
        cooldownMinutesAfterIgnored=_pick(
            options.cooldown_minutes_after_ignored,
            settings.strategy_cooldown_minutes_after_ignored,
        ),
        ignoredBeforeCooldown=_pick(
            options.ignored_before_cooldown,
            settings.strategy_ignored_before_cooldown,
        ),
        preferredHoursStart=_pick(options.preferred_hours_start, settings.strategy_preferred_hours_start),
        preferredHoursEnd=_pick(options.preferred_hours_end, settings.strategy_preferred_hours_end),
        sendLastMinuteOnlyToHighFillHelper=True,
        contentHint=content_hint,
    )
