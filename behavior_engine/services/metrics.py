"""
Metrics Calculation Service

Aggregates one client's behavior events into a ``BehaviorMetrics`` snapshot
over a trailing time window (30 / 90 / 180 days) with optional recency
weighting.

Algorithm Overview:
    1. window_start = now - window_days; keep events in [window_start, now]
    2. Weight each kept event by age bucket (recency weighting on):
         <= 30 days  -> 1.5
         31-90 days  -> 1.0
         91-180 days -> 0.5
         older       -> 0
       With weighting off every event weighs 1.
    3. Accumulate weighted counters per event type and a weighted sum of
       cancellation lead times.
    4. Derive rates as weighted ratios, zero when the denominator is zero and
       capped at 1.
    5. Normalize cancel / reschedule counts per month: count / (window_days / 30).

Response time:
    medianResponseTimeMinutes is the standard median (even-length samples
    average the two middle values) over every recorded response-time sample
    on opened / clicked / converted notifications and accepted substitute
    offers. Samples are not weighted.

The calculator never reads the wall clock and never raises on event
content; the only error is an unsupported ``window_days``.

Dependencies:
    - numpy: median of response time samples and the mean booking lead time
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

import numpy as np

from behavior_engine.core.config import get_settings
from behavior_engine.core.dates import days_between, ensure_utc
from behavior_engine.models.enums import BehaviorEventType
from behavior_engine.models.events import BaseBehaviorEvent
from behavior_engine.models.schemas import BehaviorMetrics, RecencyWeights


# =============================================================================
# Constants
# =============================================================================

# Supported trailing windows in days
ALLOWED_WINDOW_DAYS = (30, 90, 180)

# Days per "month" when normalizing frequencies
DAYS_PER_MONTH = 30

# Event types whose weight is simply added to one counter
_SIMPLE_COUNTERS = {
    BehaviorEventType.BOOKING_COMPLETED.value: 'completed',
    BehaviorEventType.BOOKING_NO_SHOW.value: 'no_show',
    BehaviorEventType.BOOKING_RESCHEDULED.value: 'rescheduled',
    BehaviorEventType.SLOT_CLAIMED.value: 'slot_claimed',
    BehaviorEventType.NOTIFICATION_SENT.value: 'notifications_sent',
    BehaviorEventType.NOTIFICATION_OPENED.value: 'notifications_opened',
    BehaviorEventType.NOTIFICATION_CLICKED.value: 'notifications_clicked',
    BehaviorEventType.NOTIFICATION_CONVERTED.value: 'notifications_converted',
    BehaviorEventType.SUBSTITUTE_OFFER_RECEIVED.value: 'offers_received',
    BehaviorEventType.SUBSTITUTE_OFFER_ACCEPTED.value: 'offers_accepted',
}

# Event types that may carry a responseTimeMinutes sample
_RESPONSE_TIME_TYPES = frozenset({
    BehaviorEventType.NOTIFICATION_OPENED.value,
    BehaviorEventType.NOTIFICATION_CLICKED.value,
    BehaviorEventType.NOTIFICATION_CONVERTED.value,
    BehaviorEventType.SUBSTITUTE_OFFER_ACCEPTED.value,
})


@dataclass
class WeightedCounters:
    """
    Internal accumulator for weighted event counts in one window.

    Attributes mirror the counts in ``BehaviorMetrics``; values are floats
    because each event contributes its recency weight.
    """
    scheduled: float = 0.0
    completed: float = 0.0
    no_show: float = 0.0
    cancelled: float = 0.0
    late_cancelled: float = 0.0
    rescheduled: float = 0.0
    slot_claimed: float = 0.0
    notifications_sent: float = 0.0
    notifications_opened: float = 0.0
    notifications_clicked: float = 0.0
    notifications_converted: float = 0.0
    offers_received: float = 0.0
    offers_accepted: float = 0.0
    cancel_lead_time_sum: float = 0.0
    cancel_lead_time_weight: float = 0.0
    response_time_minutes: List[float] = field(default_factory=list)
    booking_lead_time_hours: List[float] = field(default_factory=list)


# =============================================================================
# Window and recency helpers
# =============================================================================


def validate_window_days(window_days: int) -> int:
    """
    Check that ``window_days`` is one of the supported windows.

    Raises:
        ValueError: If the window is not 30, 90 or 180.
    """
    if window_days not in ALLOWED_WINDOW_DAYS:
        raise ValueError(
            f"Unsupported window_days={window_days}; expected one of {ALLOWED_WINDOW_DAYS}"
        )
    return window_days


def get_window_start(now: datetime, window_days: int) -> datetime:
    """Inclusive start of the trailing window ending at ``now``."""
    return ensure_utc(now) - timedelta(days=window_days)


def filter_events_in_window(
    events: Iterable[BaseBehaviorEvent],
    now: datetime,
    window_days: int,
) -> List[BaseBehaviorEvent]:
    """
    Keep events with ``window_start <= timestamp <= now``.

    Returned events are sorted by (timestamp, id) so downstream sums are
    accumulated in a fixed order.
    """
    now = ensure_utc(now)
    start = get_window_start(now, window_days)
    kept = [e for e in events if start <= e.timestamp <= now]
    return sorted(kept, key=lambda e: (e.timestamp, e.id))


def get_recency_weight(
    event_time: datetime,
    now: datetime,
    weights: Optional[RecencyWeights] = None,
) -> float:
    """
    Weight of an event by age bucket.

    Args:
        event_time: When the event happened.
        now: Reference time.
        weights: Bucket weights (default: 1.5 / 1.0 / 0.5).

    Returns:
        Weight for the bucket; 0 for events older than 180 days.

    Example:
        >>> get_recency_weight(now - timedelta(days=10), now)
        1.5
        >>> get_recency_weight(now - timedelta(days=100), now)
        0.5
    """
    weights = weights or RecencyWeights()
    days_ago = days_between(event_time, now)
    if days_ago <= 30:
        return weights.last30
    if days_ago <= 90:
        return weights.days31to90
    if days_ago <= 180:
        return weights.days91to180
    return 0.0


def median(values: Sequence[float]) -> float:
    """
    Standard median; 0.0 for an empty sequence.

    Even-length sequences average the two middle values.
    """
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=np.float64)))


def _ratio(numerator: float, denominator: float) -> float:
    """Zero-guarded ratio capped to [0, 1]."""
    if denominator <= 0:
        return 0.0
    return min(1.0, max(0.0, numerator / denominator))


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if values else 0.0


# =============================================================================
# Accumulation
# =============================================================================


def accumulate_counters(
    events: Iterable[BaseBehaviorEvent],
    now: datetime,
    late_cancel_threshold_hours: float,
    recency_weighting: bool,
    recency_weights: RecencyWeights,
) -> WeightedCounters:
    """
    Accumulate weighted counters over events already filtered to the window.
    """
    counters = WeightedCounters()

    for event in events:
        weight = get_recency_weight(event.timestamp, now, recency_weights) if recency_weighting else 1.0
        event_type = event.type

        if event_type in _SIMPLE_COUNTERS:
            attr = _SIMPLE_COUNTERS[event_type]
            setattr(counters, attr, getattr(counters, attr) + weight)
        elif event_type == BehaviorEventType.BOOKING_CREATED.value:
            counters.scheduled += weight
            if event.leadTimeHours is not None:
                counters.booking_lead_time_hours.append(event.leadTimeHours)
        elif event_type == BehaviorEventType.BOOKING_CANCELLED.value:
            counters.cancelled += weight
            hours_before = event.hoursBeforeAppointment
            if hours_before is not None:
                counters.cancel_lead_time_sum += hours_before * weight
                counters.cancel_lead_time_weight += weight
                if hours_before < late_cancel_threshold_hours:
                    counters.late_cancelled += weight

        if event_type in _RESPONSE_TIME_TYPES:
            minutes = getattr(event, 'responseTimeMinutes', None)
            if minutes is not None:
                counters.response_time_minutes.append(minutes)

    return counters


# =============================================================================
# Main entry point
# =============================================================================


def compute_metrics(
    events: Iterable[BaseBehaviorEvent],
    now: datetime,
    window_days: Optional[int] = None,
    late_cancel_threshold_hours: Optional[float] = None,
    recency_weighting: Optional[bool] = None,
    recency_weights: Optional[RecencyWeights] = None,
) -> BehaviorMetrics:
    """
    Compute behavior metrics for a single client from their events.

    Events need not be sorted; they are filtered to the window and ordered
    here. Omitted options fall back to the engine settings.

    Args:
        events: One client's behavior events.
        now: Reference time; the window ends here.
        window_days: 30, 90 or 180 (default from settings: 90).
        late_cancel_threshold_hours: Late-cancel cut-off (default 12).
        recency_weighting: Apply recency weights (default True).
        recency_weights: Bucket weights (default from settings).

    Returns:
        BehaviorMetrics snapshot; all rates in [0, 1], all counts >= 0.

    Raises:
        ValueError: If ``window_days`` is unsupported.
    """
    settings = get_settings()
    now = ensure_utc(now)
    window_days = validate_window_days(
        window_days if window_days is not None else settings.default_window_days
    )
    if late_cancel_threshold_hours is None:
        late_cancel_threshold_hours = settings.late_cancel_threshold_hours
    if recency_weighting is None:
        recency_weighting = settings.recency_weighting
    if recency_weights is None:
        recency_weights = RecencyWeights(
            last30=settings.recency_weight_last_30,
            days31to90=settings.recency_weight_31_to_90,
            days91to180=settings.recency_weight_91_to_180,
        )

    in_window = filter_events_in_window(events, now, window_days)
    c = accumulate_counters(
        in_window,
        now,
        late_cancel_threshold_hours,
        recency_weighting,
        recency_weights,
    )

    months_in_window = window_days / DAYS_PER_MONTH

    return BehaviorMetrics(
        attendanceRate=_ratio(c.completed, c.scheduled),
        noShowRate=_ratio(c.no_show, c.scheduled),
        lateCancelRate=_ratio(c.late_cancelled, c.scheduled),
        ctaOpenRate=_ratio(c.notifications_opened, c.notifications_sent),
        ctaClickRate=_ratio(c.notifications_clicked, c.notifications_sent),
        ctaConversionRate=_ratio(c.notifications_converted, c.notifications_sent),
        substituteAcceptRate=_ratio(c.offers_accepted, c.offers_received),
        lastMinuteFillRate=_ratio(c.slot_claimed, c.offers_received),
        avgCancelLeadTimeHours=(
            c.cancel_lead_time_sum / c.cancel_lead_time_weight
            if c.cancel_lead_time_weight > 0 else 0.0
        ),
        medianResponseTimeMinutes=median(c.response_time_minutes),
        responseTimeSampleCount=len(c.response_time_minutes),
        avgBookingLeadTimeHours=_mean(c.booking_lead_time_hours),
        cancelFrequencyPerMonth=c.cancelled / months_in_window,
        rescheduleFrequencyPerMonth=c.rescheduled / months_in_window,
        scheduledCount=c.scheduled,
        completedCount=c.completed,
        noShowCount=c.no_show,
        cancelledCount=c.cancelled,
        rescheduledCount=c.rescheduled,
        slotClaimedCount=c.slot_claimed,
        notificationsSentCount=c.notifications_sent,
        notificationsOpenedCount=c.notifications_opened,
        notificationsClickedCount=c.notifications_clicked,
        notificationsConvertedCount=c.notifications_converted,
        substituteOffersReceivedCount=c.offers_received,
        substituteOffersAcceptedCount=c.offers_accepted,
        windowEnd=now,
        windowDays=window_days,
    )
