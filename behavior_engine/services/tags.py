"""
Tag Assignment Service

Assigns explainable behavior tags from metric thresholds. Each rule is an
independent strategy object: ``check(metrics, scores)`` returns a reason
string when the tag applies and ``None`` otherwise. Rules are evaluated in
list order and every matching rule fires, so a client may carry zero, one or
several tags. New rules are added to the table without touching the loop.

Default rules (thresholds are compatibility constants):
    Frequently Cancels    cancelFrequencyPerMonth >= 2
                          OR (lateCancelRate > 0.25 AND scheduledCount > 0)
    Excellent Attendance  attendanceRate >= 0.95 AND noShowRate < 0.02 AND scheduledCount >= 3
    Last-Minute Client    (avgBookingLeadTimeHours < 24 AND scheduledCount >= 1)
                          OR slotClaimedCount >= 2
    Super Substitute      substituteOffersReceivedCount >= 2 AND substituteAcceptRate >= 0.4
                          AND medianResponseTimeMinutes < 15
    Ignores Notifications notificationsSentCount >= 5 AND ctaOpenRate < 0.05
                          AND ctaConversionRate < 0.05
    Frequently Ill        cancelledCount >= 3 AND avgCancelLeadTimeHours < 24

Every assignment carries validUntil = reference date + rule.validity_days
and a confidence derived from strength (high 0.9, medium 0.7, low 0.5).
Tags are recomputed on each evaluation, never patched.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple, Union

from behavior_engine.core.dates import ensure_utc
from behavior_engine.models.enums import TagStrength
from behavior_engine.models.schemas import (
    BehaviorMetrics,
    BehaviorScores,
    TagAssignment,
)


TagCheck = Callable[[BehaviorMetrics, BehaviorScores], Optional[str]]

# Confidence per strength; unknown strengths fall back to DEFAULT_CONFIDENCE
STRENGTH_CONFIDENCE = {
    TagStrength.HIGH: 0.9,
    TagStrength.MEDIUM: 0.7,
    TagStrength.LOW: 0.5,
}
DEFAULT_CONFIDENCE = 0.6

DEFAULT_VALIDITY_DAYS = 90

# Tag ids referenced by the notification strategy
TAG_ID_FREQUENTLY_CANCELS = "frequently_cancels"
TAG_ID_EXCELLENT_ATTENDANCE = "excellent_attendance"
TAG_ID_LAST_MINUTE_CLIENT = "last_minute_client"
TAG_ID_SUPER_SUBSTITUTE = "super_substitute"
TAG_ID_IGNORES_NOTIFICATIONS = "ignores_notifications"
TAG_ID_FREQUENTLY_ILL = "frequently_ill"


@dataclass(frozen=True)
class TagRule:
    """
    One tagging rule.

    Attributes:
        tag_id: Stable machine id, e.g. "frequently_cancels".
        name: Display name.
        check: Returns the reason when the tag applies, else None.
        validity_days: Days from the evaluation date the tag stays valid.
        strength: Determines the assignment confidence.
    """
    tag_id: str
    name: str
    check: TagCheck
    validity_days: int = DEFAULT_VALIDITY_DAYS
    strength: TagStrength = TagStrength.MEDIUM


def _pct(rate: float) -> str:
    return f"{rate * 100:.0f}%"


def _num(value: float) -> str:
    # Weighted counts are fractional; print 3 rather than 3.0
    return f"{value:g}"


# =============================================================================
# Default rule checks
# =============================================================================


def _check_frequently_cancels(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if m.cancelFrequencyPerMonth >= 2:
        return (
            f"Assigned because the client cancelled {_num(m.cancelledCount)} time(s) "
            f"in the last {m.windowDays} days ({m.cancelFrequencyPerMonth:.2f} per month, threshold 2)."
        )
    if m.lateCancelRate > 0.25 and m.scheduledCount > 0:
        return (
            f"Assigned because the late cancellation rate is {_pct(m.lateCancelRate)} "
            f"of {_num(m.scheduledCount)} scheduled booking(s) in the last {m.windowDays} days."
        )
    return None


def _check_excellent_attendance(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if m.attendanceRate >= 0.95 and m.noShowRate < 0.02 and m.scheduledCount >= 3:
        return (
            f"Assigned because attendance rate is {_pct(m.attendanceRate)} and no-show rate is "
            f"{_pct(m.noShowRate)} over {_num(m.scheduledCount)} booking(s) in the last {m.windowDays} days."
        )
    return None


def _check_last_minute_client(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if m.avgBookingLeadTimeHours < 24 and m.scheduledCount >= 1:
        return (
            f"Assigned because average booking lead time is {m.avgBookingLeadTimeHours:.0f} hours "
            f"in the last {m.windowDays} days."
        )
    if m.slotClaimedCount >= 2:
        return (
            f"Assigned because the client claimed {_num(m.slotClaimedCount)} freed slot(s) "
            f"in the last {m.windowDays} days."
        )
    return None


def _check_super_substitute(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if (
        m.substituteOffersReceivedCount >= 2
        and m.substituteAcceptRate >= 0.4
        and m.medianResponseTimeMinutes < 15
    ):
        return (
            f"Assigned because substitute accept rate is {_pct(m.substituteAcceptRate)} and median "
            f"response time is {m.medianResponseTimeMinutes:g} minutes in the last {m.windowDays} days."
        )
    return None


def _check_ignores_notifications(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if (
        m.notificationsSentCount >= 5
        and m.ctaOpenRate < 0.05
        and m.ctaConversionRate < 0.05
    ):
        return (
            f"Assigned because open rate is {_pct(m.ctaOpenRate)} and conversion rate is "
            f"{_pct(m.ctaConversionRate)} after {_num(m.notificationsSentCount)} notification(s) "
            f"in the last {m.windowDays} days."
        )
    return None


def _check_frequently_ill(m: BehaviorMetrics, _s: BehaviorScores) -> Optional[str]:
    if m.cancelledCount >= 3 and m.avgCancelLeadTimeHours < 24:
        return (
            f"Assigned because the client had {_num(m.cancelledCount)} short-notice cancellation(s) "
            f"(average {m.avgCancelLeadTimeHours:.1f}h before start) in the last {m.windowDays} days "
            f"(possible illness pattern)."
        )
    return None


TAG_FREQUENTLY_CANCELS = TagRule(
    tag_id=TAG_ID_FREQUENTLY_CANCELS,
    name="Frequently Cancels",
    check=_check_frequently_cancels,
    strength=TagStrength.MEDIUM,
)

TAG_EXCELLENT_ATTENDANCE = TagRule(
    tag_id=TAG_ID_EXCELLENT_ATTENDANCE,
    name="Excellent Attendance",
    check=_check_excellent_attendance,
    strength=TagStrength.HIGH,
)

TAG_LAST_MINUTE_CLIENT = TagRule(
    tag_id=TAG_ID_LAST_MINUTE_CLIENT,
    name="Last-Minute Client",
    check=_check_last_minute_client,
    strength=TagStrength.MEDIUM,
)

TAG_SUPER_SUBSTITUTE = TagRule(
    tag_id=TAG_ID_SUPER_SUBSTITUTE,
    name="Super Substitute",
    check=_check_super_substitute,
    strength=TagStrength.HIGH,
)

TAG_IGNORES_NOTIFICATIONS = TagRule(
    tag_id=TAG_ID_IGNORES_NOTIFICATIONS,
    name="Ignores Notifications",
    check=_check_ignores_notifications,
    strength=TagStrength.MEDIUM,
)

TAG_FREQUENTLY_ILL = TagRule(
    tag_id=TAG_ID_FREQUENTLY_ILL,
    name="Frequently Ill",
    check=_check_frequently_ill,
    strength=TagStrength.LOW,
)

DEFAULT_TAG_RULES: List[TagRule] = [
    TAG_FREQUENTLY_CANCELS,
    TAG_EXCELLENT_ATTENDANCE,
    TAG_LAST_MINUTE_CLIENT,
    TAG_SUPER_SUBSTITUTE,
    TAG_IGNORES_NOTIFICATIONS,
    TAG_FREQUENTLY_ILL,
]


# =============================================================================
# Evaluation
# =============================================================================


def confidence_from_strength(strength: TagStrength) -> float:
    """Deterministic confidence for a strength."""
    return STRENGTH_CONFIDENCE.get(strength, DEFAULT_CONFIDENCE)


def calculate_valid_until(reference_date: Union[date, datetime], validity_days: int) -> date:
    """
    Expiry date of a tag: reference date plus validity window.

    Datetimes are reduced to their UTC calendar date first.
    """
    if isinstance(reference_date, datetime):
        reference_date = ensure_utc(reference_date).date()
    return reference_date + timedelta(days=validity_days)


def assign_tags(
    metrics: BehaviorMetrics,
    scores: BehaviorScores,
    reference_date: Union[date, datetime],
    rules: Optional[Sequence[TagRule]] = None,
) -> Tuple[TagAssignment, ...]:
    """
    Evaluate tag rules in order and collect every assignment that fires.

    Args:
        metrics: Metrics snapshot.
        scores: Scores computed from the same snapshot.
        reference_date: Evaluation date (or datetime) used for validUntil.
        rules: Ordered rule table (default: ``DEFAULT_TAG_RULES``).

    Returns:
        Tag assignments in rule order, as an immutable tuple.
    """
    rules = DEFAULT_TAG_RULES if rules is None else rules
    assignments: List[TagAssignment] = []

    for rule in rules:
        reason = rule.check(metrics, scores)
        if not reason:
            continue
        assignments.append(
            TagAssignment(
                tagId=rule.tag_id,
                name=rule.name,
                reason=reason,
                validUntil=calculate_valid_until(reference_date, rule.validity_days),
                confidence=confidence_from_strength(rule.strength),
                strength=rule.strength,
                windowDays=metrics.windowDays,
            )
        )

    return tuple(assignments)
