"""
Score Calculation Service

Derives four bounded 0-100 heuristic scores and per-channel affinity from a
``BehaviorMetrics`` snapshot. Scores are heuristics, not learned models.

Formulas (W_* from ScoreWeights; penalties applied by absolute value):
    reliability        = 50 + min(1, attendance)*W_att
                            - min(1, noShow)*|W_noshow| - min(1, lateCancel)*|W_late|
    cancellationRisk   = min(2, cancelFreq)/2*W_freq
                            + shortNotice*W_short + min(1, rescheduleFreq/2)*25
    reactivity         = conversion*W_conv + responseBucket*W_resp + substituteAccept*W_sub
    fillHelper         = min(5, slotClaimed)*(W_claim/5) + lastMinuteFill*W_rate

shortNotice is 1 - avgCancelLeadTime/24 when the client cancelled at all and
the average lead time is under 24h, else 0. responseBucket is 1 for a median
under 15 minutes, 0.5 under 60 minutes, else 0; a client with no response-time
samples gets 0 while a recorded instant response (median 0) earns 1. An empty
history therefore scores reliability 50 and 0 elsewhere.

Each raw value is rounded half-up and clamped to [0, 100].

Channel affinity:
    Upstream does not record per-channel telemetry, so one proxy value
    (0.3*open + 0.3*click + 0.4*conversion, scaled to 0-100) is applied to all
    four channels.
"""

import math
from typing import Optional

from behavior_engine.models.schemas import (
    BehaviorMetrics,
    BehaviorScores,
    ChannelAffinity,
    ScoreWeights,
)


# Neutral reliability for a client with no history
RELIABILITY_BASELINE = 50.0

# Fixed reschedule contribution to cancellation risk
RESCHEDULE_RISK_WEIGHT = 25.0

# Short-notice horizon for cancellation risk (hours)
SHORT_NOTICE_HOURS = 24.0

# Response-time buckets for reactivity (minutes)
FAST_RESPONSE_MINUTES = 15.0
MODERATE_RESPONSE_MINUTES = 60.0

# Slot claims at which the fill-helper claim term saturates
SLOT_CLAIM_CAP = 5.0

DEFAULT_SCORE_WEIGHTS = ScoreWeights()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round half-up and clamp into [0, 100]."""
    return max(0, min(100, round_half_up(value)))


def calculate_reliability_score(metrics: BehaviorMetrics, weights: ScoreWeights) -> int:
    """Higher = attends, rarely no-shows, rarely cancels late."""
    attendance = min(1.0, metrics.attendanceRate) * weights.reliabilityAttendance
    no_show = min(1.0, metrics.noShowRate) * abs(weights.reliabilityNoShowPenalty)
    late = min(1.0, metrics.lateCancelRate) * abs(weights.reliabilityLateCancelPenalty)
    return clamp_score(RELIABILITY_BASELINE + attendance - no_show - late)


def calculate_cancellation_risk_score(metrics: BehaviorMetrics, weights: ScoreWeights) -> int:
    """Higher = frequent cancellations, short notice, reschedules."""
    # 2+ cancellations per month saturates the term
    frequency = min(2.0, metrics.cancelFrequencyPerMonth) / 2.0
    short_notice = 0.0
    if metrics.cancelledCount > 0 and metrics.avgCancelLeadTimeHours < SHORT_NOTICE_HOURS:
        short_notice = 1.0 - metrics.avgCancelLeadTimeHours / SHORT_NOTICE_HOURS
    reschedule = min(1.0, metrics.rescheduleFrequencyPerMonth / 2.0)
    raw = (
        frequency * weights.cancellationRiskFrequency
        + short_notice * weights.cancellationRiskShortNotice
        + reschedule * RESCHEDULE_RISK_WEIGHT
    )
    return clamp_score(raw)


def response_bucket(median_response_minutes: float, sample_count: int) -> float:
    """
    Fraction of the response-time weight earned by a median response time.

    Returns 1.0 under 15 minutes, 0.5 under 60 minutes, else 0.0. Without
    samples the median carries no information and earns nothing.
    """
    if sample_count <= 0:
        return 0.0
    if median_response_minutes < FAST_RESPONSE_MINUTES:
        return 1.0
    if median_response_minutes < MODERATE_RESPONSE_MINUTES:
        return 0.5
    return 0.0


def calculate_reactivity_score(metrics: BehaviorMetrics, weights: ScoreWeights) -> int:
    """Higher = converts, responds quickly, accepts substitute offers."""
    conversion = metrics.ctaConversionRate * weights.reactivityConversion
    response = response_bucket(
        metrics.medianResponseTimeMinutes, metrics.responseTimeSampleCount
    ) * weights.reactivityResponseTime
    substitute = metrics.substituteAcceptRate * weights.reactivitySubstituteAccept
    return clamp_score(conversion + response + substitute)


def calculate_fill_helper_score(metrics: BehaviorMetrics, weights: ScoreWeights) -> int:
    """Higher = claims freed slots and takes last-minute offers."""
    claimed = min(SLOT_CLAIM_CAP, metrics.slotClaimedCount) * (weights.fillHelperSlotClaimed / SLOT_CLAIM_CAP)
    rate = metrics.lastMinuteFillRate * weights.fillHelperLastMinuteRate
    return clamp_score(claimed + rate)


def calculate_channel_affinity(metrics: BehaviorMetrics) -> ChannelAffinity:
    """
    Channel affinity from global engagement rates.

    Placeholder until per-channel telemetry exists: every channel receives
    the same proxy score.
    """
    base = clamp_score(
        (metrics.ctaOpenRate * 0.3 + metrics.ctaClickRate * 0.3 + metrics.ctaConversionRate * 0.4) * 100
    )
    return ChannelAffinity(PUSH=base, EMAIL=base, SMS=base, IN_APP=base)


def compute_scores(
    metrics: BehaviorMetrics,
    weights: Optional[ScoreWeights] = None,
) -> BehaviorScores:
    """
    Compute all behavior scores for one metrics snapshot.

    Args:
        metrics: Snapshot from ``compute_metrics``.
        weights: Score weights (default: ``DEFAULT_SCORE_WEIGHTS``).

    Returns:
        BehaviorScores with every score in [0, 100].
    """
    weights = weights or DEFAULT_SCORE_WEIGHTS
    return BehaviorScores(
        reliabilityScore=calculate_reliability_score(metrics, weights),
        cancellationRiskScore=calculate_cancellation_risk_score(metrics, weights),
        reactivityScore=calculate_reactivity_score(metrics, weights),
        fillHelperScore=calculate_fill_helper_score(metrics, weights),
        channelAffinity=calculate_channel_affinity(metrics),
    )
