"""
Metrics Calculation Tests

Covers windowing, recency weights, zero-guarded rates, late cancellation
classification, per-month normalization and the response-time median.
"""

from datetime import timedelta

import pytest

from behavior_engine.models.schemas import RecencyWeights
from behavior_engine.services.metrics import (
    compute_metrics,
    filter_events_in_window,
    get_recency_weight,
    get_window_start,
    median,
    validate_window_days,
)
from behavior_engine.tests.conftest import NOW, days_ago, make_event


RATE_FIELDS = (
    'attendanceRate',
    'noShowRate',
    'lateCancelRate',
    'ctaOpenRate',
    'ctaClickRate',
    'ctaConversionRate',
    'substituteAcceptRate',
    'lastMinuteFillRate',
)


# =============================================================================
# Window and recency helpers
# =============================================================================


class TestWindowHelpers:

    @pytest.mark.parametrize('window_days', [30, 90, 180])
    def test_supported_windows(self, window_days):
        assert validate_window_days(window_days) == window_days

    @pytest.mark.parametrize('window_days', [0, 7, 60, 365])
    def test_unsupported_window_raises(self, window_days):
        with pytest.raises(ValueError):
            validate_window_days(window_days)

    def test_compute_metrics_rejects_bad_window(self):
        with pytest.raises(ValueError):
            compute_metrics([], NOW, window_days=45)

    def test_window_start(self):
        assert get_window_start(NOW, 30) == NOW - timedelta(days=30)

    def test_window_bounds_are_inclusive(self):
        at_start = make_event('slot_claimed', NOW - timedelta(days=30), event_id='start')
        at_now = make_event('slot_claimed', NOW, event_id='now')
        too_old = make_event('slot_claimed', NOW - timedelta(days=30, seconds=1), event_id='old')
        future = make_event('slot_claimed', NOW + timedelta(seconds=1), event_id='future')

        kept = filter_events_in_window([future, at_now, too_old, at_start], NOW, 30)
        assert [e.id for e in kept] == ['start', 'now']


class TestRecencyWeight:

    def test_buckets(self):
        assert get_recency_weight(days_ago(10), NOW) == 1.5
        assert get_recency_weight(days_ago(30), NOW) == 1.5
        assert get_recency_weight(days_ago(31), NOW) == 1.0
        assert get_recency_weight(days_ago(90), NOW) == 1.0
        assert get_recency_weight(days_ago(100), NOW) == 0.5
        assert get_recency_weight(days_ago(180), NOW) == 0.5
        assert get_recency_weight(days_ago(181), NOW) == 0.0

    def test_custom_weights(self):
        weights = RecencyWeights(last30=2.0, days31to90=1.0, days91to180=0.25)
        assert get_recency_weight(days_ago(5), NOW, weights) == 2.0
        assert get_recency_weight(days_ago(120), NOW, weights) == 0.25

    def test_recent_event_counts_more(self):
        recent = compute_metrics(
            [make_event('slot_claimed', days_ago(10))], NOW, window_days=180
        )
        older = compute_metrics(
            [make_event('slot_claimed', days_ago(100))], NOW, window_days=180
        )
        assert recent.slotClaimedCount > older.slotClaimedCount
        assert recent.slotClaimedCount == 1.5
        assert older.slotClaimedCount == 0.5


class TestMedian:

    def test_empty(self):
        assert median([]) == 0.0

    def test_odd_length(self):
        assert median([30, 5, 10]) == 10.0

    def test_even_length_averages_middle_values(self):
        assert median([5, 10, 20, 40]) == 15.0


# =============================================================================
# compute_metrics
# =============================================================================


class TestComputeMetrics:

    def test_empty_history(self):
        metrics = compute_metrics([], NOW)
        for name in RATE_FIELDS:
            assert getattr(metrics, name) == 0.0
        assert metrics.scheduledCount == 0.0
        assert metrics.medianResponseTimeMinutes == 0.0
        assert metrics.responseTimeSampleCount == 0
        assert metrics.windowDays == 90
        assert metrics.windowEnd == NOW

    def test_rates_within_bounds_across_recency_buckets(self):
        # Creation 35 days ago (weight 1.0), completion 25 days ago (weight 1.5)
        events = [
            make_event('booking_created', days_ago(35), appointmentId='a-1'),
            make_event('booking_completed', days_ago(25), appointmentId='a-1'),
            make_event('notification_opened', days_ago(1)),
            make_event('notification_converted', days_ago(1)),
        ]
        metrics = compute_metrics(events, NOW)
        for name in RATE_FIELDS:
            assert 0.0 <= getattr(metrics, name) <= 1.0
        assert metrics.attendanceRate == 1.0
        # No notification_sent: rates stay zero instead of dividing by zero
        assert metrics.ctaOpenRate == 0.0
        assert metrics.ctaConversionRate == 0.0

    def test_late_cancellation_threshold(self):
        events = [
            make_event('booking_created', days_ago(40), appointmentId='a-1'),
            make_event('booking_cancelled', days_ago(41), appointmentId='a-1', hoursBeforeAppointment=6),
            make_event('booking_created', days_ago(50), appointmentId='a-2'),
            make_event('booking_cancelled', days_ago(52), appointmentId='a-2', hoursBeforeAppointment=48),
        ]
        metrics = compute_metrics(events, NOW, recency_weighting=False)
        assert metrics.cancelledCount == 2.0
        assert metrics.lateCancelRate == 0.5
        assert metrics.avgCancelLeadTimeHours == 27.0

        strict = compute_metrics(events, NOW, recency_weighting=False, late_cancel_threshold_hours=4)
        assert strict.lateCancelRate == 0.0

    def test_cancel_without_lead_time_is_counted_but_not_averaged(self):
        events = [
            make_event('booking_cancelled', days_ago(5)),
            make_event('booking_cancelled', days_ago(6), hoursBeforeAppointment=10),
        ]
        metrics = compute_metrics(events, NOW, recency_weighting=False)
        assert metrics.cancelledCount == 2.0
        assert metrics.avgCancelLeadTimeHours == 10.0

    def test_frequencies_per_month(self):
        events = [
            make_event('booking_cancelled', days_ago(d), hoursBeforeAppointment=30)
            for d in (10, 20, 40)
        ] + [make_event('booking_rescheduled', days_ago(15))]
        metrics = compute_metrics(events, NOW, window_days=90, recency_weighting=False)
        assert metrics.cancelFrequencyPerMonth == pytest.approx(1.0)
        assert metrics.rescheduleFrequencyPerMonth == pytest.approx(1 / 3)
        assert metrics.rescheduledCount == 1.0

    def test_notification_rates(self):
        events = [make_event('notification_sent', days_ago(d)) for d in (1, 2, 3, 4)]
        events += [
            make_event('notification_opened', days_ago(1), responseTimeMinutes=5),
            make_event('notification_clicked', days_ago(1), responseTimeMinutes=7),
            make_event('notification_converted', days_ago(1)),
        ]
        metrics = compute_metrics(events, NOW, recency_weighting=False)
        assert metrics.ctaOpenRate == 0.25
        assert metrics.ctaClickRate == 0.25
        assert metrics.ctaConversionRate == 0.25
        assert metrics.notificationsClickedCount == 1.0
        assert metrics.medianResponseTimeMinutes == 6.0

    def test_substitute_rates_and_response_samples(self):
        events = [make_event('substitute_offer_received', days_ago(d)) for d in (2, 3, 4, 5)]
        events += [
            make_event('substitute_offer_accepted', days_ago(2), responseTimeMinutes=3),
            make_event('substitute_offer_accepted', days_ago(3), responseTimeMinutes=9),
            make_event('slot_claimed', days_ago(2)),
        ]
        metrics = compute_metrics(events, NOW, recency_weighting=False)
        assert metrics.substituteAcceptRate == 0.5
        assert metrics.lastMinuteFillRate == 0.25
        assert metrics.medianResponseTimeMinutes == 6.0
        assert metrics.responseTimeSampleCount == 2

    def test_booking_lead_time_average(self):
        events = [
            make_event('booking_created', days_ago(3), leadTimeHours=10),
            make_event('booking_created', days_ago(4), leadTimeHours=30),
            make_event('booking_created', days_ago(5)),
        ]
        metrics = compute_metrics(events, NOW)
        assert metrics.avgBookingLeadTimeHours == 20.0

    def test_shrinking_window_never_increases_counts(self):
        events = [make_event('booking_created', days_ago(d)) for d in (5, 45, 120)]
        events += [make_event('booking_cancelled', days_ago(d)) for d in (6, 60, 150)]
        wide = compute_metrics(events, NOW, window_days=180)
        mid = compute_metrics(events, NOW, window_days=90)
        narrow = compute_metrics(events, NOW, window_days=30)
        for name in ('scheduledCount', 'cancelledCount'):
            assert getattr(narrow, name) <= getattr(mid, name) <= getattr(wide, name)

    def test_deterministic_for_shuffled_input(self):
        events = [
            make_event('booking_created', days_ago(5), event_id='x1'),
            make_event('booking_cancelled', days_ago(7), event_id='x2', hoursBeforeAppointment=3),
            make_event('notification_sent', days_ago(8), event_id='x3'),
        ]
        assert compute_metrics(events, NOW) == compute_metrics(list(reversed(events)), NOW)

    def test_settings_supply_defaults(self, monkeypatch):
        monkeypatch.setenv('BEHAVIOR_DEFAULT_WINDOW_DAYS', '30')
        monkeypatch.setenv('BEHAVIOR_RECENCY_WEIGHTING', 'false')
        from behavior_engine.core.config import get_settings
        get_settings.cache_clear()

        metrics = compute_metrics([make_event('slot_claimed', days_ago(5))], NOW)
        assert metrics.windowDays == 30
        assert metrics.slotClaimedCount == 1.0

        # Explicit arguments win over settings
        explicit = compute_metrics([], NOW, window_days=180)
        assert explicit.windowDays == 180
