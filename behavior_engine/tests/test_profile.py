"""
Profile Assembly Tests

End-to-end pipeline runs: reliable client, empty history, idempotence,
client filtering and batch parity between sequential and executor paths.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from behavior_engine.models.schemas import ScoreWeights
from behavior_engine.services.profile import (
    compute_behavior_profile,
    compute_profiles,
    group_events_by_client,
    resolve_score_weights,
)
from behavior_engine.services.scores import DEFAULT_SCORE_WEIGHTS
from behavior_engine.services.tags import TAG_ID_EXCELLENT_ATTENDANCE, TAG_ID_FREQUENTLY_CANCELS
from behavior_engine.tests.conftest import NOW, days_ago, make_event


def ten_completed_bookings(client_id: str = "c-1") -> list:
    events = []
    for i in range(10):
        start = days_ago(2 + i * 2.5)
        appt = f"{client_id}-a-{i}"
        events.append(make_event('booking_created', start, client_id=client_id,
                                 event_id=f"{client_id}-c-{i}", appointmentId=appt))
        events.append(make_event('booking_completed', start + timedelta(hours=1), client_id=client_id,
                                 event_id=f"{client_id}-d-{i}", appointmentId=appt))
    return events


class TestComputeBehaviorProfile:

    @pytest.mark.scenario
    def test_reliable_client(self):
        profile = compute_behavior_profile("c-1", ten_completed_bookings(), NOW)

        assert profile.metrics.attendanceRate == 1.0
        assert profile.scores.reliabilityScore >= 90
        tag_ids = [t.tagId for t in profile.tags]
        assert TAG_ID_FREQUENTLY_CANCELS not in tag_ids
        assert TAG_ID_EXCELLENT_ATTENDANCE in tag_ids

    def test_reliable_client_fixture(self, reliable_client_events):
        profile = compute_behavior_profile("c-1", reliable_client_events, NOW)
        assert profile.scores.reliabilityScore == 90

    @pytest.mark.scenario
    def test_empty_history(self):
        profile = compute_behavior_profile("c-1", [], NOW)

        assert profile.metrics.scheduledCount == 0.0
        assert profile.metrics.attendanceRate == 0.0
        assert profile.scores.reliabilityScore == 50
        assert profile.scores.cancellationRiskScore == 0
        assert profile.scores.reactivityScore == 0
        assert profile.scores.fillHelperScore == 0
        assert profile.tags == ()
        assert profile.computedAt == NOW

    def test_profile_sequences_cannot_be_mutated(self):
        profile = compute_behavior_profile("c-1", ten_completed_bookings(), NOW)
        strategy = profile.notificationStrategy

        assert isinstance(profile.tags, tuple)
        assert isinstance(strategy.channelOrder, tuple)
        with pytest.raises(AttributeError):
            profile.tags.append(profile.tags[0])
        with pytest.raises(AttributeError):
            strategy.channelOrder.reverse()
        with pytest.raises(TypeError):
            strategy.channelOrder[0] = strategy.channelOrder[-1]

    def test_instant_response_counts_towards_reactivity(self):
        events = [
            make_event('notification_sent', days_ago(2)),
            make_event('notification_opened', days_ago(2), responseTimeMinutes=0),
        ]
        profile = compute_behavior_profile("c-1", events, NOW)
        assert profile.metrics.responseTimeSampleCount == 1
        assert profile.scores.reactivityScore == 30

    def test_other_clients_events_ignored(self):
        events = ten_completed_bookings("c-1") + ten_completed_bookings("c-2")
        alone = compute_behavior_profile("c-1", ten_completed_bookings("c-1"), NOW)
        mixed = compute_behavior_profile("c-1", events, NOW)
        assert alone == mixed

    def test_idempotent(self):
        events = ten_completed_bookings() + [
            make_event('booking_cancelled', days_ago(3), hoursBeforeAppointment=2),
            make_event('notification_sent', days_ago(4)),
        ]
        first = compute_behavior_profile("c-1", events, NOW)
        second = compute_behavior_profile("c-1", list(reversed(events)), NOW)
        assert first.model_dump() == second.model_dump()

    def test_empty_client_id_rejected(self):
        with pytest.raises(ValueError):
            compute_behavior_profile("", [], NOW)

    def test_invalid_window_rejected(self):
        with pytest.raises(ValueError):
            compute_behavior_profile("c-1", [], NOW, window_days=14)

    def test_partial_score_weight_override(self):
        profile = compute_behavior_profile(
            "c-1",
            ten_completed_bookings(),
            NOW,
            score_weights={'reliabilityAttendance': 10},
        )
        assert profile.scores.reliabilityScore == 60


class TestHelpers:

    def test_resolve_score_weights(self):
        assert resolve_score_weights(None) is DEFAULT_SCORE_WEIGHTS
        full = ScoreWeights(reactivityConversion=1)
        assert resolve_score_weights(full) is full
        merged = resolve_score_weights({'fillHelperSlotClaimed': 20})
        assert merged.fillHelperSlotClaimed == 20
        assert merged.fillHelperLastMinuteRate == DEFAULT_SCORE_WEIGHTS.fillHelperLastMinuteRate

    def test_group_events_by_client(self):
        events = [
            make_event('slot_claimed', days_ago(1), client_id='c-2', event_id='b'),
            make_event('slot_claimed', days_ago(3), client_id='c-1', event_id='a'),
            make_event('slot_claimed', days_ago(2), client_id='c-2', event_id='c'),
        ]
        grouped = group_events_by_client(events)
        assert list(grouped) == ['c-1', 'c-2']
        assert [e.id for e in grouped['c-2']] == ['c', 'b']


class TestComputeProfiles:

    def test_clients_without_events_get_baseline(self):
        profiles = compute_profiles(["c-1", "c-9"], ten_completed_bookings("c-1"), NOW)
        assert list(profiles) == ["c-1", "c-9"]
        assert profiles["c-9"].scores.reliabilityScore == 50

    def test_executor_matches_sequential(self):
        client_ids = [f"c-{i}" for i in range(6)]
        events = []
        for client_id in client_ids:
            events.extend(ten_completed_bookings(client_id))

        sequential = compute_profiles(client_ids, events, NOW)
        with ThreadPoolExecutor(max_workers=3) as executor:
            parallel = compute_profiles(client_ids, events, NOW, executor=executor)

        assert sequential == parallel

    def test_options_forwarded(self):
        profiles = compute_profiles(["c-1"], ten_completed_bookings(), NOW, window_days=30)
        assert profiles["c-1"].metrics.windowDays == 30
