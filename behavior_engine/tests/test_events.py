"""
Behavior Event Model Tests

Covers the discriminated event union: parsing every variant, rejecting
unknown discriminators and missing client ids, UTC normalization and
immutability.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from behavior_engine.models.enums import BehaviorEventType
from behavior_engine.models.events import (
    BookingCancelledEvent,
    NotificationClickedEvent,
    parse_behavior_event,
    parse_behavior_events,
    sort_events,
)
from behavior_engine.tests.conftest import NOW, days_ago, make_event


class TestParseBehaviorEvent:
    """Tests for parse_behavior_event."""

    def test_parses_concrete_variant(self):
        event = parse_behavior_event({
            'id': 'e-1',
            'clientId': 'c-1',
            'timestamp': '2026-02-27T08:00:00Z',
            'type': 'booking_cancelled',
            'appointmentId': 'a-1',
            'hoursBeforeAppointment': 6,
        })
        assert isinstance(event, BookingCancelledEvent)
        assert event.hoursBeforeAppointment == 6.0
        assert event.timestamp.tzinfo is not None

    def test_clicked_event_carries_response_time(self):
        event = make_event('notification_clicked', NOW, responseTimeMinutes=4)
        assert isinstance(event, NotificationClickedEvent)
        assert event.responseTimeMinutes == 4.0

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_behavior_event({
                'id': 'e-1',
                'clientId': 'c-1',
                'timestamp': NOW,
                'type': 'booking_teleported',
            })

    def test_missing_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_behavior_event({'id': 'e-1', 'clientId': 'c-1', 'timestamp': NOW})

    def test_missing_client_id_rejected(self):
        with pytest.raises(ValidationError):
            parse_behavior_event({
                'id': 'e-1',
                'timestamp': NOW,
                'type': 'slot_claimed',
                'appointmentId': 'a-1',
            })

    def test_empty_client_id_rejected(self):
        with pytest.raises(ValidationError):
            make_event('slot_claimed', NOW, client_id='')

    def test_naive_timestamp_treated_as_utc(self):
        event = make_event('booking_completed', datetime(2026, 2, 1, 10, 0))
        assert event.timestamp == datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)

    def test_every_event_type_is_parseable(self):
        for event_type in BehaviorEventType:
            event = make_event(event_type.value, NOW)
            assert event.type == event_type.value

    def test_events_are_frozen(self):
        event = make_event('booking_created', NOW)
        with pytest.raises(ValidationError):
            event.clientId = 'c-2'


class TestParseBehaviorEvents:
    """Tests for batch parsing and ordering."""

    def test_batch_fails_on_first_invalid_item(self):
        items = [
            {'id': 'e-1', 'clientId': 'c-1', 'timestamp': NOW, 'type': 'waitlist_left', 'waitlistEntryId': 'w-1'},
            {'id': 'e-2', 'clientId': 'c-1', 'timestamp': NOW, 'type': 'nope'},
        ]
        with pytest.raises(ValidationError):
            parse_behavior_events(items)

    def test_sort_events_is_stable_for_equal_timestamps(self):
        first = make_event('notification_sent', days_ago(1), event_id='b')
        second = make_event('notification_opened', days_ago(1), event_id='a')
        earlier = make_event('booking_created', days_ago(2), event_id='z')
        ordered = sort_events([first, second, earlier])
        assert [e.id for e in ordered] == ['z', 'b', 'a']
