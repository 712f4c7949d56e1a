"""
Pytest Configuration and Shared Fixtures for Behavior Engine Tests.

This module provides fixtures and helpers for all engine tests:
- A fixed reference time (the engine never reads the wall clock)
- Deterministic id generators
- Factories for behavior events and portal records
- Settings cache reset so environment overrides never leak between tests

Factories are plain module-level functions so test modules can also import
them directly for parametrized data.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Generator, Optional

import pytest

from behavior_engine.core.config import get_settings
from behavior_engine.core.ids import SequenceIdGenerator
from behavior_engine.models.enums import (
    AppointmentStatus,
    NotificationChannel,
    UserRole,
)
from behavior_engine.models.events import BaseBehaviorEvent, parse_behavior_event
from behavior_engine.models.schemas import (
    AppointmentRecord,
    ClientRecord,
    NotificationRecord,
    WaitlistRecord,
)


# Fixed reference time shared by all tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

_event_ids = SequenceIdGenerator(prefix="test-ev")


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - scenario: end-to-end acceptance scenarios over the full pipeline
    """
    config.addinivalue_line(
        'markers',
        'scenario: end-to-end acceptance scenarios over the full pipeline'
    )


# ============================================================
# FACTORIES
# ============================================================

def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


def make_event(
    event_type: str,
    timestamp: datetime,
    client_id: str = "c-1",
    event_id: Optional[str] = None,
    **fields: Any,
) -> BaseBehaviorEvent:
    """
    Build a validated behavior event of any type.

    Required variant fields get placeholder values unless supplied.
    """
    data = {
        'id': event_id or _event_ids(),
        'clientId': client_id,
        'timestamp': timestamp,
        'type': event_type,
    }
    if event_type.startswith('booking_') or event_type == 'slot_claimed':
        data.setdefault('appointmentId', f"a-{data['id']}")
    if event_type.startswith('waitlist_'):
        data.setdefault('waitlistEntryId', f"w-{data['id']}")
    if event_type.startswith('substitute_offer_'):
        data.setdefault('offerId', f"o-{data['id']}")
    if event_type.startswith('notification_') and event_type != 'notification_muted':
        data.setdefault('notificationId', f"n-{data['id']}")
        data.setdefault('channel', NotificationChannel.SMS)
    data.update(fields)
    return parse_behavior_event(data)


def make_appointment(
    appointment_id: str,
    client_id: str,
    start_at: datetime,
    status: AppointmentStatus,
    service_id: str = "s-1",
    duration_hours: float = 1.0,
    **fields: Any,
) -> AppointmentRecord:
    return AppointmentRecord(
        id=appointment_id,
        clientId=client_id,
        serviceId=service_id,
        startAt=start_at,
        endAt=start_at + timedelta(hours=duration_hours),
        status=status,
        **fields,
    )


def make_client(client_id: str, name: str, role: UserRole = UserRole.CLIENT) -> ClientRecord:
    return ClientRecord(id=client_id, name=name, role=role)


def make_notification(
    notification_id: str,
    created_at: datetime,
    user_id: Optional[str] = "c-1",
    read: bool = False,
    channel: NotificationChannel = NotificationChannel.EMAIL,
    **fields: Any,
) -> NotificationRecord:
    return NotificationRecord(
        id=notification_id,
        userId=user_id,
        channel=channel,
        read=read,
        createdAt=created_at,
        **fields,
    )


def make_waitlist_entry(entry_id: str, client_id: str, created_at: datetime, **fields: Any) -> WaitlistRecord:
    return WaitlistRecord(id=entry_id, clientId=client_id, createdAt=created_at, **fields)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Clear the settings cache around every test.

    Any BEHAVIOR_* variable from the host environment is removed so tests
    always run against the built-in defaults unless they set one.
    """
    for key in list(os.environ):
        if key.startswith('BEHAVIOR_'):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def event_ids() -> SequenceIdGenerator:
    """Fresh deterministic event id sequence."""
    return SequenceIdGenerator(prefix="ev")


@pytest.fixture
def rec_ids() -> SequenceIdGenerator:
    """Fresh deterministic recommendation id sequence."""
    return SequenceIdGenerator(prefix="rec")


@pytest.fixture
def reliable_client_events() -> list:
    """
    Four completed bookings in the last 30 days, no cancellations.

    Used by the reliable-client scenario.
    """
    events = []
    for i, age in enumerate((5, 12, 19, 26)):
        appt = f"a-rel-{i}"
        events.append(make_event('booking_created', days_ago(age), event_id=f"rel-c-{i}", appointmentId=appt))
        events.append(make_event('booking_completed', days_ago(age) + timedelta(hours=1),
                                 event_id=f"rel-d-{i}", appointmentId=appt))
    return events
