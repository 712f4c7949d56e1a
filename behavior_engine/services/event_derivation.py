"""
Event Derivation Service

Derives behavior events from existing domain records (appointments,
notifications, waitlist entries). Used while no dedicated event store exists:
the portal persists only the domain records, and the behavior pipeline runs
on the facts normalized here.

Derivation rules:
- Appointment: one booking_created at ``startAt`` (proxy for "was
  scheduled"; no creation timestamp exists), then at most one outcome:
    * attended statuses (COMPLETED, PAID, UNPAID, INVOICED) -> booking_completed at ``endAt``
    * NO_SHOW -> booking_no_show at ``startAt``
    * CANCELLED with ``cancelledAt`` -> booking_cancelled at ``cancelledAt`` carrying
      hoursBeforeAppointment = max(0, startAt - cancelledAt in hours)
    * SCHEDULED (or CANCELLED without ``cancelledAt``) -> creation event only
- Notification: notification_sent always; notification_opened when read.
  The source has no separate click / conversion telemetry.
- Waitlist entry: one waitlist_joined at ``createdAt``.

This stage only normalizes facts; it does not classify cancellations as
late. Output is sorted by timestamp ascending. Ids come from the injected
generator, never from module state. The per-source derivers require a
generator so that separate calls can share one id space; only the combined
``derive_events`` starts its own sequence when none is given.
"""

import logging
from typing import Iterable, List, Optional

from behavior_engine.core.dates import hours_between
from behavior_engine.core.ids import IdGenerator, SequenceIdGenerator
from behavior_engine.models.enums import (
    ATTENDED_STATUSES,
    AppointmentStatus,
    CancelledBy,
)
from behavior_engine.models.events import (
    BaseBehaviorEvent,
    BookingCancelledEvent,
    BookingCompletedEvent,
    BookingCreatedEvent,
    BookingNoShowEvent,
    NotificationOpenedEvent,
    NotificationSentEvent,
    WaitlistJoinedEvent,
    sort_events,
)
from behavior_engine.models.schemas import (
    AppointmentRecord,
    NotificationRecord,
    WaitlistRecord,
)


logger = logging.getLogger(__name__)

EVENT_ID_PREFIX = "ev"


def derive_events_from_appointments(
    appointments: Iterable[AppointmentRecord],
    id_generator: IdGenerator,
) -> List[BaseBehaviorEvent]:
    """
    Derive booking events from appointment records.

    Args:
        appointments: Appointment records for one or more clients.
        id_generator: Source of event ids; share one generator across calls
            so ids stay unique.

    Returns:
        Events sorted by timestamp ascending.

    Example:
        >>> events = derive_events_from_appointments([cancelled_appt], SequenceIdGenerator("ev"))
        >>> [e.type for e in events]
        ['booking_cancelled', 'booking_created']
    """
    next_id = id_generator
    events: List[BaseBehaviorEvent] = []

    for appt in appointments:
        events.append(
            BookingCreatedEvent(
                id=next_id(),
                clientId=appt.clientId,
                timestamp=appt.startAt,
                appointmentId=appt.id,
                serviceId=appt.serviceId,
            )
        )

        if appt.status in ATTENDED_STATUSES:
            events.append(
                BookingCompletedEvent(
                    id=next_id(),
                    clientId=appt.clientId,
                    timestamp=appt.effectiveEndAt,
                    appointmentId=appt.id,
                )
            )
        elif appt.status == AppointmentStatus.NO_SHOW:
            events.append(
                BookingNoShowEvent(
                    id=next_id(),
                    clientId=appt.clientId,
                    timestamp=appt.startAt,
                    appointmentId=appt.id,
                )
            )
        elif appt.status == AppointmentStatus.CANCELLED:
            if appt.cancelledAt is None:
                logger.debug(f"Appointment {appt.id} cancelled without cancelledAt; no cancellation event")
                continue
            hours_before = hours_between(appt.cancelledAt, appt.startAt)
            events.append(
                BookingCancelledEvent(
                    id=next_id(),
                    clientId=appt.clientId,
                    timestamp=appt.cancelledAt,
                    appointmentId=appt.id,
                    cancelledBy=CancelledBy.CLIENT,
                    reason=appt.cancelReason,
                    hoursBeforeAppointment=max(0.0, hours_before),
                )
            )

    return sort_events(events)


def derive_events_from_notifications(
    notifications: Iterable[NotificationRecord],
    id_generator: IdGenerator,
) -> List[BaseBehaviorEvent]:
    """
    Derive notification events from notification records.

    A read notification yields an extra notification_opened event at the
    creation time (no open timestamp is recorded upstream, so no response
    time sample is attached). Records without a recipient are skipped.
    """
    next_id = id_generator
    events: List[BaseBehaviorEvent] = []

    for notification in notifications:
        client_id = notification.recipientId
        if not client_id:
            logger.debug(f"Notification {notification.id} has no recipient; skipped")
            continue

        events.append(
            NotificationSentEvent(
                id=next_id(),
                clientId=client_id,
                timestamp=notification.createdAt,
                notificationId=notification.id,
                channel=notification.channel,
            )
        )
        if notification.read:
            events.append(
                NotificationOpenedEvent(
                    id=next_id(),
                    clientId=client_id,
                    timestamp=notification.createdAt,
                    notificationId=notification.id,
                    channel=notification.channel,
                )
            )

    return sort_events(events)


def derive_events_from_waitlist(
    entries: Iterable[WaitlistRecord],
    id_generator: IdGenerator,
) -> List[BaseBehaviorEvent]:
    """Derive one waitlist_joined event per waitlist entry."""
    next_id = id_generator
    events = [
        WaitlistJoinedEvent(
            id=next_id(),
            clientId=entry.clientId,
            timestamp=entry.createdAt,
            waitlistEntryId=entry.id,
            serviceId=entry.serviceId,
        )
        for entry in entries
    ]
    return sort_events(events)


def derive_events(
    appointments: Iterable[AppointmentRecord] = (),
    notifications: Iterable[NotificationRecord] = (),
    waitlist: Iterable[WaitlistRecord] = (),
    id_generator: Optional[IdGenerator] = None,
) -> List[BaseBehaviorEvent]:
    """
    Derive all events from the three record sources into one sorted list.

    A single id generator is shared across sources so ids stay unique.
    Without one, a fresh ``ev-N`` sequence is started for this call.
    """
    next_id = id_generator if id_generator is not None else SequenceIdGenerator(prefix=EVENT_ID_PREFIX)
    events: List[BaseBehaviorEvent] = []
    events.extend(derive_events_from_appointments(appointments, next_id))
    events.extend(derive_events_from_notifications(notifications, next_id))
    events.extend(derive_events_from_waitlist(waitlist, next_id))
    return sort_events(events)
