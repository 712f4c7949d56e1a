"""
Behavior event tagged union.

Every behavior event is an immutable Pydantic model sharing ``id``,
``clientId`` and ``timestamp``; the ``type`` field is the discriminator.
``parse_behavior_event`` validates raw mappings (e.g. rows from an event
store) against the union and rejects unknown discriminators instead of
coercing them.

Event groups:
- Reservation: booking_created / cancelled / rescheduled / no_show / completed
- Waitlist and substitutes: waitlist_joined / left, substitute_offer_*,
  slot_claimed
- Notification responses: notification_sent / opened / clicked / converted /
  muted

GDPR note: collect only with a legitimate purpose and a defined retention
period; the engine derives what it needs and stores nothing.
"""

from datetime import datetime
from typing import Annotated, Any, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from behavior_engine.core.dates import ensure_utc
from behavior_engine.models.enums import (
    CancelledBy,
    ConversionAction,
    NotificationChannel,
)


class BaseBehaviorEvent(BaseModel):
    """
    Fields common to every behavior event.

    Events are frozen once created; the processing order is ``timestamp``
    ascending, but consumers must sort or filter explicitly.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Generator-assigned unique id")
    clientId: str = Field(..., min_length=1, description="Client the event belongs to")
    timestamp: datetime = Field(..., description="When the fact happened (UTC)")

    @field_validator('timestamp')
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# =============================================================================
# A) Reservation events
# =============================================================================


class BookingCreatedEvent(BaseBehaviorEvent):
    type: Literal["booking_created"] = "booking_created"
    appointmentId: str
    serviceId: Optional[str] = None
    leadTimeHours: Optional[float] = Field(default=None, ge=0.0)


class BookingCancelledEvent(BaseBehaviorEvent):
    type: Literal["booking_cancelled"] = "booking_cancelled"
    appointmentId: str
    cancelledBy: CancelledBy = CancelledBy.CLIENT
    reason: Optional[str] = None
    hoursBeforeAppointment: Optional[float] = Field(default=None, ge=0.0)


class BookingRescheduledEvent(BaseBehaviorEvent):
    type: Literal["booking_rescheduled"] = "booking_rescheduled"
    appointmentId: str
    previousStartAt: Optional[datetime] = None


class BookingNoShowEvent(BaseBehaviorEvent):
    type: Literal["booking_no_show"] = "booking_no_show"
    appointmentId: str


class BookingCompletedEvent(BaseBehaviorEvent):
    type: Literal["booking_completed"] = "booking_completed"
    appointmentId: str


# =============================================================================
# B) Waitlist and substitute offers
# =============================================================================


class WaitlistJoinedEvent(BaseBehaviorEvent):
    type: Literal["waitlist_joined"] = "waitlist_joined"
    waitlistEntryId: str
    serviceId: Optional[str] = None


class WaitlistLeftEvent(BaseBehaviorEvent):
    type: Literal["waitlist_left"] = "waitlist_left"
    waitlistEntryId: str


class SubstituteOfferReceivedEvent(BaseBehaviorEvent):
    type: Literal["substitute_offer_received"] = "substitute_offer_received"
    offerId: str
    appointmentId: Optional[str] = None


class SubstituteOfferAcceptedEvent(BaseBehaviorEvent):
    type: Literal["substitute_offer_accepted"] = "substitute_offer_accepted"
    offerId: str
    responseTimeMinutes: Optional[float] = Field(default=None, ge=0.0)


class SubstituteOfferDeclinedEvent(BaseBehaviorEvent):
    type: Literal["substitute_offer_declined"] = "substitute_offer_declined"
    offerId: str


class SlotClaimedEvent(BaseBehaviorEvent):
    type: Literal["slot_claimed"] = "slot_claimed"
    appointmentId: str
    freedAt: Optional[datetime] = None


# =============================================================================
# C) Notification / prompt responses
# =============================================================================


class NotificationSentEvent(BaseBehaviorEvent):
    type: Literal["notification_sent"] = "notification_sent"
    notificationId: str
    channel: NotificationChannel
    template: Optional[str] = None
    priority: Optional[int] = None


class NotificationOpenedEvent(BaseBehaviorEvent):
    type: Literal["notification_opened"] = "notification_opened"
    notificationId: str
    channel: NotificationChannel
    responseTimeMinutes: Optional[float] = Field(default=None, ge=0.0)


class NotificationClickedEvent(BaseBehaviorEvent):
    type: Literal["notification_clicked"] = "notification_clicked"
    notificationId: str
    channel: NotificationChannel
    responseTimeMinutes: Optional[float] = Field(default=None, ge=0.0)


class NotificationConvertedEvent(BaseBehaviorEvent):
    type: Literal["notification_converted"] = "notification_converted"
    notificationId: str
    channel: NotificationChannel
    action: Optional[ConversionAction] = None
    responseTimeMinutes: Optional[float] = Field(default=None, ge=0.0)


class NotificationMutedEvent(BaseBehaviorEvent):
    type: Literal["notification_muted"] = "notification_muted"
    channel: Optional[str] = None


# =============================================================================
# Union and parser
# =============================================================================


BehaviorEvent = Annotated[
    Union[
        BookingCreatedEvent,
        BookingCancelledEvent,
        BookingRescheduledEvent,
        BookingNoShowEvent,
        BookingCompletedEvent,
        WaitlistJoinedEvent,
        WaitlistLeftEvent,
        SubstituteOfferReceivedEvent,
        SubstituteOfferAcceptedEvent,
        SubstituteOfferDeclinedEvent,
        SlotClaimedEvent,
        NotificationSentEvent,
        NotificationOpenedEvent,
        NotificationClickedEvent,
        NotificationConvertedEvent,
        NotificationMutedEvent,
    ],
    Field(discriminator='type'),
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(BehaviorEvent)
_EVENT_LIST_ADAPTER: TypeAdapter = TypeAdapter(List[BehaviorEvent])


def parse_behavior_event(data: Mapping[str, Any]) -> BaseBehaviorEvent:
    """
    Validate one raw mapping into its concrete event model.

    Args:
        data: Mapping with a ``type`` discriminator and the variant's fields.

    Returns:
        The concrete (frozen) event instance.

    Raises:
        pydantic.ValidationError: If ``type`` is missing or unknown, or a
            variant field is invalid.
    """
    return _EVENT_ADAPTER.validate_python(data)


def parse_behavior_events(items: Iterable[Mapping[str, Any]]) -> List[BaseBehaviorEvent]:
    """Validate a batch of raw mappings; fails on the first invalid item."""
    return _EVENT_LIST_ADAPTER.validate_python(list(items))


def sort_events(events: Iterable[BaseBehaviorEvent]) -> List[BaseBehaviorEvent]:
    """Return events ordered by timestamp ascending (stable for equal timestamps)."""
    return sorted(events, key=lambda e: e.timestamp)
