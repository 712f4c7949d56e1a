"""
Enumeration definitions for the behavior engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models. Values match the strings stored by the
scheduling portal (appointment statuses, notification channels) and the
strings the admin UI expects (event types, recommendation types).
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """
    Lifecycle status of an appointment record.

    Attended visits are COMPLETED, PAID, UNPAID and INVOICED (the visit
    happened; only the billing state differs). SCHEDULED is still open.
    """
    SCHEDULED = "SCHEDULED"
    PAID = "PAID"
    UNPAID = "UNPAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    INVOICED = "INVOICED"
    NO_SHOW = "NO_SHOW"


# Statuses that represent an attended visit
ATTENDED_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.PAID,
    AppointmentStatus.UNPAID,
    AppointmentStatus.INVOICED,
})

# Statuses that can still take place (used for upcoming reminders)
UPCOMING_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.PAID,
    AppointmentStatus.UNPAID,
})


class PaymentStatus(str, Enum):
    """Payment state of an appointment."""
    PENDING = "PENDING"
    PAID = "PAID"
    UNPAID = "UNPAID"
    REFUNDED = "REFUNDED"
    INVOICED = "INVOICED"


class UserRole(str, Enum):
    """Portal roles. Only CLIENT users receive recommendations."""
    CLIENT = "CLIENT"
    EMPLOYEE = "EMPLOYEE"
    RECEPTION = "RECEPTION"
    ADMIN = "ADMIN"


class NotificationChannel(str, Enum):
    """
    Notification transport channels.

    Declaration order is the tie-break order for channel ranking.
    """
    PUSH = "PUSH"
    EMAIL = "EMAIL"
    SMS = "SMS"
    IN_APP = "IN_APP"


class BehaviorEventType(str, Enum):
    """Discriminator values of the behavior event union."""
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_RESCHEDULED = "booking_rescheduled"
    BOOKING_NO_SHOW = "booking_no_show"
    BOOKING_COMPLETED = "booking_completed"
    WAITLIST_JOINED = "waitlist_joined"
    WAITLIST_LEFT = "waitlist_left"
    SUBSTITUTE_OFFER_RECEIVED = "substitute_offer_received"
    SUBSTITUTE_OFFER_ACCEPTED = "substitute_offer_accepted"
    SUBSTITUTE_OFFER_DECLINED = "substitute_offer_declined"
    SLOT_CLAIMED = "slot_claimed"
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_OPENED = "notification_opened"
    NOTIFICATION_CLICKED = "notification_clicked"
    NOTIFICATION_CONVERTED = "notification_converted"
    NOTIFICATION_MUTED = "notification_muted"


class CancelledBy(str, Enum):
    """Who cancelled a booking."""
    CLIENT = "client"
    RECEPTION = "reception"
    SYSTEM = "system"


class ConversionAction(str, Enum):
    """What a converted notification led to."""
    BOOKED = "booked"
    SIGNED_UP_SUBSTITUTE = "signed_up_substitute"
    CONFIRMED = "confirmed"


class TagStrength(str, Enum):
    """
    Strength of a behavior tag.

    Maps deterministically to confidence: high 0.9, medium 0.7, low 0.5.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContentHint(str, Enum):
    """
    Content style for outreach to a client.

    - short: Super substitutes; they act fast on terse offers
    - detailed: Hesitant clients (low reactivity)
    - reminder: Frequent cancellers
    - standard: Everyone else
    """
    SHORT = "short"
    DETAILED = "detailed"
    REMINDER = "reminder"
    STANDARD = "standard"


class RecommendationType(str, Enum):
    """
    Staff action kinds produced by the recommendation engine.

    Declaration order matches the heuristic evaluation order.
    """
    INACTIVE_CALL = "INACTIVE_CALL"
    WAITLIST_FOLLOW_UP = "WAITLIST_FOLLOW_UP"
    NO_SHOW_FOLLOW_UP = "NO_SHOW_FOLLOW_UP"
    REENGAGE_AFTER_REFUND = "REENGAGE_AFTER_REFUND"
    UPSELL_GROUP = "UPSELL_GROUP"
    REMINDER_UPCOMING = "REMINDER_UPCOMING"
    REBOOK_AFTER_COMPLETED = "REBOOK_AFTER_COMPLETED"
