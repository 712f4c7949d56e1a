"""
Package initialization file for behavior engine models.

Exports all enumerations, Pydantic schemas and behavior event models so other
modules can import them from ``behavior_engine.models`` directly.

Usage:
    from behavior_engine.models import (
        AppointmentRecord,
        BehaviorProfile,
        BookingCreatedEvent,
        parse_behavior_event,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from behavior_engine.models.enums import (
    AppointmentStatus,
    ATTENDED_STATUSES,
    UPCOMING_STATUSES,
    PaymentStatus,
    UserRole,
    NotificationChannel,
    BehaviorEventType,
    CancelledBy,
    ConversionAction,
    TagStrength,
    ContentHint,
    RecommendationType,
)

# =============================================================================
# Schemas
# =============================================================================

from behavior_engine.models.schemas import (
    # Input records
    AppointmentRecord,
    NotificationRecord,
    WaitlistRecord,
    ClientRecord,
    # Parameter tables
    RecencyWeights,
    ScoreWeights,
    # Pipeline outputs
    BehaviorMetrics,
    ChannelAffinity,
    BehaviorScores,
    TagAssignment,
    NotificationStrategy,
    BehaviorProfile,
    ClientRecommendation,
    ClientBehaviorScore,
    BehaviorEvaluationRecord,
)

# =============================================================================
# Behavior events
# =============================================================================

from behavior_engine.models.events import (
    BaseBehaviorEvent,
    BehaviorEvent,
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
    parse_behavior_event,
    parse_behavior_events,
    sort_events,
)

__all__ = [
    # Enums
    'AppointmentStatus',
    'ATTENDED_STATUSES',
    'UPCOMING_STATUSES',
    'PaymentStatus',
    'UserRole',
    'NotificationChannel',
    'BehaviorEventType',
    'CancelledBy',
    'ConversionAction',
    'TagStrength',
    'ContentHint',
    'RecommendationType',
    # Input records
    'AppointmentRecord',
    'NotificationRecord',
    'WaitlistRecord',
    'ClientRecord',
    # Parameter tables
    'RecencyWeights',
    'ScoreWeights',
    # Pipeline outputs
    'BehaviorMetrics',
    'ChannelAffinity',
    'BehaviorScores',
    'TagAssignment',
    'NotificationStrategy',
    'BehaviorProfile',
    'ClientRecommendation',
    'ClientBehaviorScore',
    'BehaviorEvaluationRecord',
    # Events
    'BaseBehaviorEvent',
    'BehaviorEvent',
    'BookingCreatedEvent',
    'BookingCancelledEvent',
    'BookingRescheduledEvent',
    'BookingNoShowEvent',
    'BookingCompletedEvent',
    'WaitlistJoinedEvent',
    'WaitlistLeftEvent',
    'SubstituteOfferReceivedEvent',
    'SubstituteOfferAcceptedEvent',
    'SubstituteOfferDeclinedEvent',
    'SlotClaimedEvent',
    'NotificationSentEvent',
    'NotificationOpenedEvent',
    'NotificationClickedEvent',
    'NotificationConvertedEvent',
    'NotificationMutedEvent',
    'parse_behavior_event',
    'parse_behavior_events',
    'sort_events',
]
