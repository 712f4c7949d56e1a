"""
Pydantic models for the behavior engine.

This module provides type-safe data validation for the engine boundary:

- Input records read from the persistence layer: appointments, notifications,
  waitlist entries and clients (users).
- Tunable parameter tables: recency weights and score weights.
- Pipeline outputs: metrics snapshot, scores, tags, notification strategy,
  the composite behavior profile, client recommendations, per-client score
  summaries and evaluation records.

Field names are camelCase to match the JSON contracts consumed by the admin
UI. All output models are frozen and hold sequences as tuples; a profile is
a snapshot and is never patched in place.

All models use Pydantic v2 syntax with field validation and examples.
"""

from datetime import date, datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from behavior_engine.core.dates import ensure_utc
from behavior_engine.models.enums import (
    AppointmentStatus,
    ContentHint,
    NotificationChannel,
    PaymentStatus,
    RecommendationType,
    TagStrength,
    UserRole,
)


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


# =============================================================================
# Input Records (persistence layer contracts)
# =============================================================================


class AppointmentRecord(BaseModel):
    """
    Appointment as stored by the scheduling portal.

    A missing ``clientId`` is an input-contract violation and fails
    validation here, before any derivation happens.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "id": "a-101",
                "clientId": "c-7",
                "employeeId": "e-2",
                "serviceId": "s-1",
                "startAt": "2026-03-02T09:00:00Z",
                "endAt": "2026-03-02T10:00:00Z",
                "status": "CANCELLED",
                "paymentStatus": "REFUNDED",
                "cancelReason": "ill",
                "cancelledAt": "2026-03-02T05:00:00Z"
            }
        }
    )

    id: str = Field(..., min_length=1, description="Appointment id")
    clientId: str = Field(..., min_length=1, description="Client the appointment belongs to")
    employeeId: Optional[str] = Field(default=None, description="Assigned employee")
    serviceId: str = Field(..., description="Booked service")
    roomId: Optional[str] = Field(default=None, description="Assigned room")
    startAt: datetime = Field(..., description="Scheduled start")
    endAt: Optional[datetime] = Field(default=None, description="Scheduled end")
    status: AppointmentStatus = Field(..., description="Lifecycle status")
    paymentStatus: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        description="Payment state"
    )
    cancelReason: Optional[str] = Field(default=None, description="Free-text cancel reason")
    cancelledAt: Optional[datetime] = Field(default=None, description="When it was cancelled")

    @field_validator('startAt')
    @classmethod
    def _start_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator('endAt', 'cancelledAt')
    @classmethod
    def _optional_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc_or_none(value)

    @property
    def effectiveEndAt(self) -> datetime:
        """End time, falling back to start when the record has no end."""
        return self.endAt if self.endAt is not None else self.startAt


class NotificationRecord(BaseModel):
    """
    Notification as stored by the portal.

    The recipient may be recorded as ``userId`` or ``clientId``; records with
    neither are skipped by the event deriver.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "n-55",
                "userId": "c-7",
                "channel": "SMS",
                "message": "A slot opened tomorrow at 9:00",
                "read": True,
                "createdAt": "2026-03-01T17:30:00Z"
            }
        }
    )

    id: str = Field(..., min_length=1)
    userId: Optional[str] = Field(default=None, description="Recipient user id")
    clientId: Optional[str] = Field(default=None, description="Recipient client id")
    channel: NotificationChannel
    title: Optional[str] = None
    message: str = ""
    read: bool = False
    createdAt: datetime

    @field_validator('createdAt')
    @classmethod
    def _created_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def recipientId(self) -> Optional[str]:
        return self.userId or self.clientId


class WaitlistRecord(BaseModel):
    """Waiting-list entry."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "w-3",
                "clientId": "c-7",
                "serviceId": "s-2",
                "priority": 1,
                "createdAt": "2026-02-20T08:00:00Z"
            }
        }
    )

    id: str = Field(..., min_length=1)
    clientId: str = Field(..., min_length=1)
    serviceId: Optional[str] = None
    priority: Optional[int] = None
    createdAt: datetime

    @field_validator('createdAt')
    @classmethod
    def _created_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ClientRecord(BaseModel):
    """Portal user; recommendations are produced for CLIENT users only."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., description="Display name used for ordering")
    role: UserRole = UserRole.CLIENT


# =============================================================================
# Parameter Tables
# =============================================================================


class RecencyWeights(BaseModel):
    """
    Recency weights by event age bucket.

    Events at most 30 days old count the most, 91-180 days the least; older
    events get weight 0.
    """
    model_config = ConfigDict(frozen=True)

    last30: float = Field(default=1.5, ge=0.0)
    days31to90: float = Field(default=1.0, ge=0.0)
    days91to180: float = Field(default=0.5, ge=0.0)


class ScoreWeights(BaseModel):
    """
    Weights for the four heuristic scores.

    Penalties are stored negative and applied by absolute value.
    """
    model_config = ConfigDict(frozen=True)

    reliabilityAttendance: float = 40.0
    reliabilityNoShowPenalty: float = -30.0
    reliabilityLateCancelPenalty: float = -20.0
    cancellationRiskFrequency: float = 25.0
    cancellationRiskShortNotice: float = 25.0
    reactivityConversion: float = 40.0
    reactivityResponseTime: float = 30.0
    reactivitySubstituteAccept: float = 30.0
    fillHelperSlotClaimed: float = 50.0
    fillHelperLastMinuteRate: float = 50.0


# =============================================================================
# Pipeline Outputs
# =============================================================================


class BehaviorMetrics(BaseModel):
    """
    Aggregate snapshot for one (client, windowEnd, windowDays) triple.

    Counts are recency-weighted and therefore fractional. Never persisted as
    authoritative state; always re-derivable from events.
    """
    model_config = ConfigDict(frozen=True)

    # Rates
    attendanceRate: float = Field(default=0.0, ge=0.0, le=1.0, description="completed / scheduled")
    noShowRate: float = Field(default=0.0, ge=0.0, le=1.0, description="no_show / scheduled")
    lateCancelRate: float = Field(default=0.0, ge=0.0, le=1.0, description="late cancels / scheduled")
    ctaOpenRate: float = Field(default=0.0, ge=0.0, le=1.0, description="opened / sent")
    ctaClickRate: float = Field(default=0.0, ge=0.0, le=1.0, description="clicked / sent")
    ctaConversionRate: float = Field(default=0.0, ge=0.0, le=1.0, description="converted / sent")
    substituteAcceptRate: float = Field(default=0.0, ge=0.0, le=1.0, description="accepted / received offers")
    lastMinuteFillRate: float = Field(default=0.0, ge=0.0, le=1.0, description="slot claims / received offers")

    # Durations and frequencies
    avgCancelLeadTimeHours: float = Field(default=0.0, ge=0.0)
    medianResponseTimeMinutes: float = Field(default=0.0, ge=0.0)
    responseTimeSampleCount: int = Field(default=0, ge=0, description="Response-time samples behind the median")
    avgBookingLeadTimeHours: float = Field(default=0.0, ge=0.0)
    cancelFrequencyPerMonth: float = Field(default=0.0, ge=0.0)
    rescheduleFrequencyPerMonth: float = Field(default=0.0, ge=0.0)

    # Counts
    scheduledCount: float = Field(default=0.0, ge=0.0)
    completedCount: float = Field(default=0.0, ge=0.0)
    noShowCount: float = Field(default=0.0, ge=0.0)
    cancelledCount: float = Field(default=0.0, ge=0.0)
    rescheduledCount: float = Field(default=0.0, ge=0.0)
    slotClaimedCount: float = Field(default=0.0, ge=0.0)
    notificationsSentCount: float = Field(default=0.0, ge=0.0)
    notificationsOpenedCount: float = Field(default=0.0, ge=0.0)
    notificationsClickedCount: float = Field(default=0.0, ge=0.0)
    notificationsConvertedCount: float = Field(default=0.0, ge=0.0)
    substituteOffersReceivedCount: float = Field(default=0.0, ge=0.0)
    substituteOffersAcceptedCount: float = Field(default=0.0, ge=0.0)

    # Window descriptor
    windowEnd: datetime
    windowDays: int


class ChannelAffinity(BaseModel):
    """Per-channel preference score, 0-100."""
    model_config = ConfigDict(frozen=True)

    PUSH: int = Field(default=0, ge=0, le=100)
    EMAIL: int = Field(default=0, ge=0, le=100)
    SMS: int = Field(default=0, ge=0, le=100)
    IN_APP: int = Field(default=0, ge=0, le=100)

    def score_for(self, channel: NotificationChannel) -> int:
        return getattr(self, NotificationChannel(channel).value)


class BehaviorScores(BaseModel):
    """
    Four bounded heuristic scores plus channel affinity.

    Higher reliability / reactivity / fillHelper is better; higher
    cancellationRisk is worse.
    """
    model_config = ConfigDict(frozen=True)

    reliabilityScore: int = Field(..., ge=0, le=100)
    cancellationRiskScore: int = Field(..., ge=0, le=100)
    reactivityScore: int = Field(..., ge=0, le=100)
    fillHelperScore: int = Field(..., ge=0, le=100)
    channelAffinity: ChannelAffinity


class TagAssignment(BaseModel):
    """A tag triggered by a threshold rule, with an auditable reason."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "tagId": "frequently_cancels",
                "name": "Frequently Cancels",
                "reason": "Assigned because late cancellation rate (within 12h) is 100% in the last 90 days.",
                "validUntil": "2026-06-01",
                "confidence": 0.7,
                "strength": "medium",
                "windowDays": 90
            }
        }
    )

    tagId: str
    name: str
    reason: str = Field(..., description="Explanation embedding the triggering metric values")
    validUntil: date = Field(..., description="Evaluation date plus the rule's validity window")
    confidence: float = Field(..., ge=0.0, le=1.0)
    strength: TagStrength
    windowDays: int


class NotificationStrategy(BaseModel):
    """Outreach policy for one client, consumed by the external dispatcher."""
    model_config = ConfigDict(frozen=True)

    preferredChannel: NotificationChannel
    channelOrder: Tuple[NotificationChannel, ...]
    maxPerDay: int = Field(..., ge=0)
    maxPerWeek: int = Field(..., ge=0)
    cooldownMinutesAfterIgnored: int = Field(..., ge=0)
    ignoredBeforeCooldown: int = Field(..., ge=0)
    preferredHoursStart: int = Field(..., ge=0, le=24)
    preferredHoursEnd: int = Field(..., ge=0, le=24)
    sendLastMinuteOnlyToHighFillHelper: bool = True
    contentHint: ContentHint = ContentHint.STANDARD


class BehaviorProfile(BaseModel):
    """Immutable snapshot composed from metrics, scores, tags and strategy."""
    model_config = ConfigDict(frozen=True)

    clientId: str = Field(..., min_length=1)
    metrics: BehaviorMetrics
    scores: BehaviorScores
    tags: Tuple[TagAssignment, ...] = ()
    notificationStrategy: NotificationStrategy
    computedAt: datetime


class ClientRecommendation(BaseModel):
    """Prioritized, explainable staff action for one client."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "rec-1",
                "clientId": "c-7",
                "clientName": "Jana Nováková",
                "type": "INACTIVE_CALL",
                "reason": "Client has not visited for 61 days; open slots can be offered.",
                "priority": 1,
                "suggestedAction": "Call the client and offer an appointment.",
                "relatedId": None
            }
        }
    )

    id: str
    clientId: str
    clientName: str
    type: RecommendationType
    reason: str
    priority: int = Field(..., ge=1, description="1 = most urgent")
    suggestedAction: str
    relatedId: Optional[str] = None


class ClientBehaviorScore(BaseModel):
    """Per-client score card shown in the admin client list."""
    model_config = ConfigDict(frozen=True)

    clientId: str
    reliabilityScore: int = Field(..., ge=0, le=100)
    cancellationRiskScore: int = Field(..., ge=0, le=100)
    reactivityScore: int = Field(..., ge=0, le=100)
    fillHelperScore: int = Field(..., ge=0, le=100)


class BehaviorEvaluationRecord(BaseModel):
    """One evaluation run for a client: what changed, when and why."""
    model_config = ConfigDict(frozen=True)

    id: str
    clientId: str
    evaluatedAt: datetime
    previousScores: Optional[BehaviorScores] = None
    newScores: BehaviorScores
    triggerEvent: Optional[str] = Field(
        default=None,
        description="Event type that caused the re-evaluation, e.g. booking_completed"
    )
    reason: str
