"""
Recommendation Engine Service

Produces a prioritized, explainable list of staff actions that improve
occupancy and revenue. The engine reads raw records (clients, appointments,
waitlist), not behavior profiles: it recomputes a handful of simple facts
per client and runs seven independent heuristics over them.

Heuristics (evaluated in this order; not mutually exclusive):
    1. INACTIVE_CALL           60 <= days since last visit < 365     priority 1
    2. WAITLIST_FOLLOW_UP      client is on the waitlist              priority 2
    3. NO_SHOW_FOLLOW_UP       last ended appointment was a no-show   priority 2
    4. REENGAGE_AFTER_REFUND   refunded cancellation in last 30 days  priority 3
    5. UPSELL_GROUP            >= 5 individual sessions, 0 group      priority 3
    6. REMINDER_UPCOMING       appointment within the next 2 days     priority 4
    7. REBOOK_AFTER_COMPLETED  last visit 7-45 days ago               priority 4

Output is flattened and sorted by priority ascending, then client name.
Thresholds default to the engine settings; the set of individual service
ids is injectable.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

from behavior_engine.core.config import get_settings
from behavior_engine.core.dates import days_between, ensure_utc
from behavior_engine.core.ids import IdGenerator, SequenceIdGenerator
from behavior_engine.models.enums import (
    ATTENDED_STATUSES,
    UPCOMING_STATUSES,
    AppointmentStatus,
    PaymentStatus,
    RecommendationType,
    UserRole,
)
from behavior_engine.models.schemas import (
    AppointmentRecord,
    ClientRecommendation,
    ClientRecord,
    WaitlistRecord,
)


logger = logging.getLogger(__name__)

RECOMMENDATION_ID_PREFIX = "rec"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RecommendationThresholds:
    """
    Day thresholds for the heuristics.

    Attributes:
        inactive_days: Days since last visit that trigger an inactive call.
        inactive_ceiling_days: Beyond this the client is treated as lost.
        refund_reengage_days: Look-back for refunded cancellations.
        upcoming_reminder_days: Look-ahead for reminders.
        rebook_min_days: Earliest rebooking offer after a visit.
        rebook_max_days: Latest rebooking offer after a visit.
        upsell_min_individual: Individual sessions before a group upsell.
    """
    inactive_days: int = 60
    inactive_ceiling_days: int = 365
    refund_reengage_days: int = 30
    upcoming_reminder_days: int = 2
    rebook_min_days: int = 7
    rebook_max_days: int = 45
    upsell_min_individual: int = 5

    @classmethod
    def from_settings(cls) -> "RecommendationThresholds":
        settings = get_settings()
        return cls(
            inactive_days=settings.inactive_days_threshold,
            inactive_ceiling_days=settings.inactive_days_ceiling,
            refund_reengage_days=settings.refund_reengage_days,
            upcoming_reminder_days=settings.upcoming_reminder_days,
            rebook_min_days=settings.rebook_min_days,
            rebook_max_days=settings.rebook_max_days,
            upsell_min_individual=settings.upsell_min_individual_sessions,
        )


@dataclass(frozen=True)
class ClientFacts:
    """Per-client facts recomputed from raw records."""
    client: ClientRecord
    last_visit: Optional[datetime]
    days_since_visit: float
    had_recent_refund: bool
    last_was_no_show: bool
    has_upcoming: bool
    waitlist_entry: Optional[WaitlistRecord]
    individual_sessions: int
    group_sessions: int


@dataclass(frozen=True)
class RecommendationDraft:
    """What a heuristic emits before id / client fields are attached."""
    reason: str
    suggested_action: str
    related_id: Optional[str] = None


RecommendationCheck = Callable[[ClientFacts, RecommendationThresholds], Optional[RecommendationDraft]]


@dataclass(frozen=True)
class RecommendationRule:
    """One heuristic with its fixed type and priority."""
    type: RecommendationType
    priority: int
    check: RecommendationCheck


# =============================================================================
# Fact Extraction
# =============================================================================


def get_last_visit_by_client(
    appointments: Iterable[AppointmentRecord],
    now: datetime,
) -> Dict[str, datetime]:
    """Latest end time of an attended appointment that has already ended."""
    last_visit: Dict[str, datetime] = {}
    for appt in appointments:
        if appt.status not in ATTENDED_STATUSES:
            continue
        end = appt.effectiveEndAt
        if end > now:
            continue
        current = last_visit.get(appt.clientId)
        if current is None or end > current:
            last_visit[appt.clientId] = end
    return last_visit


def get_recent_refund_clients(
    appointments: Iterable[AppointmentRecord],
    now: datetime,
    days: int,
) -> Set[str]:
    """Clients with a refunded cancellation within the last ``days`` days."""
    since = now - timedelta(days=days)
    return {
        appt.clientId
        for appt in appointments
        if appt.paymentStatus == PaymentStatus.REFUNDED
        and appt.cancelledAt is not None
        and appt.cancelledAt >= since
    }


def get_last_no_show_clients(
    appointments: Iterable[AppointmentRecord],
    now: datetime,
) -> Set[str]:
    """
    Clients whose chronologically last ended appointment was a no-show.

    Ties on end time resolve by appointment id so the result does not depend
    on input order.
    """
    last_by_client: Dict[str, AppointmentRecord] = {}
    ended = [a for a in appointments if a.effectiveEndAt <= now]
    for appt in sorted(ended, key=lambda a: (a.effectiveEndAt, a.id)):
        last_by_client[appt.clientId] = appt
    return {
        client_id
        for client_id, appt in last_by_client.items()
        if appt.status == AppointmentStatus.NO_SHOW
    }


def get_upcoming_appointment_clients(
    appointments: Iterable[AppointmentRecord],
    now: datetime,
    days: int,
) -> Set[str]:
    """Clients with a still-open appointment starting within ``days`` days."""
    until = now + timedelta(days=days)
    return {
        appt.clientId
        for appt in appointments
        if appt.status in UPCOMING_STATUSES and now <= appt.startAt <= until
    }


def get_individual_vs_group_counts(
    appointments: Iterable[AppointmentRecord],
    individual_service_ids: FrozenSet[str],
) -> Dict[str, Dict[str, int]]:
    """
    Count attended individual and group sessions per client.

    Any service not in ``individual_service_ids`` counts as group.
    """
    counts: Dict[str, Dict[str, int]] = {}
    for appt in appointments:
        if appt.status not in ATTENDED_STATUSES:
            continue
        current = counts.setdefault(appt.clientId, {'individual': 0, 'group': 0})
        if appt.serviceId in individual_service_ids:
            current['individual'] += 1
        else:
            current['group'] += 1
    return counts


def get_latest_waitlist_entry_by_client(
    waitlist: Iterable[WaitlistRecord],
) -> Dict[str, WaitlistRecord]:
    """Most recently created waitlist entry per client (ties by id)."""
    latest: Dict[str, WaitlistRecord] = {}
    for entry in sorted(waitlist, key=lambda w: (w.createdAt, w.id)):
        latest[entry.clientId] = entry
    return latest


def build_client_facts(
    clients: Sequence[ClientRecord],
    appointments: Sequence[AppointmentRecord],
    waitlist: Sequence[WaitlistRecord],
    now: datetime,
    thresholds: RecommendationThresholds,
    individual_service_ids: FrozenSet[str],
) -> List[ClientFacts]:
    """Compute the heuristic inputs for every CLIENT-role user."""
    last_visit = get_last_visit_by_client(appointments, now)
    recent_refunds = get_recent_refund_clients(appointments, now, thresholds.refund_reengage_days)
    last_no_show = get_last_no_show_clients(appointments, now)
    upcoming = get_upcoming_appointment_clients(appointments, now, thresholds.upcoming_reminder_days)
    session_counts = get_individual_vs_group_counts(appointments, individual_service_ids)
    waitlist_by_client = get_latest_waitlist_entry_by_client(waitlist)

    facts: List[ClientFacts] = []
    for client in clients:
        if client.role != UserRole.CLIENT:
            continue
        last = last_visit.get(client.id)
        counts = session_counts.get(client.id, {'individual': 0, 'group': 0})
        facts.append(
            ClientFacts(
                client=client,
                last_visit=last,
                days_since_visit=days_between(last, now) if last is not None else math.inf,
                had_recent_refund=client.id in recent_refunds,
                last_was_no_show=client.id in last_no_show,
                has_upcoming=client.id in upcoming,
                waitlist_entry=waitlist_by_client.get(client.id),
                individual_sessions=counts['individual'],
                group_sessions=counts['group'],
            )
        )
    return facts


# =============================================================================
# Heuristics
# =============================================================================


def _check_inactive(facts: ClientFacts, t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if t.inactive_days <= facts.days_since_visit < t.inactive_ceiling_days:
        return RecommendationDraft(
            reason=(
                f"Client has not visited for {math.floor(facts.days_since_visit)} days; "
                f"open slots can be offered."
            ),
            suggested_action="Call the client and offer an appointment.",
        )
    return None


def _check_waitlist(facts: ClientFacts, _t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    entry = facts.waitlist_entry
    if entry is None:
        return None
    return RecommendationDraft(
        reason=(
            f"Client has been on the waitlist since {entry.createdAt.date().isoformat()}; "
            f"offer a slot when one frees up."
        ),
        suggested_action="Follow up by e-mail or SMS when a suitable slot frees up.",
        related_id=entry.id,
    )


def _check_no_show(facts: ClientFacts, _t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if not facts.last_was_no_show:
        return None
    return RecommendationDraft(
        reason="Client did not show up to their last appointment; offer a new one.",
        suggested_action="Call to rebook.",
    )


def _check_refund(facts: ClientFacts, t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if not facts.had_recent_refund:
        return None
    return RecommendationDraft(
        reason=(
            f"Client cancelled with a refund in the last {t.refund_reengage_days} days; "
            f"a good moment to offer a new appointment."
        ),
        suggested_action="Re-engage by e-mail or phone with a new appointment offer.",
    )


def _check_upsell_group(facts: ClientFacts, t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if facts.individual_sessions >= t.upsell_min_individual and facts.group_sessions == 0:
        return RecommendationDraft(
            reason=(
                f"Regular individual-therapy client ({facts.individual_sessions} completed sessions, "
                f"no group sessions); group therapy can raise occupancy."
            ),
            suggested_action="Upsell group therapy (information e-mail or at the next visit).",
        )
    return None


def _check_upcoming(facts: ClientFacts, t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if not facts.has_upcoming:
        return None
    return RecommendationDraft(
        reason=(
            f"Appointment within the next {t.upcoming_reminder_days} days; "
            f"a reminder reduces no-shows."
        ),
        suggested_action="Send a reminder by SMS or e-mail.",
    )


def _check_rebook(facts: ClientFacts, t: RecommendationThresholds) -> Optional[RecommendationDraft]:
    if facts.last_visit is None:
        return None
    if t.rebook_min_days <= facts.days_since_visit <= t.rebook_max_days:
        return RecommendationDraft(
            reason=(
                f"Last visit was {math.floor(facts.days_since_visit)} days ago; "
                f"a good time to offer the next appointment."
            ),
            suggested_action="Offer rebooking by e-mail or in-app message with a booking link.",
        )
    return None


DEFAULT_RECOMMENDATION_RULES: List[RecommendationRule] = [
    RecommendationRule(RecommendationType.INACTIVE_CALL, 1, _check_inactive),
    RecommendationRule(RecommendationType.WAITLIST_FOLLOW_UP, 2, _check_waitlist),
    RecommendationRule(RecommendationType.NO_SHOW_FOLLOW_UP, 2, _check_no_show),
    RecommendationRule(RecommendationType.REENGAGE_AFTER_REFUND, 3, _check_refund),
    RecommendationRule(RecommendationType.UPSELL_GROUP, 3, _check_upsell_group),
    RecommendationRule(RecommendationType.REMINDER_UPCOMING, 4, _check_upcoming),
    RecommendationRule(RecommendationType.REBOOK_AFTER_COMPLETED, 4, _check_rebook),
]


# =============================================================================
# Main entry point
# =============================================================================


def compute_recommendations(
    clients: Sequence[ClientRecord],
    appointments: Sequence[AppointmentRecord],
    waitlist: Sequence[WaitlistRecord],
    now: datetime,
    individual_service_ids: Optional[Iterable[str]] = None,
    thresholds: Optional[RecommendationThresholds] = None,
    rules: Optional[Sequence[RecommendationRule]] = None,
    id_generator: Optional[IdGenerator] = None,
) -> List[ClientRecommendation]:
    """
    Evaluate all heuristics for all clients and return a prioritized list.

    Args:
        clients: Portal users; only CLIENT-role users are considered.
        appointments: All appointment records.
        waitlist: All waitlist entries.
        now: Reference time.
        individual_service_ids: Services counted as individual sessions
            (default from settings).
        thresholds: Heuristic thresholds (default from settings).
        rules: Ordered heuristic table (default: the seven standard rules).
        id_generator: Source of recommendation ids (default: ``rec-N``).

    Returns:
        Recommendations sorted by priority ascending, then client name.
    """
    now = ensure_utc(now)
    thresholds = thresholds or RecommendationThresholds.from_settings()
    rules = DEFAULT_RECOMMENDATION_RULES if rules is None else rules
    next_id = id_generator if id_generator is not None else SequenceIdGenerator(prefix=RECOMMENDATION_ID_PREFIX)
    if individual_service_ids is None:
        individual_service_ids = get_settings().individual_service_ids
    individual_ids = frozenset(individual_service_ids)

    facts_list = build_client_facts(
        clients,
        appointments,
        waitlist,
        now,
        thresholds,
        individual_ids,
    )

    results: List[ClientRecommendation] = []
    for facts in facts_list:
        for rule in rules:
            draft = rule.check(facts, thresholds)
            if draft is None:
                continue
            results.append(
                ClientRecommendation(
                    id=next_id(),
                    clientId=facts.client.id,
                    clientName=facts.client.name,
                    type=rule.type,
                    reason=draft.reason,
                    priority=rule.priority,
                    suggestedAction=draft.suggested_action,
                    relatedId=draft.related_id,
                )
            )

    results.sort(key=lambda r: (r.priority, r.clientName))
    logger.info(f"Generated {len(results)} recommendations for {len(facts_list)} clients")
    return results
