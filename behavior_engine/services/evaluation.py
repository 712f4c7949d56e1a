"""
Evaluation Service

Batch helpers on top of the profile pipeline used by the admin client list:

- ``compute_client_scores``: records -> events -> per-client profile ->
  ``ClientBehaviorScore`` cards, in input client order.
- ``summarize_client_scores``: reduce profiles to score cards.
- ``build_evaluation_record``: audit entry comparing a client's previous
  scores with a freshly computed profile.

Nothing here is persisted; callers store evaluation records if they need an
audit trail.
"""

import logging
from concurrent.futures import Executor
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from behavior_engine.core.dates import ensure_utc
from behavior_engine.core.ids import IdGenerator, SequenceIdGenerator
from behavior_engine.models.enums import UserRole
from behavior_engine.models.schemas import (
    AppointmentRecord,
    BehaviorEvaluationRecord,
    BehaviorProfile,
    BehaviorScores,
    ClientBehaviorScore,
    ClientRecord,
    NotificationRecord,
    WaitlistRecord,
)
from behavior_engine.services.event_derivation import derive_events
from behavior_engine.services.profile import compute_profiles


logger = logging.getLogger(__name__)

EVALUATION_ID_PREFIX = "eval"

# Scores compared between evaluations, in report order
SCORE_FIELDS = (
    'reliabilityScore',
    'cancellationRiskScore',
    'reactivityScore',
    'fillHelperScore',
)


def summarize_client_scores(profiles: Iterable[BehaviorProfile]) -> List[ClientBehaviorScore]:
    """Reduce profiles to the four headline scores per client."""
    return [
        ClientBehaviorScore(
            clientId=profile.clientId,
            reliabilityScore=profile.scores.reliabilityScore,
            cancellationRiskScore=profile.scores.cancellationRiskScore,
            reactivityScore=profile.scores.reactivityScore,
            fillHelperScore=profile.scores.fillHelperScore,
        )
        for profile in profiles
    ]


def compute_client_scores(
    clients: Sequence[ClientRecord],
    appointments: Sequence[AppointmentRecord],
    notifications: Sequence[NotificationRecord],
    waitlist: Sequence[WaitlistRecord],
    now: datetime,
    executor: Optional[Executor] = None,
    id_generator: Optional[IdGenerator] = None,
    **profile_options,
) -> List[ClientBehaviorScore]:
    """
    Score every CLIENT-role user from raw portal records.

    Args:
        clients: Portal users; non-client roles are skipped.
        appointments: Appointment records for any clients.
        notifications: Notification records for any recipients.
        waitlist: Waitlist entries for any clients.
        now: Reference time.
        executor: Optional executor for a parallel map over clients.
        id_generator: Source of derived event ids.
        **profile_options: Forwarded to ``compute_behavior_profile``
            (window_days, score_weights, ...).

    Returns:
        One score card per client, in input order.
    """
    client_ids: List[str] = []
    for client in clients:
        if client.role == UserRole.CLIENT and client.id not in client_ids:
            client_ids.append(client.id)

    events = derive_events(appointments, notifications, waitlist, id_generator=id_generator)
    profiles = compute_profiles(client_ids, events, now, executor=executor, **profile_options)

    logger.info(f"Scored {len(client_ids)} clients from {len(events)} derived events")
    return summarize_client_scores(profiles[client_id] for client_id in client_ids)


def describe_score_changes(
    previous: Optional[BehaviorScores],
    current: BehaviorScores,
) -> str:
    """
    Human-readable summary of score changes.

    Example:
        >>> describe_score_changes(old, new)
        'reliabilityScore 70→82, reactivityScore 40→35'
    """
    if previous is None:
        return "First evaluation; no previous scores."

    changes = []
    for name in SCORE_FIELDS:
        old = getattr(previous, name)
        new = getattr(current, name)
        if old != new:
            changes.append(f"{name} {old}→{new}")

    if not changes:
        return "No score changes since the previous evaluation."
    return ", ".join(changes)


def build_evaluation_record(
    profile: BehaviorProfile,
    previous_scores: Optional[BehaviorScores] = None,
    trigger_event: Optional[str] = None,
    id_generator: Optional[IdGenerator] = None,
) -> BehaviorEvaluationRecord:
    """
    Build the audit record for one re-evaluation.

    Args:
        profile: Freshly computed profile.
        previous_scores: Scores from the last stored evaluation, if any.
        trigger_event: Event type that caused the re-evaluation.
        id_generator: Source of the record id (default: ``eval-N``).

    Returns:
        BehaviorEvaluationRecord stamped with the profile's computedAt.
    """
    next_id = id_generator if id_generator is not None else SequenceIdGenerator(prefix=EVALUATION_ID_PREFIX)
    return BehaviorEvaluationRecord(
        id=next_id(),
        clientId=profile.clientId,
        evaluatedAt=ensure_utc(profile.computedAt),
        previousScores=previous_scores,
        newScores=profile.scores,
        triggerEvent=trigger_event,
        reason=describe_score_changes(previous_scores, profile.scores),
    )
