"""
Profile Assembly Service

Single entry point for the behavior pipeline: events -> metrics -> scores
and tags -> notification strategy -> immutable ``BehaviorProfile``.

Per-client computation touches no shared state, so batches can be mapped
over clients in parallel. ``compute_profiles`` accepts an optional
``concurrent.futures.Executor``; results are collected in client order and
are identical to the sequential path.

Usage:
    from behavior_engine.services.profile import compute_behavior_profile

    profile = compute_behavior_profile("c-7", events, now=reference_time)
    profile.scores.reliabilityScore
"""

import logging
from concurrent.futures import Executor
from datetime import datetime
from functools import partial
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from behavior_engine.core.dates import ensure_utc
from behavior_engine.models.events import BaseBehaviorEvent
from behavior_engine.models.schemas import (
    BehaviorProfile,
    RecencyWeights,
    ScoreWeights,
)
from behavior_engine.services.metrics import compute_metrics
from behavior_engine.services.notification_strategy import (
    StrategyOptions,
    build_notification_strategy,
)
from behavior_engine.services.scores import DEFAULT_SCORE_WEIGHTS, compute_scores
from behavior_engine.services.tags import TagRule, assign_tags


logger = logging.getLogger(__name__)


def resolve_score_weights(
    overrides: Optional[Union[ScoreWeights, Mapping[str, float]]],
) -> ScoreWeights:
    """
    Merge partial weight overrides onto the defaults.

    Args:
        overrides: A full ScoreWeights, a mapping of field -> weight, or None.

    Raises:
        pydantic.ValidationError: If a mapping names an unknown weight type.
    """
    if overrides is None:
        return DEFAULT_SCORE_WEIGHTS
    if isinstance(overrides, ScoreWeights):
        return overrides
    return ScoreWeights(**{**DEFAULT_SCORE_WEIGHTS.model_dump(), **dict(overrides)})


def group_events_by_client(
    events: Iterable[BaseBehaviorEvent],
) -> Dict[str, List[BaseBehaviorEvent]]:
    """
    Partition a mixed event list into per-client lists.

    Each list is sorted by (timestamp, id); dict keys are sorted by client id.
    """
    grouped: Dict[str, List[BaseBehaviorEvent]] = {}
    for event in events:
        grouped.setdefault(event.clientId, []).append(event)
    return {
        client_id: sorted(grouped[client_id], key=lambda e: (e.timestamp, e.id))
        for client_id in sorted(grouped)
    }


def compute_behavior_profile(
    client_id: str,
    events: Iterable[BaseBehaviorEvent],
    now: datetime,
    window_days: Optional[int] = None,
    late_cancel_threshold_hours: Optional[float] = None,
    recency_weighting: Optional[bool] = None,
    recency_weights: Optional[RecencyWeights] = None,
    score_weights: Optional[Union[ScoreWeights, Mapping[str, float]]] = None,
    tag_rules: Optional[Sequence[TagRule]] = None,
    strategy_options: Optional[StrategyOptions] = None,
) -> BehaviorProfile:
    """
    Compute the behavior profile for one client.

    Events belonging to other clients are ignored, so callers may pass an
    unfiltered list.

    Args:
        client_id: Client to profile.
        events: Behavior events (any order).
        now: Reference time; also the tag evaluation date and computedAt.
        window_days: Metrics window (30, 90 or 180).
        late_cancel_threshold_hours: Late-cancel cut-off in hours.
        recency_weighting: Apply recency weights.
        recency_weights: Bucket weights.
        score_weights: Full or partial score weights.
        tag_rules: Ordered tag rule table.
        strategy_options: Notification policy overrides.

    Returns:
        Frozen BehaviorProfile.

    Raises:
        ValueError: If ``client_id`` is empty or ``window_days`` is unsupported.
    """
    if not client_id:
        raise ValueError("client_id is required to compute a behavior profile")

    now = ensure_utc(now)
    client_events = [e for e in events if e.clientId == client_id]

    metrics = compute_metrics(
        client_events,
        now=now,
        window_days=window_days,
        late_cancel_threshold_hours=late_cancel_threshold_hours,
        recency_weighting=recency_weighting,
        recency_weights=recency_weights,
    )
    scores = compute_scores(metrics, resolve_score_weights(score_weights))
    tags = assign_tags(metrics, scores, reference_date=now, rules=tag_rules)
    strategy = build_notification_strategy(metrics, scores, tags, strategy_options)

    return BehaviorProfile(
        clientId=client_id,
        metrics=metrics,
        scores=scores,
        tags=tags,
        notificationStrategy=strategy,
        computedAt=now,
    )


def compute_profiles(
    client_ids: Sequence[str],
    events: Iterable[BaseBehaviorEvent],
    now: datetime,
    executor: Optional[Executor] = None,
    **profile_options,
) -> Dict[str, BehaviorProfile]:
    """
    Compute profiles for many clients from one mixed event list.

    Args:
        client_ids: Clients to profile; clients without events still get a
            (baseline) profile.
        events: Behavior events for any clients.
        now: Shared reference time.
        executor: Optional executor for a parallel map over clients.
        **profile_options: Forwarded to ``compute_behavior_profile``.

    Returns:
        Mapping client id -> profile, in ``client_ids`` order.
    """
    grouped = group_events_by_client(events)
    task = partial(_profile_for_group, grouped=grouped, now=now, options=profile_options)

    if executor is not None:
        profiles = list(executor.map(task, client_ids))
    else:
        profiles = [task(client_id) for client_id in client_ids]

    logger.info(f"Computed {len(profiles)} behavior profiles at {ensure_utc(now).isoformat()}")
    return {profile.clientId: profile for profile in profiles}


def _profile_for_group(
    client_id: str,
    grouped: Mapping[str, List[BaseBehaviorEvent]],
    now: datetime,
    options: Mapping,
) -> BehaviorProfile:
    return compute_behavior_profile(client_id, grouped.get(client_id, []), now=now, **options)
