"""
Behavior Engine Services Module

This module contains the business logic of the behavior engine. Each service
is stateless: it reads its inputs, never the wall clock, and returns new
immutable values.

Services:
- event_derivation: appointment / notification / waitlist records -> events
- metrics: windowed, recency-weighted aggregation of one client's events
- scores: bounded 0-100 heuristic scores and channel affinity
- tags: explainable threshold tags with validity and confidence
- notification_strategy: channel order, throttles, cooldown, content hint
- profile: single-client and batch profile assembly
- recommendations: prioritized staff actions from raw records
- evaluation: batch score cards and evaluation audit records
"""

# =============================================================================
# Event Derivation Service Exports
# Normalizes persisted domain records into behavior events
# =============================================================================

from behavior_engine.services.event_derivation import (
    derive_events,
    derive_events_from_appointments,
    derive_events_from_notifications,
    derive_events_from_waitlist,
)

# =============================================================================
# Metrics Service Exports
# Windowed aggregation with recency weighting
# =============================================================================

from behavior_engine.services.metrics import (
    ALLOWED_WINDOW_DAYS,
    compute_metrics,
    filter_events_in_window,
    get_recency_weight,
    get_window_start,
    median,
    validate_window_days,
)

# =============================================================================
# Score Service Exports
# =============================================================================

from behavior_engine.services.scores import (
    DEFAULT_SCORE_WEIGHTS,
    calculate_channel_affinity,
    compute_scores,
    round_half_up,
)

# =============================================================================
# Tag Service Exports
# Ordered rule table; every matching rule fires
# =============================================================================

from behavior_engine.services.tags import (
    DEFAULT_TAG_RULES,
    TagRule,
    assign_tags,
    calculate_valid_until,
    confidence_from_strength,
)

# =============================================================================
# Notification Strategy Service Exports
# =============================================================================

from behavior_engine.services.notification_strategy import (
    StrategyOptions,
    build_notification_strategy,
    rank_channels,
)

# =============================================================================
# Profile Service Exports
# Single entry point: events -> metrics -> scores/tags -> strategy
# =============================================================================

from behavior_engine.services.profile import (
    compute_behavior_profile,
    compute_profiles,
    group_events_by_client,
    resolve_score_weights,
)

# =============================================================================
# Recommendation Service Exports
# Seven ordered heuristics over raw records
# =============================================================================

from behavior_engine.services.recommendations import (
    DEFAULT_RECOMMENDATION_RULES,
    RecommendationRule,
    RecommendationThresholds,
    compute_recommendations,
)

# =============================================================================
# Evaluation Service Exports
# =============================================================================

from behavior_engine.services.evaluation import (
    build_evaluation_record,
    compute_client_scores,
    summarize_client_scores,
)


__all__ = [
    # Event derivation
    'derive_events',
    'derive_events_from_appointments',
    'derive_events_from_notifications',
    'derive_events_from_waitlist',
    # Metrics
    'ALLOWED_WINDOW_DAYS',
    'compute_metrics',
    'filter_events_in_window',
    'get_recency_weight',
    'get_window_start',
    'median',
    'validate_window_days',
    # Scores
    'DEFAULT_SCORE_WEIGHTS',
    'calculate_channel_affinity',
    'compute_scores',
    'round_half_up',
    # Tags
    'DEFAULT_TAG_RULES',
    'TagRule',
    'assign_tags',
    'calculate_valid_until',
    'confidence_from_strength',
    # Notification strategy
    'StrategyOptions',
    'build_notification_strategy',
    'rank_channels',
    # Profile
    'compute_behavior_profile',
    'compute_profiles',
    'group_events_by_client',
    'resolve_score_weights',
    # Recommendations
    'DEFAULT_RECOMMENDATION_RULES',
    'RecommendationRule',
    'RecommendationThresholds',
    'compute_recommendations',
    # Evaluation
    'build_evaluation_record',
    'compute_client_scores',
    'summarize_client_scores',
]
