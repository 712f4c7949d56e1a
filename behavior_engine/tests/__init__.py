'''
Behavior Engine Test Suite

Test Modules:
-------------
- test_events.py: event union parsing and validation
- test_event_derivation.py: records -> events
- test_metrics.py: windowing, recency weighting, rates and median
- test_scores.py: score formulas, rounding and clamping
- test_tags.py: tag thresholds, reasons and validity dates
- test_notification_strategy.py: throttles, channel order, content hint
- test_profile.py: end-to-end profile assembly and batch parity
- test_recommendations.py: heuristics, priorities and ordering
- test_evaluation.py: score cards and evaluation records
- test_config.py: settings defaults and environment overrides

Running Tests:
--------------
    pip install -e ".[test]"
    pytest behavior_engine/tests -v
'''

__all__ = []
