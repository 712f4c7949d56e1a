"""
Core infrastructure package for the behavior engine.

Provides:
- Configuration management via pydantic-settings
- Injectable identifier generators for events and recommendations

Usage Examples:
    from behavior_engine.core import get_settings, SequenceIdGenerator

    settings = get_settings()
    print(settings.default_window_days)

    ids = SequenceIdGenerator(prefix="ev")
    ids()  # 'ev-1'
"""

# =============================================================================
# Re-exports from behavior_engine.core.config
# =============================================================================
from behavior_engine.core.config import Settings, get_settings

# =============================================================================
# Re-exports from behavior_engine.core.ids
# =============================================================================
from behavior_engine.core.ids import (
    IdGenerator,
    SequenceIdGenerator,
    UuidIdGenerator,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Identifier generation (from ids.py)
    'IdGenerator',
    'SequenceIdGenerator',
    'UuidIdGenerator',
]
