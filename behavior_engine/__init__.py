"""
Behavior Engine Package.

Behavior profiling and recommendation engine for the scheduling portal.
Turns raw booking, notification and waitlist history into per-client
behavior profiles and a prioritized list of staff outreach actions.

Subpackages:
    - core: Configuration and identifier generation
    - models: Pydantic schemas, enums and the behavior event union
    - services: Pipeline stages (events, metrics, scores, tags, strategy,
      profile, recommendations, evaluation)

The engine is a pure library: it performs no I/O, reads no wall clock and
never mutates its inputs. Every public operation takes an explicit
reference time.
"""

__version__ = "1.0.0"
