"""Learning and feedback system for Codehint."""

from .engine import (
    LearningEngine,
    LearningStatistics,
    PreferenceProfile,
)
from .persistence import (
    ProfileStore,
    SQLiteProfileStore,
    JSONProfileStore,
    create_profile_store,
)

__all__ = [
    'LearningEngine',
    'LearningStatistics',
    'PreferenceProfile',
    'ProfileStore',
    'SQLiteProfileStore',
    'JSONProfileStore',
    'create_profile_store',
]
