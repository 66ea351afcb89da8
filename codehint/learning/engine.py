"""
Adaptive learning engine for Codehint.
Turns accept/dismiss feedback into weights that re-rank suggestions.
"""

import copy
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Any

from ..constants import DEFAULT_PROFILE_NAME
from ..exceptions import ProfileStoreError
from ..models import Suggestion, SuggestionType, Priority, Feedback, clamp
from ..utils import logger
from .persistence import ProfileStore, ProfileRecord


TYPE_WEIGHT_MIN, TYPE_WEIGHT_MAX = 0.1, 2.0
PRIORITY_WEIGHT_MIN, PRIORITY_WEIGHT_MAX = 0.1, 3.0
THRESHOLD_MIN, THRESHOLD_MAX = 0.1, 0.9

DEFAULT_WEIGHT = 1.0
DEFAULT_THRESHOLD = 0.5

APPLIED_DELTA = 0.1
DISMISSED_DELTA = -0.05
THRESHOLD_STEP = 0.02


def _default_type_weights() -> Dict[SuggestionType, float]:
    return {t: DEFAULT_WEIGHT for t in SuggestionType}


def _default_priority_weights() -> Dict[Priority, float]:
    return {p: DEFAULT_WEIGHT for p in Priority}


def _finite(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{key} must be finite, got {value!r}")
    return value


def _count(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    return value


@dataclass
class PreferenceProfile:
    """Learned weights, threshold and feedback counters for one profile."""
    name: str = DEFAULT_PROFILE_NAME
    type_weights: Dict[SuggestionType, float] = field(default_factory=_default_type_weights)
    priority_weights: Dict[Priority, float] = field(default_factory=_default_priority_weights)
    confidence_threshold: float = DEFAULT_THRESHOLD
    disabled_types: Set[SuggestionType] = field(default_factory=set)
    total_suggestions: int = 0
    applied_suggestions: int = 0
    dismissed_suggestions: int = 0
    last_updated: float = field(default_factory=time.time)

    def type_weight(self, suggestion_type: SuggestionType) -> float:
        return self.type_weights.get(suggestion_type, DEFAULT_WEIGHT)

    def priority_weight(self, priority: Priority) -> float:
        return self.priority_weights.get(priority, DEFAULT_WEIGHT)

    def to_record(self) -> ProfileRecord:
        """Serialize to the persisted record shape."""
        return {
            'type_weights': {t.name: w for t, w in self.type_weights.items()},
            'priority_weights': {p.name: w for p, w in self.priority_weights.items()},
            'confidence_threshold': self.confidence_threshold,
            'disabled_types': sorted(t.name for t in self.disabled_types),
            'total_suggestions': self.total_suggestions,
            'applied_suggestions': self.applied_suggestions,
            'dismissed_suggestions': self.dismissed_suggestions,
        }

    @classmethod
    def from_record(cls, name: str, record: ProfileRecord) -> 'PreferenceProfile':
        """Rebuild a profile from a persisted record.

        Raises ValueError (or KeyError/TypeError) for records that are
        structurally broken. Out-of-range values are clamped and unknown
        type or priority names are ignored.
        """
        if not isinstance(record, dict):
            raise ValueError(f"Profile record must be a mapping, got {type(record).__name__}")

        profile = cls(name=name)

        for key, weight in dict(record.get('type_weights', {})).items():
            if key in SuggestionType.__members__:
                profile.type_weights[SuggestionType[key]] = clamp(
                    _finite(weight, f"type_weights.{key}"), TYPE_WEIGHT_MIN, TYPE_WEIGHT_MAX
                )

        for key, weight in dict(record.get('priority_weights', {})).items():
            if key in Priority.__members__:
                profile.priority_weights[Priority[key]] = clamp(
                    _finite(weight, f"priority_weights.{key}"), PRIORITY_WEIGHT_MIN, PRIORITY_WEIGHT_MAX
                )

        threshold = record.get('confidence_threshold', DEFAULT_THRESHOLD)
        profile.confidence_threshold = clamp(_finite(threshold, 'confidence_threshold'), 0.0, 1.0)

        disabled = record.get('disabled_types', [])
        if isinstance(disabled, (str, bytes)) or not isinstance(disabled, (list, tuple, set)):
            raise ValueError(f"disabled_types must be a list, got {disabled!r}")
        profile.disabled_types = {
            SuggestionType[key] for key in disabled if key in SuggestionType.__members__
        }

        profile.total_suggestions = _count(record.get('total_suggestions', 0), 'total_suggestions')
        profile.applied_suggestions = _count(record.get('applied_suggestions', 0), 'applied_suggestions')
        profile.dismissed_suggestions = _count(record.get('dismissed_suggestions', 0), 'dismissed_suggestions')

        return profile


@dataclass
class LearningStatistics:
    """Summary of what the engine has learned so far."""
    total_suggestions: int
    applied_suggestions: int
    dismissed_suggestions: int
    apply_rate: float
    type_preferences: Dict[str, float]
    confidence_threshold: float

    def __str__(self) -> str:
        return (
            f"Total: {self.total_suggestions}, applied: {self.applied_suggestions}, "
            f"apply rate: {self.apply_rate * 100:.1f}%, "
            f"confidence threshold: {self.confidence_threshold:.2f}"
        )


class LearningEngine:
    """Learns from accept/dismiss feedback and re-ranks suggestions.

    All profile mutations happen under a single re-entrant lock, so two
    feedback events never lose each other's weight updates.
    """

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        profile_name: str = DEFAULT_PROFILE_NAME,
    ):
        self.store = store
        self._lock = threading.RLock()
        self._profiles: Dict[str, PreferenceProfile] = {}
        self._feedback: Dict[str, List[Feedback]] = {}
        self._active = profile_name
        self.load()

    # ------------------------------------------------------------------
    # Profiles

    @property
    def active_profile_name(self) -> str:
        return self._active

    def _get_or_create(self, name: str) -> PreferenceProfile:
        profile = self._profiles.get(name)
        if profile is None:
            profile = self._load_profile(name)
            self._profiles[name] = profile
        return profile

    def _feedback_for(self, name: str) -> List[Feedback]:
        log = self._feedback.get(name)
        if log is None:
            log = self._load_feedback(name)
            self._feedback[name] = log
        return log

    def profile(self, name: Optional[str] = None) -> PreferenceProfile:
        """Snapshot of a profile (the active one by default)."""
        with self._lock:
            return copy.deepcopy(self._get_or_create(name or self._active))

    def use_profile(self, name: str):
        """Switch the active profile, loading or creating it as needed."""
        with self._lock:
            self._get_or_create(name)
            self._feedback_for(name)
            self._active = name
        logger.info(f"Active preference profile: {name}")

    def profile_names(self) -> List[str]:
        with self._lock:
            names = set(self._profiles)
        if self.store is not None:
            try:
                names.update(self.store.list_profiles())
            except ProfileStoreError as e:
                logger.warning(f"Could not list stored profiles: {e}")
        return sorted(names)

    # ------------------------------------------------------------------
    # Feedback

    def record_feedback(self, suggestion: Suggestion, applied: bool, reason: str = "") -> Feedback:
        """Record a verdict and nudge the active profile towards it."""
        with self._lock:
            feedback = Feedback.from_suggestion(suggestion, applied, reason)
            self._feedback_for(self._active).append(feedback)

            profile = self._get_or_create(self._active)
            profile.total_suggestions += 1
            if applied:
                profile.applied_suggestions += 1
            else:
                profile.dismissed_suggestions += 1

            delta = APPLIED_DELTA if applied else DISMISSED_DELTA

            profile.type_weights[suggestion.type] = clamp(
                profile.type_weight(suggestion.type) + delta,
                TYPE_WEIGHT_MIN, TYPE_WEIGHT_MAX,
            )
            profile.priority_weights[suggestion.priority] = clamp(
                profile.priority_weight(suggestion.priority) + delta,
                PRIORITY_WEIGHT_MIN, PRIORITY_WEIGHT_MAX,
            )

            # Dismissing confident suggestions tightens the gate,
            # accepting unconfident ones loosens it.
            threshold = profile.confidence_threshold
            if not applied and suggestion.confidence > threshold:
                profile.confidence_threshold = min(THRESHOLD_MAX, threshold + THRESHOLD_STEP)
            elif applied and suggestion.confidence < threshold:
                profile.confidence_threshold = max(THRESHOLD_MIN, threshold - THRESHOLD_STEP)

            profile.last_updated = time.time()

            self._persist(profile, feedback)

        logger.debug(
            f"Recorded {'applied' if applied else 'dismissed'} feedback for "
            f"{suggestion.type.name}/{suggestion.priority.name}"
        )
        return feedback

    @property
    def feedback_log(self) -> List[Feedback]:
        with self._lock:
            return list(self._feedback_for(self._active))

    # ------------------------------------------------------------------
    # Ranking

    def adjusted_score(self, suggestion: Suggestion, profile: Optional[PreferenceProfile] = None) -> float:
        if profile is None:
            with self._lock:
                profile = self._get_or_create(self._active)
        return (
            suggestion.confidence
            * profile.type_weight(suggestion.type)
            * profile.priority_weight(suggestion.priority)
        )

    def optimize(self, suggestions: List[Suggestion]) -> List[Suggestion]:
        """Filter by disabled types and threshold, then rank by adjusted score."""
        with self._lock:
            profile = self._get_or_create(self._active)
            survivors = [
                s for s in suggestions
                if s.type not in profile.disabled_types
                and s.confidence >= profile.confidence_threshold
            ]
            for suggestion in survivors:
                suggestion.set_adjusted_score(self.adjusted_score(suggestion, profile))

        return sorted(survivors, key=lambda s: s.adjusted_score, reverse=True)

    # ------------------------------------------------------------------
    # Direct preference edits

    def disable_type(self, suggestion_type: SuggestionType):
        with self._lock:
            profile = self._get_or_create(self._active)
            profile.disabled_types.add(suggestion_type)
            self._persist(profile)

    def enable_type(self, suggestion_type: SuggestionType):
        with self._lock:
            profile = self._get_or_create(self._active)
            profile.disabled_types.discard(suggestion_type)
            self._persist(profile)

    def set_confidence_threshold(self, threshold: float):
        """Set the threshold directly; only bounded to [0, 1].

        Raises ValueError for NaN or infinite values.
        """
        threshold = _finite(threshold, 'confidence_threshold')
        with self._lock:
            profile = self._get_or_create(self._active)
            profile.confidence_threshold = clamp(threshold, 0.0, 1.0)
            self._persist(profile)

    def reset(self):
        """Forget all feedback and restore the default profile."""
        with self._lock:
            self._feedback.clear()
            self._profiles.clear()
            profile = PreferenceProfile(name=self._active)
            self._profiles[self._active] = profile
            if self.store is not None:
                try:
                    self.store.clear_feedback()
                    for name in self.store.list_profiles():
                        self.store.delete_profile(name)
                except ProfileStoreError as e:
                    logger.error(f"Could not reset stored profiles: {e}")
            self._persist(profile)
        logger.info("Learning data reset")

    def statistics(self) -> LearningStatistics:
        with self._lock:
            profile = self._get_or_create(self._active)
            total = profile.total_suggestions
            return LearningStatistics(
                total_suggestions=total,
                applied_suggestions=profile.applied_suggestions,
                dismissed_suggestions=profile.dismissed_suggestions,
                apply_rate=profile.applied_suggestions / total if total > 0 else 0.0,
                type_preferences={t.name: w for t, w in profile.type_weights.items()},
                confidence_threshold=profile.confidence_threshold,
            )

    # ------------------------------------------------------------------
    # Persistence

    def load(self):
        """(Re)load the active profile and its feedback log from the store.

        Without a store the in-memory state is kept as it is.
        """
        with self._lock:
            if self.store is None:
                self._get_or_create(self._active)
                self._feedback_for(self._active)
                return
            self._profiles[self._active] = self._load_profile(self._active)
            self._feedback[self._active] = self._load_feedback(self._active)

    def save(self):
        with self._lock:
            self._persist(self._get_or_create(self._active))

    def _load_profile(self, name: str) -> PreferenceProfile:
        if self.store is None:
            return PreferenceProfile(name=name)

        try:
            record = self.store.load_profile(name)
            if record is None:
                return PreferenceProfile(name=name)
            return PreferenceProfile.from_record(name, record)
        except (ProfileStoreError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Stored profile '{name}' is unreadable, using defaults: {e}")
            return PreferenceProfile(name=name)

    def _load_feedback(self, name: str) -> List[Feedback]:
        if self.store is None:
            return []

        try:
            rows = self.store.load_feedback(name)
        except ProfileStoreError as e:
            logger.warning(f"Could not load feedback log for '{name}': {e}")
            return []

        entries = []
        for row in rows:
            try:
                entries.append(Feedback.from_dict(row))
            except (ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed feedback record {row!r}: {e}")
        return entries

    def _persist(self, profile: PreferenceProfile, feedback: Optional[Feedback] = None):
        if self.store is None:
            return

        try:
            if feedback is not None:
                self.store.append_feedback(profile.name, feedback.to_dict())
            self.store.save_profile(profile.name, profile.to_record())
        except ProfileStoreError as e:
            logger.error(f"Could not persist profile '{profile.name}': {e}")
