"""
Per-file cache of optimized suggestions, with query and feedback entry points.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .learning import LearningEngine
from .models import Suggestion, SuggestionType, Priority
from .utils import logger


DISMISSED_REASON = "dismissed"


class SuggestionListener:
    """Receives store events. Override the callbacks you care about."""

    def on_suggestions_updated(self, file_path: str, suggestions: List[Suggestion]):
        pass

    def on_suggestion_applied(self, suggestion: Suggestion):
        pass


@dataclass
class SuggestionStatistics:
    """Counts over everything currently cached."""
    total_count: int = 0
    applied_count: int = 0
    pending_count: int = 0
    type_count: Dict[SuggestionType, int] = field(default_factory=dict)
    priority_count: Dict[Priority, int] = field(default_factory=dict)

    @property
    def applied_rate(self) -> float:
        return self.applied_count / self.total_count if self.total_count > 0 else 0.0

    @property
    def high_priority_count(self) -> int:
        return self.priority_count.get(Priority.HIGH, 0) + self.priority_count.get(Priority.CRITICAL, 0)


class SuggestionStore:
    """Holds the latest optimized suggestion list for each file.

    Each ``put`` fully replaces the previous list for that file. When two
    analyses of the same file race, whichever finishes last wins.
    """

    def __init__(self, learning_engine: LearningEngine):
        self.learning_engine = learning_engine
        self._lock = threading.RLock()
        self._suggestions: Dict[str, List[Suggestion]] = {}
        self._listeners: List[SuggestionListener] = []

    # ------------------------------------------------------------------
    # Listeners

    def add_listener(self, listener: SuggestionListener):
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: SuggestionListener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify_updated(self, file_path: str, suggestions: List[Suggestion]):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener.on_suggestions_updated(file_path, list(suggestions))
            except Exception as e:
                logger.debug(f"Listener {listener!r} failed on update for {file_path}: {e}")

    def _notify_applied(self, suggestion: Suggestion):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener.on_suggestion_applied(suggestion)
            except Exception as e:
                logger.debug(f"Listener {listener!r} failed on applied {suggestion.id}: {e}")

    # ------------------------------------------------------------------
    # Writes

    def put(self, file_path: str, suggestions: List[Suggestion]):
        """Replace the cached list for ``file_path`` and notify listeners."""
        snapshot = list(suggestions)
        with self._lock:
            self._suggestions[file_path] = snapshot
        self._notify_updated(file_path, snapshot)

    def find(self, suggestion_id: str) -> Optional[Suggestion]:
        with self._lock:
            for suggestions in self._suggestions.values():
                for suggestion in suggestions:
                    if suggestion.id == suggestion_id:
                        return suggestion
        return None

    def mark_applied(
        self,
        suggestion_id: str,
        reference_id: Optional[str] = None,
        reason: str = "applied",
    ) -> Optional[Suggestion]:
        """Mark a cached suggestion as handled.

        Any reason other than ``"dismissed"`` counts as the suggestion being
        applied.
        """
        return self.record_verdict(suggestion_id, reason != DISMISSED_REASON, reason, reference_id)

    def record_verdict(
        self,
        suggestion_id: str,
        applied: bool,
        reason: str = "",
        reference_id: Optional[str] = None,
    ) -> Optional[Suggestion]:
        """Close a suggestion with an explicit verdict and feed it to the learner.

        A suggestion that was already judged keeps its first verdict.
        """
        with self._lock:
            suggestion = self.find(suggestion_id)
            if suggestion is None:
                logger.warning(f"Unknown suggestion id: {suggestion_id}")
                return None
            if suggestion.applied:
                logger.debug(f"Suggestion {suggestion_id} was already judged")
                return suggestion
            suggestion.applied = True
            suggestion.applied_reference_id = reference_id

        self.learning_engine.record_feedback(suggestion, applied, reason)
        self._notify_applied(suggestion)
        return suggestion

    def dismiss(self, suggestion_id: str) -> Optional[Suggestion]:
        return self.mark_applied(suggestion_id, None, DISMISSED_REASON)

    def clear(self, file_path: str):
        with self._lock:
            self._suggestions.pop(file_path, None)

    def clear_all(self):
        with self._lock:
            self._suggestions.clear()

    # ------------------------------------------------------------------
    # Queries

    def get_suggestions(self, file_path: str) -> List[Suggestion]:
        with self._lock:
            return list(self._suggestions.get(file_path, []))

    def get_suggestions_at_line(self, file_path: str, line: int) -> List[Suggestion]:
        return [s for s in self.get_suggestions(file_path) if s.contains_line(line)]

    def get_high_priority_suggestions(self, file_path: str) -> List[Suggestion]:
        return [
            s for s in self.get_suggestions(file_path)
            if s.priority.level >= Priority.HIGH.level and not s.applied
        ]

    def get_unapplied_suggestions(self, file_path: str) -> List[Suggestion]:
        return [s for s in self.get_suggestions(file_path) if not s.applied]

    def get_suggestions_by_type(self, file_path: str, suggestion_type: SuggestionType) -> List[Suggestion]:
        return [
            s for s in self.get_suggestions(file_path)
            if s.type == suggestion_type and not s.applied
        ]

    def file_paths(self) -> List[str]:
        with self._lock:
            return list(self._suggestions)

    def statistics(self) -> SuggestionStatistics:
        with self._lock:
            everything = [s for suggestions in self._suggestions.values() for s in suggestions]

        applied = sum(1 for s in everything if s.applied)
        return SuggestionStatistics(
            total_count=len(everything),
            applied_count=applied,
            pending_count=len(everything) - applied,
            type_count=dict(Counter(s.type for s in everything)),
            priority_count=dict(Counter(s.priority for s in everything)),
        )
