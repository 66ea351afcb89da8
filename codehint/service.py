"""
Suggestion service: runs analysis passes and exposes queries and feedback.
"""

from pathlib import Path
from typing import List, Optional, Union

from .context import AnalysisContext
from .models import Suggestion, SuggestionType
from .store import SuggestionStore, SuggestionListener
from .utils import logger, read_source


class SuggestionService:
    """Analyze → aggregate → optimize → store, for one analysis context."""

    def __init__(self, context: Optional[AnalysisContext] = None):
        self.context = context or AnalysisContext.create()
        self.store = SuggestionStore(self.context.learning_engine)

    @property
    def learning_engine(self):
        return self.context.learning_engine

    def analyze(self, file_path: str, content: Optional[Union[str, bytes]]) -> List[Suggestion]:
        """Run a full pass over ``content`` and cache the ranked result.

        The cache entry for ``file_path`` is replaced when this pass
        completes, whatever other passes for the same file are doing.
        """
        file_path = str(file_path)
        if isinstance(content, bytes):
            content = content.decode('utf-8', errors='replace')

        candidates = self.context.analyzer.analyze(file_path, content)
        aggregated = self.context.aggregator.aggregate(file_path, candidates)
        optimized = self.context.learning_engine.optimize(aggregated)

        self.store.put(file_path, optimized)

        logger.debug(
            f"{file_path}: {len(candidates)} raw, {len(optimized)} after optimization"
        )
        return optimized

    def analyze_path(self, path: Union[str, Path]) -> List[Suggestion]:
        """Read a file from disk and analyze it; unreadable files yield nothing."""
        path = Path(path)
        content = read_source(path)
        return self.analyze(str(path), content or "")

    # ------------------------------------------------------------------
    # Feedback

    def record_feedback(self, suggestion_id: str, applied: bool, reason: str = "") -> None:
        self.store.record_verdict(suggestion_id, applied, reason)

    def mark_applied(
        self,
        suggestion_id: str,
        reference_id: Optional[str] = None,
        reason: str = "applied",
    ) -> Optional[Suggestion]:
        return self.store.mark_applied(suggestion_id, reference_id, reason)

    def dismiss(self, suggestion_id: str) -> Optional[Suggestion]:
        return self.store.dismiss(suggestion_id)

    # ------------------------------------------------------------------
    # Queries

    def get_suggestions(self, file_path: str) -> List[Suggestion]:
        return self.store.get_suggestions(str(file_path))

    def get_suggestions_at_line(self, file_path: str, line: int) -> List[Suggestion]:
        return self.store.get_suggestions_at_line(str(file_path), line)

    def get_high_priority_suggestions(self, file_path: str) -> List[Suggestion]:
        return self.store.get_high_priority_suggestions(str(file_path))

    def get_suggestions_by_type(self, file_path: str, suggestion_type: SuggestionType) -> List[Suggestion]:
        return self.store.get_suggestions_by_type(str(file_path), suggestion_type)

    def get_unapplied_suggestions(self, file_path: str) -> List[Suggestion]:
        return self.store.get_unapplied_suggestions(str(file_path))

    def add_listener(self, listener: SuggestionListener):
        self.store.add_listener(listener)

    def remove_listener(self, listener: SuggestionListener):
        self.store.remove_listener(listener)
