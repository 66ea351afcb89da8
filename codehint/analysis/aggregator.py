"""Merges analyzer output into one severity-ordered list per file."""

from typing import Iterable, List

from ..models import Suggestion, SuggestionType, Priority
from ..utils import logger


class SuggestionAggregator:
    """Merge candidates and order them by severity score.

    ``emit_placeholder`` appends a single low-confidence suggestion when a
    file produced nothing at all, which is useful to confirm that analysis
    actually ran. It is off by default.
    """

    PLACEHOLDER_CONFIDENCE = 0.3

    def __init__(self, emit_placeholder: bool = False):
        self.emit_placeholder = emit_placeholder

    def aggregate(self, file_path: str, *candidate_groups: Iterable[Suggestion]) -> List[Suggestion]:
        merged: List[Suggestion] = []
        for group in candidate_groups:
            merged.extend(group)

        if not merged and self.emit_placeholder:
            merged.append(self._placeholder(file_path))

        # list.sort is stable, so equal scores keep insertion order
        merged.sort(key=lambda s: s.severity_score, reverse=True)

        logger.debug(f"Aggregated {len(merged)} suggestions for {file_path}")
        return merged

    def _placeholder(self, file_path: str) -> Suggestion:
        return Suggestion(
            type=SuggestionType.DOCUMENTATION,
            priority=Priority.LOW,
            title="Analysis completed",
            description="No issues were detected in this file",
            file_path=file_path,
            start_line=0,
            end_line=0,
            confidence=self.PLACEHOLDER_CONFIDENCE,
            reason="Health check",
        )
