"""
Codehint: adaptive code suggestions.

Scans source text with a catalog of pattern rules and structural metrics,
then re-ranks the findings with weights learned from accept/dismiss feedback.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .models import Suggestion, SuggestionType, Priority, Feedback
from .service import SuggestionService
from .context import AnalysisContext
from .cli import main

__all__ = [
    "Suggestion",
    "SuggestionType",
    "Priority",
    "Feedback",
    "SuggestionService",
    "AnalysisContext",
    "main",
]
