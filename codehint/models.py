"""Data models for suggestions and feedback."""

import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional


class SuggestionType(Enum):
    """Types of code suggestions."""
    TODO = ("TODO", "To-do", "A task or feature that still needs to be done")
    FIXME = ("FIXME", "Fix me", "A bug or problem that needs fixing")
    OPTIMIZE = ("OPTIMIZE", "Optimization", "Code whose performance can be improved")
    REFACTOR = ("REFACTOR", "Refactoring", "Code structure that should be reworked")
    SECURITY = ("SECURITY", "Security", "A potential security risk")
    CODE_SMELL = ("CODE_SMELL", "Code smell", "A code quality problem")
    COMPLEXITY = ("COMPLEXITY", "Complexity", "Code that is too complex")
    DOCUMENTATION = ("DOCUMENTATION", "Documentation", "Missing documentation or comments")
    DEPRECATED = ("DEPRECATED", "Deprecated", "Use of an outdated API or method")
    BEST_PRACTICE = ("BEST_PRACTICE", "Best practice", "Code that does not follow best practices")

    def __init__(self, code: str, display_name: str, description: str):
        self.code = code
        self.display_name = display_name
        self.description = description


class Priority(Enum):
    """Suggestion priority levels."""
    LOW = (1, "Low", "green")
    MEDIUM = (2, "Medium", "yellow")
    HIGH = (3, "High", "red")
    CRITICAL = (4, "Critical", "magenta")

    def __init__(self, level: int, display_name: str, color: str):
        self.level = level
        self.display_name = display_name
        self.color = color


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value into [low, high]; non-finite input collapses to ``low``."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if not math.isfinite(value):
        return low
    return max(low, min(high, value))


def _generate_id() -> str:
    return f"suggestion-{uuid.uuid4().hex}"


@dataclass
class Suggestion:
    """A single detected improvement opportunity.

    Everything except ``applied``, ``applied_reference_id`` and
    ``adjusted_score`` is fixed once the suggestion is created.
    """
    type: SuggestionType
    priority: Priority
    title: str
    description: str
    file_path: str
    start_line: int
    end_line: int
    confidence: float = 0.5
    reason: str = ""
    code_snippet: Optional[str] = None
    id: str = field(default_factory=_generate_id)
    created_time: float = field(default_factory=time.time)
    applied: bool = False
    applied_reference_id: Optional[str] = None
    adjusted_score: float = 0.0

    def __post_init__(self):
        self.confidence = clamp(self.confidence, 0.0, 1.0)
        self.adjusted_score = clamp(self.adjusted_score, 0.0, math.inf)

    @property
    def severity_score(self) -> int:
        """Priority-weighted raw score used before learning adjustments."""
        return self.priority.level * 10 + int(math.floor(self.confidence * 10))

    @property
    def is_actionable(self) -> bool:
        """Whether the suggestion is still worth acting on."""
        return self.confidence >= 0.3 and not self.applied

    @property
    def display_text(self) -> str:
        return f"[{self.type.display_name}] {self.title}"

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def set_adjusted_score(self, score: float):
        self.adjusted_score = clamp(score, 0.0, math.inf)

    def detailed_info(self) -> str:
        """Multi-line human readable summary."""
        lines = [
            f"Type: {self.type.display_name}",
            f"Priority: {self.priority.display_name}",
            f"Confidence: {self.confidence * 100:.1f}%",
            f"Location: {self.file_path}:{self.start_line + 1}",
        ]
        if self.reason:
            lines.append(f"Reason: {self.reason}")
        lines.append(f"Description: {self.description}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            'id': self.id,
            'type': self.type.name,
            'priority': self.priority.name,
            'title': self.title,
            'description': self.description,
            'reason': self.reason,
            'file_path': self.file_path,
            'start_line': self.start_line,
            'end_line': self.end_line,
            'code_snippet': self.code_snippet,
            'confidence': self.confidence,
            'created_time': self.created_time,
            'applied': self.applied,
            'applied_reference_id': self.applied_reference_id,
            'adjusted_score': self.adjusted_score,
            'severity_score': self.severity_score,
        }


@dataclass
class Feedback:
    """Append-only record of a user's verdict on one suggestion."""
    suggestion_type: SuggestionType
    priority: Priority
    applied: bool
    original_confidence: float
    reason: str = ""
    suggestion_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion, applied: bool, reason: str = "") -> 'Feedback':
        return cls(
            suggestion_type=suggestion.type,
            priority=suggestion.priority,
            applied=applied,
            original_confidence=suggestion.confidence,
            reason=reason or "",
            suggestion_id=suggestion.id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            'suggestion_id': self.suggestion_id,
            'suggestion_type': self.suggestion_type.name,
            'priority': self.priority.name,
            'applied': self.applied,
            'timestamp': self.timestamp,
            'original_confidence': self.original_confidence,
            'reason': self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Feedback':
        """Create from dictionary."""
        return cls(
            suggestion_type=SuggestionType[data['suggestion_type']],
            priority=Priority[data['priority']],
            applied=bool(data['applied']),
            original_confidence=clamp(data['original_confidence'], 0.0, 1.0),
            reason=data.get('reason') or "",
            suggestion_id=data.get('suggestion_id'),
            timestamp=float(data['timestamp']),
        )
