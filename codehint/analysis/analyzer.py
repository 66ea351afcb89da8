"""Line, file and method level analysis of source text."""

import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import Suggestion, SuggestionType, Priority
from ..utils import logger
from .rules import Rule, RuleCatalog, is_opted_out


_METHOD_SIGNATURE = re.compile(r'\b(public|private|protected|static)\b.*\(.*\)')
_BRANCH_KEYWORDS = re.compile(r'\b(if|while|for|case|catch)\b')
_COMMENT_PREFIXES = ('//', '/*', '*', '#')


@dataclass
class MethodInfo:
    """Approximate extent and complexity of a method-like block."""
    name: str
    start_line: int
    end_line: int
    line_count: int
    complexity: int


class LineAnalyzer:
    """Runs the rule catalog and file/method heuristics over one file's text.

    Method boundaries are found by brace counting, so braces inside string
    or character literals and lambdas will skew the result. This is a
    heuristic, not a parser.
    """

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        max_file_lines: int = 500,
        max_method_lines: int = 50,
        max_method_complexity: int = 10,
        min_comment_ratio: float = 0.1,
        min_code_lines_for_comments: int = 50,
    ):
        self.catalog = catalog or RuleCatalog.default()
        self.max_file_lines = max_file_lines
        self.max_method_lines = max_method_lines
        self.max_method_complexity = max_method_complexity
        self.min_comment_ratio = min_comment_ratio
        self.min_code_lines_for_comments = min_code_lines_for_comments

    def analyze(self, file_path: str, content: Optional[str]) -> List[Suggestion]:
        """Produce raw candidate suggestions for a file."""
        if not content:
            return []

        lines = content.splitlines()
        suggestions: List[Suggestion] = []

        for line_number, line in enumerate(lines):
            suggestions.extend(self.analyze_line(file_path, line, line_number))

        suggestions.extend(self.analyze_file_metrics(file_path, lines))
        suggestions.extend(self.analyze_methods(file_path, lines))

        logger.debug(f"Analyzed {file_path}: {len(lines)} lines, {len(suggestions)} candidates")
        return suggestions

    def analyze_line(self, file_path: str, line: str, line_number: int) -> List[Suggestion]:
        """Evaluate every rule and scanner against a single line."""
        if is_opted_out(line):
            return []

        return [
            self._from_rule(rule, file_path, line, line_number)
            for rule in self.catalog
            if self.catalog.match(rule, line)
        ]

    def _from_rule(self, rule: Rule, file_path: str, line: str, line_number: int) -> Suggestion:
        return Suggestion(
            type=rule.type,
            priority=rule.priority,
            title=rule.name,
            description=rule.description,
            file_path=file_path,
            start_line=line_number,
            end_line=line_number,
            confidence=rule.confidence,
            reason=f"Code quality check: {rule.name}",
            code_snippet=line.strip(),
        )

    def analyze_file_metrics(self, file_path: str, lines: List[str]) -> List[Suggestion]:
        """Whole-file checks: overall length and comment density."""
        suggestions = []
        last_line = max(len(lines) - 1, 0)

        if len(lines) > self.max_file_lines:
            suggestions.append(Suggestion(
                type=SuggestionType.REFACTOR,
                priority=Priority.MEDIUM,
                title="Large file",
                description=f"The file has {len(lines)} lines, consider splitting it into several files",
                file_path=file_path,
                start_line=0,
                end_line=last_line,
                confidence=0.7,
                reason=f"File exceeds {self.max_file_lines} lines",
            ))

        comment_lines = 0
        code_lines = 0
        for line in lines:
            trimmed = line.strip()
            if trimmed.startswith(_COMMENT_PREFIXES):
                comment_lines += 1
            elif trimmed:
                code_lines += 1

        if (code_lines > self.min_code_lines_for_comments
                and comment_lines < code_lines * self.min_comment_ratio):
            suggestions.append(Suggestion(
                type=SuggestionType.DOCUMENTATION,
                priority=Priority.LOW,
                title="Insufficient comments",
                description="Comment density is low, consider documenting the non-obvious parts",
                file_path=file_path,
                start_line=0,
                end_line=last_line,
                confidence=0.5,
                reason=f"Comment density below {self.min_comment_ratio:.0%}",
            ))

        return suggestions

    def analyze_methods(self, file_path: str, lines: List[str]) -> List[Suggestion]:
        """Flag method-like blocks that are too long or too complex."""
        suggestions = []

        for index, line in enumerate(lines):
            if not self.is_method_definition(line.strip()):
                continue

            method = self.extract_method(lines, index)
            if method is None:
                continue

            if method.line_count > self.max_method_lines:
                suggestions.append(Suggestion(
                    type=SuggestionType.REFACTOR,
                    priority=Priority.MEDIUM,
                    title="Long method",
                    description=(
                        f"Method {method.name} has {method.line_count} lines, "
                        f"consider splitting it into smaller methods"
                    ),
                    file_path=file_path,
                    start_line=method.start_line,
                    end_line=method.end_line,
                    confidence=0.8,
                    reason=f"Method exceeds {self.max_method_lines} lines",
                ))

            if method.complexity > self.max_method_complexity:
                suggestions.append(Suggestion(
                    type=SuggestionType.COMPLEXITY,
                    priority=Priority.HIGH,
                    title="High complexity",
                    description=(
                        f"Method {method.name} has a cyclomatic complexity of {method.complexity}, "
                        f"consider splitting it up"
                    ),
                    file_path=file_path,
                    start_line=method.start_line,
                    end_line=method.end_line,
                    confidence=0.9,
                    reason=f"Cyclomatic complexity exceeds {self.max_method_complexity}",
                ))

        return suggestions

    @staticmethod
    def is_method_definition(line: str) -> bool:
        """Visibility keyword plus parameter list, with no assignment."""
        if not line or line.startswith('//') or '=' in line:
            return False
        if line.endswith(';'):
            # Abstract or interface declaration without a body
            return False
        return _METHOD_SIGNATURE.search(line) is not None

    @staticmethod
    def extract_method_name(line: str) -> str:
        match = re.search(r'\b([a-zA-Z_][a-zA-Z0-9_]*)\s*\(', line)
        return match.group(1) if match else "unknown"

    def extract_method(self, lines: List[str], start_line: int) -> Optional[MethodInfo]:
        """Follow brace balance from ``start_line`` until the block closes.

        The body may open on a later line (wrapped ``throws`` clauses,
        braces on their own line). A statement ending in ``;`` before any
        ``{`` means there is no body.
        """
        balance = 0
        opened = False
        complexity = 1

        for index in range(start_line, len(lines)):
            line = lines[index]
            if '{' in line:
                opened = True
            elif not opened and line.rstrip().endswith(';'):
                return None
            balance += line.count('{') - line.count('}')
            complexity += len(_BRANCH_KEYWORDS.findall(line))

            if opened and balance <= 0:
                return MethodInfo(
                    name=self.extract_method_name(lines[start_line]),
                    start_line=start_line,
                    end_line=index,
                    line_count=index - start_line + 1,
                    complexity=complexity,
                )

        return None
