"""Declarative rule catalog for line-level suggestion detection."""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..models import SuggestionType, Priority
from ..utils import logger


MatchPredicate = Callable[[str, re.Pattern], bool]


@dataclass(frozen=True)
class Rule:
    """A single detector: a pattern plus an optional custom match predicate.

    When ``predicate`` is set it replaces the plain ``pattern.search`` test.
    """
    id: str
    name: str
    type: SuggestionType
    priority: Priority
    confidence: float
    description: str
    pattern: re.Pattern
    predicate: Optional[MatchPredicate] = None

    def matches(self, line: str) -> bool:
        if self.predicate is not None:
            return bool(self.predicate(line, self.pattern))
        return self.pattern.search(line) is not None


# Numbers commonly used for time units (seconds, hours, days, millis...)
TIME_UNIT_NUMBERS = frozenset({60, 24, 7, 30, 365, 1000, 3600, 86400})

_OPT_OUT_DIRECTIVE = re.compile(r'^//\s*@cp[br]?\d+.*')
_LINE_RANGE = re.compile(r'\d+-\d+')
_ENUM_CONSTRUCTOR = re.compile(r'[A-Z_]+\s*\(.*\d+.*\)')
_VERSION_STRING = re.compile(r'version.*\d+|v\d+')


def is_opted_out(line: str) -> bool:
    """Check whether a line carries an inline bookmark directive that disables analysis."""
    trimmed = line.strip()

    if _OPT_OUT_DIRECTIVE.match(trimmed):
        return True

    if trimmed.startswith('//') and (
        '#' in trimmed
        or '@cp' in trimmed
        or _LINE_RANGE.search(trimmed)
    ):
        return True

    return False


def is_time_unit_number(number: int) -> bool:
    return number in TIME_UNIT_NUMBERS


def is_http_status_code(number: int) -> bool:
    return 100 <= number < 600


def is_port_number(number: int) -> bool:
    return 1024 <= number <= 65535


def is_magic_number(line: str, pattern: re.Pattern) -> bool:
    """Decide whether a numeric literal on ``line`` is a real magic number.

    The base pattern must match, and the line must not look like an
    annotation argument, a constant declaration, an enum constructor, an
    index expression, a version string, or test code. The first matched
    number is additionally checked against well-known time units, HTTP
    status codes and port ranges.
    """
    match = pattern.search(line)
    if match is None:
        return False

    trimmed = line.strip()

    if '@' in trimmed and ('(' in trimmed or '=' in trimmed):
        return False

    if 'final' in trimmed or 'static' in trimmed or 'const' in trimmed:
        return False

    if _ENUM_CONSTRUCTOR.search(trimmed):
        return False

    if '[' in trimmed and ']' in trimmed:
        return False

    number = int(match.group())
    if is_time_unit_number(number) or is_http_status_code(number) or is_port_number(number):
        return False

    if _VERSION_STRING.search(trimmed):
        return False

    lowered = trimmed.lower()
    if 'test' in lowered or 'mock' in lowered:
        return False

    return True


QUALITY_RULES: Tuple[Rule, ...] = (
    Rule(
        id="NAMING_CONVENTION",
        name="Naming convention",
        type=SuggestionType.BEST_PRACTICE,
        priority=Priority.LOW,
        confidence=0.6,
        description="Variable names should follow camelCase naming",
        pattern=re.compile(r'\b[a-z][a-zA-Z0-9]*\s*='),
    ),
    Rule(
        id="MAGIC_NUMBER",
        name="Magic number",
        type=SuggestionType.REFACTOR,
        priority=Priority.MEDIUM,
        confidence=0.7,
        description="Avoid magic numbers, define them as named constants",
        pattern=re.compile(r'\b(?!0|1|2|10|100|1000)\d{2,}\b'),
        predicate=is_magic_number,
    ),
    Rule(
        id="DUPLICATE_STRING",
        name="Duplicate string",
        type=SuggestionType.REFACTOR,
        priority=Priority.MEDIUM,
        confidence=0.8,
        description="Repeated string literals should be extracted into a constant",
        pattern=re.compile(r'"([^"]{5,})".*"\1"'),
    ),
    Rule(
        id="EMPTY_METHOD",
        name="Empty method body",
        type=SuggestionType.CODE_SMELL,
        priority=Priority.LOW,
        confidence=0.5,
        description="An empty body may indicate an unfinished implementation",
        pattern=re.compile(r'\{\s*\}'),
    ),
    Rule(
        id="LONG_PARAMETER_LIST",
        name="Long parameter list",
        type=SuggestionType.REFACTOR,
        priority=Priority.MEDIUM,
        confidence=0.6,
        description="The parameter list is too long, consider a parameter object",
        pattern=re.compile(r'\([^)]{80,}\)'),
    ),
    Rule(
        id="DEEP_NESTING",
        name="Deep nesting",
        type=SuggestionType.COMPLEXITY,
        priority=Priority.HIGH,
        confidence=0.8,
        description="Deeply nested code is hard to read",
        pattern=re.compile(r'(\s{12,})(if|for|while|try)'),
    ),
    Rule(
        id="UNUSED_IMPORT",
        name="Unused import",
        type=SuggestionType.CODE_SMELL,
        priority=Priority.LOW,
        confidence=0.4,
        description="This import statement may be unused",
        pattern=re.compile(r'^import\s+[^;]+;$'),
    ),
    Rule(
        id="GENERIC_EXCEPTION",
        name="Generic exception catch",
        type=SuggestionType.BEST_PRACTICE,
        priority=Priority.MEDIUM,
        confidence=0.7,
        description="Catch specific exception types instead of a generic Exception",
        pattern=re.compile(r'catch\s*\(\s*(Exception|Throwable)\s+|except\s+(Exception|BaseException)\b|except\s*:'),
    ),
    Rule(
        id="STRING_CONCATENATION",
        name="String concatenation",
        type=SuggestionType.OPTIMIZE,
        priority=Priority.MEDIUM,
        confidence=0.6,
        description="Repeated string concatenation, consider a builder or join",
        pattern=re.compile(r'\+\s*"[^"]*"\s*\+'),
    ),
    Rule(
        id="SQL_INJECTION_RISK",
        name="SQL injection risk",
        type=SuggestionType.SECURITY,
        priority=Priority.CRITICAL,
        confidence=0.9,
        description="Concatenated SQL may allow injection, use parameterized queries",
        pattern=re.compile(r'(SELECT|INSERT|UPDATE|DELETE).*\+.*'),
    ),
)


def build_scanners(max_line_length: int = 120) -> Tuple[Rule, ...]:
    """Build the cross-cutting scanners that run alongside the quality rules."""
    return (
        Rule(
            id="TODO_MARKER",
            name="TODO marker",
            type=SuggestionType.TODO,
            priority=Priority.MEDIUM,
            confidence=0.9,
            description="The code contains a TODO marker",
            pattern=re.compile(r'\btodo\b', re.IGNORECASE),
        ),
        Rule(
            id="FIXME_MARKER",
            name="FIXME marker",
            type=SuggestionType.FIXME,
            priority=Priority.MEDIUM,
            confidence=0.9,
            description="The code contains a FIXME, HACK or XXX marker",
            pattern=re.compile(r'\b(fixme|hack|xxx)\b', re.IGNORECASE),
        ),
        Rule(
            id="BLOCKING_CALL",
            name="Blocking call",
            type=SuggestionType.OPTIMIZE,
            priority=Priority.HIGH,
            confidence=0.7,
            description="A blocking sleep or wait call may hurt performance",
            pattern=re.compile(r'\b(sleep|thread\.sleep|wait)\s*\(', re.IGNORECASE),
        ),
        Rule(
            id="HARDCODED_SECRET",
            name="Hardcoded secret",
            type=SuggestionType.SECURITY,
            priority=Priority.CRITICAL,
            confidence=0.8,
            description="A credential appears to be hardcoded in source",
            pattern=re.compile(
                r'\b(\w*_)?(password|passwd|pwd|secret|token|key)\s*=\s*["\'][^"\']*["\']',
                re.IGNORECASE,
            ),
        ),
        Rule(
            id="DEPRECATED_MARKER",
            name="Deprecated code",
            type=SuggestionType.DEPRECATED,
            priority=Priority.MEDIUM,
            confidence=0.6,
            description="The code uses or marks an outdated API",
            pattern=re.compile(r'\b(deprecated|obsolete)\b', re.IGNORECASE),
        ),
        Rule(
            id="LONG_LINE",
            name="Long line",
            type=SuggestionType.REFACTOR,
            priority=Priority.LOW,
            confidence=0.6,
            description=f"The line is longer than {max_line_length} characters",
            pattern=re.compile(r'^.{%d,}' % (max_line_length + 1)),
        ),
        Rule(
            id="EMPTY_CATCH",
            name="Empty exception handler",
            type=SuggestionType.CODE_SMELL,
            priority=Priority.MEDIUM,
            confidence=0.8,
            description="An empty exception handler may hide important errors",
            pattern=re.compile(r'^\s*\}\s*catch\s*$|catch.*\{\s*\}|except[^:]*:\s*pass\b'),
        ),
        Rule(
            id="HARDCODED_STRING",
            name="Hardcoded string",
            type=SuggestionType.BEST_PRACTICE,
            priority=Priority.LOW,
            confidence=0.4,
            description="Consider extracting long string literals into constants",
            pattern=re.compile(r'^(?!\s*(//|\*|#)).*"[^"]{10,}"'),
        ),
    )


class RuleCatalog:
    """Immutable registry of quality rules and cross-cutting scanners."""

    def __init__(
        self,
        rules: Optional[Tuple[Rule, ...]] = None,
        scanners: Optional[Tuple[Rule, ...]] = None,
    ):
        self._rules = tuple(QUALITY_RULES if rules is None else rules)
        self._scanners = tuple(build_scanners() if scanners is None else scanners)
        self._by_id: Dict[str, Rule] = {rule.id: rule for rule in self}

    @classmethod
    def default(cls, max_line_length: int = 120) -> 'RuleCatalog':
        return cls(QUALITY_RULES, build_scanners(max_line_length))

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @property
    def scanners(self) -> Tuple[Rule, ...]:
        return self._scanners

    def __iter__(self) -> Iterator[Rule]:
        yield from self._rules
        yield from self._scanners

    def __len__(self) -> int:
        return len(self._rules) + len(self._scanners)

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._by_id.get(rule_id)

    def match(self, rule: Rule, line: str) -> bool:
        """Evaluate one rule against one line, isolating any error it raises."""
        try:
            return rule.matches(line)
        except Exception as e:
            logger.debug(f"Rule {rule.id} failed on line {line!r}: {e}")
            return False

    def matching_rules(self, line: str) -> List[Rule]:
        """All rules and scanners that fire on ``line``, in catalog order."""
        if is_opted_out(line):
            return []
        return [rule for rule in self if self.match(rule, line)]
