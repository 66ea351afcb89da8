"""Pattern-based source analysis for Codehint."""

from .rules import Rule, RuleCatalog, QUALITY_RULES, build_scanners, is_opted_out, is_magic_number
from .analyzer import LineAnalyzer, MethodInfo
from .aggregator import SuggestionAggregator

__all__ = [
    'Rule',
    'RuleCatalog',
    'QUALITY_RULES',
    'build_scanners',
    'is_opted_out',
    'is_magic_number',
    'LineAnalyzer',
    'MethodInfo',
    'SuggestionAggregator',
]
