"""
Explicit analysis context: the rule catalog, analyzer settings and the
learning engine that a service instance works with.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .analysis import RuleCatalog, LineAnalyzer, SuggestionAggregator
from .config import Config, AnalysisConfig
from .learning import LearningEngine, ProfileStore, create_profile_store
from .constants import DEFAULT_PROFILE_NAME


@dataclass
class AnalysisContext:
    """Everything one analysis pipeline needs, passed in rather than global."""
    catalog: RuleCatalog
    analyzer: LineAnalyzer
    aggregator: SuggestionAggregator
    learning_engine: LearningEngine
    settings: AnalysisConfig

    @classmethod
    def create(
        cls,
        settings: Optional[AnalysisConfig] = None,
        store: Optional[ProfileStore] = None,
        profile_name: str = DEFAULT_PROFILE_NAME,
        catalog: Optional[RuleCatalog] = None,
    ) -> 'AnalysisContext':
        """Build a context; without a store the profile lives in memory only."""
        settings = settings or AnalysisConfig()
        catalog = catalog or RuleCatalog.default(settings.max_line_length)
        analyzer = LineAnalyzer(
            catalog,
            max_file_lines=settings.max_file_lines,
            max_method_lines=settings.max_method_lines,
            max_method_complexity=settings.max_method_complexity,
        )
        return cls(
            catalog=catalog,
            analyzer=analyzer,
            aggregator=SuggestionAggregator(emit_placeholder=settings.emit_placeholder),
            learning_engine=LearningEngine(store=store, profile_name=profile_name),
            settings=settings,
        )

    @classmethod
    def from_config(cls, config: Config) -> 'AnalysisContext':
        """Build a context with the persisted profile store named in ``config``."""
        learning = config.learning
        profile_path = Path(learning.profile_path).expanduser() if learning.profile_path else None
        store = create_profile_store(learning.store_backend, profile_path)
        return cls.create(
            settings=config.analysis,
            store=store,
            profile_name=learning.profile_name,
        )
