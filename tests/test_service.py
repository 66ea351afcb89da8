"""
Tests for the suggestion service pipeline.
"""

import threading
from unittest.mock import Mock

import pytest

from codehint.analysis import LineAnalyzer
from codehint.config import AnalysisConfig
from codehint.context import AnalysisContext
from codehint.models import SuggestionType, Priority
from codehint.service import SuggestionService
from codehint.store import SuggestionListener


JAVA_SOURCE = """\
public class UserDao {
    // TODO: add caching
    private String password = "hunter2";

    public User find(String id) {
        String q = "SELECT * FROM users WHERE id = " + id;
        return run(q);
    }
}
"""


@pytest.fixture
def service():
    return SuggestionService(AnalysisContext.create())


class TestAnalyze:
    """Test the analyze → aggregate → optimize → store pipeline."""

    def test_full_pass(self, service):
        result = service.analyze("UserDao.java", JAVA_SOURCE)

        types = {s.type for s in result}
        assert SuggestionType.TODO in types
        assert SuggestionType.SECURITY in types
        assert service.get_suggestions("UserDao.java") == result

    def test_results_are_ranked_and_filtered(self, service):
        result = service.analyze("UserDao.java", JAVA_SOURCE)

        scores = [s.adjusted_score for s in result]
        assert scores == sorted(scores, reverse=True)
        threshold = service.learning_engine.profile().confidence_threshold
        assert all(s.confidence >= threshold for s in result)
        assert result[0].priority == Priority.CRITICAL

    def test_empty_content(self, service):
        assert service.analyze("Empty.java", "") == []
        assert service.analyze("Empty.java", None) == []
        assert service.get_suggestions("Empty.java") == []

    def test_placeholder(self):
        settings = AnalysisConfig(emit_placeholder=True)
        service = SuggestionService(AnalysisContext.create(settings=settings))
        service.learning_engine.set_confidence_threshold(0.0)

        result = service.analyze("Empty.java", "")
        assert [s.title for s in result] == ["Analysis completed"]

    def test_bytes_are_decoded(self, service):
        result = service.analyze("A.java", b"// TODO: \xff later\n")
        assert [s.type for s in result] == [SuggestionType.TODO]

    def test_analyze_path(self, service, tmp_path):
        source = tmp_path / "UserDao.java"
        source.write_text(JAVA_SOURCE)

        result = service.analyze_path(source)
        assert result
        assert service.get_suggestions(str(source)) == result

    def test_analyze_missing_path(self, service, tmp_path):
        assert service.analyze_path(tmp_path / "missing.java") == []

    def test_path_created_after_failed_read(self, service, tmp_path):
        source = tmp_path / "Later.java"
        assert service.analyze_path(source) == []

        source.write_text("// TODO: wire this up\n")
        result = service.analyze_path(source)
        assert [s.type for s in result] == [SuggestionType.TODO]

    def test_binary_file_becomes_text(self, service, tmp_path):
        source = tmp_path / "Flip.java"
        source.write_bytes(b"\x00\x01\x02")
        assert service.analyze_path(source) == []

        source.write_text("// TODO: decode\n")
        assert service.analyze_path(source)

    def test_disabled_type_is_hidden(self, service):
        service.learning_engine.disable_type(SuggestionType.SECURITY)
        result = service.analyze("UserDao.java", JAVA_SOURCE)
        assert SuggestionType.SECURITY not in {s.type for s in result}

    def test_listener_is_notified(self, service):
        listener = Mock(spec=SuggestionListener)
        service.add_listener(listener)

        result = service.analyze("UserDao.java", JAVA_SOURCE)
        listener.on_suggestions_updated.assert_called_once_with("UserDao.java", result)

        service.remove_listener(listener)
        service.analyze("UserDao.java", JAVA_SOURCE)
        assert listener.on_suggestions_updated.call_count == 1


class TestFeedback:
    """Test feedback entry points."""

    def test_record_feedback(self, service):
        result = service.analyze("UserDao.java", JAVA_SOURCE)
        security = next(s for s in result if s.type == SuggestionType.SECURITY)

        service.record_feedback(security.id, applied=True, reason="moved to vault")

        assert security not in service.get_unapplied_suggestions("UserDao.java")
        assert service.learning_engine.profile().type_weight(SuggestionType.SECURITY) > 1.0

    def test_record_feedback_unknown_id(self, service):
        service.record_feedback("suggestion-unknown", applied=True)
        assert service.learning_engine.statistics().total_suggestions == 0

    def test_feedback_changes_next_ranking(self, service):
        result = service.analyze("UserDao.java", JAVA_SOURCE)
        todo = next(s for s in result if s.type == SuggestionType.TODO)
        for _ in range(10):
            service.dismiss(todo.id)
            todo = next(
                s for s in service.analyze("UserDao.java", JAVA_SOURCE)
                if s.type == SuggestionType.TODO
            )

        assert service.learning_engine.profile().type_weight(SuggestionType.TODO) < 1.0

    def test_mark_applied_and_queries(self, service):
        result = service.analyze("UserDao.java", JAVA_SOURCE)
        for suggestion in service.get_high_priority_suggestions("UserDao.java"):
            service.mark_applied(suggestion.id, "fix-1")

        assert service.get_high_priority_suggestions("UserDao.java") == []
        remaining = service.get_unapplied_suggestions("UserDao.java")
        assert all(s.priority.level < Priority.HIGH.level for s in remaining)
        assert len(remaining) < len(result)

        todos = service.get_suggestions_by_type("UserDao.java", SuggestionType.TODO)
        assert [s.start_line for s in todos] == [1]
        assert service.get_suggestions_at_line("UserDao.java", 1)


class BlockingAnalyzer(LineAnalyzer):
    """Analyzer that parks any pass over content containing ``SLOW``."""

    def __init__(self, catalog):
        super().__init__(catalog)
        self.started = threading.Event()
        self.release = threading.Event()

    def analyze(self, file_path, content):
        result = super().analyze(file_path, content)
        if content and "SLOW" in content:
            self.started.set()
            self.release.wait(timeout=10)
        return result


class TestConcurrentAnalysis:
    """Test overlapping analyses of the same file."""

    def test_last_completion_wins(self):
        context = AnalysisContext.create()
        context.analyzer = BlockingAnalyzer(context.catalog)
        service = SuggestionService(context)

        stale = "// SLOW pass\n// TODO: old version\n"
        fresh = "// FIXME: new version\n"

        worker = threading.Thread(target=service.analyze, args=("A.java", stale))
        worker.start()
        assert context.analyzer.started.wait(timeout=10)

        fresh_result = service.analyze("A.java", fresh)
        assert service.get_suggestions("A.java") == fresh_result

        context.analyzer.release.set()
        worker.join(timeout=10)

        cached = service.get_suggestions("A.java")
        assert [s.type for s in cached] == [SuggestionType.TODO]
        assert cached[0].code_snippet == "// TODO: old version"

    def test_parallel_files_do_not_interfere(self, service):
        sources = {f"F{i}.java": f"// TODO: item {i}\n" for i in range(8)}
        threads = [
            threading.Thread(target=service.analyze, args=(path, content))
            for path, content in sources.items()
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for path in sources:
            assert len(service.get_suggestions(path)) == 1
