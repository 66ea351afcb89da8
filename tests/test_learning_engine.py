"""
Tests for the adaptive learning engine.
"""

import threading

import pytest

from codehint.learning.engine import (
    LearningEngine,
    PreferenceProfile,
    TYPE_WEIGHT_MIN,
    TYPE_WEIGHT_MAX,
    PRIORITY_WEIGHT_MIN,
    PRIORITY_WEIGHT_MAX,
    THRESHOLD_MIN,
    THRESHOLD_MAX,
)
from codehint.learning.persistence import SQLiteProfileStore, JSONProfileStore
from codehint.models import Suggestion, SuggestionType, Priority


def make(suggestion_type=SuggestionType.CODE_SMELL, priority=Priority.MEDIUM, confidence=0.7, title="s"):
    return Suggestion(
        type=suggestion_type,
        priority=priority,
        title=title,
        description="",
        file_path="A.java",
        start_line=0,
        end_line=0,
        confidence=confidence,
    )


@pytest.fixture
def engine():
    return LearningEngine()


class TestFeedbackLearning:
    """Test how feedback moves weights and the threshold."""

    def test_defaults(self, engine):
        profile = engine.profile()
        assert profile.name == "default"
        assert all(w == 1.0 for w in profile.type_weights.values())
        assert all(w == 1.0 for w in profile.priority_weights.values())
        assert profile.confidence_threshold == 0.5
        assert profile.disabled_types == set()

    def test_applied_and_dismissed_move_weights(self, engine):
        for _ in range(5):
            engine.record_feedback(make(SuggestionType.SECURITY), applied=True)
        for _ in range(5):
            engine.record_feedback(make(SuggestionType.DOCUMENTATION), applied=False)

        profile = engine.profile()
        security = profile.type_weight(SuggestionType.SECURITY)
        documentation = profile.type_weight(SuggestionType.DOCUMENTATION)

        assert security > 1.0
        assert documentation < 1.0
        assert TYPE_WEIGHT_MIN <= documentation < security <= TYPE_WEIGHT_MAX
        assert security == pytest.approx(1.5)
        assert documentation == pytest.approx(0.75)

    def test_weights_stay_clamped(self, engine):
        for _ in range(50):
            engine.record_feedback(make(SuggestionType.SECURITY, Priority.CRITICAL), applied=True)
            engine.record_feedback(make(SuggestionType.TODO, Priority.LOW), applied=False)

        profile = engine.profile()
        assert profile.type_weight(SuggestionType.SECURITY) == TYPE_WEIGHT_MAX
        assert profile.type_weight(SuggestionType.TODO) == TYPE_WEIGHT_MIN
        assert profile.priority_weight(Priority.CRITICAL) == PRIORITY_WEIGHT_MAX
        assert profile.priority_weight(Priority.LOW) == PRIORITY_WEIGHT_MIN

    def test_threshold_rises_on_confident_dismissals(self, engine):
        for _ in range(40):
            engine.record_feedback(make(confidence=0.95), applied=False)
        assert engine.profile().confidence_threshold == THRESHOLD_MAX

    def test_threshold_falls_on_unconfident_applications(self, engine):
        for _ in range(40):
            engine.record_feedback(make(confidence=0.05), applied=True)
        assert engine.profile().confidence_threshold == THRESHOLD_MIN

    def test_threshold_steady_when_feedback_agrees(self, engine):
        engine.record_feedback(make(confidence=0.9), applied=True)
        engine.record_feedback(make(confidence=0.1), applied=False)
        assert engine.profile().confidence_threshold == 0.5

    def test_counters_and_log(self, engine):
        engine.record_feedback(make(), applied=True, reason="fixed")
        engine.record_feedback(make(), applied=False, reason="dismissed")

        stats = engine.statistics()
        assert stats.total_suggestions == 2
        assert stats.applied_suggestions == 1
        assert stats.dismissed_suggestions == 1
        assert stats.apply_rate == 0.5
        assert [f.reason for f in engine.feedback_log] == ["fixed", "dismissed"]

    def test_switching_profiles_keeps_feedback(self, engine):
        engine.record_feedback(make(SuggestionType.SECURITY), applied=True)

        engine.use_profile("team")
        assert engine.feedback_log == []
        engine.record_feedback(make(SuggestionType.TODO), applied=False)

        engine.use_profile("default")
        assert len(engine.feedback_log) == 1
        assert engine.feedback_log[0].suggestion_type == SuggestionType.SECURITY
        assert engine.statistics().total_suggestions == 1

        engine.use_profile("team")
        assert len(engine.feedback_log) == 1

    def test_load_without_store_keeps_state(self, engine):
        engine.record_feedback(make(SuggestionType.SECURITY), applied=True)
        engine.load()

        assert len(engine.feedback_log) == 1
        assert engine.profile().type_weight(SuggestionType.SECURITY) == pytest.approx(1.1)

    def test_concurrent_feedback_loses_nothing(self, engine):
        def worker():
            for _ in range(50):
                engine.record_feedback(make(SuggestionType.REFACTOR), applied=True)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = engine.statistics()
        assert stats.total_suggestions == 400
        assert stats.applied_suggestions == 400
        assert len(engine.feedback_log) == 400


class TestOptimize:
    """Test filtering and ranking."""

    def test_filters_threshold_and_disabled_types(self, engine):
        engine.disable_type(SuggestionType.TODO)
        suggestions = [
            make(SuggestionType.TODO, confidence=0.9),
            make(SuggestionType.SECURITY, confidence=0.4),
            make(SuggestionType.SECURITY, confidence=0.5),
        ]

        result = engine.optimize(suggestions)
        assert len(result) == 1
        assert result[0].type == SuggestionType.SECURITY
        assert result[0].confidence == 0.5

    def test_never_returns_filtered_suggestions(self, engine):
        engine.set_confidence_threshold(0.6)
        engine.disable_type(SuggestionType.DOCUMENTATION)
        suggestions = [
            make(t, p, c)
            for t in SuggestionType
            for p in Priority
            for c in (0.1, 0.55, 0.6, 0.95)
        ]

        for suggestion in engine.optimize(suggestions):
            assert suggestion.type != SuggestionType.DOCUMENTATION
            assert suggestion.confidence >= 0.6

    def test_ranks_by_adjusted_score(self, engine):
        for _ in range(5):
            engine.record_feedback(make(SuggestionType.SECURITY), applied=True)

        plain = make(SuggestionType.CODE_SMELL, Priority.LOW, 0.8, title="plain")
        boosted = make(SuggestionType.SECURITY, confidence=0.7, title="boosted")

        result = engine.optimize([plain, boosted])
        assert [s.title for s in result] == ["boosted", "plain"]
        assert result[0].adjusted_score == pytest.approx(0.7 * 1.5 * 1.5)
        assert result[1].adjusted_score == pytest.approx(0.8)

    def test_ordering_is_stable_without_feedback(self, engine):
        suggestions = [
            make(t, p, c, title=f"{t.name}-{p.name}-{c}")
            for t in SuggestionType
            for p in Priority
            for c in (0.5, 0.7, 0.9)
        ]

        first = [s.id for s in engine.optimize(suggestions)]
        second = [s.id for s in engine.optimize(suggestions)]
        assert first == second

    def test_adjusted_score_monotonic_in_confidence(self, engine):
        engine.record_feedback(make(SuggestionType.SECURITY, Priority.HIGH), applied=True)
        scores = [
            engine.adjusted_score(make(SuggestionType.SECURITY, Priority.HIGH, c / 10))
            for c in range(11)
        ]
        assert scores == sorted(scores)
        assert all(score >= 0.0 for score in scores)


class TestDirectEdits:
    """Test explicit preference changes."""

    @pytest.mark.parametrize("value,expected", [
        (1.5, 1.0),
        (-0.2, 0.0),
        (0.95, 0.95),
        (0.05, 0.05),
    ])
    def test_set_threshold_is_clamped_to_unit_range(self, engine, value, expected):
        engine.set_confidence_threshold(value)
        assert engine.profile().confidence_threshold == expected

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_threshold_is_rejected(self, engine, value):
        engine.set_confidence_threshold(0.7)
        with pytest.raises(ValueError):
            engine.set_confidence_threshold(value)
        assert engine.profile().confidence_threshold == 0.7

    def test_enable_after_disable(self, engine):
        engine.disable_type(SuggestionType.TODO)
        assert SuggestionType.TODO in engine.profile().disabled_types
        engine.enable_type(SuggestionType.TODO)
        assert SuggestionType.TODO not in engine.profile().disabled_types

    def test_profile_is_a_snapshot(self, engine):
        snapshot = engine.profile()
        snapshot.type_weights[SuggestionType.SECURITY] = 99.0
        assert engine.profile().type_weight(SuggestionType.SECURITY) == 1.0

    def test_reset(self, engine):
        engine.record_feedback(make(SuggestionType.SECURITY), applied=True)
        engine.disable_type(SuggestionType.TODO)

        engine.reset()

        profile = engine.profile()
        assert profile.type_weight(SuggestionType.SECURITY) == 1.0
        assert profile.disabled_types == set()
        assert engine.feedback_log == []
        assert engine.statistics().total_suggestions == 0


class TestEnginePersistence:
    """Test the engine against real profile stores."""

    @pytest.fixture(params=["sqlite", "json"])
    def store(self, request, tmp_path):
        if request.param == "sqlite":
            return SQLiteProfileStore(tmp_path / "profiles.db")
        return JSONProfileStore(tmp_path / "profiles.json")

    def test_learned_state_survives_restart(self, store):
        engine = LearningEngine(store=store)
        for _ in range(3):
            engine.record_feedback(make(SuggestionType.SECURITY), applied=True)
        engine.disable_type(SuggestionType.TODO)
        engine.set_confidence_threshold(0.35)

        restored = LearningEngine(store=store)
        profile = restored.profile()
        assert profile.type_weight(SuggestionType.SECURITY) == pytest.approx(1.3)
        assert profile.disabled_types == {SuggestionType.TODO}
        assert profile.confidence_threshold == pytest.approx(0.35)
        assert profile.total_suggestions == 3
        assert len(restored.feedback_log) == 3

    def test_reset_clears_store(self, store):
        engine = LearningEngine(store=store)
        engine.record_feedback(make(SuggestionType.SECURITY), applied=True)
        engine.reset()

        restored = LearningEngine(store=store)
        assert restored.feedback_log == []
        assert restored.profile().type_weight(SuggestionType.SECURITY) == 1.0

    def test_profiles_are_independent(self, store):
        engine = LearningEngine(store=store)
        engine.record_feedback(make(SuggestionType.SECURITY), applied=True)

        engine.use_profile("team")
        assert engine.active_profile_name == "team"
        assert engine.profile().type_weight(SuggestionType.SECURITY) == 1.0
        assert engine.profile("default").type_weight(SuggestionType.SECURITY) == pytest.approx(1.1)
        assert engine.feedback_log == []
        assert "default" in engine.profile_names()

    def test_out_of_range_record_is_clamped(self, store):
        store.save_profile("default", {
            "type_weights": {"SECURITY": 5.0, "TODO": 0.0, "UNKNOWN": 1.2},
            "priority_weights": {"CRITICAL": 9.0},
            "confidence_threshold": 1.4,
        })

        profile = LearningEngine(store=store).profile()
        assert profile.type_weight(SuggestionType.SECURITY) == TYPE_WEIGHT_MAX
        assert profile.type_weight(SuggestionType.TODO) == TYPE_WEIGHT_MIN
        assert profile.priority_weight(Priority.CRITICAL) == PRIORITY_WEIGHT_MAX
        assert profile.confidence_threshold == 1.0

    @pytest.mark.parametrize("record", [
        {"type_weights": {"SECURITY": float("nan")}},
        {"type_weights": {"SECURITY": "heavy"}},
        {"confidence_threshold": None},
        {"disabled_types": "TODO"},
        {"total_suggestions": -1},
        ["not", "a", "mapping"],
    ])
    def test_broken_record_falls_back_to_defaults(self, store, record):
        store.save_profile("default", record)

        profile = LearningEngine(store=store).profile()
        assert profile == PreferenceProfile(name="default", last_updated=profile.last_updated)
