"""Tests for the health score, its history and the trend."""

import pytest

from plugin_doctor.analysis.scoring import PerformanceScorer, grade_for, round_half_up
from plugin_doctor.config import Thresholds
from plugin_doctor.host.options import HISTORY_KEY
from plugin_doctor.models import (
    Conflict,
    ConflictType,
    LoadLevel,
    PerformanceMetric,
    ScoreSnapshot,
    TrendDirection,
)

MIB = 1024 * 1024


def _metric(slug="a", **kwargs):
    return PerformanceMetric(slug=slug, name=slug, **kwargs)


def _conflict(conflict_type):
    return Conflict(
        type=conflict_type,
        severity=conflict_type.severity,
        components=["a"],
        description="",
        details={},
        key=conflict_type.value,
    )


def _snapshot(score):
    return ScoreSnapshot(overall_score=score, grade=grade_for(score), metrics={}, timestamp="")


@pytest.fixture
def scorer(store, clock):
    return PerformanceScorer(store, now=clock)


class TestHelpers:
    @pytest.mark.parametrize(
        "score, grade",
        [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"), (70, "C"), (60, "D"), (59, "F"), (0, "F")],
    )
    def test_grade_for(self, score, grade):
        assert grade_for(score) == grade

    @pytest.mark.parametrize("value, expected", [(94.5, 95), (94.49, 94), (87.75, 88), (0.5, 1)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestCalculateScore:
    def test_clean_site(self, scorer):
        snapshot = scorer.calculate_score({"a": _metric()}, [])
        assert snapshot.overall_score == 100
        assert snapshot.grade == "A"
        assert list(snapshot.metrics) == ["plugin_load", "conflicts", "database", "memory", "hooks"]
        assert snapshot.timestamp == "2026-03-01 12:00:00"

    def test_no_components(self, scorer):
        snapshot = scorer.calculate_score({}, [])
        assert snapshot.overall_score == 100

    def test_database_and_memory_bands(self, scorer):
        snapshot = scorer.calculate_score({"a": _metric(db_queries=60)}, [])
        assert snapshot.metrics["database"].score == 40
        assert snapshot.metrics["memory"].score == 100
        assert snapshot.metrics["database"].value == "60 queries in total"

    @pytest.mark.parametrize(
        "queries, expected", [(5, 100), (6, 80), (10, 80), (20, 60), (21, 40)]
    )
    def test_database_uses_average(self, scorer, queries, expected):
        metrics = {"a": _metric("a", db_queries=queries * 2), "b": _metric("b")}
        assert scorer.calculate_score(metrics, []).metrics["database"].score == expected

    @pytest.mark.parametrize(
        "mib, expected", [(25, 100), (26, 80), (50, 80), (100, 60), (101, 40)]
    )
    def test_memory_uses_total(self, scorer, mib, expected):
        metrics = {
            "a": _metric("a", memory_usage=mib * MIB // 2),
            "b": _metric("b", memory_usage=mib * MIB // 2),
        }
        assert scorer.calculate_score(metrics, []).metrics["memory"].score == expected

    @pytest.mark.parametrize("hooks, expected", [(20, 100), (21, 80), (30, 80), (31, 60)])
    def test_hooks_use_average(self, scorer, hooks, expected):
        assert scorer.calculate_score({"a": _metric(hook_count=hooks)}, []).metrics[
            "hooks"
        ].score == expected

    def test_load_and_conflict_penalties(self, scorer):
        metrics = {
            "a": _metric("a", load_level=LoadLevel.HIGH),
            "b": _metric("b", load_level=LoadLevel.MEDIUM),
        }
        conflicts = [
            _conflict(ConflictType.PHP_ERROR),
            _conflict(ConflictType.HOOK_PRIORITY),
            _conflict(ConflictType.DUPLICATE_SCRIPT),
        ]
        snapshot = scorer.calculate_score(metrics, conflicts)
        assert snapshot.metrics["plugin_load"].score == 70
        assert snapshot.metrics["conflicts"].score == 65
        assert snapshot.metrics["conflicts"].value == "3 conflicts detected"

    def test_penalties_floor_at_zero(self, scorer):
        conflicts = [_conflict(ConflictType.PHP_ERROR)] * 5
        assert scorer.calculate_score({}, conflicts).metrics["conflicts"].score == 0

    def test_half_points_round_up(self, scorer):
        metrics = {"a": _metric(load_level=LoadLevel.MEDIUM)}
        snapshot = scorer.calculate_score(metrics, [_conflict(ConflictType.HOOK_PRIORITY)])
        # 90 * .30 + 90 * .25 + 100 * (.20 + .15 + .10) = 94.5
        assert snapshot.overall_score == 95
        assert snapshot.grade == "A"


class TestHistory:
    def test_save_and_read_back(self, scorer, store):
        scorer.save_to_history(scorer.calculate_score({}, []))
        history = scorer.get_history()
        assert len(history) == 1
        assert history[0].overall_score == 100
        assert history[0].metrics["memory"].label == "Memory usage"
        assert isinstance(store.get(HISTORY_KEY)[0], dict)

    def test_capped_fifo(self, scorer):
        for score in range(35):
            scorer.save_to_history(_snapshot(score))

        history = scorer.get_history(limit=0)
        assert len(history) == 30
        assert history[0].overall_score == 5
        assert history[-1].overall_score == 34

    def test_limit(self, scorer):
        for score in range(12):
            scorer.save_to_history(_snapshot(score))
        assert [s.overall_score for s in scorer.get_history()] == list(range(2, 12))
        assert [s.overall_score for s in scorer.get_history(3)] == [9, 10, 11]

    def test_custom_history_limit(self, store):
        scorer = PerformanceScorer(store, Thresholds(history_limit=3))
        for score in range(5):
            scorer.save_to_history(_snapshot(score))
        assert [s.overall_score for s in scorer.get_history(0)] == [2, 3, 4]

    def test_empty(self, scorer):
        assert scorer.get_history() == []


class TestTrend:
    def _record(self, scorer, scores):
        for score in scores:
            scorer.save_to_history(_snapshot(score))

    def test_needs_two_entries(self, scorer):
        assert scorer.get_trend().direction is TrendDirection.STABLE
        self._record(scorer, [90])
        trend = scorer.get_trend()
        assert trend.direction is TrendDirection.STABLE
        assert trend.change == 0

    def test_improving(self, scorer):
        self._record(scorer, [50, 52, 58, 60, 70])
        trend = scorer.get_trend()
        assert trend.direction is TrendDirection.IMPROVING
        assert trend.change == 20

    def test_declining(self, scorer):
        self._record(scorer, [80, 70])
        trend = scorer.get_trend()
        assert trend.direction is TrendDirection.DECLINING
        assert trend.change == -10

    def test_window_is_last_five(self, scorer):
        self._record(scorer, [10, 90, 50, 52, 58, 60, 54])
        trend = scorer.get_trend()
        assert trend.direction is TrendDirection.STABLE
        assert trend.change == 4

    @pytest.mark.parametrize(
        "latest, direction",
        [
            (85, TrendDirection.STABLE),
            (86, TrendDirection.IMPROVING),
            (75, TrendDirection.STABLE),
            (74, TrendDirection.DECLINING),
        ],
    )
    def test_delta_is_strict(self, scorer, latest, direction):
        self._record(scorer, [80, latest])
        assert scorer.get_trend().direction is direction
