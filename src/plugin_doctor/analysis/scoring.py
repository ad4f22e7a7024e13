"""
Weighted site health score with a rolling history.

Five sub-scores (0-100) are combined with fixed weights:

    plugin_load  0.30   high/medium load components
    conflicts    0.25   high/medium severity conflicts
    database     0.20   average query hits per component
    memory       0.15   total estimated memory
    hooks        0.10   average callbacks per component
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List

from ..config import DEFAULT_THRESHOLDS, MIB, Thresholds
from ..formatting import format_bytes, format_timestamp
from ..host.options import HISTORY_KEY, OptionStore
from ..logging_config import get_logger
from ..models import (
    Conflict,
    LoadLevel,
    PerformanceMetric,
    ScoreSnapshot,
    Severity,
    SubScore,
    Trend,
    TrendDirection,
)
from ..serializers import snapshot_from_dict, snapshot_to_dict

logger = get_logger(__name__)

# (upper bound inclusive, score); anything above the last bound gets the floor
_DATABASE_BANDS = ((5, 100), (10, 80), (20, 60))
_DATABASE_FLOOR = 40
_MEMORY_MIB_BANDS = ((25, 100), (50, 80), (100, 60))
_MEMORY_FLOOR = 40
_HOOK_BANDS = ((20, 100), (30, 80))
_HOOK_FLOOR = 60


def _banded(value: float, bands, floor: int) -> int:
    for bound, score in bands:
        if value <= bound:
            return score
    return floor


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def grade_for(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


class PerformanceScorer:
    """Compute scores and keep the bounded score history in the option store."""

    def __init__(
        self,
        store: OptionStore,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.thresholds = thresholds
        self.now = now

    def calculate_score(
        self, metrics: Dict[str, PerformanceMetric], conflicts: List[Conflict]
    ) -> ScoreSnapshot:
        subscores = {
            "plugin_load": self._score_plugin_load(metrics),
            "conflicts": self._score_conflicts(conflicts),
            "database": self._score_database(metrics),
            "memory": self._score_memory(metrics),
            "hooks": self._score_hooks(metrics),
        }

        weights = self.thresholds.score_weights
        weighted = sum(sub.score * weights[key] for key, sub in subscores.items())
        overall = round_half_up(weighted)

        return ScoreSnapshot(
            overall_score=overall,
            grade=grade_for(overall),
            metrics=subscores,
            timestamp=format_timestamp(self.now()),
        )

    # ------------------------------------------------------------------
    # sub-scores
    # ------------------------------------------------------------------

    def _score_plugin_load(self, metrics: Dict[str, PerformanceMetric]) -> SubScore:
        high = sum(1 for m in metrics.values() if m.load_level is LoadLevel.HIGH)
        medium = sum(1 for m in metrics.values() if m.load_level is LoadLevel.MEDIUM)
        return SubScore(
            key="plugin_load",
            score=max(0, 100 - 20 * high - 10 * medium),
            label="Plugin load",
            value=f"{high} high-load plugins out of {len(metrics)}",
            description="Overall load of the active plugins",
        )

    def _score_conflicts(self, conflicts: List[Conflict]) -> SubScore:
        high = sum(1 for c in conflicts if c.severity is Severity.HIGH)
        medium = sum(1 for c in conflicts if c.severity is Severity.MEDIUM)
        noun = "conflict" if len(conflicts) == 1 else "conflicts"
        return SubScore(
            key="conflicts",
            score=max(0, 100 - 25 * high - 10 * medium),
            label="Conflicts",
            value=f"{len(conflicts)} {noun} detected",
            description="Number and severity of conflicts between plugins",
        )

    def _score_database(self, metrics: Dict[str, PerformanceMetric]) -> SubScore:
        total = sum(m.db_queries for m in metrics.values())
        average = total / len(metrics) if metrics else 0
        return SubScore(
            key="database",
            score=_banded(average, _DATABASE_BANDS, _DATABASE_FLOOR),
            label="Database queries",
            value=f"{total} queries in total",
            description="Database queries issued by plugins",
        )

    def _score_memory(self, metrics: Dict[str, PerformanceMetric]) -> SubScore:
        total = sum(m.memory_usage for m in metrics.values())
        return SubScore(
            key="memory",
            score=_banded(total / MIB, _MEMORY_MIB_BANDS, _MEMORY_FLOOR),
            label="Memory usage",
            value=format_bytes(total, 2),
            description="Total memory used by plugins",
        )

    def _score_hooks(self, metrics: Dict[str, PerformanceMetric]) -> SubScore:
        total = sum(m.hook_count for m in metrics.values())
        average = total / len(metrics) if metrics else 0
        return SubScore(
            key="hooks",
            score=_banded(average, _HOOK_BANDS, _HOOK_FLOOR),
            label="Checkpoint callbacks",
            value=f"{total} callbacks in total",
            description="Callbacks registered by plugins on host checkpoints",
        )

    # ------------------------------------------------------------------
    # history
    # ------------------------------------------------------------------

    def save_to_history(self, snapshot: ScoreSnapshot) -> None:
        """Append *snapshot*, keeping only the most recent ``history_limit`` entries."""
        history = list(self.store.get(HISTORY_KEY, []) or [])
        history.append(snapshot_to_dict(snapshot))
        history = history[-self.thresholds.history_limit :]
        self.store.set(HISTORY_KEY, history)
        logger.debug(f"Saved score {snapshot.overall_score} ({len(history)} in history)")

    def get_history(self, limit: int = 10) -> List[ScoreSnapshot]:
        """Most recent snapshots, oldest first. ``limit <= 0`` returns everything."""
        history = list(self.store.get(HISTORY_KEY, []) or [])
        if limit > 0:
            history = history[-limit:]
        return [snapshot_from_dict(entry) for entry in history]

    def get_trend(self) -> Trend:
        """Latest score against the oldest one in the trend window."""
        window = self.get_history(self.thresholds.trend_window)
        if len(window) < 2:
            return Trend()

        change = window[-1].overall_score - window[0].overall_score
        if change > self.thresholds.trend_delta:
            direction = TrendDirection.IMPROVING
        elif change < -self.thresholds.trend_delta:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE
        return Trend(direction=direction, change=change)
