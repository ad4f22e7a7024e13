"""Estimation, conflict detection, recommendations and scoring."""

from .conflicts import ConflictDetector
from .estimator import PerformanceEstimator, classify_load
from .recommendations import RecommendationEngine
from .scoring import PerformanceScorer, grade_for

__all__ = [
    "ConflictDetector",
    "PerformanceEstimator",
    "classify_load",
    "RecommendationEngine",
    "PerformanceScorer",
    "grade_for",
]
