"""
Plugin Doctor - static performance and conflict analysis for plugin hosts

Estimates the cost of every active plugin from its registered callbacks,
detects conflicts between plugins, and rolls it all into a graded health
score with a tracked trend and reversible one-click optimizations.
"""

__version__ = "0.1.0"

from .config import DoctorConfig, Thresholds, load_config
from .doctor import PerformanceDoctor, open_site
from .host import HostEnvironment, MemoryOptionStore
from .models import AnalysisReport, Conflict, PerformanceMetric, Recommendation, ScoreSnapshot

__all__ = [
    "PerformanceDoctor",  # Main entry point
    "open_site",
    "DoctorConfig",
    "Thresholds",
    "load_config",
    "HostEnvironment",
    "MemoryOptionStore",
    "AnalysisReport",
    "Conflict",
    "PerformanceMetric",
    "Recommendation",
    "ScoreSnapshot",
]
