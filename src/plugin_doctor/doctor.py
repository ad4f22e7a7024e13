"""
The doctor facade: one object per site wiring every component together.

Example:
    >>> with open_site(load_config(site_root="/srv/site")) as doctor:
    ...     report = doctor.run_analysis()
    ...     report.score.grade
    'B'
"""

import platform
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

from .analysis import ConflictDetector, PerformanceEstimator, PerformanceScorer, RecommendationEngine
from .config import DoctorConfig
from .formatting import format_timestamp
from .host import DiskOptionStore, HostEnvironment
from .host.loader import boot
from .host.options import purge_doctor_options
from .inspector import ComponentInspector
from .logging_config import get_logger
from .models import (
    ActionResult,
    AnalysisReport,
    BackupRecord,
    BackupStats,
    Conflict,
    Optimization,
    PerformanceMetric,
    Recommendation,
    ScoreSnapshot,
    Trend,
)
from .optimization import BackupManager, OptimizationEngine, install_active_optimizations
from .serializers import conflicts_to_list, metric_to_dict, recommendation_to_dict

logger = get_logger(__name__)


class PerformanceDoctor:
    """Analysis, scoring and optimization for one site."""

    def __init__(
        self,
        environment: HostEnvironment,
        config: Optional[DoctorConfig] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.environment = environment
        self.config = config or DoctorConfig(site_root=str(environment.layout.root))
        self.now = now

        thresholds = self.config.thresholds
        self.inspector = ComponentInspector(environment.registry, environment.layout)
        self.estimator = PerformanceEstimator(self.inspector, environment.hooks, thresholds)
        self.detector = ConflictDetector(
            self.inspector,
            environment.hooks,
            environment.scripts,
            environment.layout,
            error_log=environment.error_log,
            thresholds=thresholds,
        )
        self.recommender = RecommendationEngine(thresholds)
        self.scorer = PerformanceScorer(environment.store, thresholds, now=now)
        self.backup_manager = BackupManager(environment.store, thresholds, now=now)
        self.optimizer = OptimizationEngine(environment.store, self.backup_manager, now=now)

    # ------------------------------------------------------------------
    # analysis
    # ------------------------------------------------------------------

    def analyze(self) -> Dict[str, PerformanceMetric]:
        return self.estimator.analyze()

    def detect_conflicts(self) -> List[Conflict]:
        return self.detector.detect_conflicts()

    def generate_recommendations(
        self, metrics: Dict[str, PerformanceMetric], conflicts: List[Conflict]
    ) -> List[Recommendation]:
        return self.recommender.generate_recommendations(metrics, conflicts)

    def calculate_score(
        self, metrics: Dict[str, PerformanceMetric], conflicts: List[Conflict]
    ) -> ScoreSnapshot:
        return self.scorer.calculate_score(metrics, conflicts)

    def run_analysis(self, save_history: bool = True) -> AnalysisReport:
        """One full pass: estimate, detect, recommend, score, and record history."""
        metrics = self.analyze()
        conflicts = self.detect_conflicts()
        recommendations = self.generate_recommendations(metrics, conflicts)
        score = self.calculate_score(metrics, conflicts)

        if save_history:
            self.scorer.save_to_history(score)

        logger.info(
            f"Analyzed {len(metrics)} plugins: score {score.overall_score} ({score.grade}), "
            f"{len(conflicts)} conflicts"
        )
        return AnalysisReport(
            metrics=metrics,
            conflicts=conflicts,
            recommendations=recommendations,
            score=score,
            trend=self.trend(),
            optimizations=self.get_available_optimizations(),
            active_optimizations=self.optimizer.get_active_optimizations(),
        )

    def export_results(self) -> Dict[str, Any]:
        """Plain-dict report for JSON export. Does not touch the history."""
        metrics = self.analyze()
        conflicts = self.detect_conflicts()
        recommendations = self.generate_recommendations(metrics, conflicts)

        return {
            "timestamp": format_timestamp(self.now()),
            "site_url": str(self.environment.layout.root),
            "host_version": self.environment.host_version,
            "python_version": platform.python_version(),
            "performance": {slug: metric_to_dict(m) for slug, m in metrics.items()},
            "conflicts": conflicts_to_list(conflicts),
            "recommendations": [recommendation_to_dict(r) for r in recommendations],
        }

    def history(self, limit: int = 10) -> List[ScoreSnapshot]:
        return self.scorer.get_history(limit)

    def trend(self) -> Trend:
        return self.scorer.get_trend()

    # ------------------------------------------------------------------
    # optimizations
    # ------------------------------------------------------------------

    def get_available_optimizations(self) -> Dict[str, Optimization]:
        return self.optimizer.get_available_optimizations()

    def apply_optimization(self, optimization_id: str) -> ActionResult:
        return self.optimizer.apply_optimization(optimization_id)

    def revert_optimization(self, optimization_id: str) -> ActionResult:
        return self.optimizer.revert_optimization(optimization_id)

    def rollback(self, backup_id: str) -> ActionResult:
        if not self.backup_manager.rollback(backup_id):
            return ActionResult(False, "Rollback failed.", backup_id=backup_id)

        dropped = self.optimizer.forget_backup(backup_id)
        return ActionResult(
            True,
            "Rollback completed successfully.",
            optimization_id=dropped[0] if dropped else None,
            backup_id=backup_id,
        )

    def backups(self) -> List[BackupRecord]:
        return self.backup_manager.get_all_backups()

    def backup_stats(self) -> BackupStats:
        return self.backup_manager.get_stats()

    def install_optimizations(self) -> List[str]:
        env = self.environment
        return install_active_optimizations(env.store, env.hooks, env.scripts)

    def purge(self) -> int:
        """Remove every option this tool has written."""
        return purge_doctor_options(self.environment.store)


@contextmanager
def open_site(config: DoctorConfig, boot_plugins: Optional[bool] = None) -> Iterator[PerformanceDoctor]:
    """Open the site described by *config* with its on-disk option store.

    Active plugins are imported (unless disabled) and active optimizations
    installed before the doctor is handed out. The store is closed on exit.
    """
    site = config.site_path
    if not site.is_dir():
        raise FileNotFoundError(f"Site root not found: {site}")

    with DiskOptionStore(config.store_path) as store:
        environment = HostEnvironment.for_site(
            site, store, error_log=config.error_log_path, host_version=config.host_version
        )
        doctor = PerformanceDoctor(environment, config)

        if config.boot_plugins if boot_plugins is None else boot_plugins:
            loaded = boot(environment, doctor.inspector.list_active().values())
            logger.debug(f"Booted {len(loaded)} plugins")
        doctor.install_optimizations()

        yield doctor
