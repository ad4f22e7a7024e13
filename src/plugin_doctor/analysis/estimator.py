"""
Static cost estimation of plugin callbacks.

Third-party callbacks cannot be executed in isolation without side effects,
so their cost is approximated from two proxies:

- source size: lines of the code the callback runs
- data access: matches of a fixed set of database-call patterns

Per-callback estimates are summed per component and per checkpoint, then
every component is placed on a relative low/medium/high scale by
normalizing each dimension against the most expensive component.
"""

import logging
import re
from typing import Dict, List, Tuple

import numpy as np

from ..config import DEFAULT_THRESHOLDS, Thresholds
from ..exceptions import IntrospectionError
from ..host.hooks import HookRegistry, callback_name
from ..host.introspection import read_source, source_location_of
from ..inspector import ComponentInspector
from ..logging_config import get_logger, log_error
from ..models import CallbackImpact, HookDetail, LoadLevel, PerformanceMetric

logger = get_logger(__name__)

MONITORED_CHECKPOINTS: Tuple[str, ...] = (
    "plugins_loaded",
    "init",
    "wp_loaded",
    "admin_init",
    "admin_menu",
    "wp_enqueue_scripts",
    "admin_enqueue_scripts",
    "wp_head",
    "wp_footer",
    "admin_head",
    "admin_footer",
    "the_content",
    "the_title",
)

# Time multiplier per checkpoint; anything not listed runs at 1.0
CHECKPOINT_MULTIPLIERS: Dict[str, float] = {
    "init": 1.5,
    "plugins_loaded": 1.2,
    "admin_init": 1.3,
    "wp_enqueue_scripts": 1.1,
    "admin_enqueue_scripts": 1.1,
    "the_content": 2.0,
    "the_title": 1.5,
}

# Every pattern is counted independently, so overlapping matches count twice
DB_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"wpdb\."),
    re.compile(r"\.query\("),
    re.compile(r"\.get_results\("),
    re.compile(r"\.get_row\("),
    re.compile(r"\.get_var\("),
    re.compile(r"get_posts\("),
    re.compile(r"get_post\("),
    re.compile(r"wp_query", re.IGNORECASE),
    re.compile(r"WP_Query", re.IGNORECASE),
)

DEFAULT_LINES = 10
SECONDS_PER_LINE = 0.00001
BYTES_PER_LINE = 100

FALLBACK_IMPACT = CallbackImpact(time=0.0001, queries=0, memory=1024)


def count_db_calls(source: str) -> int:
    """Total pattern matches in *source*."""
    return sum(len(pattern.findall(source)) for pattern in DB_PATTERNS)


def classify_load(score: float, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> LoadLevel:
    """Map a weighted score in [0, 1] onto a load level (strict cutoffs)."""
    if score > thresholds.load_high_cutoff:
        return LoadLevel.HIGH
    if score > thresholds.load_medium_cutoff:
        return LoadLevel.MEDIUM
    return LoadLevel.LOW


class PerformanceEstimator:
    """Estimate per-component cost from the callbacks on monitored checkpoints."""

    def __init__(
        self,
        inspector: ComponentInspector,
        hooks: HookRegistry,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
    ):
        self.inspector = inspector
        self.hooks = hooks
        self.thresholds = thresholds
        self.metrics: Dict[str, PerformanceMetric] = {}

    def analyze(self) -> Dict[str, PerformanceMetric]:
        """Run one estimation pass and return slug -> metric.

        Metrics are rebuilt from scratch on every call.
        """
        self.metrics = {
            slug: PerformanceMetric(slug=slug, name=record.name)
            for slug, record in self.inspector.list_active().items()
        }

        self._analyze_checkpoints()
        self._calculate_load_levels()

        logger.debug(f"Estimated {len(self.metrics)} components")
        return self.metrics

    def _analyze_checkpoints(self) -> None:
        for checkpoint in MONITORED_CHECKPOINTS:
            if not self.hooks.has(checkpoint):
                continue

            for priority, entries in self.hooks.callbacks(checkpoint).items():
                for entry in entries:
                    slug = self.inspector.resolve_slug_from_callback(entry.callback)
                    if slug is None or slug not in self.metrics:
                        continue

                    impact = self.estimate_callback_impact(entry.callback, checkpoint)
                    metric = self.metrics[slug]
                    metric.execution_time += impact.time
                    metric.db_queries += impact.queries
                    metric.memory_usage += impact.memory
                    metric.hook_count += 1

                    detail = metric.hooks_detail.setdefault(checkpoint, HookDetail())
                    detail.count += 1
                    detail.time += impact.time
                    detail.queries += impact.queries
                    detail.memory += impact.memory
                    detail.priorities.append(priority)

    def estimate_complexity(self, callback) -> Tuple[int, int]:
        """Return ``(lines, db_calls)`` for *callback*.

        Without a source location the callback is assumed to be
        ``DEFAULT_LINES`` long with no data access.

        Raises:
            IntrospectionError: If the located source cannot be read back.
        """
        location = source_location_of(callback)
        if location is None:
            return DEFAULT_LINES, 0

        lines = max(1, location.lines)
        source = read_source(location, callback)
        return lines, count_db_calls(source)

    def estimate_callback_impact(self, callback, checkpoint: str) -> CallbackImpact:
        try:
            lines, db_calls = self.estimate_complexity(callback)
        except IntrospectionError as e:
            logger.debug(f"Fallback estimate for {callback_name(callback)}")
            log_error(logger, e, logging.DEBUG)
            return FALLBACK_IMPACT

        multiplier = CHECKPOINT_MULTIPLIERS.get(checkpoint, 1.0)
        return CallbackImpact(
            time=lines * SECONDS_PER_LINE * multiplier,
            queries=db_calls,
            memory=lines * BYTES_PER_LINE,
        )

    def _calculate_load_levels(self) -> None:
        if not self.metrics:
            return

        metrics = list(self.metrics.values())
        features = np.array(
            [[m.execution_time, m.db_queries, m.memory_usage] for m in metrics], dtype=float
        )
        maxima = features.max(axis=0)
        normalized = np.divide(
            features, maxima, out=np.zeros_like(features), where=maxima > 0
        )

        weights = np.array(
            [
                self.thresholds.load_time_weight,
                self.thresholds.load_queries_weight,
                self.thresholds.load_memory_weight,
            ]
        )
        scores = np.clip(normalized @ weights, 0.0, 1.0)

        for metric, score in zip(metrics, scores):
            score = float(score)
            metric.load_level = classify_load(score, self.thresholds)
            metric.load_score = round(score * 100, 2)

    def high_load_components(self) -> List[str]:
        return [slug for slug, m in self.metrics.items() if m.load_level is LoadLevel.HIGH]
