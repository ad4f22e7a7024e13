"""Turn estimator metrics and detected conflicts into prioritized advice."""

from typing import Dict, List, Tuple

from ..config import DEFAULT_THRESHOLDS, Thresholds
from ..formatting import format_bytes
from ..models import (
    Conflict,
    ConflictType,
    PerformanceMetric,
    Recommendation,
    RecommendationType,
    Severity,
)

CHECK_UPDATES_ACTION = "Check whether an update is available that fixes performance problems"
ASSET_MANAGER_ACTION = (
    'Use an "asset manager" plugin to load this plugin only on the pages that really need it'
)

# Issue kind -> mitigation actions, in display order
ISSUE_ACTIONS: Dict[str, Tuple[str, ...]] = {
    "cpu": (
        "If this is a backup or statistics plugin, lower the frequency of its scheduled tasks",
        'Use a "heartbeat control" plugin to reduce background admin requests',
    ),
    "db": (
        "Install an object cache (e.g. Redis or Memcached) to reduce database queries",
        "Check whether the plugin can turn off its internal logs or statistics",
    ),
    "mem": ("This plugin may be leaking memory. Report it to its developers",),
}

_GENERIC_CONFLICT = (
    "Possible conflict detected",
    (
        "Watch the site for unexpected behavior",
        "Test the features of the plugins involved",
        "Contact the developers if you run into problems",
    ),
)

# Conflict type -> (title, actions). php_error titles are built per component.
CONFLICT_TEMPLATES: Dict[ConflictType, Tuple[str, Tuple[str, ...]]] = {
    ConflictType.DUPLICATE_FUNCTIONALITY: (
        "Remove duplicate plugins",
        (
            "Pick the plugin that best fits your needs",
            "Deactivate and delete the other plugins in the same category",
            "Take a full backup before removing any plugin",
        ),
    ),
    ConflictType.JQUERY_CONFLICT: (
        "Resolve jQuery conflict",
        (
            "Find out which plugin loads its own copy of jQuery",
            "Look for jQuery compatibility options in the plugin settings",
            "Report the conflict to the plugin developer",
            "Consider a plugin that manages script conflicts",
        ),
    ),
    ConflictType.PHP_ERROR: (
        'Fix errors in "{slug}"',
        (
            "Check the error log for the exact messages",
            "Update the plugin to its latest version",
            "Verify compatibility with your Python and host versions",
            "Report the error to the plugin developer",
        ),
    ),
    ConflictType.EXTREME_PRIORITY: (
        "Check extreme checkpoint priority",
        (
            "This may be intentional, but confirm it with the developer",
            "Check for conflicts with other plugins",
            "Watch the site for unexpected behavior",
        ),
    ),
    ConflictType.HOOK_PRIORITY: _GENERIC_CONFLICT,
    ConflictType.DUPLICATE_SCRIPT: _GENERIC_CONFLICT,
}

CODE_SNIPPETS: Dict[str, str] = {
    "cache_object": (
        "# Cache expensive lookups instead of repeating the query\n"
        "from functools import lru_cache\n\n"
        "@lru_cache(maxsize=256)\n"
        "def expensive_lookup(key):\n"
        "    ...\n\n"
        "# For a shared cache install an object cache backend (Redis, Memcached)"
    ),
    "disable_hooks": (
        "# Example: detach one callback from a checkpoint\n"
        'host.hooks.remove("checkpoint_name", callback, priority)'
    ),
    "lazy_load": (
        "# Enable lazy loading for images\n"
        'host.hooks.add("wp_lazy_loading_enabled", lambda enabled: True)'
    ),
}


class RecommendationEngine:
    """Map metrics and conflicts onto recommendations, most severe first."""

    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def generate_recommendations(
        self, metrics: Dict[str, PerformanceMetric], conflicts: List[Conflict]
    ) -> List[Recommendation]:
        recommendations = self.performance_recommendations(metrics)
        recommendations += self.conflict_recommendations(conflicts)

        # sorted() is stable, so equal severities keep their insertion order
        return sorted(recommendations, key=lambda r: r.severity.rank, reverse=True)

    def _issues(self, metric: PerformanceMetric) -> List[Tuple[str, str]]:
        issues = []
        if metric.execution_time > self.thresholds.slow_execution_seconds:
            issues.append(("cpu", f"High execution time ({metric.execution_time:.2f} s)"))
        if metric.db_queries > self.thresholds.max_db_queries:
            issues.append(("db", f"Too many database queries ({metric.db_queries})"))
        if metric.memory_usage > self.thresholds.max_memory_bytes:
            issues.append(("mem", f"High memory usage ({format_bytes(metric.memory_usage)})"))
        return issues

    def performance_recommendations(
        self, metrics: Dict[str, PerformanceMetric]
    ) -> List[Recommendation]:
        recommendations = []

        for slug, metric in metrics.items():
            issues = self._issues(metric)
            if not issues:
                continue

            actions = [CHECK_UPDATES_ACTION]
            for kind, _ in issues:
                actions.extend(ISSUE_ACTIONS[kind])
            actions.append(ASSET_MANAGER_ACTION)

            recommendations.append(
                Recommendation(
                    type=RecommendationType.PERFORMANCE,
                    severity=Severity.HIGH,
                    components=[slug],
                    title=f"Slowdown detected: {metric.name}",
                    description=f'Plugin "{metric.name}" is slowing down the site. Issues found:',
                    actions=list(dict.fromkeys(actions)),
                    issues=[message for _, message in issues],
                )
            )

        return recommendations

    def conflict_recommendations(self, conflicts: List[Conflict]) -> List[Recommendation]:
        recommendations = []

        for conflict in conflicts:
            title, actions = CONFLICT_TEMPLATES[conflict.type]
            components = list(conflict.components)
            rec_type = RecommendationType.CONFLICT

            if conflict.type is ConflictType.PHP_ERROR:
                slug = components[0] if components else ""
                title = title.format(slug=slug)
                rec_type = RecommendationType.ERROR
            elif conflict.type is ConflictType.EXTREME_PRIORITY:
                components = components[:1]
            elif conflict.type is ConflictType.JQUERY_CONFLICT:
                components = []

            recommendations.append(
                Recommendation(
                    type=rec_type,
                    severity=conflict.severity,
                    components=components,
                    title=title,
                    description=conflict.description,
                    actions=list(actions),
                )
            )

        return recommendations

    @staticmethod
    def code_snippet(kind: str) -> str:
        """Helper snippet for a recommendation kind, or ``""`` if there is none."""
        return CODE_SNIPPETS.get(kind, "")
