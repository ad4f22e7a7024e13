"""
Conversion between typed records and plain dicts.

Everything written to the option store or emitted as JSON passes through
here; the rest of the package only handles dataclasses.
"""

from typing import Any, Dict, List

from .models import (
    ActiveOptimization,
    AnalysisReport,
    BackupRecord,
    BackupStats,
    BackupType,
    Conflict,
    Optimization,
    PerformanceMetric,
    Recommendation,
    ScoreSnapshot,
    SubScore,
    Trend,
)

# ── Metrics, conflicts, recommendations ──────────────────────────────


def metric_to_dict(metric: PerformanceMetric) -> Dict[str, Any]:
    return {
        "name": metric.name,
        "slug": metric.slug,
        "execution_time": metric.execution_time,
        "db_queries": metric.db_queries,
        "memory_usage": metric.memory_usage,
        "hook_count": metric.hook_count,
        "hooks_detail": {
            checkpoint: {
                "count": d.count,
                "time": d.time,
                "queries": d.queries,
                "memory": d.memory,
                "priority": list(d.priorities),
            }
            for checkpoint, d in metric.hooks_detail.items()
        },
        "load_level": metric.load_level.value,
        "load_score": metric.load_score,
    }


def conflict_to_dict(conflict: Conflict) -> Dict[str, Any]:
    return {
        "key": conflict.key,
        "type": conflict.type.value,
        "severity": conflict.severity.value,
        "plugins": list(conflict.components),
        "plugin_paths": dict(conflict.locations),
        "description": conflict.description,
        "details": conflict.details,
    }


def recommendation_to_dict(rec: Recommendation) -> Dict[str, Any]:
    return {
        "type": rec.type.value,
        "severity": rec.severity.value,
        "plugin": ", ".join(rec.components),
        "title": rec.title,
        "description": rec.description,
        "issues": list(rec.issues),
        "actions": list(rec.actions),
    }


# ── Scores ───────────────────────────────────────────────────────────


def snapshot_to_dict(snapshot: ScoreSnapshot) -> Dict[str, Any]:
    return {
        "overall_score": snapshot.overall_score,
        "grade": snapshot.grade,
        "metrics": {
            key: {
                "score": sub.score,
                "label": sub.label,
                "value": sub.value,
                "description": sub.description,
            }
            for key, sub in snapshot.metrics.items()
        },
        "timestamp": snapshot.timestamp,
    }


def snapshot_from_dict(data: Dict[str, Any]) -> ScoreSnapshot:
    return ScoreSnapshot(
        overall_score=int(data.get("overall_score", 0)),
        grade=data.get("grade", ""),
        metrics={
            key: SubScore(
                key=key,
                score=int(sub.get("score", 0)),
                label=sub.get("label", ""),
                value=sub.get("value", ""),
                description=sub.get("description", ""),
            )
            for key, sub in (data.get("metrics") or {}).items()
        },
        timestamp=data.get("timestamp", ""),
    )


def trend_to_dict(trend: Trend) -> Dict[str, Any]:
    return {"direction": trend.direction.value, "change": trend.change}


# ── Optimizations and backups ────────────────────────────────────────


def optimization_to_dict(opt: Optimization) -> Dict[str, Any]:
    return {
        "id": opt.id,
        "name": opt.name,
        "description": opt.description,
        "impact": opt.impact.value,
        "difficulty": opt.difficulty,
        "reversible": opt.reversible,
    }


def active_to_dict(active: ActiveOptimization) -> Dict[str, Any]:
    return {"applied_at": active.applied_at, "backup_id": active.backup_id}


def active_from_dict(data: Dict[str, Any]) -> ActiveOptimization:
    return ActiveOptimization(applied_at=data.get("applied_at", ""), backup_id=data.get("backup_id", ""))


def backup_to_dict(backup: BackupRecord) -> Dict[str, Any]:
    return {
        "id": backup.id,
        "timestamp": backup.timestamp,
        "type": backup.type.value,
        "action": backup.action,
        "previous_state": backup.previous_state,
        "can_rollback": backup.can_rollback,
        "rolled_back": backup.rolled_back,
        "rollback_time": backup.rollback_time,
    }


def backup_from_dict(data: Dict[str, Any]) -> BackupRecord:
    return BackupRecord(
        id=data["id"],
        timestamp=data.get("timestamp", ""),
        type=BackupType(data.get("type", BackupType.OPTION.value)),
        action=data.get("action", ""),
        previous_state=dict(data.get("previous_state") or {}),
        can_rollback=bool(data.get("can_rollback", True)),
        rolled_back=bool(data.get("rolled_back", False)),
        rollback_time=data.get("rollback_time"),
    )


def stats_to_dict(stats: BackupStats) -> Dict[str, Any]:
    return {
        "total": stats.total,
        "rolled_back": stats.rolled_back,
        "active": stats.active,
        "by_type": dict(stats.by_type),
    }


# ── Reports ──────────────────────────────────────────────────────────


def report_to_dict(report: AnalysisReport) -> Dict[str, Any]:
    return {
        "performance": {slug: metric_to_dict(m) for slug, m in report.metrics.items()},
        "conflicts": conflicts_to_list(report.conflicts),
        "recommendations": [recommendation_to_dict(r) for r in report.recommendations],
        "score": snapshot_to_dict(report.score),
        "trend": trend_to_dict(report.trend),
        "optimizations": {oid: optimization_to_dict(o) for oid, o in report.optimizations.items()},
        "active_optimizations": {
            oid: active_to_dict(a) for oid, a in report.active_optimizations.items()
        },
    }


def conflicts_to_list(conflicts: List[Conflict]) -> List[Dict[str, Any]]:
    return [conflict_to_dict(c) for c in conflicts]
