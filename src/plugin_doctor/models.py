"""Data models for Plugin Doctor.

Every record here is a plain dataclass. Conversion to JSON-able dicts happens
only in :mod:`plugin_doctor.serializers`.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class LoadLevel(Enum):
    """Relative cost classification of a component."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort weight: high=3, medium=2, low=1."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


class ConflictType(Enum):
    HOOK_PRIORITY = "hook_priority"
    EXTREME_PRIORITY = "extreme_priority"
    JQUERY_CONFLICT = "jquery_conflict"
    DUPLICATE_SCRIPT = "duplicate_script"
    DUPLICATE_FUNCTIONALITY = "duplicate_functionality"
    PHP_ERROR = "php_error"

    @property
    def severity(self) -> Severity:
        return CONFLICT_SEVERITY[self]


# Exhaustive: every ConflictType must appear here (checked at import below)
CONFLICT_SEVERITY: Dict[ConflictType, Severity] = {
    ConflictType.PHP_ERROR: Severity.HIGH,
    ConflictType.DUPLICATE_FUNCTIONALITY: Severity.HIGH,
    ConflictType.JQUERY_CONFLICT: Severity.HIGH,
    ConflictType.EXTREME_PRIORITY: Severity.MEDIUM,
    ConflictType.HOOK_PRIORITY: Severity.MEDIUM,
    ConflictType.DUPLICATE_SCRIPT: Severity.LOW,
}

_unmapped = set(ConflictType) - set(CONFLICT_SEVERITY)
if _unmapped:
    raise RuntimeError(f"Conflict types without severity: {sorted(t.value for t in _unmapped)}")


class RecommendationType(Enum):
    PERFORMANCE = "performance"
    CONFLICT = "conflict"
    ERROR = "error"


class TrendDirection(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class BackupType(Enum):
    """What a backup record knows how to restore."""

    OPTIMIZATION = "optimization"
    SCRIPT_CONFLICT = "script_conflict"
    OPTION = "option"


# ---------------------------------------------------------------------------
# Components and metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentRecord:
    """An active plugin as discovered on disk."""

    slug: str
    name: str
    version: str
    author: str
    description: str
    file: str  # entry file relative to the plugins directory, e.g. "seo/seo.py"
    path: Path  # absolute entry file
    directory: Path  # absolute owning directory


@dataclass
class HookDetail:
    count: int = 0
    time: float = 0.0
    queries: int = 0
    memory: int = 0
    priorities: List[int] = field(default_factory=list)


@dataclass
class PerformanceMetric:
    """Estimated cost of one component for a single analysis pass."""

    slug: str
    name: str
    execution_time: float = 0.0  # seconds
    db_queries: int = 0
    memory_usage: int = 0  # bytes
    hook_count: int = 0
    hooks_detail: Dict[str, HookDetail] = field(default_factory=dict)
    load_level: LoadLevel = LoadLevel.LOW
    load_score: float = 0.0  # 0-100


@dataclass(frozen=True)
class CallbackImpact:
    time: float
    queries: int
    memory: int


# ---------------------------------------------------------------------------
# Conflicts and recommendations
# ---------------------------------------------------------------------------


@dataclass
class Conflict:
    type: ConflictType
    severity: Severity
    components: List[str]
    description: str
    details: Dict[str, Any]
    key: str  # dedup key, stable for (type, sorted components, details)
    locations: Dict[str, Dict[str, str]] = field(default_factory=dict)


@dataclass
class Recommendation:
    type: RecommendationType
    severity: Severity
    components: List[str]
    title: str
    description: str
    actions: List[str]
    issues: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


@dataclass
class SubScore:
    key: str  # plugin_load | conflicts | database | memory | hooks
    score: int
    label: str
    value: str
    description: str


@dataclass
class ScoreSnapshot:
    overall_score: int
    grade: str
    metrics: Dict[str, SubScore]
    timestamp: str  # "YYYY-MM-DD HH:MM:SS"


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection = TrendDirection.STABLE
    change: int = 0


# ---------------------------------------------------------------------------
# Optimizations and backups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Optimization:
    id: str
    name: str
    description: str
    impact: Severity  # reuses high/medium/low
    difficulty: str  # easy | medium
    reversible: bool
    value: Any  # value written to doctor_opt_<id>
    applied_message: str

    @property
    def option_name(self) -> str:
        return f"doctor_opt_{self.id}"


@dataclass(frozen=True)
class ImpactEstimate:
    score_improvement: int
    impact: Severity
    difficulty: str


@dataclass
class ActiveOptimization:
    applied_at: str
    backup_id: str


@dataclass
class BackupRecord:
    id: str
    timestamp: str
    type: BackupType
    action: str
    previous_state: Dict[str, Any]
    can_rollback: bool = True
    rolled_back: bool = False
    rollback_time: Optional[str] = None


@dataclass
class BackupStats:
    total: int = 0
    rolled_back: int = 0
    active: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)


@dataclass
class ActionResult:
    """Outcome of a mutating operation, consumed by callers instead of exceptions."""

    success: bool
    message: str
    optimization_id: Optional[str] = None
    backup_id: Optional[str] = None


@dataclass
class AnalysisReport:
    """Everything one full analysis pass produces."""

    metrics: Dict[str, PerformanceMetric]
    conflicts: List[Conflict]
    recommendations: List[Recommendation]
    score: ScoreSnapshot
    trend: Trend
    optimizations: Dict[str, Optimization]
    active_optimizations: Dict[str, ActiveOptimization] = field(default_factory=dict)
