"""One-click optimizations, their backups and their runtime filters."""

from .backups import BackupManager
from .catalog import CATALOG, IMPACT_SCORES
from .engine import OptimizationEngine
from .filters import install_active_optimizations

__all__ = [
    "BackupManager",
    "CATALOG",
    "IMPACT_SCORES",
    "OptimizationEngine",
    "install_active_optimizations",
]
