"""Apply and revert catalog optimizations, with a backup for every change."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import OptionStoreError
from ..formatting import format_timestamp
from ..host.options import ACTIVE_OPTIMIZATIONS_KEY, OptionStore
from ..logging_config import get_logger
from ..models import ActionResult, ActiveOptimization, BackupType, ImpactEstimate, Optimization
from ..serializers import active_from_dict, active_to_dict
from .backups import BackupManager, option_state, restore_option_state
from .catalog import CATALOG, IMPACT_SCORES

logger = get_logger(__name__)


class OptimizationEngine:
    def __init__(
        self,
        store: OptionStore,
        backups: BackupManager,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.backups = backups
        self.now = now

    def get_available_optimizations(self) -> Dict[str, Optimization]:
        return dict(CATALOG)

    def estimate_impact(self, optimization_id: str) -> Optional[ImpactEstimate]:
        opt = CATALOG.get(optimization_id)
        if opt is None:
            return None
        return ImpactEstimate(
            score_improvement=IMPACT_SCORES.get(opt.impact, 0),
            impact=opt.impact,
            difficulty=opt.difficulty,
        )

    # ------------------------------------------------------------------
    # active records
    # ------------------------------------------------------------------

    def get_active_optimizations(self) -> Dict[str, ActiveOptimization]:
        raw = self.store.get(ACTIVE_OPTIMIZATIONS_KEY, {}) or {}
        return {oid: active_from_dict(entry) for oid, entry in raw.items()}

    def _save_active(self, active: Dict[str, ActiveOptimization]) -> None:
        self.store.set(ACTIVE_OPTIMIZATIONS_KEY, {oid: active_to_dict(a) for oid, a in active.items()})

    def is_optimization_active(self, optimization_id: str) -> bool:
        return optimization_id in self.get_active_optimizations()

    def forget_backup(self, backup_id: str) -> List[str]:
        """Drop active records that point at *backup_id*. Returns their ids."""
        active = self.get_active_optimizations()
        dropped = [oid for oid, record in active.items() if record.backup_id == backup_id]
        if dropped:
            for oid in dropped:
                del active[oid]
            self._save_active(active)
        return dropped

    # ------------------------------------------------------------------
    # apply / revert
    # ------------------------------------------------------------------

    def apply_optimization(self, optimization_id: str) -> ActionResult:
        opt = CATALOG.get(optimization_id)
        if opt is None:
            return ActionResult(False, "Optimization not found.", optimization_id)

        if self.is_optimization_active(optimization_id):
            return ActionResult(False, "Optimization already applied.", optimization_id)

        previous = option_state(self.store, opt.option_name)
        try:
            backup_id = self.backups.create_backup(BackupType.OPTIMIZATION, optimization_id, previous)
        except OptionStoreError as e:
            logger.warning(f"Could not back up before applying {optimization_id}: {e}")
            return ActionResult(False, "Could not create a backup.", optimization_id)

        try:
            self.store.set(opt.option_name, opt.value)
            active = self.get_active_optimizations()
            active[optimization_id] = ActiveOptimization(
                applied_at=format_timestamp(self.now()), backup_id=backup_id
            )
            self._save_active(active)
        except OptionStoreError as e:
            logger.warning(f"Applying {optimization_id} failed: {e}")
            self._undo_apply(optimization_id, previous, backup_id)
            return ActionResult(False, "Error while applying the optimization.", optimization_id)

        logger.info(f"Applied optimization {optimization_id} (backup {backup_id})")
        return ActionResult(True, opt.applied_message, optimization_id, backup_id)

    def _undo_apply(self, optimization_id: str, previous: Dict[str, Any], backup_id: str) -> None:
        """Put the toggle back as it was, then drop the now unused backup.

        The backup is kept when the toggle cannot be restored, so a manual
        rollback is still possible.
        """
        try:
            restore_option_state(self.store, previous)
        except OptionStoreError as e:
            logger.error(
                f"Could not restore {optimization_id} after a failed apply; "
                f"roll back backup {backup_id} by hand: {e}"
            )
            return
        try:
            self.backups.delete_backup(backup_id)
        except OptionStoreError as e:
            logger.warning(f"Could not delete unused backup {backup_id}: {e}")

    def revert_optimization(self, optimization_id: str) -> ActionResult:
        active = self.get_active_optimizations()
        record = active.get(optimization_id)
        if record is None:
            return ActionResult(False, "Optimization is not active.", optimization_id)

        if not record.backup_id or not self.backups.rollback(record.backup_id):
            return ActionResult(
                False, "Error while reverting the optimization.", optimization_id, record.backup_id
            )

        del active[optimization_id]
        self._save_active(active)

        logger.info(f"Reverted optimization {optimization_id}")
        return ActionResult(
            True, "Optimization reverted successfully.", optimization_id, record.backup_id
        )
