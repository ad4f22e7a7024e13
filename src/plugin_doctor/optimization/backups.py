"""
Backups of option state taken before a change, and rollback from them.

Backups live as a list of plain dicts under ``doctor_backups``. Every write
prunes the list: records older than the retention window go first, then only
the most recent ``max_backups`` are kept. Backups referenced by an active
optimization record are never pruned.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from ..config import DEFAULT_THRESHOLDS, Thresholds
from ..exceptions import OptionStoreError
from ..formatting import format_timestamp, parse_timestamp
from ..host.options import ACTIVE_OPTIMIZATIONS_KEY, BACKUPS_KEY, DISABLED_SCRIPTS_KEY, OptionStore
from ..logging_config import get_logger
from ..models import BackupRecord, BackupStats, BackupType
from ..serializers import backup_from_dict, backup_to_dict

logger = get_logger(__name__)


def option_state(store: OptionStore, *names: str) -> Dict[str, Any]:
    """Capture options for an ``optimization`` backup.

    Options that do not exist are listed under ``absent`` so rollback can
    delete them instead of writing a placeholder value.
    """
    state: Dict[str, Any] = {"options": {}, "absent": []}
    for name in names:
        if name in store.keys():
            state["options"][name] = store.get(name)
        else:
            state["absent"].append(name)
    return state


def restore_option_state(store: OptionStore, state: Dict[str, Any]) -> None:
    """Put back what :func:`option_state` captured. May raise OptionStoreError."""
    for name, value in (state.get("options") or {}).items():
        store.set(name, value)
    for name in state.get("absent") or []:
        store.delete(name)


class BackupManager:
    def __init__(
        self,
        store: OptionStore,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.thresholds = thresholds
        self.now = now

    # ------------------------------------------------------------------
    # storage
    # ------------------------------------------------------------------

    def _load(self) -> List[BackupRecord]:
        raw = self.store.get(BACKUPS_KEY, [])
        if not isinstance(raw, list):
            return []
        return [backup_from_dict(entry) for entry in raw if isinstance(entry, dict) and "id" in entry]

    def _save(self, backups: List[BackupRecord]) -> None:
        self.store.set(BACKUPS_KEY, [backup_to_dict(b) for b in backups])

    def _pinned_ids(self) -> Set[str]:
        """Backups still needed to revert an active optimization."""
        active = self.store.get(ACTIVE_OPTIMIZATIONS_KEY, {}) or {}
        if not isinstance(active, dict):
            return set()
        return {
            entry["backup_id"]
            for entry in active.values()
            if isinstance(entry, dict) and entry.get("backup_id")
        }

    def _prune(self, backups: List[BackupRecord]) -> List[BackupRecord]:
        cutoff = self.now() - timedelta(days=self.thresholds.backup_retention_days)
        pinned = self._pinned_ids()

        kept = []
        for backup in backups:
            try:
                created = parse_timestamp(backup.timestamp)
            except ValueError:
                if backup.id not in pinned:
                    logger.debug(f"Dropping backup {backup.id} with bad timestamp {backup.timestamp!r}")
                    continue
                created = datetime.min
            if created > cutoff or backup.id in pinned:
                kept.append((created, backup))

        # Stable sort keeps insertion order among equal timestamps
        kept.sort(key=lambda pair: pair[0])

        # Pinned backups always survive and use up part of the cap
        unpinned = [backup.id for _, backup in kept if backup.id not in pinned]
        room = max(self.thresholds.max_backups - (len(kept) - len(unpinned)), 0)
        keep_ids = pinned | set(unpinned[len(unpinned) - room :] if room else [])
        return [backup for _, backup in kept if backup.id in keep_ids]

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def create_backup(self, backup_type: BackupType, action: str, previous_state: Dict[str, Any]) -> str:
        """Record *previous_state* and return the new backup id.

        Raises:
            OptionStoreError: If the backup list cannot be written.
        """
        backup = BackupRecord(
            id=f"bk_{uuid.uuid4().hex}",
            timestamp=format_timestamp(self.now()),
            type=backup_type,
            action=action,
            previous_state=previous_state,
        )

        backups = self._load()
        backups.append(backup)
        self._save(self._prune(backups))

        logger.debug(f"Created {backup_type.value} backup {backup.id} for {action}")
        return backup.id

    def rollback(self, backup_id: str) -> bool:
        """Restore the state captured by *backup_id*.

        Returns False for an unknown id, a backup that cannot be rolled back,
        one already rolled back, or a restore that fails.
        """
        backups = self._load()
        backup = next((b for b in backups if b.id == backup_id), None)

        if backup is None or not backup.can_rollback or backup.rolled_back:
            return False

        try:
            restored = self._restore_state(backup.type, backup.previous_state)
        except OptionStoreError as e:
            logger.warning(f"Rollback of {backup_id} failed: {e}")
            return False

        if not restored:
            return False

        backup.rolled_back = True
        backup.rollback_time = format_timestamp(self.now())
        self._save(backups)

        logger.info(f"Rolled back {backup.type.value} backup {backup_id} ({backup.action})")
        return True

    def _restore_state(self, backup_type: BackupType, state: Dict[str, Any]) -> bool:
        if backup_type is BackupType.OPTIMIZATION:
            restore_option_state(self.store, state)
            return True

        if backup_type is BackupType.SCRIPT_CONFLICT:
            if "disabled_scripts" in state:
                self.store.delete(DISABLED_SCRIPTS_KEY)
                if state["disabled_scripts"]:
                    self.store.set(DISABLED_SCRIPTS_KEY, state["disabled_scripts"])
            return True

        if backup_type is BackupType.OPTION:
            name = state.get("option_name")
            if not name:
                return False
            if "option_value" in state:
                self.store.set(name, state["option_value"])
            else:
                self.store.delete(name)
            return True

        return False

    def get_all_backups(self) -> List[BackupRecord]:
        return self._load()

    def get_backup(self, backup_id: str) -> Optional[BackupRecord]:
        return next((b for b in self._load() if b.id == backup_id), None)

    def delete_backup(self, backup_id: str) -> bool:
        backups = self._load()
        remaining = [b for b in backups if b.id != backup_id]
        if len(remaining) == len(backups):
            return False
        self._save(remaining)
        return True

    def delete_all_backups(self) -> None:
        self.store.delete(BACKUPS_KEY)

    def get_stats(self) -> BackupStats:
        stats = BackupStats()
        for backup in self._load():
            stats.total += 1
            if backup.rolled_back:
                stats.rolled_back += 1
            else:
                stats.active += 1
            stats.by_type[backup.type.value] = stats.by_type.get(backup.type.value, 0) + 1
        return stats
