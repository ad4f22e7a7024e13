"""Tests for backup records and rollback."""

import pytest

from plugin_doctor.config import Thresholds
from plugin_doctor.exceptions import OptionStoreError
from plugin_doctor.host import MemoryOptionStore
from plugin_doctor.host.options import ACTIVE_OPTIMIZATIONS_KEY, BACKUPS_KEY, DISABLED_SCRIPTS_KEY
from plugin_doctor.models import BackupType
from plugin_doctor.optimization.backups import BackupManager, option_state


class ReadOnlyStore(MemoryOptionStore):
    """Rejects writes to the given keys."""

    def __init__(self, *locked, initial=None):
        super().__init__(initial)
        self.locked = set(locked)

    def set(self, key, value):
        if key in self.locked:
            raise OptionStoreError(key, "read-only")
        super().set(key, value)


@pytest.fixture
def manager(store, clock):
    return BackupManager(store, now=clock)


class TestOptionState:
    def test_present_and_absent(self, store):
        store.set("doctor_opt_a", False)
        state = option_state(store, "doctor_opt_a", "doctor_opt_b")
        assert state == {"options": {"doctor_opt_a": False}, "absent": ["doctor_opt_b"]}


class TestCreateBackup:
    def test_record_fields(self, manager, store):
        backup_id = manager.create_backup(BackupType.OPTION, "change_home", {"option_name": "home"})
        assert backup_id.startswith("bk_")

        backup = manager.get_backup(backup_id)
        assert backup.timestamp == "2026-03-01 12:00:00"
        assert backup.type is BackupType.OPTION
        assert backup.action == "change_home"
        assert backup.can_rollback is True
        assert backup.rolled_back is False
        assert backup.rollback_time is None
        assert store.get(BACKUPS_KEY)[0]["id"] == backup_id

    def test_ids_are_unique(self, manager):
        ids = {manager.create_backup(BackupType.OPTION, "x", {}) for _ in range(20)}
        assert len(ids) == 20

    def test_keeps_most_recent(self, store, clock):
        manager = BackupManager(store, Thresholds(max_backups=3), now=clock)
        ids = []
        for _ in range(5):
            ids.append(manager.create_backup(BackupType.OPTION, "x", {}))
            clock.advance(minutes=1)
        assert [b.id for b in manager.get_all_backups()] == ids[-3:]

    def test_same_timestamp_keeps_insertion_order(self, store, clock):
        manager = BackupManager(store, Thresholds(max_backups=2), now=clock)
        ids = [manager.create_backup(BackupType.OPTION, str(i), {}) for i in range(4)]
        assert [b.id for b in manager.get_all_backups()] == ids[-2:]

    def test_retention_window(self, manager, clock):
        old = manager.create_backup(BackupType.OPTION, "old", {})
        clock.advance(days=31)
        new = manager.create_backup(BackupType.OPTION, "new", {})
        assert [b.id for b in manager.get_all_backups()] == [new]
        assert manager.get_backup(old) is None

    def test_active_optimization_backup_survives_retention(self, manager, store, clock):
        pinned = manager.create_backup(BackupType.OPTIMIZATION, "lazy_loading", {})
        store.set(
            ACTIVE_OPTIMIZATIONS_KEY,
            {"lazy_loading": {"applied_at": "2026-03-01 12:00:00", "backup_id": pinned}},
        )
        clock.advance(days=60)
        new = manager.create_backup(BackupType.OPTION, "new", {})
        assert [b.id for b in manager.get_all_backups()] == [pinned, new]

    def test_active_optimization_backup_counts_toward_cap(self, store, clock):
        manager = BackupManager(store, Thresholds(max_backups=3), now=clock)
        pinned = manager.create_backup(BackupType.OPTIMIZATION, "defer_js", {})
        store.set(ACTIVE_OPTIMIZATIONS_KEY, {"defer_js": {"backup_id": pinned}})
        ids = []
        for _ in range(4):
            clock.advance(minutes=1)
            ids.append(manager.create_backup(BackupType.OPTION, "x", {}))
        assert [b.id for b in manager.get_all_backups()] == [pinned, *ids[-2:]]

    def test_write_failure_raises(self, clock):
        manager = BackupManager(ReadOnlyStore(BACKUPS_KEY), now=clock)
        with pytest.raises(OptionStoreError):
            manager.create_backup(BackupType.OPTION, "x", {})


class TestRollback:
    def test_optimization_state(self, manager, store, clock):
        store.set("doctor_opt_a", "before")
        backup_id = manager.create_backup(
            BackupType.OPTIMIZATION, "a", option_state(store, "doctor_opt_a", "doctor_opt_b")
        )
        store.set("doctor_opt_a", "after")
        store.set("doctor_opt_b", True)

        clock.advance(minutes=5)
        assert manager.rollback(backup_id) is True
        assert store.get("doctor_opt_a") == "before"
        assert "doctor_opt_b" not in store

        backup = manager.get_backup(backup_id)
        assert backup.rolled_back is True
        assert backup.rollback_time == "2026-03-01 12:05:00"

    def test_only_once(self, manager):
        backup_id = manager.create_backup(BackupType.OPTIMIZATION, "a", {"options": {}, "absent": []})
        assert manager.rollback(backup_id) is True
        assert manager.rollback(backup_id) is False

    def test_unknown_id(self, manager):
        assert manager.rollback("bk_missing") is False

    def test_not_rollbackable(self, manager, store):
        store.set(
            BACKUPS_KEY,
            [
                {
                    "id": "bk_fixed",
                    "timestamp": "2026-03-01 11:00:00",
                    "type": "option",
                    "action": "x",
                    "previous_state": {"option_name": "home", "option_value": "old"},
                    "can_rollback": False,
                }
            ],
        )
        assert manager.rollback("bk_fixed") is False
        assert "home" not in store

    def test_script_conflict_state(self, manager, store):
        backup_id = manager.create_backup(
            BackupType.SCRIPT_CONFLICT, "disable", {"disabled_scripts": ["old"]}
        )
        store.set(DISABLED_SCRIPTS_KEY, ["old", "new"])
        assert manager.rollback(backup_id) is True
        assert store.get(DISABLED_SCRIPTS_KEY) == ["old"]

    def test_script_conflict_empty_list_deletes(self, manager, store):
        backup_id = manager.create_backup(BackupType.SCRIPT_CONFLICT, "disable", {"disabled_scripts": []})
        store.set(DISABLED_SCRIPTS_KEY, ["new"])
        assert manager.rollback(backup_id) is True
        assert DISABLED_SCRIPTS_KEY not in store

    def test_option_state(self, manager, store):
        backup_id = manager.create_backup(
            BackupType.OPTION, "home", {"option_name": "home", "option_value": "http://old"}
        )
        store.set("home", "http://new")
        assert manager.rollback(backup_id) is True
        assert store.get("home") == "http://old"

    def test_option_without_name_fails(self, manager):
        backup_id = manager.create_backup(BackupType.OPTION, "broken", {})
        assert manager.rollback(backup_id) is False
        assert manager.get_backup(backup_id).rolled_back is False

    def test_store_failure_reports_false(self, clock):
        store = ReadOnlyStore("home")
        manager = BackupManager(store, now=clock)
        backup_id = manager.create_backup(
            BackupType.OPTION, "home", {"option_name": "home", "option_value": "x"}
        )
        assert manager.rollback(backup_id) is False
        assert manager.get_backup(backup_id).rolled_back is False


class TestManagement:
    def test_delete_backup(self, manager):
        backup_id = manager.create_backup(BackupType.OPTION, "x", {})
        assert manager.delete_backup(backup_id) is True
        assert manager.delete_backup(backup_id) is False

    def test_delete_all(self, manager, store):
        manager.create_backup(BackupType.OPTION, "x", {})
        manager.delete_all_backups()
        assert manager.get_all_backups() == []
        assert BACKUPS_KEY not in store

    def test_stats(self, manager):
        first = manager.create_backup(BackupType.OPTION, "home", {"option_name": "home"})
        manager.create_backup(BackupType.OPTIMIZATION, "a", {"options": {}, "absent": []})
        manager.create_backup(BackupType.OPTIMIZATION, "b", {"options": {}, "absent": []})
        manager.rollback(first)

        stats = manager.get_stats()
        assert stats.total == 3
        assert stats.rolled_back == 1
        assert stats.active == 2
        assert stats.by_type == {"option": 1, "optimization": 2}

    def test_corrupt_list_is_ignored(self, manager, store):
        store.set(BACKUPS_KEY, "garbage")
        assert manager.get_all_backups() == []
