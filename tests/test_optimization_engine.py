"""Tests for the optimization catalog and apply/revert."""

import pytest

from plugin_doctor.exceptions import OptionStoreError
from plugin_doctor.host import HookRegistry, MemoryOptionStore, ScriptRegistry
from plugin_doctor.host.options import ACTIVE_OPTIMIZATIONS_KEY
from plugin_doctor.models import BackupType, Severity
from plugin_doctor.optimization import (
    CATALOG,
    IMPACT_SCORES,
    BackupManager,
    OptimizationEngine,
    install_active_optimizations,
)
from plugin_doctor.optimization.catalog import REVISION_LIMIT


class FlakyStore(MemoryOptionStore):
    """Fails every write to a ``doctor_opt_*`` toggle."""

    def set(self, key, value):
        if key.startswith("doctor_opt_"):
            raise OptionStoreError(key, "disk full")
        super().set(key, value)


class LockedKeyStore(MemoryOptionStore):
    """Fails every write to one key."""

    def __init__(self, locked, initial=None):
        super().__init__(initial)
        self.locked = locked

    def set(self, key, value):
        if key == self.locked:
            raise OptionStoreError(key, "disk full")
        super().set(key, value)


def _engine(store, clock):
    return OptimizationEngine(store, BackupManager(store, now=clock), now=clock)


@pytest.fixture
def engine(store, clock):
    return _engine(store, clock)


class TestCatalog:
    def test_ids(self):
        assert list(CATALOG) == [
            "lazy_loading",
            "defer_js",
            "disable_emoji",
            "minify_html",
            "preload_fonts",
            "disable_embeds",
            "limit_revisions",
            "disable_heartbeat",
            "disable_xmlrpc",
            "remove_query_strings",
            "disable_self_pingbacks",
            "disable_dashicons",
            "cleanup_head",
        ]

    def test_every_entry_reversible_with_option_name(self):
        for opt_id, opt in CATALOG.items():
            assert opt.reversible
            assert opt.option_name == f"doctor_opt_{opt_id}"

    def test_limit_revisions_value(self):
        assert CATALOG["limit_revisions"].value == REVISION_LIMIT == 5

    def test_available_is_a_copy(self, engine):
        available = engine.get_available_optimizations()
        available.pop("lazy_loading")
        assert "lazy_loading" in engine.get_available_optimizations()


class TestEstimateImpact:
    @pytest.mark.parametrize(
        "impact, points", [(Severity.HIGH, 15), (Severity.MEDIUM, 8), (Severity.LOW, 3)]
    )
    def test_impact_scores(self, impact, points):
        assert IMPACT_SCORES[impact] == points

    def test_known(self, engine):
        estimate = engine.estimate_impact("lazy_loading")
        assert estimate.score_improvement == 15
        assert estimate.impact is Severity.HIGH
        assert estimate.difficulty == "easy"

    def test_unknown(self, engine):
        assert engine.estimate_impact("nope") is None


class TestApply:
    def test_disable_xmlrpc(self, engine, store):
        result = engine.apply_optimization("disable_xmlrpc")

        assert result.success
        assert result.optimization_id == "disable_xmlrpc"
        assert store.get("doctor_opt_disable_xmlrpc") is True

        backups = engine.backups.get_all_backups()
        assert len(backups) == 1
        assert backups[0].id == result.backup_id
        assert backups[0].type is BackupType.OPTIMIZATION
        assert backups[0].previous_state == {
            "options": {},
            "absent": ["doctor_opt_disable_xmlrpc"],
        }

        active = engine.get_active_optimizations()
        assert list(active) == ["disable_xmlrpc"]
        assert active["disable_xmlrpc"].backup_id == result.backup_id
        assert active["disable_xmlrpc"].applied_at == "2026-03-01 12:00:00"

    def test_limit_revisions_writes_value(self, engine, store):
        engine.apply_optimization("limit_revisions")
        assert store.get("doctor_opt_limit_revisions") == 5

    def test_unknown(self, engine):
        result = engine.apply_optimization("turbo_mode")
        assert not result.success
        assert result.message == "Optimization not found."

    def test_already_applied(self, engine):
        engine.apply_optimization("defer_js")
        result = engine.apply_optimization("defer_js")
        assert not result.success
        assert result.message == "Optimization already applied."
        assert len(engine.backups.get_all_backups()) == 1

    def test_write_failure_removes_backup(self, clock):
        store = FlakyStore()
        engine = _engine(store, clock)
        result = engine.apply_optimization("minify_html")

        assert not result.success
        assert result.message == "Error while applying the optimization."
        assert engine.backups.get_all_backups() == []
        assert not engine.is_optimization_active("minify_html")

    def test_active_record_failure_restores_absent_toggle(self, clock):
        store = LockedKeyStore(ACTIVE_OPTIMIZATIONS_KEY)
        engine = _engine(store, clock)
        result = engine.apply_optimization("disable_xmlrpc")

        assert not result.success
        assert "doctor_opt_disable_xmlrpc" not in store
        assert engine.backups.get_all_backups() == []
        assert install_active_optimizations(store, HookRegistry(), ScriptRegistry()) == []

    def test_active_record_failure_restores_previous_value(self, clock):
        store = LockedKeyStore(ACTIVE_OPTIMIZATIONS_KEY, {"doctor_opt_lazy_loading": False})
        engine = _engine(store, clock)

        assert not engine.apply_optimization("lazy_loading").success
        assert store.get("doctor_opt_lazy_loading") is False
        assert engine.backups.get_all_backups() == []

    def test_backup_kept_when_toggle_cannot_be_restored(self, clock):
        store = FlakyStore({"doctor_opt_lazy_loading": False})
        engine = _engine(store, clock)

        assert not engine.apply_optimization("lazy_loading").success
        backups = engine.backups.get_all_backups()
        assert len(backups) == 1
        assert backups[0].previous_state["options"] == {"doctor_opt_lazy_loading": False}


class TestRevert:
    def test_round_trip(self, engine, store, clock):
        applied = engine.apply_optimization("disable_xmlrpc")
        clock.advance(hours=1)
        result = engine.revert_optimization("disable_xmlrpc")

        assert result.success
        assert result.message == "Optimization reverted successfully."
        assert result.backup_id == applied.backup_id
        assert "doctor_opt_disable_xmlrpc" not in store
        assert engine.get_active_optimizations() == {}

        backup = engine.backups.get_backup(applied.backup_id)
        assert backup.rolled_back
        assert backup.rollback_time == "2026-03-01 13:00:00"

    def test_restores_previous_value(self, engine, store):
        store.set("doctor_opt_lazy_loading", False)
        engine.apply_optimization("lazy_loading")
        engine.revert_optimization("lazy_loading")
        assert store.get("doctor_opt_lazy_loading") is False

    def test_not_active(self, engine):
        result = engine.revert_optimization("lazy_loading")
        assert not result.success
        assert result.message == "Optimization is not active."

    def test_missing_backup(self, engine):
        applied = engine.apply_optimization("lazy_loading")
        engine.backups.delete_backup(applied.backup_id)

        result = engine.revert_optimization("lazy_loading")
        assert not result.success
        assert result.message == "Error while reverting the optimization."
        assert engine.is_optimization_active("lazy_loading")

    def test_apply_again_after_revert(self, engine):
        engine.apply_optimization("lazy_loading")
        engine.revert_optimization("lazy_loading")
        assert engine.apply_optimization("lazy_loading").success

    def test_revert_after_retention_window(self, engine, store, clock):
        engine.apply_optimization("lazy_loading")
        clock.advance(days=45)
        engine.apply_optimization("defer_js")

        assert engine.revert_optimization("lazy_loading").success
        assert "doctor_opt_lazy_loading" not in store


class TestForgetBackup:
    def test_drops_matching_records(self, engine, store):
        first = engine.apply_optimization("lazy_loading")
        engine.apply_optimization("defer_js")

        assert engine.forget_backup(first.backup_id) == ["lazy_loading"]
        assert list(store.get(ACTIVE_OPTIMIZATIONS_KEY)) == ["defer_js"]

    def test_unknown_backup(self, engine):
        assert engine.forget_backup("bk_missing") == []
