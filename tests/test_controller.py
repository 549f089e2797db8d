"""Tests for the session controller."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeRemover
from ratifact.core import modal
from ratifact.core.controller import SessionController
from ratifact.core.watcher import BuildWatcher
from ratifact.models.session import Panel, PendingAction
from ratifact.settings import Config
from ratifact.storage import StoreError


class DeferredSpawner:
    """Queues background units until the test runs them."""

    def __init__(self):
        self.pending = []

    def __call__(self, target, *args, name=None):
        self.pending.append((name, target, args))

    def run_all(self):
        while self.pending:
            _, target, args = self.pending.pop(0)
            target(*args)


class BrokenStore:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise StoreError("disk I/O error")

        return _fail


def _type(controller, text):
    for char in text:
        controller.handle_key(char)


def _seed(store, *paths):
    for path in paths:
        store.log_build(os.path.dirname(path), "Rust", path, 1024)


class TestScanning:
    def test_first_tick_scans_and_delivers_once(self, make_controller, project_tree):
        root = str(project_tree)
        controller = make_controller(Config(scan_paths=[root]))

        controller.tick()

        target = str(project_tree / "proj" / "target")
        assert controller.state.artifacts == [target]
        assert controller.state.scanned
        assert not controller.state.scanning
        assert f"Scan complete for {root}. Found 1 artifacts." in controller.logs.snapshot()
        assert isinstance(controller.modal.popup, modal.Info)
        assert controller.modal.popup.message == "Scan complete. Found 1 artifacts."

        controller.tick()
        assert controller.results.take() is None

    def test_second_trigger_while_scanning_is_noop(self, make_controller, project_tree):
        spawner = DeferredSpawner()
        controller = make_controller(Config(scan_paths=[str(project_tree)]), spawn=spawner)

        controller.tick()
        assert controller.state.scanning
        assert isinstance(controller.modal.popup, modal.Scanning)
        assert controller.trigger_scan() is False

        controller.handle_key("escape")
        controller.handle_key("s")
        controller.tick()
        assert len(spawner.pending) == 1
        assert controller.state.scanning

        spawner.run_all()
        controller.tick()
        assert not controller.state.scanning
        assert controller.state.artifacts == [str(project_tree / "proj" / "target")]

    def test_scan_records_history(self, make_controller, project_tree, store):
        controller = make_controller(Config(scan_paths=[str(project_tree)]))
        controller.tick()

        assert controller.state.total_builds == 1
        assert controller.state.build_history[0].startswith(f"{project_tree / 'proj'} - Rust - ")
        assert controller.state.chart_data == [(str(project_tree / "proj" / "target"), 2048)]

    def test_scan_registers_watches(self, make_controller, project_tree):
        watcher = BuildWatcher()
        controller = make_controller(Config(scan_paths=[str(project_tree)]), watcher=watcher)
        controller.tick()
        assert watcher.watched == [str(project_tree / "proj" / "target")]


class TestMainKeys:
    def test_keys_ignored_while_popup_open(self, make_controller, project_tree):
        spawner = DeferredSpawner()
        controller = make_controller(Config(scan_paths=[str(project_tree)]), spawn=spawner)
        controller.modal.open(modal.Info("hello"))

        controller.handle_key("s")

        assert controller.modal.popup is None
        assert not controller.state.scanning
        assert spawner.pending == []

    def test_quit(self, make_controller):
        controller = make_controller()
        controller.handle_key("q")
        assert controller.state.should_quit

    def test_q_typed_into_input_does_not_quit(self, make_controller):
        controller = make_controller()
        controller.modal.open(modal.Input(prompt="Scan Path"))
        controller.handle_key("q")
        assert not controller.state.should_quit
        assert controller.modal.popup.buffer == "q"

    def test_tab_cycles_focus(self, make_controller):
        controller = make_controller()
        seen = []
        for _ in range(5):
            controller.handle_key("tab")
            seen.append(controller.state.focused_panel)
        assert seen == [Panel.HISTORY, Panel.CHARTS, Panel.SETTINGS, Panel.SUMMARY, Panel.ARTIFACTS]

    def test_selection_is_clamped(self, make_controller, store):
        _seed(store, "/p/a/target", "/p/b/target")
        controller = make_controller()

        for _ in range(5):
            controller.handle_key("down")
        assert controller.state.selected == 1
        for _ in range(5):
            controller.handle_key("pageup")
        assert controller.state.selected == 0

    def test_enter_opens_panel_popup(self, make_controller, store):
        _seed(store, "/p/a/target")
        controller = make_controller()

        controller.handle_key("enter")
        assert isinstance(controller.modal.popup, modal.ArtifactActions)
        controller.handle_key("escape")

        controller.state.focused_panel = Panel.SETTINGS
        controller.handle_key("enter")
        assert isinstance(controller.modal.popup, modal.SettingsList)

    def test_enter_without_artifacts_does_nothing(self, make_controller):
        controller = make_controller()
        controller.handle_key("enter")
        assert controller.modal.popup is None

    def test_shift_d_opens_clear_all(self, make_controller):
        controller = make_controller()
        controller.handle_key("D")
        assert isinstance(controller.modal.popup, modal.ClearAllConfirmation)

    def test_logs_popup_shares_buffer(self, make_controller):
        controller = make_controller()
        controller.handle_key("l")
        assert controller.modal.popup.logs is controller.logs


class TestSingleDelete:
    ARTIFACT = "/p/proj/target"

    def test_passwordless_success(self, make_controller, store):
        _seed(store, self.ARTIFACT)
        controller = make_controller(remover=FakeRemover())

        controller.handle_key("d")
        controller.handle_key("enter")

        assert controller.state.artifacts == []
        assert controller.modal.popup.message == "Artifact deleted."
        assert store.count_builds() == 0

    def test_credential_prompt_then_success(self, make_controller, store):
        _seed(store, self.ARTIFACT)
        remover = FakeRemover(needs_password={self.ARTIFACT})
        controller = make_controller(remover=remover)

        controller.handle_key("d")
        controller.handle_key("enter")

        popup = controller.modal.popup
        assert isinstance(popup, modal.Input)
        assert popup.prompt == modal.CREDENTIAL_PROMPT
        assert controller.state.pending_action == PendingAction.DELETE

        _type(controller, "secret")
        controller.handle_key("enter")

        assert controller.state.artifacts == []
        assert controller.state.pending_action is None
        assert controller.modal.popup.message == "Artifact deleted successfully."
        assert remover.calls == [(self.ARTIFACT, None), (self.ARTIFACT, "secret")]
        assert store.count_builds() == 0

    def test_wrong_credential_keeps_artifact(self, make_controller, store):
        _seed(store, self.ARTIFACT)
        controller = make_controller(remover=FakeRemover(needs_password={self.ARTIFACT}))

        controller.handle_key("d")
        controller.handle_key("enter")
        _type(controller, "nope")
        controller.handle_key("enter")

        assert controller.state.artifacts == [self.ARTIFACT]
        assert controller.state.pending_action is None
        assert "Deletion failed" in controller.modal.popup.message
        assert store.count_builds() == 1

    def test_escape_on_prompt_clears_pending_action(self, make_controller, store):
        _seed(store, self.ARTIFACT)
        controller = make_controller(remover=FakeRemover(needs_password={self.ARTIFACT}))

        controller.handle_key("d")
        controller.handle_key("enter")
        controller.handle_key("escape")

        assert controller.modal.popup is None
        assert controller.state.pending_action is None
        assert controller.state.artifacts == [self.ARTIFACT]

    def test_selection_clamped_after_delete(self, make_controller, store):
        _seed(store, "/p/a/target", "/p/b/target")
        controller = make_controller(remover=FakeRemover())
        controller.handle_key("down")
        assert controller.state.selected == 1

        controller.handle_key("d")
        controller.handle_key("enter")

        assert len(controller.state.artifacts) == 1
        assert controller.state.selected == 0


class TestClearAll:
    PATHS = ("/p/a/target", "/p/b/node_modules", "/p/c/build")

    def test_all_succeed(self, make_controller, store):
        _seed(store, *self.PATHS)
        controller = make_controller(remover=FakeRemover())

        controller.handle_key("D")
        controller.handle_key("y")

        assert controller.state.artifacts == []
        assert controller.state.pending_action is None
        assert store.count_builds() == 0
        assert controller.modal.popup.message == "All builds cleared."

    def test_retry_of_failed_subset(self, make_controller, store):
        _seed(store, *self.PATHS)
        remover = FakeRemover(needs_password={"/p/c/build"})
        controller = make_controller(remover=remover)

        controller.handle_key("D")
        controller.handle_key("y")

        assert controller.state.pending_failed_paths == ["/p/c/build"]
        assert controller.state.pending_action == PendingAction.CLEAR_ALL
        assert controller.modal.popup.prompt == modal.CREDENTIAL_PROMPT

        _type(controller, "secret")
        controller.handle_key("enter")

        assert controller.state.artifacts == []
        assert controller.state.pending_failed_paths == []
        assert controller.state.pending_action is None
        assert store.count_builds() == 0
        assert remover.calls[-1] == ("/p/c/build", "secret")

    def test_partial_failure_keeps_remaining_subset(self, make_controller, store):
        _seed(store, *self.PATHS)
        remover = FakeRemover(needs_password={"/p/b/node_modules"}, broken={"/p/c/build"})
        controller = make_controller(remover=remover)

        controller.handle_key("D")
        controller.handle_key("y")
        assert sorted(controller.state.pending_failed_paths) == ["/p/b/node_modules", "/p/c/build"]

        _type(controller, "secret")
        controller.handle_key("enter")

        assert controller.state.pending_failed_paths == ["/p/c/build"]
        assert "Some deletions failed" in controller.modal.popup.message
        assert controller.state.artifacts == ["/p/c/build"]
        assert store.recent_artifact_paths() == ["/p/c/build"]

    def test_fresh_clear_all_retries_only_remaining(self, make_controller, store):
        _seed(store, *self.PATHS)
        remover = FakeRemover(needs_password={"/p/c/build"})
        controller = make_controller(remover=remover)

        controller.handle_key("D")
        controller.handle_key("y")
        controller.handle_key("escape")
        assert controller.state.pending_action is None
        assert controller.state.artifacts == ["/p/c/build"]

        remover.calls.clear()
        controller.handle_key("D")
        controller.handle_key("y")

        assert remover.calls == [("/p/c/build", None)]
        assert controller.state.pending_failed_paths == ["/p/c/build"]
        assert controller.modal.popup.prompt == modal.CREDENTIAL_PROMPT


class TestExclusion:
    def test_exclude_then_rescan_round_trip(self, make_controller, project_tree, config_store):
        target = str(project_tree / "proj" / "target")
        controller = make_controller(Config(scan_paths=[str(project_tree)]))
        controller.tick()
        controller.handle_key("escape")

        controller.handle_key("x")
        controller.handle_key("enter")
        assert controller.state.artifacts == []
        assert config_store.load().excluded_paths == [target]

        controller.handle_key("escape")
        controller.handle_key("s")
        controller.tick()
        assert target not in controller.state.artifacts

        controller.handle_key("escape")
        controller.handle_key("e")
        for _ in range(3):
            controller.handle_key("down")
        controller.handle_key("enter")
        assert isinstance(controller.modal.popup, modal.ExcludedPathsList)
        controller.handle_key("enter")
        controller.handle_key("enter")
        controller.tick()

        assert controller.state.artifacts == [target]
        assert config_store.load().excluded_paths == []

    def test_exclude_forgets_stored_record(self, make_controller, store):
        _seed(store, "/p/a/target", "/p/b/target")
        controller = make_controller()
        controller.state.selected = controller.state.artifacts.index("/p/a/target")

        controller.handle_key("x")
        controller.handle_key("enter")

        assert controller.config.excluded_paths == ["/p/a/target"]
        assert store.recent_artifact_paths() == ["/p/b/target"]

    def test_exclude_only_from_artifacts_panel(self, make_controller, store):
        _seed(store, "/p/a/target")
        controller = make_controller()
        controller.state.focused_panel = Panel.HISTORY
        controller.handle_key("x")
        assert controller.modal.popup is None


class TestSettings:
    def _open_setting(self, controller, index):
        controller.handle_key("e")
        for _ in range(index):
            controller.handle_key("down")
        controller.handle_key("enter")

    def test_retention_days_prefilled_and_saved(self, make_controller, config_store):
        controller = make_controller()
        self._open_setting(controller, 0)
        assert controller.modal.popup.buffer == "7"

        controller.handle_key("backspace")
        _type(controller, "30")
        controller.handle_key("enter")

        assert controller.config.retention_days == 30
        assert config_store.load().retention_days == 30

    def test_non_numeric_retention_is_discarded(self, make_controller):
        controller = make_controller()
        self._open_setting(controller, 0)
        controller.handle_key("backspace")
        _type(controller, "abc")
        controller.handle_key("enter")
        assert controller.config.retention_days == 7

    def test_zero_retention_is_discarded(self, make_controller, config_store):
        controller = make_controller()
        self._open_setting(controller, 0)
        controller.handle_key("backspace")
        _type(controller, "0")
        controller.handle_key("enter")
        assert controller.config.retention_days == 7
        assert config_store.load().retention_days == 7

    def test_scan_path_from_browser(self, make_controller, project_tree, config_store):
        controller = make_controller(Config(scan_paths=[str(project_tree)]))
        self._open_setting(controller, 1)

        popup = controller.modal.popup
        assert isinstance(popup, modal.DirBrowse)
        assert popup.entries == ["..", "proj"]

        controller.handle_key("down")
        controller.handle_key("s")
        assert controller.config.scan_paths == [str(project_tree / "proj")]
        assert config_store.load().scan_paths == [str(project_tree / "proj")]

    def test_enabling_automatic_removal_needs_confirmation(self, make_controller, config_store):
        controller = make_controller()
        self._open_setting(controller, 2)
        assert isinstance(controller.modal.popup, modal.ConfirmAction)
        assert not controller.state.automatic_removal

        controller.handle_key("enter")
        assert controller.state.automatic_removal
        assert config_store.load().automatic_removal

    def test_disabling_automatic_removal_is_immediate(self, make_controller, config_store):
        controller = make_controller(Config(automatic_removal=True))
        self._open_setting(controller, 2)
        assert not controller.state.automatic_removal
        assert isinstance(controller.modal.popup, modal.Info)
        assert config_store.load().automatic_removal is False


class TestRetention:
    def test_stale_artifact_removed_after_scan(self, make_controller, project_tree, store, tmp_path):
        stale = tmp_path / "old" / "target"
        stale.mkdir(parents=True)
        store.log_build(
            str(stale.parent), "Rust", str(stale), 4096,
            build_time=datetime.now(timezone.utc) - timedelta(days=30),
        )
        controller = make_controller(
            Config(scan_paths=[str(project_tree)], retention_days=7, automatic_removal=True)
        )

        controller.tick()

        assert not stale.exists()
        assert (project_tree / "proj" / "target").exists()
        assert store.recent_artifact_paths() == [str(project_tree / "proj" / "target")]

    def test_excluded_artifact_survives_cleanup(self, make_controller, project_tree, store, tmp_path):
        kept = tmp_path / "keep" / "target"
        kept.mkdir(parents=True)
        store.log_build(
            str(kept.parent), "Rust", str(kept), 4096,
            build_time=datetime.now(timezone.utc) - timedelta(days=30),
        )
        controller = make_controller(
            Config(
                scan_paths=[str(project_tree)],
                excluded_paths=[str(kept)],
                retention_days=7,
                automatic_removal=True,
            )
        )

        controller.tick()

        assert kept.exists()
        assert str(kept) not in store.recent_artifact_paths()

    def test_no_cleanup_when_disabled(self, make_controller, project_tree, store, tmp_path):
        stale = tmp_path / "old" / "target"
        stale.mkdir(parents=True)
        store.log_build(
            str(stale.parent), "Rust", str(stale), 4096,
            build_time=datetime.now(timezone.utc) - timedelta(days=30),
        )
        controller = make_controller(Config(scan_paths=[str(project_tree)], retention_days=7))
        controller.tick()
        assert stale.exists()


class TestHistoryAndRebuild:
    def test_history_key_records_changed_artifacts(self, make_controller, project_tree, store):
        controller = make_controller(Config(scan_paths=[str(project_tree)]))
        controller.tick()
        controller.handle_key("escape")
        assert controller.state.total_builds == 1

        target = project_tree / "proj" / "target"
        stamp = target.stat().st_mtime + 100
        os.utime(target, (stamp, stamp))
        controller.handle_key("h")

        assert controller.state.total_builds == 2
        assert "Recorded rebuild of " + str(target) in controller.logs.snapshot()

    def test_history_reloads_after_detached_recording(self, make_controller, project_tree, store):
        spawner = DeferredSpawner()
        controller = make_controller(Config(scan_paths=[str(project_tree)]), spawn=spawner)
        controller.tick()
        spawner.run_all()
        controller.tick()
        controller.handle_key("escape")
        assert controller.state.total_builds == 1

        target = project_tree / "proj" / "target"
        stamp = target.stat().st_mtime + 100
        os.utime(target, (stamp, stamp))
        controller.handle_key("h")
        assert controller.state.total_builds == 1

        spawner.run_all()
        controller.tick()

        assert store.count_builds() == 2
        assert controller.state.total_builds == 2
        assert len(controller.state.build_history) == 2

    def test_rebuild_logs_command(self, make_controller, store):
        _seed(store, "/p/proj/target")
        launched = []

        def launcher(path):
            launched.append(path)
            return ["cargo", "build"]

        controller = make_controller(launcher=launcher)
        controller.handle_key("r")

        assert launched == ["/p/proj/target"]
        assert controller.logs.snapshot()[-1] == "Rebuilding /p/proj: cargo build"

    def test_rebuild_unknown_project(self, make_controller, store):
        _seed(store, "/p/proj/target")
        controller = make_controller(launcher=lambda path: None)
        controller.handle_key("r")
        assert controller.logs.snapshot()[-1] == "No known build system for /p/proj"

    def test_rebuild_launch_failure(self, make_controller, store):
        _seed(store, "/p/proj/target")

        def launcher(path):
            raise FileNotFoundError("cargo")

        controller = make_controller(launcher=launcher)
        controller.handle_key("r")
        assert controller.logs.snapshot()[-1].startswith("Rebuild failed for /p/proj/target")


class TestStoreFailures:
    def test_broken_store_degrades_to_defaults(self, config_store):
        controller = SessionController(Config(), BrokenStore(), config_store=config_store)

        assert controller.state.artifacts == []
        assert controller.state.build_history == ["Failed to load history"]
        assert controller.state.total_builds == 0
        assert controller.state.chart_data == []

    @pytest.mark.parametrize("key", ["d", "x", "r"])
    def test_artifact_keys_without_artifacts(self, make_controller, key):
        controller = make_controller()
        controller.handle_key(key)
        assert controller.modal.popup is None
