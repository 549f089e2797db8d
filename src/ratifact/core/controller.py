"""Session controller: owns session state and reacts to keys and background work."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from ratifact.core import modal, privileges
from ratifact.core.modal import (
    CREDENTIAL_PROMPT,
    REMOVE_EXCLUDED_PREFIX,
    RETENTION_DAYS,
    SCAN_PATH,
    ModalState,
)
from ratifact.core.pipeline import LogBuffer, ScanJob, ScanResultSlot
from ratifact.core.rebuild import launch_rebuild
from ratifact.core.retention import run_retention_cleanup
from ratifact.core.scanner import detect_language
from ratifact.core.tasks import Spawner, spawn_detached
from ratifact.core.watcher import BuildWatcher
from ratifact.models.commands import (
    ClearAllBuilds,
    Command,
    ConfirmAction,
    DeleteArtifact,
    OpenDirBrowse,
    OpenExcludedPaths,
    OpenInput,
    RebuildArtifact,
    SetValue,
    ToggleRemoval,
)
from ratifact.models.session import Panel, PendingAction, SessionState
from ratifact.settings import MIN_RETENTION_DAYS, Config, ConfigStore
from ratifact.storage import ArtifactStore, StoreError
from ratifact.utils import dir_size

log = logging.getLogger(__name__)

RECENT_ARTIFACTS_LIMIT = 50
RECENT_BUILDS_LIMIT = 10

AUTOMATIC_REMOVAL_WARNING = (
    "⚠️  AUTOMATIC REMOVAL WILL DELETE OLD ARTIFACTS\n\n"
    "Please verify your build directories in the list above.\n"
    "Any directories matching common build paths older than\n"
    "retention days will be permanently deleted.\n\n"
    "Enable automatic removal? (Enter: Yes, Esc: No)"
)

Remover = Callable[[str, str | None], bool]
Launcher = Callable[[str], list[str] | None]


class SessionController:
    """Drives one interactive session.

    The frontend calls :meth:`tick` on a short timer and :meth:`handle_key`
    for every key press; both run on the UI thread, which is the only
    writer of :attr:`state`. Scans, store updates, and retention cleanup
    run as detached units that report back only through :attr:`logs` and
    the scan result slot.
    """

    def __init__(
        self,
        config: Config,
        store: ArtifactStore,
        *,
        config_store: ConfigStore | None = None,
        watcher: BuildWatcher | None = None,
        spawn: Spawner = spawn_detached,
        remover: Remover = privileges.remove_tree,
        launcher: Launcher = launch_rebuild,
    ) -> None:
        self.config = config
        self.store = store
        self.config_store = config_store
        self.watcher = watcher or BuildWatcher(debug=config.debug_logs_enabled)
        self._spawn = spawn
        self._remove = remover
        self._launch = launcher

        self.state = SessionState(automatic_removal=config.automatic_removal)
        self.modal = ModalState()
        self.logs = LogBuffer()
        self.results = ScanResultSlot()
        self._history_dirty = threading.Event()

        self.load_artifacts()
        self.reload_history()

    # -- Loop --

    def tick(self) -> None:
        """One pass of the session loop, minus rendering and input.

        Starts the first scan once, refreshes history after recorded
        rebuilds, then picks up at most one finished scan result.
        """
        if not self.state.scanned and not self.state.scanning:
            self.trigger_scan()
        self._reload_history_if_dirty()

        artifacts = self.results.take()
        if artifacts is not None:
            self._finish_scan(artifacts)
            self._drop_stale_pending()

    def handle_key(self, key: str) -> None:
        """Route one normalized key to the active popup, or to the main bindings."""
        if self.modal.active:
            command = self.modal.handle_key(key)
            if command is not None:
                self.dispatch(command)
            self._drop_stale_pending()
        else:
            self._handle_main_key(key)

    def _handle_main_key(self, key: str) -> None:
        state = self.state
        match key:
            case "q":
                state.should_quit = True
            case "tab":
                state.focused_panel = state.focused_panel.next()
            case "D":
                self.modal.open(modal.ClearAllConfirmation())
            case "enter":
                if state.focused_panel == Panel.ARTIFACTS and state.artifacts:
                    self.modal.open(modal.ArtifactActions())
                elif state.focused_panel == Panel.SETTINGS:
                    self.modal.open(modal.SettingsList())
            case "s":
                self.trigger_scan()
            case "d":
                if state.selected_artifact is not None:
                    self.modal.open(modal.ConfirmAction("Delete this artifact?", "delete"))
            case "x" | "X":
                if state.focused_panel == Panel.ARTIFACTS and state.selected_artifact is not None:
                    self.modal.open(modal.ConfirmAction("Exclude this path from scanning?", "exclude"))
            case "r":
                self.rebuild_selected()
            case "h":
                self._spawn(self.record_watched_builds, name="record-builds")
                self._reload_history_if_dirty()
            case "e":
                self.modal.open(modal.SettingsList())
            case "l":
                self.modal.open(modal.Logs(self.logs))
            case "up" | "pageup":
                self._move_selection(-1)
            case "down" | "pagedown":
                self._move_selection(1)

    def _move_selection(self, step: int) -> None:
        state = self.state
        if state.focused_panel == Panel.ARTIFACTS:
            state.selected = min(max(state.selected + step, 0), max(len(state.artifacts) - 1, 0))
        elif state.focused_panel == Panel.CHARTS:
            state.chart_selected = min(max(state.chart_selected + step, 0), max(len(state.chart_data) - 1, 0))

    # -- Commands --

    def dispatch(self, command: Command) -> None:
        """Carry out a command emitted by a popup."""
        match command:
            case OpenInput(title=title, initial=initial):
                if title == RETENTION_DAYS:
                    initial = str(self.config.retention_days)
                self.modal.open(modal.Input(prompt=title, buffer=initial))
            case OpenDirBrowse():
                self.modal.open(modal.DirBrowse.at(self._browse_start()))
            case ToggleRemoval():
                self._toggle_removal()
            case SetValue(key=key, value=value):
                self._set_value(key, value)
            case DeleteArtifact():
                self.modal.open(modal.ConfirmAction("Delete this artifact?", "delete"))
            case RebuildArtifact():
                self.modal.open(modal.ConfirmAction("Rebuild this project?", "rebuild"))
            case ClearAllBuilds():
                self.clear_all_builds()
            case ConfirmAction(action=action):
                self._confirm(action)
            case OpenExcludedPaths():
                self.modal.open(modal.ExcludedPathsList(paths=list(self.config.excluded_paths)))

    def _browse_start(self) -> str:
        for path in self.config.scan_paths:
            if os.path.isdir(path):
                return os.path.abspath(path)
        return "/"

    def _toggle_removal(self) -> None:
        if self.state.automatic_removal:
            self._set_automatic_removal(False)
            self.modal.open(modal.Info("Automatic removal disabled."))
        else:
            self.modal.open(modal.ConfirmAction(AUTOMATIC_REMOVAL_WARNING, "enable_automatic_removal"))

    def _set_automatic_removal(self, enabled: bool) -> None:
        self.state.automatic_removal = enabled
        self.config.automatic_removal = enabled
        self._save_config()

    def _set_value(self, key: str, value: str) -> None:
        if key == CREDENTIAL_PROMPT:
            self._resume_with_credential(value)
        elif key == RETENTION_DAYS:
            try:
                days = int(value.strip())
            except ValueError:
                log.debug("Ignoring non-numeric retention days %r", value)
                return
            if days < MIN_RETENTION_DAYS:
                log.debug("Ignoring retention days below %d: %d", MIN_RETENTION_DAYS, days)
                return
            self.config.retention_days = days
            self._save_config()
        elif key == SCAN_PATH:
            self.config.scan_paths = [value]
            self._save_config()

    def _confirm(self, action: str) -> None:
        if action.startswith(REMOVE_EXCLUDED_PREFIX):
            self._remove_excluded(action[len(REMOVE_EXCLUDED_PREFIX):])
            return
        match action:
            case "delete":
                self.modal.open(modal.Progress("Deleting artifact..."))
                self.delete_selected()
            case "rebuild":
                self.rebuild_selected()
                self.modal.open(modal.Progress("Rebuilding project..."))
            case "exclude":
                self.exclude_selected()
            case "enable_automatic_removal":
                self._set_automatic_removal(True)
                self.modal.open(
                    modal.Info("Automatic removal enabled. Old artifacts will be cleaned up after scans.")
                )
            case _:
                log.warning("Unknown action '%s'", action)

    def _remove_excluded(self, path: str) -> None:
        self.config.excluded_paths = [p for p in self.config.excluded_paths if p != path]
        self._save_config()
        self.logs.append(f"Removed {path} from exclusion list.")
        self.modal.open(modal.Info("Removed from exclusion list. Rescanning..."))
        if not self.state.scanning:
            self.trigger_scan()

    def _save_config(self) -> None:
        if self.config_store is not None:
            self.config_store.save(self.config)

    # -- Scanning --

    def trigger_scan(self) -> bool:
        """Start a background scan unless one is already running."""
        if self.state.scanning:
            return False
        self.state.scanning = True
        self.modal.open(modal.Scanning(self.logs))
        job = ScanJob(
            roots=self.config.effective_scan_paths(),
            excluded_paths=list(self.config.excluded_paths),
            store=self.store,
            watcher=self.watcher,
            logs=self.logs,
            results=self.results,
        )
        self._spawn(job.run, name="scan")
        return True

    def _finish_scan(self, artifacts: list[str]) -> None:
        state = self.state
        state.artifacts = artifacts
        state.scanning = False
        state.scanned = True
        state.clamp_selection()
        self.modal.open(modal.Info(f"Scan complete. Found {len(artifacts)} artifacts."))
        self.reload_history()

        if state.automatic_removal:
            self._spawn(
                run_retention_cleanup,
                self.store,
                self.config.retention_days,
                list(self.config.excluded_paths),
                name="retention",
            )

    # -- Store reads --

    def load_artifacts(self) -> None:
        try:
            self.state.artifacts = self.store.recent_artifact_paths(RECENT_ARTIFACTS_LIMIT)
        except StoreError as e:
            log.warning("Could not load artifacts: %s", e)
            self.state.artifacts = []
        self.state.clamp_selection()

    def reload_history(self) -> None:
        """Refresh history lines, build count, and chart data from the store."""
        state = self.state
        try:
            state.build_history = [e.history_line() for e in self.store.recent_builds(RECENT_BUILDS_LIMIT)]
        except StoreError as e:
            log.warning("Could not load history: %s", e)
            state.build_history = ["Failed to load history"]
        try:
            state.total_builds = self.store.count_builds()
        except StoreError:
            state.total_builds = 0
        try:
            known = set(state.artifacts)
            state.chart_data = [(p, size) for p, size in self.store.artifact_sizes() if p in known]
        except StoreError:
            state.chart_data = []
        state.clamp_selection()

    def record_watched_builds(self) -> None:
        """Log a fresh build event for every watched artifact that changed.

        Runs as a detached unit, so it never touches :attr:`state`; the
        next :meth:`tick` reloads history once the events are stored.
        """
        try:
            for path in self.watcher.poll():
                project = str(Path(path).parent)
                try:
                    self.store.log_build(project, detect_language(project), path, dir_size(path))
                except StoreError as e:
                    log.warning("Could not record rebuild of %s: %s", path, e)
                else:
                    self.logs.append(f"Recorded rebuild of {path}")
        finally:
            self._history_dirty.set()

    def _reload_history_if_dirty(self) -> None:
        if self._history_dirty.is_set():
            self._history_dirty.clear()
            self.reload_history()

    # -- Artifact actions --

    def exclude_selected(self) -> None:
        path = self.state.selected_artifact
        if path is None:
            return
        self.config.excluded_paths.append(path)
        self._save_config()
        self._forget_artifact(path)
        self.modal.open(modal.Info("Path added to exclusion list."))

    def rebuild_selected(self) -> None:
        path = self.state.selected_artifact
        if path is None:
            return
        try:
            cmd = self._launch(path)
        except OSError as e:
            self.logs.append(f"Rebuild failed for {path}: {e}")
            return
        if cmd is None:
            self.logs.append(f"No known build system for {Path(path).parent}")
        else:
            self.logs.append(f"Rebuilding {Path(path).parent}: {' '.join(cmd)}")

    def delete_selected(self) -> None:
        """Delete the selected artifact, asking for a credential if sudo needs one."""
        path = self.state.selected_artifact
        if path is None:
            self.modal.open(modal.Info("No artifact selected."))
            return
        if self._remove(path, None):
            self._forget_artifact(path)
            self.modal.open(modal.Info("Artifact deleted."))
        else:
            self._ask_credential(PendingAction.DELETE)

    def clear_all_builds(self) -> None:
        """Delete every known artifact, collecting the ones that need a credential.

        Artifacts removed without a credential leave the list and the store
        at once, so after a failure the list holds exactly the paths still
        on disk and a fresh clear-all retries only those.
        """
        self.state.pending_failed_paths = []
        failed = [path for path in list(self.state.artifacts) if not self._remove(path, None)]
        if not failed:
            self.state.clear_artifacts()
            try:
                self.store.delete_all()
            except StoreError as e:
                log.warning("Could not clear artifact records: %s", e)
            self.reload_history()
            self.modal.open(modal.Info("All builds cleared."))
        else:
            self._forget_removed(self.state.artifacts, failed)
            self.state.pending_failed_paths = failed
            self._ask_credential(PendingAction.CLEAR_ALL)

    def _ask_credential(self, action: PendingAction) -> None:
        self.state.pending_action = action
        self.modal.open(modal.Input(prompt=CREDENTIAL_PROMPT))

    def _resume_with_credential(self, password: str) -> None:
        action = self.state.pending_action
        self.state.pending_action = None
        if action == PendingAction.DELETE:
            self._retry_delete(password)
        elif action == PendingAction.CLEAR_ALL:
            self._retry_clear_all(password)

    def _retry_delete(self, password: str) -> None:
        path = self.state.selected_artifact
        if path is not None and self._remove(path, password):
            self._forget_artifact(path)
            self.modal.open(modal.Info("Artifact deleted successfully."))
        else:
            self.modal.open(modal.Info("Deletion failed - please check permissions or try again."))

    def _retry_clear_all(self, password: str) -> None:
        failed = self.state.pending_failed_paths
        self.state.pending_failed_paths = []
        still_failed = [path for path in failed if not self._remove(path, password)]
        if not still_failed:
            self.state.clear_artifacts()
            self._spawn(self._delete_all_records, name="clear-records")
            self.modal.open(modal.Info("All builds cleared successfully."))
        else:
            self._forget_removed(failed, still_failed)
            self.state.pending_failed_paths = still_failed
            self.modal.open(
                modal.Info(
                    f"Some deletions failed - please check permissions. "
                    f"{len(still_failed)} of {len(failed)} artifacts remain."
                )
            )

    def _forget_removed(self, attempted: list[str], failed: list[str]) -> None:
        for path in [p for p in attempted if p not in failed]:
            self._forget_artifact(path)

    def _forget_artifact(self, path: str) -> None:
        self.state.remove_artifact(path)
        self.watcher.unwatch(path)
        self._spawn(self._delete_record, path, name="delete-record")

    def _delete_record(self, path: str) -> None:
        try:
            self.store.delete_artifact(path)
        except StoreError as e:
            log.warning("Could not delete record of %s: %s", path, e)

    def _delete_all_records(self) -> None:
        try:
            self.store.delete_all()
        except StoreError as e:
            log.warning("Could not clear artifact records: %s", e)

    def _drop_stale_pending(self) -> None:
        """Forget a pending action once its credential prompt is gone."""
        popup = self.modal.popup
        prompting = isinstance(popup, modal.Input) and popup.is_secret
        if self.state.pending_action is not None and not prompting:
            self.state.pending_action = None
