"""Session state owned by the controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class Panel(IntEnum):
    """Dashboard panels, in focus-cycle order."""

    ARTIFACTS = 0
    HISTORY = 1
    CHARTS = 2
    SETTINGS = 3
    SUMMARY = 4

    def next(self) -> Panel:
        return Panel((self + 1) % len(Panel))


class PendingAction(str, Enum):
    """Privileged operation waiting for a credential."""

    DELETE = "delete"
    CLEAR_ALL = "clear_all"


@dataclass
class SessionState:
    """Mutable state of one interactive session.

    Only the session controller writes to this; background work talks
    back through the log buffer and the scan result slot instead.
    """

    artifacts: list[str] = field(default_factory=list)
    selected: int = 0
    focused_panel: Panel = Panel.ARTIFACTS
    scanning: bool = False
    scanned: bool = False
    automatic_removal: bool = False
    pending_action: PendingAction | None = None
    pending_failed_paths: list[str] = field(default_factory=list)
    chart_data: list[tuple[str, int]] = field(default_factory=list)
    chart_selected: int = 0
    build_history: list[str] = field(default_factory=list)
    total_builds: int = 0
    should_quit: bool = False

    @property
    def selected_artifact(self) -> str | None:
        if 0 <= self.selected < len(self.artifacts):
            return self.artifacts[self.selected]
        return None

    def clamp_selection(self) -> None:
        """Pull ``selected`` and ``chart_selected`` back into range."""
        self.selected = min(self.selected, max(len(self.artifacts) - 1, 0))
        self.chart_selected = min(self.chart_selected, max(len(self.chart_data) - 1, 0))

    def remove_artifact(self, path: str) -> None:
        """Drop *path* from the artifact list and chart, keeping selections valid."""
        if path in self.artifacts:
            self.artifacts.remove(path)
        self.chart_data = [(p, size) for p, size in self.chart_data if p != path]
        self.clamp_selection()

    def clear_artifacts(self) -> None:
        self.artifacts.clear()
        self.chart_data.clear()
        self.selected = 0
        self.chart_selected = 0
