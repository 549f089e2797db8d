"""Shared constants for the Ratifact terminal frontend."""

from __future__ import annotations

TITLE = "🐀 Ratifact - Build Artifact Purge Tool"

FOOTER_TEXT = (
    "Tab: Focus | s: Scan | d: Delete | x: Exclude | r: Rebuild | h: History | "
    "e: Settings | l: Logs | Shift+D: Clear All | q: Quit"
)

# Seconds between controller ticks.
TICK_INTERVAL = 0.1

FOCUSED_BORDER = "yellow"
UNFOCUSED_BORDER = "white"
SELECTED_STYLE = "black on blue"

# Substring of an artifact path -> list colour; first match wins.
ARTIFACT_COLORS: tuple[tuple[str, str], ...] = (
    ("target", "green"),
    ("node_modules", "blue"),
    ("__pycache__", "yellow"),
    ("build", "red"),
)
DEFAULT_ARTIFACT_COLOR = "white"

CHART_COLORS = ("red", "green", "blue", "yellow", "magenta", "cyan", "white")
CHART_NAME_WIDTH = 15
CHART_BAR_WIDTH = 20

# Lines of the log buffer shown in the Logs and Scanning popups.
LOG_TAIL = 20
