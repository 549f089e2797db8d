"""Dashboard panels: artifacts, history, charts, settings and summary."""

from __future__ import annotations

from rich.console import RenderableType
from rich.panel import Panel
from rich.text import Text

from ratifact.models.session import SessionState
from ratifact.settings import Config
from ratifact.utils import bytes_to_human, strip_root, truncate
from ratifact_tui.constants import (
    ARTIFACT_COLORS,
    CHART_BAR_WIDTH,
    CHART_COLORS,
    CHART_NAME_WIDTH,
    DEFAULT_ARTIFACT_COLOR,
    FOCUSED_BORDER,
    SELECTED_STYLE,
    UNFOCUSED_BORDER,
)


def _frame(body: RenderableType, title: str, focused: bool) -> Panel:
    return Panel(
        body,
        title=title,
        title_align="left",
        border_style=FOCUSED_BORDER if focused else UNFOCUSED_BORDER,
        padding=(1, 1, 0, 1),
    )


def visible_window(count: int, selected: int, height: int) -> range:
    """Indices of the rows to draw so that *selected* stays on screen."""
    if height <= 0 or count <= height:
        return range(count)
    start = min(max(selected - height + 1, 0), count - height)
    return range(start, start + height)


def artifact_color(path: str) -> str:
    for marker, color in ARTIFACT_COLORS:
        if marker in path:
            return color
    return DEFAULT_ARTIFACT_COLOR


def render_artifacts(state: SessionState, scan_root: str, focused: bool, height: int = 0) -> Panel:
    text = Text(no_wrap=True, overflow="ellipsis")
    if not state.artifacts:
        text.append("No artifacts found", style="dim")
    for i in visible_window(len(state.artifacts), state.selected, height):
        path = state.artifacts[i]
        style = SELECTED_STYLE if focused and i == state.selected else artifact_color(path)
        if text:
            text.append("\n")
        text.append(f"📁 {strip_root(path, scan_root)}", style=style)
    return _frame(text, "📦 Artifacts", focused)


def render_history(state: SessionState, focused: bool) -> Panel:
    return _frame(Text("\n".join(state.build_history)), "📜 History", focused)


def render_charts(
    state: SessionState,
    scan_root: str,
    focused: bool,
    bar_width: int = CHART_BAR_WIDTH,
    height: int = 0,
) -> Panel:
    """Horizontal bar per artifact, scaled to the largest recorded size."""
    text = Text(no_wrap=True, overflow="ellipsis")
    if not state.chart_data:
        text.append("No data")
        return _frame(text, "📊 Charts", focused)

    largest = max(size for _, size in state.chart_data) or 1
    for i in visible_window(len(state.chart_data), state.chart_selected, height):
        path, size = state.chart_data[i]
        name = truncate(strip_root(path, scan_root), CHART_NAME_WIDTH)
        bar = "█" * (size * bar_width // largest)
        if focused and i == state.chart_selected:
            style = f"bold {SELECTED_STYLE}"
        else:
            style = CHART_COLORS[i % len(CHART_COLORS)]
        if text:
            text.append("\n")
        text.append(f"{name:<{CHART_NAME_WIDTH}} {bar} {bytes_to_human(size)}", style=style)
    return _frame(text, "📊 Charts", focused)


def render_settings(config: Config, automatic_removal: bool, focused: bool) -> Panel:
    body = "\n".join([
        f"DB: {config.database_path}",
        f"Paths: {','.join(config.effective_scan_paths())}",
        f"Retention Days: {config.retention_days}",
        f"Automatic Removal: {'Enabled' if automatic_removal else 'Disabled'}",
        f"Excluded Paths: {len(config.excluded_paths)}",
    ])
    return _frame(Text(body), "⚙️ Settings", focused)


def render_summary(state: SessionState, watched: int, focused: bool) -> Panel:
    body = "\n".join([
        f"🏗️ Total Builds: {state.total_builds}",
        f"📦 Artifacts: {len(state.artifacts)}",
        f"🔍 Scans: {'Running' if state.scanning else 'Idle'}",
        f"⚡ Watcher: {watched} paths",
    ])
    return _frame(Text(body), "🏠 Summary", focused)
