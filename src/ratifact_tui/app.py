"""Ratifact Textual application."""

from __future__ import annotations

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Static

from ratifact.core import modal
from ratifact.core.controller import SessionController
from ratifact.models.session import Panel
from ratifact_tui.constants import FOOTER_TEXT, TICK_INTERVAL, TITLE
from ratifact_tui.views.dashboard import (
    render_artifacts,
    render_charts,
    render_history,
    render_settings,
    render_summary,
)
from ratifact_tui.widgets import render_popup

_NAMED_KEYS = frozenset({
    modal.KEY_UP,
    modal.KEY_DOWN,
    modal.KEY_PAGE_UP,
    modal.KEY_PAGE_DOWN,
    modal.KEY_ENTER,
    modal.KEY_ESCAPE,
    modal.KEY_BACKSPACE,
    modal.KEY_TAB,
})

# Panel border, padding and the chart's name and size columns.
_PANEL_CHROME_ROWS = 3
_CHART_CHROME_COLUMNS = 31


def normalize_key(key: str, character: str | None) -> str | None:
    """Map a Textual key event onto the names the session controller expects."""
    if key in _NAMED_KEYS:
        return key
    if key == "space":
        return modal.KEY_SPACE
    if character is not None and len(character) == 1 and character.isprintable():
        return character
    return None


class RatifactApp(App):
    """Dashboard of build artifacts with a popup overlay."""

    CSS = """
    Screen {
        layers: base overlay;
    }

    #title {
        height: 3;
        border: solid $primary;
        color: cyan;
        text-style: bold;
    }

    .row {
        height: 1fr;
    }

    .panel {
        width: 1fr;
        height: 100%;
    }

    #footer {
        dock: bottom;
        height: 1;
        background: $success;
        color: black;
    }

    #overlay {
        layer: overlay;
        width: 100%;
        height: 100%;
        align: center middle;
        display: none;
    }

    #popup {
        width: 70%;
        height: auto;
        max-height: 80%;
    }
    """

    # Tab and Escape would otherwise be taken by focus handling.
    BINDINGS = [
        Binding("tab", "forward_key('tab')", show=False, priority=True),
        Binding("escape", "forward_key('escape')", show=False, priority=True),
    ]

    ENABLE_COMMAND_PALETTE = False

    def __init__(self, controller: SessionController) -> None:
        super().__init__()
        self.controller = controller

    def compose(self) -> ComposeResult:
        yield Static(TITLE, id="title")
        with Horizontal(classes="row"):
            yield Static(id="artifacts", classes="panel")
            yield Static(id="history", classes="panel")
            yield Static(id="charts", classes="panel")
        with Horizontal(classes="row"):
            yield Static(id="settings", classes="panel")
            yield Static(id="summary", classes="panel")
        yield Static(FOOTER_TEXT, id="footer", markup=False)
        with Container(id="overlay"):
            yield Static(id="popup")

    def on_mount(self) -> None:
        self.set_interval(TICK_INTERVAL, self._tick)
        self.refresh_view()

    def _tick(self) -> None:
        self.controller.tick()
        self._after_update()

    def on_key(self, event: events.Key) -> None:
        key = normalize_key(event.key, event.character)
        if key is None:
            return
        event.stop()
        self._forward(key)

    def action_forward_key(self, key: str) -> None:
        self._forward(key)

    def _forward(self, key: str) -> None:
        self.controller.handle_key(key)
        self._after_update()

    def _after_update(self) -> None:
        if self.controller.state.should_quit:
            self.exit()
            return
        self.refresh_view()

    def refresh_view(self) -> None:
        """Redraw every panel and the overlay from the controller's state."""
        controller = self.controller
        state = controller.state
        focused = state.focused_panel
        root = controller.config.effective_scan_paths()[0]

        artifacts = self.query_one("#artifacts", Static)
        artifacts.update(
            render_artifacts(
                state, root, focused == Panel.ARTIFACTS,
                height=artifacts.size.height - _PANEL_CHROME_ROWS,
            )
        )
        self.query_one("#history", Static).update(render_history(state, focused == Panel.HISTORY))
        charts = self.query_one("#charts", Static)
        charts.update(
            render_charts(
                state, root, focused == Panel.CHARTS,
                bar_width=max(charts.size.width - _CHART_CHROME_COLUMNS, 10),
                height=charts.size.height - _PANEL_CHROME_ROWS,
            )
        )
        self.query_one("#settings", Static).update(
            render_settings(controller.config, state.automatic_removal, focused == Panel.SETTINGS)
        )
        self.query_one("#summary", Static).update(
            render_summary(state, len(controller.watcher.watched), focused == Panel.SUMMARY)
        )

        popup = controller.modal.popup
        self.query_one("#overlay").display = popup is not None
        if popup is not None:
            self.query_one("#popup", Static).update(render_popup(popup))


def run(controller: SessionController) -> None:
    RatifactApp(controller).run()
