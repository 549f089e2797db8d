"""Rendering of the active modal popup."""

from __future__ import annotations

from rich.console import RenderableType
from rich.panel import Panel
from rich.text import Text

from ratifact.core import modal
from ratifact_tui.constants import LOG_TAIL

_ALERT_STYLE = "black on red"
_CONFIRM_STYLE = "black on yellow"
_SCANNING_STYLE = "white on rgb(0,100,100)"
_HIGHLIGHT_STYLE = "bold yellow"


def _options(labels: list[str] | tuple[str, ...], selected: int, style: str = _HIGHLIGHT_STYLE) -> Text:
    text = Text()
    for i, label in enumerate(labels):
        if i:
            text.append("\n")
        text.append(label, style=style if i == selected else "")
    return text


def mask(value: str) -> str:
    return "*" * len(value)


def render_popup(popup: modal.Popup) -> RenderableType:
    """Build the overlay for *popup*."""
    match popup:
        case modal.SettingsList(selected=selected):
            return Panel(_options(modal.SETTINGS_OPTIONS, selected), title=popup.title)
        case modal.Input():
            value = mask(popup.buffer) if popup.is_secret else popup.buffer
            return Panel(Text(f"{popup.prompt}: {value}"), title=popup.title)
        case modal.DirBrowse():
            entries = _options(popup.entries, popup.selected, style="white on blue")
            return Panel(entries, title=f"Browse: {popup.path}", subtitle=popup.title)
        case modal.Logs(logs=logs):
            return Panel(Text("\n".join(logs.tail(LOG_TAIL))), title=popup.title, padding=(1, 1, 0, 1))
        case modal.Scanning(logs=logs):
            body = "Scanning for new artifacts\n\nPress any key to close\n\n" + "\n".join(logs.tail(LOG_TAIL))
            return Panel(Text(body), title=popup.title, style=_SCANNING_STYLE, padding=(1, 1, 0, 1))
        case modal.ArtifactActions(selected=selected):
            actions = _options(modal.ARTIFACT_ACTIONS, selected, style=f"bold {_ALERT_STYLE}")
            return Panel(actions, title=popup.title, style=_ALERT_STYLE, padding=(1, 2))
        case modal.ClearAllConfirmation():
            body = (
                "⚠️  CLEAR ALL BUILDS - PERMANENT DELETION\n\n"
                "This will delete ALL artifacts from the filesystem.\n"
                "This action cannot be undone.\n\n"
                "Are you absolutely sure? (y: Confirm, n: Cancel)"
            )
            return Panel(Text(body), title=popup.title, style=_ALERT_STYLE, padding=(1, 2))
        case modal.ConfirmAction(message=message):
            body = f"{message}\n\nEnter: Confirm | Esc: Cancel"
            return Panel(Text(body), title=popup.title, style=_CONFIRM_STYLE, padding=(1, 2))
        case modal.Progress(message=message):
            return Panel(Text(f"{message}\n\nPress Esc to close."), title=popup.title)
        case modal.Info(message=message):
            return Panel(Text(message), title=popup.title)
        case modal.ExcludedPathsList(paths=paths, selected=selected):
            if not paths:
                return Panel(Text("(No excluded paths yet)"), title=popup.title)
            return Panel(_options(paths, selected), title=popup.title)
    raise TypeError(f"No renderer for popup {type(popup).__name__}")
