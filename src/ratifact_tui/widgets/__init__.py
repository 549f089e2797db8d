"""Shared terminal widgets and renderers."""

from ratifact_tui.widgets.popup import mask, render_popup

__all__ = [
    "mask",
    "render_popup",
]
