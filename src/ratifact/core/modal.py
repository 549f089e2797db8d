"""Modal popups and the key handling that drives them.

Exactly one popup is active at a time, or none. Each variant carries only
the data it needs and implements ``handle_key``, which returns the popup
that should be active next (``self`` to stay, another variant, or None to
close) together with an optional command for the session controller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from ratifact.core.pipeline import LogBuffer
from ratifact.models.commands import (
    ClearAllBuilds,
    Command,
    ConfirmAction as ConfirmActionCommand,
    DeleteArtifact,
    OpenDirBrowse,
    OpenExcludedPaths,
    OpenInput,
    RebuildArtifact,
    SetValue,
    ToggleRemoval,
)

log = logging.getLogger(__name__)

# Normalized key names delivered by the frontend.
KEY_UP = "up"
KEY_DOWN = "down"
KEY_PAGE_UP = "pageup"
KEY_PAGE_DOWN = "pagedown"
KEY_ENTER = "enter"
KEY_ESCAPE = "escape"
KEY_BACKSPACE = "backspace"
KEY_TAB = "tab"
KEY_SPACE = " "

RETENTION_DAYS = "Retention Days"
SCAN_PATH = "Scan Path"
AUTOMATIC_REMOVAL = "Automatic Removal"
EXCLUDED_PATHS = "Excluded Paths"
CREDENTIAL_PROMPT = "Enter sudo password"

SETTINGS_OPTIONS = (RETENTION_DAYS, SCAN_PATH, AUTOMATIC_REMOVAL, EXCLUDED_PATHS)
ARTIFACT_ACTIONS = ("Delete", "Rebuild")

PARENT_MARKER = ".."
REMOVE_EXCLUDED_PREFIX = "remove_excluded:"

Transition = tuple["Popup | None", "Command | None"]


def is_text_key(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def _wrap(index: int, step: int, count: int) -> int:
    return (index + step) % count if count else 0


class Popup:
    """Base class for popup variants."""

    title: ClassVar[str] = ""

    def handle_key(self, key: str) -> Transition:
        raise NotImplementedError


@dataclass
class SettingsList(Popup):
    title: ClassVar[str] = "Settings (↑↓ Enter Esc)"
    selected: int = 0

    def handle_key(self, key: str) -> Transition:
        match key:
            case "up":
                self.selected = _wrap(self.selected, -1, len(SETTINGS_OPTIONS))
            case "down":
                self.selected = _wrap(self.selected, 1, len(SETTINGS_OPTIONS))
            case "enter":
                commands: tuple[Command, ...] = (
                    OpenInput(RETENTION_DAYS),
                    OpenDirBrowse(),
                    ToggleRemoval(),
                    OpenExcludedPaths(),
                )
                return None, commands[self.selected]
            case "escape":
                return None, None
        return self, None


@dataclass
class Input(Popup):
    title: ClassVar[str] = "Edit (Enter: Apply, Esc: Cancel)"
    prompt: str = ""
    buffer: str = ""

    @property
    def is_secret(self) -> bool:
        return self.prompt == CREDENTIAL_PROMPT

    def handle_key(self, key: str) -> Transition:
        if key == KEY_ENTER:
            return None, SetValue(self.prompt, self.buffer)
        if key == KEY_ESCAPE:
            return None, None
        if key == KEY_BACKSPACE:
            self.buffer = self.buffer[:-1]
        elif is_text_key(key):
            self.buffer += key
        return self, None


def list_subdirs(path: str) -> list[str]:
    """Parent marker followed by the sorted names of *path*'s subdirectories."""
    items = [PARENT_MARKER]
    try:
        with os.scandir(path) as it:
            names = []
            for entry in it:
                try:
                    if entry.is_dir():
                        names.append(entry.name)
                except OSError:
                    continue
    except OSError as e:
        log.debug("Cannot list %s: %s", path, e)
        return items
    return items + sorted(names)


@dataclass
class DirBrowse(Popup):
    title: ClassVar[str] = "Browse (↑↓ Nav, Enter: Open, s: Select, Space: Select Current, Esc: Cancel)"
    path: str = "/"
    entries: list[str] = field(default_factory=list)
    selected: int = 0

    @classmethod
    def at(cls, path: str) -> DirBrowse:
        return cls(path=path, entries=list_subdirs(path))

    def _go(self, path: str) -> None:
        self.path = path
        self.entries = list_subdirs(path)
        self.selected = 0

    def _resolve(self, entry: str) -> str:
        if entry == PARENT_MARKER:
            return str(Path(self.path).parent)
        return str(Path(self.path) / entry)

    def handle_key(self, key: str) -> Transition:
        match key:
            case "up":
                self.selected = max(self.selected - 1, 0)
            case "down":
                self.selected = min(self.selected + 1, max(len(self.entries) - 1, 0))
            case "enter":
                if self.selected < len(self.entries):
                    target = self._resolve(self.entries[self.selected])
                    if os.path.isdir(target):
                        self._go(target)
            case "s":
                if self.selected < len(self.entries):
                    return None, SetValue(SCAN_PATH, self._resolve(self.entries[self.selected]))
            case " ":
                return None, SetValue(SCAN_PATH, self.path)
            case "escape":
                return None, None
        return self, None


@dataclass
class Logs(Popup):
    title: ClassVar[str] = "📝 Logs"
    logs: LogBuffer

    def handle_key(self, key: str) -> Transition:
        if key == KEY_ESCAPE:
            return None, None
        return self, None


@dataclass
class Scanning(Popup):
    """Progress of a running scan; any key dismisses it, the scan carries on."""

    title: ClassVar[str] = "🔍 Scanning for new artifacts"
    logs: LogBuffer

    def handle_key(self, key: str) -> Transition:
        return None, None


@dataclass
class ArtifactActions(Popup):
    title: ClassVar[str] = "⚠️ SELECT ACTION"
    selected: int = 0

    def handle_key(self, key: str) -> Transition:
        match key:
            case "up":
                self.selected = _wrap(self.selected, -1, len(ARTIFACT_ACTIONS))
            case "down":
                self.selected = _wrap(self.selected, 1, len(ARTIFACT_ACTIONS))
            case "enter":
                return None, DeleteArtifact() if self.selected == 0 else RebuildArtifact()
            case "escape":
                return None, None
        return self, None


@dataclass
class ClearAllConfirmation(Popup):
    title: ClassVar[str] = "🔴 CLEAR ALL BUILDS"

    def handle_key(self, key: str) -> Transition:
        if key in ("y", "Y"):
            return None, ClearAllBuilds()
        if key in ("n", "N", KEY_ESCAPE):
            return None, None
        return self, None


@dataclass
class ConfirmAction(Popup):
    title: ClassVar[str] = "⚠️ CONFIRM ACTION"
    message: str = ""
    action: str = ""

    def handle_key(self, key: str) -> Transition:
        if key == KEY_ENTER:
            return None, ConfirmActionCommand(self.action)
        if key == KEY_ESCAPE:
            return None, None
        return self, None


@dataclass
class Progress(Popup):
    title: ClassVar[str] = "Progress"
    message: str = ""

    def handle_key(self, key: str) -> Transition:
        if key == KEY_ESCAPE:
            return None, None
        return self, None


@dataclass
class Info(Popup):
    title: ClassVar[str] = "Info"
    message: str = ""

    def handle_key(self, key: str) -> Transition:
        return None, None


@dataclass
class ExcludedPathsList(Popup):
    title: ClassVar[str] = "Excluded Paths (↑↓ Enter to remove Esc)"
    paths: list[str] = field(default_factory=list)
    selected: int = 0

    def handle_key(self, key: str) -> Transition:
        match key:
            case "up":
                self.selected = _wrap(self.selected, -1, len(self.paths))
            case "down":
                self.selected = _wrap(self.selected, 1, len(self.paths))
            case "enter":
                if self.paths:
                    path = self.paths[self.selected]
                    confirm = ConfirmAction(
                        message=f"Remove '{path}' from exclusion list?",
                        action=f"{REMOVE_EXCLUDED_PREFIX}{path}",
                    )
                    return confirm, None
            case "escape":
                return None, None
        return self, None


class ModalState:
    """Holds the single active popup and routes keys to it."""

    def __init__(self) -> None:
        self.popup: Popup | None = None

    @property
    def active(self) -> bool:
        return self.popup is not None

    def open(self, popup: Popup) -> None:
        self.popup = popup

    def close(self) -> None:
        self.popup = None

    def handle_key(self, key: str) -> Command | None:
        """Feed *key* to the active popup; a no-op when none is open."""
        if self.popup is None:
            return None
        self.popup, command = self.popup.handle_key(key)
        return command
