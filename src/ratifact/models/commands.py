"""Commands emitted by popups for the session controller to carry out."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class OpenInput:
    title: str
    initial: str = ""


@dataclass(frozen=True, slots=True)
class OpenDirBrowse:
    pass


@dataclass(frozen=True, slots=True)
class ToggleRemoval:
    pass


@dataclass(frozen=True, slots=True)
class OpenExcludedPaths:
    pass


@dataclass(frozen=True, slots=True)
class SetValue:
    """A value submitted from an input-like popup, keyed by the popup title."""

    key: str
    value: str


@dataclass(frozen=True, slots=True)
class DeleteArtifact:
    pass


@dataclass(frozen=True, slots=True)
class RebuildArtifact:
    pass


@dataclass(frozen=True, slots=True)
class ClearAllBuilds:
    pass


@dataclass(frozen=True, slots=True)
class ConfirmAction:
    """A confirmed action tag, e.g. ``"delete"`` or ``"remove_excluded:<path>"``."""

    action: str


Command = (
    OpenInput
    | OpenDirBrowse
    | ToggleRemoval
    | OpenExcludedPaths
    | SetValue
    | DeleteArtifact
    | RebuildArtifact
    | ClearAllBuilds
    | ConfirmAction
)
