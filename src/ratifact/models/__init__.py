"""Ratifact data models."""

from ratifact.models.build_event import BuildEvent
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

__all__ = [
    "BuildEvent",
    "ClearAllBuilds",
    "Command",
    "ConfirmAction",
    "DeleteArtifact",
    "OpenDirBrowse",
    "OpenExcludedPaths",
    "OpenInput",
    "Panel",
    "PendingAction",
    "RebuildArtifact",
    "SessionState",
    "SetValue",
    "ToggleRemoval",
]
