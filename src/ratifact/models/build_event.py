"""Build event dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class BuildEvent:
    """One recorded sighting of a build artifact."""

    project_path: str
    language: str
    artifact_path: str
    size_bytes: int
    build_time: datetime

    def history_line(self) -> str:
        local = self.build_time.astimezone()
        return f"{self.project_path} - {self.language} - {local:%Y-%m-%d %H:%M}"
