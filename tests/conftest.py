"""Shared test fixtures."""

from __future__ import annotations

import pytest

from ratifact.core.controller import SessionController
from ratifact.core.tasks import run_inline
from ratifact.core.watcher import BuildWatcher
from ratifact.settings import Config, ConfigStore
from ratifact.storage import ArtifactStore


@pytest.fixture(autouse=True)
def isolate_xdg(tmp_path, monkeypatch):
    """Point config and data directories at a temp directory."""
    config_home = tmp_path / "xdg_config"
    data_home = tmp_path / "xdg_data"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    monkeypatch.delenv("RATIFACT_DATABASE", raising=False)
    monkeypatch.delenv("RATIFACT_DEBUG_LOGS", raising=False)
    return data_home


@pytest.fixture
def store(tmp_path):
    return ArtifactStore(tmp_path / "ratifact.db")


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config.json")


@pytest.fixture
def project_tree(tmp_path):
    """A scan root holding a Rust project with a ``target`` directory."""
    root = tmp_path / "projects"
    proj = root / "proj"
    (proj / "target" / "debug").mkdir(parents=True)
    (proj / "Cargo.toml").write_text("[package]\nname = \"proj\"\n")
    (proj / "target" / "debug" / "proj").write_bytes(b"\0" * 2048)
    (proj / "src").mkdir()
    return root


class FakeRemover:
    """Records removal attempts; paths in ``needs_password`` fail without one."""

    def __init__(self, needs_password=(), password="secret", broken=()):
        self.needs_password = set(needs_password)
        self.password = password
        self.broken = set(broken)
        self.calls: list[tuple[str, str | None]] = []

    def __call__(self, path: str, password: str | None = None) -> bool:
        self.calls.append((path, password))
        if path in self.broken:
            return False
        if path in self.needs_password:
            return password == self.password
        return True


@pytest.fixture
def remover():
    return FakeRemover()


@pytest.fixture
def make_controller(store, config_store):
    """Build a controller whose background work runs inline."""

    def _make(config: Config | None = None, **kwargs) -> SessionController:
        kwargs.setdefault("spawn", run_inline)
        kwargs.setdefault("watcher", BuildWatcher())
        return SessionController(
            config or Config(),
            store,
            config_store=config_store,
            **kwargs,
        )

    return _make
