"""CLI interface for Ratifact."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from ratifact.settings import ConfigStore
from ratifact.storage import ArtifactStore, StoreError
from ratifact.utils import bytes_to_human, xdg_data_home

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# How many of the largest artifacts ``stats`` lists.
_TOP_ARTIFACTS = 10


def log_file_path() -> Path:
    return xdg_data_home() / "ratifact" / "ratifact.log"


def _log_level(verbosity: int, debug: bool = False) -> int:
    if debug or verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def _setup_logging(verbosity: int, debug: bool = False, filename: Path | None = None) -> None:
    """Configure the root logger; with *filename* nothing is written to the terminal."""
    if filename is None:
        logging.basicConfig(level=_log_level(verbosity, debug), format="%(levelname)s: %(message)s")
        return
    filename.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(level=_log_level(verbosity, debug), format=_LOG_FORMAT, filename=filename)


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Use this config file instead of the default one",
)
@click.pass_context
def main(ctx: click.Context, verbose: int, config_path: Path | None) -> None:
    """Ratifact, a purge tool for stale build artifacts."""
    config_store = ConfigStore(config_path)
    ctx.obj = config_store
    if ctx.invoked_subcommand is not None:
        _setup_logging(verbose)
        return

    config = config_store.load()
    _setup_logging(verbose, config.debug_logs_enabled, filename=log_file_path())
    try:
        store = ArtifactStore(config.database_path)
    except StoreError as exc:
        click.echo(f"Could not open the artifact database: {exc}", err=True)
        sys.exit(1)

    from ratifact.core.controller import SessionController
    from ratifact_tui.app import run

    logging.getLogger(__name__).info("Starting session, scanning %s", config.effective_scan_paths())
    run(SessionController(config, store, config_store=config_store))


# ── stats ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def stats(config_store: ConfigStore, as_json: bool) -> None:
    """Show recorded builds and the largest artifacts."""
    config = config_store.load()
    try:
        store = ArtifactStore(config.database_path)
        total = store.count_builds()
        recent = store.recent_builds()
        largest = store.artifact_sizes()[:_TOP_ARTIFACTS]
    except StoreError as exc:
        click.echo(f"Could not read the artifact database: {exc}", err=True)
        sys.exit(1)

    if as_json:
        data = {
            "total_builds": total,
            "recent_builds": [
                {
                    "project_path": e.project_path,
                    "language": e.language,
                    "artifact_path": e.artifact_path,
                    "size_bytes": e.size_bytes,
                    "build_time": e.build_time.isoformat(),
                }
                for e in recent
            ],
            "largest_artifacts": [
                {"artifact_path": path, "size_bytes": size} for path, size in largest
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"\n{click.style('📊', bold=True)} Statistics\n")
    click.echo(f"  Total builds:   {click.style(str(total), fg='green', bold=True)}")

    if recent:
        click.echo("\n  Recent builds:")
        for event in recent:
            click.echo(f"    {event.history_line()}")

    if largest:
        click.echo("\n  Largest artifacts:")
        for path, size in largest:
            click.echo(f"    {bytes_to_human(size):>10s}  {path}")
    click.echo()
