"""Shared types and helpers for CLI commands."""

from enum import Enum
from pathlib import Path

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn

from deskctl.core.config import ConfigError, DeskctlConfig, load_config
from deskctl.core.engine import PERCENTAGE_UNKNOWN, CycleStatus, ProgressObserver
from deskctl.core.store import CacheStore, StoreUnavailableError
from deskctl.utils.formatting import err_console, print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


_STATUS_LABELS: dict[CycleStatus, str] = {
    CycleStatus.SCANNING_APPLICATIONS: "Scanning applications",
    CycleStatus.GENERATING_PACKAGE_LIST: "Resolving new launchers",
    CycleStatus.FINISHED: "Finished",
}


class ConsoleProgressObserver(ProgressObserver):
    """Mirrors engine progress onto a Rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task: TaskID = progress.add_task("Starting", total=None)

    def status_changed(self, status: CycleStatus) -> None:
        self._progress.update(self._task, description=_STATUS_LABELS[status])

    def percentage_changed(self, percentage: int) -> None:
        if percentage == PERCENTAGE_UNKNOWN:
            self._progress.update(self._task, total=None)
        else:
            self._progress.update(self._task, total=100, completed=percentage)


def create_progress() -> Progress:
    """Create a transient progress display on stderr."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[info]{task.description}[/]"),
        BarColumn(),
        console=err_console,
        transient=True,
    )


def get_config(ctx: typer.Context) -> DeskctlConfig:
    """Load the configuration selected by the global --config option.

    Exits with code 1 when the file is invalid.
    """
    obj = ctx.obj or {}
    path: Path | None = obj.get("config_path")
    try:
        return load_config(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def is_quiet(ctx: typer.Context) -> bool:
    """Check if the global --quiet option is set."""
    return bool((ctx.obj or {}).get("quiet", False))


def open_existing_store(config: DeskctlConfig) -> CacheStore | None:
    """Open the cache for reading, or None if it was never created.

    Exits with code 1 when the database cannot be opened.
    """
    path = config.effective_database
    if not path.exists():
        return None
    try:
        return CacheStore.open(path)
    except StoreUnavailableError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
