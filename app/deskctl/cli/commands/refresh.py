"""Refresh command implementation.

Runs one reconciliation cycle over the desktop file cache.
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from deskctl.cli.types import (
    ConsoleProgressObserver,
    OutputFormat,
    create_progress,
    get_config,
    is_quiet,
)
from deskctl.core.engine import CycleReport, ReconciliationEngine
from deskctl.core.store import StoreUnavailableError
from deskctl.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Revalidate cached launchers and discover new ones.",
    invoke_without_command=True,
)


def _report_to_dict(report: CycleReport) -> dict[str, object]:
    return {
        "revalidated": report.revalidated,
        "unchanged": report.unchanged,
        "updated": report.updated,
        "removed": report.removed,
        "discovered": report.discovered,
        "skipped": report.skipped,
        "skipped_reason": report.skipped_reason,
    }


def _print_summary(report: CycleReport) -> None:
    table = Table(title="Refresh Summary", header_style="bold_header", border_style="border")
    table.add_column("Result")
    table.add_column("Count", justify="right", style="info")
    table.add_row("Revalidated", str(report.revalidated))
    table.add_row("Unchanged", str(report.unchanged))
    table.add_row("Updated", str(len(report.updated)))
    table.add_row("Removed", str(len(report.removed)))
    table.add_row("Discovered", str(len(report.discovered)))
    table.add_row("Skipped", str(len(report.skipped)))
    console.print(table)


@app.callback(invoke_without_command=True)
def refresh(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Reconcile the cache with the filesystem and the package manager.

    Examples:
        deskctl refresh                 # Run a cycle, show summary
        deskctl refresh --format json   # Machine-readable report
        deskctl -v refresh              # Log every decision
    """
    config = get_config(ctx)
    if not config.enabled:
        print_info("Desktop file cache is disabled in the configuration.")
        return

    show_progress = output_format == OutputFormat.TABLE and not is_quiet(ctx)

    try:
        with ReconciliationEngine.from_config(config) as engine:
            if show_progress:
                with create_progress() as progress:
                    engine.observer = ConsoleProgressObserver(progress)
                    report = engine.refresh()
            else:
                report = engine.refresh()
    except StoreUnavailableError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(_report_to_dict(report)))
        return

    if report.skipped_reason is not None:
        print_warning(f"Refresh skipped: {report.skipped_reason}")
        return

    if not is_quiet(ctx):
        _print_summary(report)
    if report.mutations:
        print_success(f"Cache updated: {report.mutations} change(s).")
    else:
        print_info("Cache is up to date.")
