"""Ingest command implementation.

Caches the launchers of packages that an install operation just wrote.
"""

import json
from typing import Annotated

import typer

from deskctl.cli.types import OutputFormat, get_config
from deskctl.core.engine import ReconciliationEngine
from deskctl.core.store import StoreUnavailableError
from deskctl.models.package import PackageInfo, PackageState
from deskctl.utils.formatting import console, print_error, print_info, print_success, print_warning


def ingest(
    ctx: typer.Context,
    package_ids: Annotated[
        list[str],
        typer.Argument(
            help="Package ids (name;version;arch;data) or bare package names.",
        ),
    ],
    state: Annotated[
        PackageState,
        typer.Option(
            "--state",
            "-s",
            help="Transition state of the packages in the install operation.",
            case_sensitive=False,
        ),
    ] = PackageState.INSTALLING,
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
    """Cache launchers shipped by packages an install operation wrote.

    Only packages in the installing or updating state are processed.

    Examples:
        deskctl ingest firefox                       # Package just installed
        deskctl ingest "vim;2:9.1;amd64;noble"       # Full package id
        deskctl ingest gimp --state updating
    """
    config = get_config(ctx)
    if not config.enabled:
        print_info("Desktop file cache is disabled in the configuration.")
        return

    try:
        packages = [PackageInfo.from_package_id(pid, state) for pid in package_ids]
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    try:
        with ReconciliationEngine.from_config(config) as engine:
            report = engine.ingest_from_install(packages)
    except StoreUnavailableError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        data = {
            "packages": report.packages,
            "added": report.added,
            "skipped": report.skipped,
            "status": report.status.value if report.status is not None else None,
            "skipped_reason": report.skipped_reason,
        }
        console.print_json(json.dumps(data))
        return

    if report.skipped_reason is not None:
        print_warning(f"Ingest skipped: {report.skipped_reason}")
        return

    for path in report.added:
        console.print(f"  [success]+[/] {path}")
    for path in report.skipped:
        console.print(f"  [warning]![/] {path}")

    if report.added:
        print_success(f"Added {len(report.added)} launcher(s).")
    else:
        print_info("No launchers found in the package manifests.")
