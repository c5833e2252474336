"""List command implementation.

Shows the rows of the desktop file cache.
"""

import json
from typing import Annotated

import typer

from deskctl.cli.types import OutputFormat, get_config, open_existing_store
from deskctl.models.cache import CacheEntry
from deskctl.utils.formatting import console, create_cache_table, format_entry_row, print_info

app = typer.Typer(
    help="List cached launchers.",
    invoke_without_command=True,
)


def _entry_to_dict(entry: CacheEntry) -> dict[str, object]:
    return {
        "path": entry.path,
        "package": entry.package,
        "visible": entry.visible,
        "fingerprint": entry.fingerprint,
    }


@app.callback(invoke_without_command=True)
def list_entries(
    ctx: typer.Context,
    package: Annotated[
        str | None,
        typer.Option(
            "--package",
            "-p",
            help="Only show launchers owned by this package.",
        ),
    ] = None,
    shown_only: Annotated[
        bool,
        typer.Option(
            "--shown-only",
            help="Only show launchers visible in menus.",
        ),
    ] = False,
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
    """Show cached launchers and their owning packages.

    Examples:
        deskctl list                     # Every cached launcher
        deskctl list -p firefox          # Launchers of one package
        deskctl list --shown-only -f json
    """
    config = get_config(ctx)
    store = open_existing_store(config)
    if store is None:
        print_info("The desktop file cache is empty. Run 'deskctl refresh' first.")
        return

    with store:
        if package is None:
            entries = [e for e in store.scan_all() if e.visible or not shown_only]
            entries.sort(key=lambda e: e.path)
        else:
            paths = (
                store.shown_for_package(package)
                if shown_only
                else store.files_for_package(package)
            )
            entries = [e for e in map(store.get, paths) if e is not None]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([_entry_to_dict(e) for e in entries]))
        return

    if not entries:
        print_info("No matching launchers.")
        return

    table = create_cache_table()
    for entry in entries:
        table.add_row(*format_entry_row(entry))
    console.print(table)
    console.print(f"\n[muted]{len(entries)} launcher(s)[/]")
