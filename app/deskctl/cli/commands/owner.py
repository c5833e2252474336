"""Owner command implementation.

Looks up the cached owner of one launcher file.
"""

from pathlib import Path
from typing import Annotated

import typer

from deskctl.cli.types import get_config, open_existing_store
from deskctl.utils.formatting import console, print_error


def owner(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Launcher file to look up."),
    ],
) -> None:
    """Print the package that owns a cached launcher file."""
    config = get_config(ctx)
    target = str(path.absolute())

    store = open_existing_store(config)
    package = None
    if store is not None:
        with store:
            package = store.package_for_file(target)

    if package is None:
        print_error(f"{target} is not in the desktop file cache.")
        raise typer.Exit(code=1)

    console.print(package)
