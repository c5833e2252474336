"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from deskctl import __version__
from deskctl.cli.commands import config, entries, ingest, owner, refresh
from deskctl.utils.formatting import err_console

app = typer.Typer(
    name="deskctl",
    help="Desktop launcher ownership cache for Linux package managers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"deskctl version {__version__}")
        raise typer.Exit()


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    WARNING by default, DEBUG with --verbose, ERROR with --quiet.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    handler = RichHandler(console=err_console, show_path=False, markup=False)
    root = logging.getLogger("deskctl")
    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file (default: ~/.config/deskctl/config.toml).",
        ),
    ] = None,
) -> None:
    """deskctl - keep track of which package installed each desktop launcher.

    Maintains a cache mapping launcher files to their owning package,
    refreshed from the filesystem and the package manager.
    """
    configure_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path


app.add_typer(refresh.app, name="refresh")
app.command("ingest", no_args_is_help=True)(ingest.ingest)
app.add_typer(entries.app, name="list")
app.command("owner", no_args_is_help=True)(owner.owner)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
