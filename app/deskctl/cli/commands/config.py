"""Config command implementation.

Shows or writes the deskctl configuration file.
"""

from pathlib import Path
from typing import Annotated

import typer

from deskctl.cli.types import get_config
from deskctl.core.config import ConfigError, DeskctlConfig, config_to_dict, save_config
from deskctl.core.paths import get_config_path
from deskctl.utils.formatting import console, print_error, print_success, print_warning

app = typer.Typer(
    help="Show or initialize the configuration.",
    no_args_is_help=True,
)


def _config_path(ctx: typer.Context) -> Path:
    path: Path | None = (ctx.obj or {}).get("config_path")
    return path or get_config_path()


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    config = get_config(ctx)
    path = _config_path(ctx)

    source = str(path) if path.exists() else "built-in defaults"
    console.print(f"[muted]# {source}[/]")
    for key, value in config_to_dict(config).items():
        console.print(f"[header]{key}[/] = {value}")
    console.print(f"[header]database (effective)[/] = {config.effective_database}")


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite an existing config file.",
        ),
    ] = False,
) -> None:
    """Write a config file containing the default settings."""
    path = _config_path(ctx)
    if path.exists() and not force:
        print_warning(f"Config already exists: {path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        saved = save_config(DeskctlConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written: {saved}")
