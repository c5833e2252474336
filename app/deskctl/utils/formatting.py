"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table

from deskctl.core.theme import get_theme
from deskctl.models.cache import CacheEntry


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_cache_table(title: str = "Desktop File Cache") -> Table:
    """Create a pre-configured table for displaying cache entries."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Launcher", overflow="fold")
    table.add_column("Package", no_wrap=True)
    table.add_column("Fingerprint", style="muted", no_wrap=True)
    return table


def format_entry_row(entry: CacheEntry) -> tuple[str, str, str, str]:
    """Format a cache entry as a table row.

    Shown launchers get a filled circle, hidden ones an empty circle.
    """
    if entry.visible:
        icon = "[launcher_shown]●[/]"
        package = f"[launcher_shown]{entry.package}[/]"
    else:
        icon = "[launcher_hidden]○[/]"
        package = f"[launcher_hidden]{entry.package}[/]"

    fingerprint = entry.fingerprint[:12] if entry.fingerprint else "-"
    return (icon, f"[text]{entry.path}[/]", package, fingerprint)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
