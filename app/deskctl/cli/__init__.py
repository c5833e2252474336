"""Command-line interface for deskctl."""

from deskctl.cli.main import app

__all__ = ["app"]
