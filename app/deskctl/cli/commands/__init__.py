"""CLI commands for deskctl.

This package contains all subcommand implementations.
"""

from deskctl.cli.commands import config, entries, ingest, owner, refresh

__all__ = ["config", "entries", "ingest", "owner", "refresh"]
