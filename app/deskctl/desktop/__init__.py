"""Launcher file discovery and inspection."""

from deskctl.desktop.scanner import DESKTOP_SUFFIX, TreeScanner
from deskctl.desktop.visibility import DesktopVisibilityOracle, VisibilityError

__all__ = ["DESKTOP_SUFFIX", "DesktopVisibilityOracle", "TreeScanner", "VisibilityError"]
