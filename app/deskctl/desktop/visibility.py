"""Visibility of launcher files in user-facing menus.

Reads the ``[Desktop Entry]`` group of a launcher file and decides
whether menus should list it, following the rules of the freedesktop.org
desktop entry specification (NoDisplay, Hidden, OnlyShowIn, NotShowIn,
TryExec).
"""

import configparser
import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

DESKTOP_ENTRY_GROUP = "Desktop Entry"


class VisibilityError(Exception):
    """Raised when a launcher file cannot be loaded."""


def _is_true(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item for item in value.split(";") if item]


def current_desktops() -> list[str]:
    """Return the desktop names from XDG_CURRENT_DESKTOP."""
    value = os.environ.get("XDG_CURRENT_DESKTOP", "")
    return [name for name in value.split(":") if name]


class DesktopVisibilityOracle:
    """Decides whether a launcher file should be shown to end users.

    Args:
        desktops: Names of the running desktop environments. If None,
            XDG_CURRENT_DESKTOP is read at each call.
    """

    def __init__(self, desktops: Sequence[str] | None = None) -> None:
        self._desktops = list(desktops) if desktops is not None else None

    def __call__(self, path: str | Path) -> bool:
        return self.should_show(path)

    def should_show(self, path: str | Path) -> bool:
        """Check if a launcher file should appear in menus.

        Args:
            path: Launcher file to inspect.

        Returns:
            True if the launcher is meant to be listed.

        Raises:
            VisibilityError: If the file is unreadable, malformed, not an
                application launcher, or its TryExec program is missing.
        """
        entry = self._load(Path(path))

        if _is_true(entry.get("NoDisplay")) or _is_true(entry.get("Hidden")):
            return False

        return self._shown_in_desktops(
            only_show_in=_split_list(entry.get("OnlyShowIn")),
            not_show_in=_split_list(entry.get("NotShowIn")),
        )

    def _shown_in_desktops(self, only_show_in: list[str], not_show_in: list[str]) -> bool:
        desktops = self._desktops if self._desktops is not None else current_desktops()
        for desktop in desktops:
            if desktop in only_show_in:
                return True
            if desktop in not_show_in:
                return False
        return not only_show_in

    def _load(self, path: Path) -> configparser.SectionProxy:
        parser = configparser.ConfigParser(interpolation=None, strict=False)
        # Keys are case-sensitive in desktop entries
        parser.optionxform = str  # type: ignore[assignment,method-assign]

        try:
            with path.open(encoding="utf-8") as f:
                parser.read_file(f, source=str(path))
        except (OSError, UnicodeDecodeError) as e:
            msg = f"could not load desktop file {path}: {e}"
            raise VisibilityError(msg) from e
        except configparser.Error as e:
            msg = f"could not parse desktop file {path}: {e}"
            raise VisibilityError(msg) from e

        if DESKTOP_ENTRY_GROUP not in parser:
            msg = f"{path} has no [{DESKTOP_ENTRY_GROUP}] group"
            raise VisibilityError(msg)

        entry = parser[DESKTOP_ENTRY_GROUP]
        entry_type = entry.get("Type")
        if entry_type != "Application":
            msg = f"{path} is not an application launcher (Type={entry_type!r})"
            raise VisibilityError(msg)

        try_exec = entry.get("TryExec")
        if try_exec and shutil.which(try_exec) is None:
            msg = f"{path}: TryExec program {try_exec!r} not found"
            raise VisibilityError(msg)

        return entry
