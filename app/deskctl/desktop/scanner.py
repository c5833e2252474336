"""Recursive discovery of launcher files.

Walks an applications directory depth-first and yields every non-directory
entry whose name ends in the launcher suffix. Unreadable directories are
logged and skipped; the rest of the tree is still walked.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

DESKTOP_SUFFIX = ".desktop"


class TreeScanner:
    """Enumerates launcher files under a root directory.

    Directories are identified by (device, inode) so a symlink loop is
    entered at most once per walk.

    Args:
        suffix: File name suffix identifying launcher files.

    Example:
        >>> for path in TreeScanner().walk(Path("/usr/share/applications")):
        ...     print(path)
    """

    def __init__(self, suffix: str = DESKTOP_SUFFIX) -> None:
        self._suffix = suffix

    @property
    def suffix(self) -> str:
        """Launcher file name suffix."""
        return self._suffix

    def is_launcher(self, path: str | Path) -> bool:
        """Check if a path names a launcher file (by suffix only)."""
        return str(path).endswith(self._suffix)

    def walk(self, root: str | Path) -> Iterator[str]:
        """Yield launcher file paths under root in directory-tree order.

        Args:
            root: Directory to walk.

        Yields:
            Absolute path strings of launcher files.
        """
        seen: set[tuple[int, int]] = set()
        yield from self._walk_directory(str(root), seen)

    def _walk_directory(self, directory: str, seen: set[tuple[int, int]]) -> Iterator[str]:
        try:
            stat = os.stat(directory)
        except OSError as e:
            logger.warning("failed to open directory %s: %s", directory, e)
            return

        identity = (stat.st_dev, stat.st_ino)
        if identity in seen:
            logger.debug("skipping already visited directory %s", directory)
            return
        seen.add(identity)

        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            logger.warning("failed to open directory %s: %s", directory, e)
            return

        for name in names:
            path = os.path.join(directory, name)
            if os.path.isdir(path):
                yield from self._walk_directory(path, seen)
            elif name.endswith(self._suffix):
                yield path
