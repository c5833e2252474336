"""SQLite-backed desktop file cache.

The table layout matches the database kept by PackageKit's desktop file
scanner so that existing consumers can read it:

    cache (filename TEXT, package TEXT, show INTEGER, md5 TEXT)

Every statement is parameterized; paths are never interpolated into SQL.
"""

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from types import TracebackType

from deskctl.core.paths import ensure_dir
from deskctl.models.cache import CacheEntry

logger = logging.getLogger(__name__)

_CREATE_TABLE = "CREATE TABLE IF NOT EXISTS cache (filename TEXT, package TEXT, show INTEGER, md5 TEXT)"
_SELECT_COLUMNS = "SELECT filename, package, show, md5 FROM cache"


class StoreUnavailableError(Exception):
    """Raised when the cache database cannot be opened or written."""


class CacheStore:
    """Persistent mapping from launcher path to owning package.

    Rows are replaced whole: upsert deletes any existing row for the path
    and inserts the new one inside one transaction.

    Example:
        >>> with CacheStore.open(Path("/tmp/desktop-files.db")) as store:
        ...     store.upsert(CacheEntry("/usr/share/applications/vim.desktop", "vim", True, "ab12"))
        ...     store.get("/usr/share/applications/vim.desktop")
    """

    def __init__(self, conn: sqlite3.Connection, path: Path | None = None) -> None:
        self._conn = conn
        self._path = path

    @classmethod
    def open(cls, path: Path) -> "CacheStore":
        """Open the database at path, creating it empty on first use.

        Raises:
            StoreUnavailableError: If the database cannot be opened or created.
        """
        logger.debug("trying to open database '%s'", path)
        try:
            ensure_dir(path.parent, "state")
            conn = sqlite3.connect(str(path))
        except (RuntimeError, sqlite3.Error) as e:
            msg = f"Can't open desktop database {path}: {e}"
            raise StoreUnavailableError(msg) from e

        store = cls(conn, path)
        store._initialize()
        return store

    @classmethod
    def in_memory(cls) -> "CacheStore":
        """Open a private in-memory store."""
        store = cls(sqlite3.connect(":memory:"))
        store._initialize()
        return store

    def _initialize(self) -> None:
        try:
            with self._conn:
                self._conn.execute(_CREATE_TABLE)
            # Rebuildable cache: no fsync per write
            self._conn.execute("PRAGMA synchronous=OFF")
        except sqlite3.Error as e:
            self._conn.close()
            msg = f"Can't initialize desktop database {self._path}: {e}"
            raise StoreUnavailableError(msg) from e

    @property
    def path(self) -> Path | None:
        """Location of the database file (None for in-memory stores)."""
        return self._path

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> "CacheStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def get(self, path: str) -> CacheEntry | None:
        """Look up the entry for one launcher path."""
        rows = self._fetch(f"{_SELECT_COLUMNS} WHERE filename = ?", (path,))
        for entry in self._entries(rows):
            return entry
        return None

    def upsert(self, entry: CacheEntry) -> None:
        """Replace any row for entry.path with entry."""
        try:
            with self._conn:
                self._conn.execute("DELETE FROM cache WHERE filename = ?", (entry.path,))
                self._conn.execute(
                    "INSERT INTO cache (filename, package, show, md5) VALUES (?, ?, ?, ?)",
                    (entry.path, entry.package, int(entry.visible), entry.fingerprint),
                )
        except sqlite3.Error as e:
            msg = f"SQL error writing {entry.path}: {e}"
            raise StoreUnavailableError(msg) from e

    def delete(self, path: str) -> None:
        """Remove the row for a launcher path, if any."""
        try:
            with self._conn:
                self._conn.execute("DELETE FROM cache WHERE filename = ?", (path,))
        except sqlite3.Error as e:
            msg = f"SQL error deleting {path}: {e}"
            raise StoreUnavailableError(msg) from e

    def scan_all(self) -> Iterator[CacheEntry]:
        """Yield every well-formed entry.

        Rows are read up front, so callers may write to the store while
        iterating. Malformed rows are logged and skipped.
        """
        rows = self._fetch(_SELECT_COLUMNS)
        yield from self._entries(rows)

    def count(self) -> int:
        """Return the number of rows in the cache."""
        rows = self._fetch("SELECT COUNT(*) FROM cache")
        return int(rows[0][0])

    def package_for_file(self, path: str) -> str | None:
        """Return the package owning a launcher path, if cached."""
        entry = self.get(path)
        return entry.package if entry is not None else None

    def files_for_package(self, package: str) -> list[str]:
        """Return every cached launcher path owned by a package."""
        rows = self._fetch(f"{_SELECT_COLUMNS} WHERE package = ? ORDER BY filename", (package,))
        return [entry.path for entry in self._entries(rows)]

    def shown_for_package(self, package: str) -> list[str]:
        """Return the visible launcher paths owned by a package."""
        rows = self._fetch(
            f"{_SELECT_COLUMNS} WHERE package = ? AND show = 1 ORDER BY filename",
            (package,),
        )
        return [entry.path for entry in self._entries(rows)]

    def _fetch(self, statement: str, params: tuple[object, ...] = ()) -> list[tuple[object, ...]]:
        try:
            return self._conn.execute(statement, params).fetchall()
        except sqlite3.Error as e:
            msg = f"SQL error: {e}"
            raise StoreUnavailableError(msg) from e

    @staticmethod
    def _entries(rows: list[tuple[object, ...]]) -> Iterator[CacheEntry]:
        for filename, package, show, md5 in rows:
            if not filename or not package:
                logger.warning("Skipping malformed cache row: filename=%r package=%r", filename, package)
                continue
            yield CacheEntry(
                path=str(filename),
                package=str(package),
                visible=bool(show),
                fingerprint=str(md5) if md5 else "",
            )
