"""Abstract base class for package ownership backends.

Backends answer queries by streaming events into a QuerySink rather
than by returning values: zero or more ``package`` or ``files`` events
followed by exactly one ``finished`` event. Events may be emitted from
any thread.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum

from deskctl.models.query import QueryStatus


class QueryRole(str, Enum):
    """Kinds of query a backend may implement."""

    SEARCH_FILE = "search-file"
    GET_FILES = "get-files"


class ResolverError(Exception):
    """Raised by a backend when a query cannot be run at all."""


class QuerySink(ABC):
    """Receiver of the event stream produced by one query."""

    @abstractmethod
    def package(self, name: str, paths: Sequence[str] = ()) -> None:
        """Report a package owning some (or, if paths is empty, all) targets."""

    @abstractmethod
    def files(self, package_id: str, paths: Sequence[str]) -> None:
        """Report the file manifest of one package."""

    @abstractmethod
    def finished(self, status: QueryStatus, detail: str = "") -> None:
        """Report the end of the query."""


class OwnershipBackend(ABC):
    """Abstract base class for package ownership backends.

    Example:
        >>> backend = DpkgBackend()
        >>> if backend.supports(QueryRole.SEARCH_FILE):
        ...     backend.search_files(["/usr/share/applications/vim.desktop"],
        ...                          installed_only=True, sink=sink)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name used in logs."""

    @abstractmethod
    def supports(self, role: QueryRole) -> bool:
        """Check if this backend can answer queries of the given role."""

    @abstractmethod
    def search_files(self, paths: Sequence[str], *, installed_only: bool, sink: QuerySink) -> None:
        """Resolve paths to the packages that installed them.

        Emits one ``package`` event per owning package, then ``finished``.
        """

    @abstractmethod
    def get_files(self, package_ids: Sequence[str], *, sink: QuerySink) -> None:
        """List the files of each package.

        Emits one ``files`` event per package, then ``finished``.
        """
