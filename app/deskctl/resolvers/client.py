"""Blocking client for package ownership backends.

Backends answer through a callback stream. ResolverClient hides that
behind two plain calls, resolve() and list_files(), each of which
submits one query, collects its events and returns once the terminal
event arrives or the timeout expires.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from types import TracebackType

from deskctl.models.query import (
    FileListing,
    OwnershipQuery,
    PackageFiles,
    PackageMatch,
    QueryStatus,
    Resolution,
)
from deskctl.resolvers.base import OwnershipBackend, QueryRole, QuerySink

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 30.0


class _Collector(QuerySink):
    """Accumulates the events of one query until it is closed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False
        self.matches: list[PackageMatch] = []
        self.manifests: list[PackageFiles] = []
        self.done: Future[tuple[QueryStatus, str]] = Future()

    def package(self, name: str, paths: Sequence[str] = ()) -> None:
        with self._lock:
            if not self._closed:
                self.matches.append(PackageMatch(package=name, paths=tuple(paths)))

    def files(self, package_id: str, paths: Sequence[str]) -> None:
        with self._lock:
            if not self._closed:
                self.manifests.append(PackageFiles(package_id=package_id, paths=tuple(paths)))

    def finished(self, status: QueryStatus, detail: str = "") -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.done.set_result((status, detail))

    def close(self) -> None:
        """Drop any events that arrive from now on."""
        with self._lock:
            self._closed = True


class ResolverClient:
    """Single-flight, blocking front end to an OwnershipBackend.

    Only one query is outstanding at a time; concurrent callers wait
    for the slot. A query with no terminal event within timeout seconds
    is answered with QueryStatus.TIMEOUT and its late events are dropped.
    If the backend is still working on it, that worker thread is abandoned
    and the next query starts on a new one.

    Args:
        backend: Backend that runs the queries.
        timeout: Seconds to wait for the terminal event of each query.
    """

    def __init__(self, backend: OwnershipBackend, *, timeout: float = DEFAULT_QUERY_TIMEOUT) -> None:
        self._backend = backend
        self._timeout = timeout
        self._slot = threading.Lock()
        self._executor = self._new_executor()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="deskctl-query")

    @property
    def backend(self) -> OwnershipBackend:
        """The wrapped backend."""
        return self._backend

    def supports(self, role: QueryRole) -> bool:
        """Check if the backend implements a query role."""
        return self._backend.supports(role)

    def close(self) -> None:
        """Stop the worker thread without waiting for abandoned queries."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ResolverClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def resolve(self, paths: Sequence[str], *, installed_only: bool = True) -> Resolution:
        """Find the packages owning paths.

        Args:
            paths: Target paths.
            installed_only: Only consider installed packages.

        Returns:
            Resolution with every match event in arrival order.

        Raises:
            ValueError: If paths is empty or contains a reserved delimiter.
        """
        query = OwnershipQuery(targets=tuple(paths), installed_only=installed_only)

        if not self.supports(QueryRole.SEARCH_FILE):
            return Resolution(query=query, status=QueryStatus.UNSUPPORTED, detail="cannot search files")

        collector = _Collector()
        status, detail = self._run(
            collector,
            lambda: self._backend.search_files(query.targets, installed_only=installed_only, sink=collector),
            QueryRole.SEARCH_FILE,
            query.identifier,
        )
        return Resolution(query=query, matches=tuple(collector.matches), status=status, detail=detail)

    def list_files(self, package_ids: Sequence[str]) -> FileListing:
        """Fetch the file manifests of packages.

        Args:
            package_ids: Package identifiers to list.

        Returns:
            FileListing with the manifests received before the terminal event.
        """
        ids = tuple(package_ids)
        if not self.supports(QueryRole.GET_FILES):
            return FileListing(package_ids=ids, status=QueryStatus.UNSUPPORTED, detail="cannot get files")

        collector = _Collector()
        status, detail = self._run(
            collector,
            lambda: self._backend.get_files(ids, sink=collector),
            QueryRole.GET_FILES,
            ", ".join(ids),
        )
        return FileListing(
            package_ids=ids,
            manifests=tuple(collector.manifests),
            status=status,
            detail=detail,
        )

    def _run(
        self,
        collector: _Collector,
        submit: Callable[[], None],
        role: QueryRole,
        description: str,
    ) -> tuple[QueryStatus, str]:
        with self._slot:
            work = self._executor.submit(submit)
            work.add_done_callback(lambda f: self._on_submitted(f, collector))

            try:
                status, detail = collector.done.result(timeout=self._timeout)
            except FutureTimeoutError:
                collector.close()
                if not work.done():
                    # Abandon the busy worker
                    self._executor.shutdown(wait=False, cancel_futures=True)
                    self._executor = self._new_executor()
                logger.warning(
                    "%s query for %s timed out after %.1fs",
                    role.value,
                    description,
                    self._timeout,
                )
                return QueryStatus.TIMEOUT, f"no answer within {self._timeout}s"

        if status != QueryStatus.SUCCESS:
            logger.warning("%s failed with exit code: %s %s", role.value, status.value, detail)
        return status, detail

    @staticmethod
    def _on_submitted(work: Future[None], collector: _Collector) -> None:
        # A backend that raises never emits its terminal event
        if work.cancelled():
            collector.finished(QueryStatus.FAILED, "query cancelled")
            return
        error = work.exception()
        if error is not None:
            collector.finished(QueryStatus.FAILED, str(error))
