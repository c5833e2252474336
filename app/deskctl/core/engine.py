"""Reconciliation of the desktop file cache.

A refresh cycle first revalidates every cached entry against the file
on disk (removing vanished files, re-resolving changed ones) and then
discovers launcher files that are not cached yet. An install ingest
writes the launchers of freshly installed packages directly, without
asking who owns them.
"""

import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType

from deskctl.core.config import DeskctlConfig
from deskctl.core.fingerprint import compute_fingerprint
from deskctl.core.store import CacheStore
from deskctl.desktop.scanner import TreeScanner
from deskctl.desktop.visibility import DesktopVisibilityOracle, VisibilityError
from deskctl.models.cache import CacheEntry
from deskctl.models.package import PackageInfo, split_package_id
from deskctl.models.query import QueryStatus, Resolution
from deskctl.resolvers import get_backend
from deskctl.resolvers.base import OwnershipBackend, QueryRole
from deskctl.resolvers.client import ResolverClient

logger = logging.getLogger(__name__)

# Percentage value meaning "progress unknown"
PERCENTAGE_UNKNOWN = 101


class CycleStatus(str, Enum):
    """Progress states reported while the engine works."""

    SCANNING_APPLICATIONS = "scanning-applications"
    GENERATING_PACKAGE_LIST = "generating-package-list"
    FINISHED = "finished"


class ProgressObserver:
    """Receives progress signals. The default implementation ignores them."""

    def status_changed(self, status: CycleStatus) -> None:
        """Called when the engine enters a new state."""

    def percentage_changed(self, percentage: int) -> None:
        """Called with 0-100, or PERCENTAGE_UNKNOWN."""


class VisitedSet:
    """Paths already reconciled during the current cycle."""

    def __init__(self) -> None:
        self._paths: set[str] = set()

    def mark(self, path: str) -> None:
        """Record a path as handled."""
        self._paths.add(path)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)


@dataclass(slots=True)
class CycleReport:
    """Outcome of one refresh cycle.

    Attributes:
        revalidated: Number of cached entries examined.
        unchanged: Entries whose content still matches.
        updated: Paths re-resolved and rewritten after a content change.
        removed: Paths deleted because the file vanished.
        discovered: New paths added by discovery.
        skipped: Paths left untouched because resolution failed.
        skipped_reason: Why the whole cycle was skipped, if it was.
    """

    revalidated: int = 0
    unchanged: int = 0
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    discovered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def mutations(self) -> int:
        """Number of store writes made by the cycle."""
        return len(self.updated) + len(self.removed) + len(self.discovered)


@dataclass(slots=True)
class IngestReport:
    """Outcome of ingesting the launchers of an install operation.

    Attributes:
        packages: Installed package ids whose manifests were requested.
        added: Launcher paths written to the cache.
        skipped: Launcher paths that could not be written.
        status: Terminal status of the manifest query.
        skipped_reason: Why the whole ingest was skipped, if it was.
    """

    packages: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    status: QueryStatus | None = None
    skipped_reason: str | None = None


class ReconciliationEngine:
    """Keeps the desktop file cache consistent with disk and package data.

    Only one cycle or ingest may run at a time; callers serialize them.

    Args:
        store: Cache store, or None when the cache is disabled.
        client: Blocking front end to the ownership backend.
        applications_dir: Root directory walked by discovery.
        fingerprint: Computes a file fingerprint, None if unavailable.
        visibility: Returns whether a launcher is shown; raises VisibilityError.
        scanner: Enumerates launcher files.
        observer: Receives progress signals.
    """

    def __init__(
        self,
        store: CacheStore | None,
        client: ResolverClient,
        *,
        applications_dir: Path,
        fingerprint: Callable[[str], str | None] = compute_fingerprint,
        visibility: Callable[[str], bool] | None = None,
        scanner: TreeScanner | None = None,
        observer: ProgressObserver | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._applications_dir = applications_dir
        self._fingerprint = fingerprint
        self._visibility = visibility if visibility is not None else DesktopVisibilityOracle()
        self._scanner = scanner if scanner is not None else TreeScanner()
        self.observer = observer if observer is not None else ProgressObserver()

    @classmethod
    def from_config(
        cls,
        config: DeskctlConfig,
        *,
        backend: OwnershipBackend | None = None,
        observer: ProgressObserver | None = None,
    ) -> "ReconciliationEngine":
        """Build an engine from configuration.

        The store is opened (and created if missing) only when the cache
        is enabled.

        Raises:
            StoreUnavailableError: If the enabled store cannot be opened.
        """
        store = CacheStore.open(config.effective_database) if config.enabled else None
        client = ResolverClient(
            backend
            if backend is not None
            else get_backend(config.backend, command_timeout=config.query_timeout_seconds),
            timeout=config.query_timeout_seconds,
        )
        return cls(
            store,
            client,
            applications_dir=config.applications_dir,
            scanner=TreeScanner(config.launcher_suffix),
            observer=observer,
        )

    @property
    def store(self) -> CacheStore | None:
        """The cache store, None when disabled."""
        return self._store

    def close(self) -> None:
        """Release the store and the resolver worker."""
        if self._store is not None:
            self._store.close()
        self._client.close()

    def __enter__(self) -> "ReconciliationEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def refresh(self) -> CycleReport:
        """Run one full reconciliation cycle.

        Returns:
            CycleReport describing what changed.

        Raises:
            StoreUnavailableError: If the store fails mid-cycle.
        """
        report = CycleReport()

        if self._store is None:
            logger.debug("no database, skipping refresh")
            report.skipped_reason = "cache disabled"
            return report

        if not self._client.supports(QueryRole.SEARCH_FILE):
            logger.debug("cannot search files")
            report.skipped_reason = "backend cannot search files"
            return report

        self.observer.status_changed(CycleStatus.SCANNING_APPLICATIONS)
        self.observer.percentage_changed(PERCENTAGE_UNKNOWN)

        visited = VisitedSet()
        self.revalidate_all(visited, report)
        self.discover_new(visited, report)

        self.observer.percentage_changed(100)
        self.observer.status_changed(CycleStatus.FINISHED)
        return report

    def revalidate_all(self, visited: VisitedSet, report: CycleReport | None = None) -> CycleReport:
        """Check every cached entry against the file on disk.

        Vanished files are removed. Changed files are re-resolved and
        rewritten; when resolution fails the stale entry is kept. Every
        surviving path is marked in visited. A path stored in several rows
        is examined once.
        """
        report = report if report is not None else CycleReport()
        store = self._require_store()
        seen: set[str] = set()

        for entry in store.scan_all():
            if entry.path in seen:
                logger.debug("skipping duplicate row for %s", entry.path)
                continue
            seen.add(entry.path)
            report.revalidated += 1
            current = self._fingerprint(entry.path)

            if current is None:
                logger.debug("remove of %s as no longer found", entry.path)
                store.delete(entry.path)
                report.removed.append(entry.path)
                continue

            visited.mark(entry.path)

            if entry.has_fingerprint and current == entry.fingerprint:
                logger.debug("existing filename %s valid, fingerprint=%s", entry.path, current)
                report.unchanged += 1
                continue

            logger.debug(
                "add of %s as fingerprint invalid (%s vs %s)",
                entry.path,
                entry.fingerprint or "<none>",
                current,
            )
            if self._add_path(entry.path, current):
                report.updated.append(entry.path)
            else:
                report.skipped.append(entry.path)

        return report

    def discover_new(self, visited: VisitedSet, report: CycleReport | None = None) -> CycleReport:
        """Add launcher files found on disk that were not revalidated."""
        report = report if report is not None else CycleReport()
        self._require_store()

        candidates = [
            path for path in self._scanner.walk(self._applications_dir) if path not in visited
        ]
        if not candidates:
            return report

        self.observer.status_changed(CycleStatus.GENERATING_PACKAGE_LIST)
        step = 100.0 / len(candidates)

        for i, path in enumerate(candidates):
            self.observer.percentage_changed(int(i * step))
            logger.debug("add of %s as not present in db", path)
            if self._add_path(path):
                report.discovered.append(path)
            else:
                report.skipped.append(path)

        return report

    def ingest_from_install(self, packages: Iterable[PackageInfo]) -> IngestReport:
        """Cache the launchers of packages an install operation just wrote.

        Only packages in the installing or updating state are considered;
        their identity is re-keyed to the installed state before their
        manifests are requested. Ownership is known, so no ownership
        query is made.

        Args:
            packages: Packages reported by the install operation.

        Returns:
            IngestReport describing what was written.

        Raises:
            StoreUnavailableError: If the store fails.
        """
        report = IngestReport()

        if self._store is None:
            logger.debug("no database, skipping ingest")
            report.skipped_reason = "cache disabled"
            return report

        if not self._client.supports(QueryRole.GET_FILES):
            logger.debug("cannot get files")
            report.skipped_reason = "backend cannot list files"
            return report

        package_ids = [pkg.installed_id for pkg in packages if pkg.state.is_incoming]
        logger.debug("processing %i packages for desktop files", len(package_ids))
        if not package_ids:
            report.skipped_reason = "no installing or updating packages"
            return report

        report.packages = package_ids
        self.observer.status_changed(CycleStatus.SCANNING_APPLICATIONS)
        self.observer.percentage_changed(PERCENTAGE_UNKNOWN)

        listing = self._client.list_files(package_ids)
        report.status = listing.status

        for manifest in listing.manifests:
            name = split_package_id(manifest.package_id)[0]
            for path in manifest.paths:
                if not self._scanner.is_launcher(path) or not os.path.isfile(path):
                    continue

                logger.debug("adding filename %s", path)
                fingerprint = self._fingerprint(path)
                if fingerprint is None:
                    report.skipped.append(path)
                    continue

                if self._write_entry(path, name, fingerprint):
                    report.added.append(path)
                else:
                    report.skipped.append(path)

        self.observer.percentage_changed(100)
        return report

    def _require_store(self) -> CacheStore:
        if self._store is None:
            msg = "cache store is not available"
            raise RuntimeError(msg)
        return self._store

    def _add_path(self, path: str, fingerprint: str | None = None) -> bool:
        """Resolve the owner of path and write its entry.

        Args:
            path: Launcher file to add.
            fingerprint: Already computed fingerprint, if any.

        Returns:
            True if an entry was written.
        """
        if fingerprint is None:
            fingerprint = self._fingerprint(path)
            if fingerprint is None:
                logger.warning("cannot fingerprint %s, skipping", path)
                return False

        try:
            resolution = self._client.resolve([path])
        except ValueError as e:
            logger.warning("cannot query owner of %s: %s", path, e)
            return False
        owner = resolution.owner
        if owner is None:
            self._log_unresolved(path, resolution)
            return False

        return self._write_entry(path, owner, fingerprint)

    def _write_entry(self, path: str, package: str, fingerprint: str) -> bool:
        try:
            visible = self._visibility(path)
        except VisibilityError as e:
            logger.warning("%s", e)
            return False

        logger.debug(
            "add filename %s from %s with fingerprint: %s (show: %s)",
            path,
            package,
            fingerprint,
            visible,
        )
        self._require_store().upsert(
            CacheEntry(path=path, package=package, visible=visible, fingerprint=fingerprint)
        )
        return True

    @staticmethod
    def _log_unresolved(path: str, resolution: Resolution) -> None:
        if resolution.status != QueryStatus.SUCCESS:
            logger.warning(
                "failed to resolve owner of %s: %s %s",
                path,
                resolution.status.value,
                resolution.detail,
            )
        elif not resolution.matches:
            logger.warning("no installed package owns %s", path)
        else:
            logger.warning(
                "ambiguous owner of %s: %s",
                path,
                ", ".join(match.package for match in resolution.matches),
            )
