"""Unit tests for ReconciliationEngine.

Covers revalidation, discovery and install ingest against an in-memory
store and a scripted ownership backend.
"""

import sqlite3
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from deskctl.core.config import DeskctlConfig
from deskctl.core.engine import (
    PERCENTAGE_UNKNOWN,
    CycleStatus,
    ProgressObserver,
    ReconciliationEngine,
    VisitedSet,
)
from deskctl.core.fingerprint import compute_fingerprint
from deskctl.core.store import CacheStore, StoreUnavailableError
from deskctl.desktop.visibility import VisibilityError
from deskctl.models.cache import CacheEntry
from deskctl.models.package import PackageInfo, PackageState
from deskctl.models.query import QueryStatus
from deskctl.resolvers.base import QueryRole

EngineFactory = Callable[..., ReconciliationEngine]


class RecordingObserver(ProgressObserver):
    """Observer that remembers every signal."""

    def __init__(self) -> None:
        self.statuses: list[CycleStatus] = []
        self.percentages: list[int] = []

    def status_changed(self, status: CycleStatus) -> None:
        self.statuses.append(status)

    def percentage_changed(self, percentage: int) -> None:
        self.percentages.append(percentage)


class TestVisitedSet:
    """Tests for VisitedSet."""

    def test_mark_and_contains(self) -> None:
        """Marked paths are members, others are not."""
        visited = VisitedSet()
        visited.mark("/apps/a.desktop")

        assert "/apps/a.desktop" in visited
        assert "/apps/b.desktop" not in visited
        assert len(visited) == 1


class TestRefreshPreconditions:
    """Tests for the checks made before a cycle starts."""

    def test_no_store_skips_cycle(self, make_engine: EngineFactory, fake_backend) -> None:
        """Without a store nothing runs and the backend is never asked."""
        engine = make_engine(None, fake_backend)

        report = engine.refresh()

        assert report.skipped_reason == "cache disabled"
        assert fake_backend.search_calls == []

    def test_backend_without_search_skips_cycle(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A backend that cannot search files skips the whole refresh."""
        make_launcher(apps_dir / "a.desktop")
        store.upsert(CacheEntry("/gone/x.desktop", "x", True, "abc"))
        backend = make_backend(roles=(QueryRole.GET_FILES,))
        engine = make_engine(store, backend)

        report = engine.refresh()

        assert report.skipped_reason == "backend cannot search files"
        # Not even the vanished entry is removed
        assert store.get("/gone/x.desktop") is not None
        assert store.count() == 1


class TestRevalidateAll:
    """Tests for the revalidation phase."""

    def test_vanished_file_is_deleted_without_query(
        self, make_engine: EngineFactory, fake_backend, store: CacheStore, apps_dir: Path
    ) -> None:
        """An entry whose file is gone is deleted and never resolved."""
        path = str(apps_dir / "a.desktop")
        store.upsert(CacheEntry(path, "foo", True, "H1"))
        engine = make_engine(store, fake_backend)

        report = engine.refresh()

        assert store.get(path) is None
        assert report.removed == [path]
        assert fake_backend.search_calls == []

    def test_changed_content_updates_fingerprint(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Changed content is re-resolved and the new fingerprint stored."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        store.upsert(CacheEntry(path, "foo", True, "H1"))
        backend = make_backend(owners={path: ["foo"]})
        engine = make_engine(store, backend)

        report = engine.refresh()

        entry = store.get(path)
        assert entry is not None
        assert entry.package == "foo"
        assert entry.visible is True
        assert entry.fingerprint == compute_fingerprint(path)
        assert report.updated == [path]
        assert backend.search_calls == [(path,)]

    def test_changed_content_can_move_owner(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """The rewritten entry records the package the backend reports now."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        store.upsert(CacheEntry(path, "foo", True, "H1"))
        engine = make_engine(store, make_backend(owners={path: ["foo-ng"]}))

        engine.refresh()

        assert store.package_for_file(path) == "foo-ng"

    def test_unchanged_content_issues_no_query(
        self,
        make_engine: EngineFactory,
        fake_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """An entry whose fingerprint still matches is left alone."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        entry = CacheEntry(path, "foo", False, compute_fingerprint(path) or "")
        store.upsert(entry)
        engine = make_engine(store, fake_backend)

        report = engine.refresh()

        assert store.get(path) == entry
        assert report.unchanged == 1
        assert fake_backend.search_calls == []

    def test_entry_without_fingerprint_is_resolved(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """An entry with no usable fingerprint is treated as changed."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        store.upsert(CacheEntry(path, "foo", True, ""))
        backend = make_backend(owners={path: ["foo"]})
        engine = make_engine(store, backend)

        engine.refresh()

        entry = store.get(path)
        assert entry is not None
        assert entry.fingerprint == compute_fingerprint(path)

    @pytest.mark.parametrize(
        "owners",
        [
            pytest.param([], id="no-match"),
            pytest.param(["foo", "bar"], id="ambiguous"),
        ],
    )
    def test_failed_resolution_keeps_stale_entry(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
        owners: list[str],
    ) -> None:
        """Zero or several owners leave the old entry untouched."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        stale = CacheEntry(path, "foo", True, "H1")
        store.upsert(stale)
        engine = make_engine(store, make_backend(owners={path: owners}))

        report = engine.refresh()

        assert store.get(path) == stale
        assert report.skipped == [path]
        assert report.discovered == []

    def test_backend_failure_keeps_stale_entry(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A failed terminal status is a resolution failure."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        stale = CacheEntry(path, "foo", True, "H1")
        store.upsert(stale)
        backend = make_backend(owners={path: ["foo"]}, search_status=QueryStatus.FAILED)
        engine = make_engine(store, backend)

        engine.refresh()

        assert store.get(path) == stale

    def test_visibility_failure_keeps_stale_entry(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """An unparsable launcher is not rewritten."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        stale = CacheEntry(path, "foo", True, "H1")
        store.upsert(stale)

        def broken(_path: str) -> bool:
            raise VisibilityError("could not load desktop file")

        engine = make_engine(store, make_backend(owners={path: ["foo"]}), visibility=broken)

        engine.refresh()

        assert store.get(path) == stale

    def test_duplicate_rows_are_revalidated_once(
        self,
        make_engine: EngineFactory,
        make_backend,
        tmp_path: Path,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A path stored in several rows is resolved and rewritten once."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        db_path = tmp_path / "desktop-files.db"
        CacheStore.open(db_path).close()
        conn = sqlite3.connect(db_path)
        conn.executemany(
            "INSERT INTO cache (filename, package, show, md5) VALUES (?, ?, ?, ?)",
            [(path, "foo", 1, "H1"), (path, "foo", 1, "H2")],
        )
        conn.commit()
        conn.close()
        backend = make_backend(owners={path: ["foo"]})

        with CacheStore.open(db_path) as store:
            report = make_engine(store, backend).refresh()
            rows = list(store.scan_all())

        assert backend.search_calls == [(path,)]
        assert report.revalidated == 1
        assert report.updated == [path]
        assert rows == [CacheEntry(path, "foo", True, compute_fingerprint(path))]


class TestDiscoverNew:
    """Tests for the discovery phase."""

    def test_new_launcher_is_added(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A launcher on disk but not in the cache is resolved and inserted."""
        path = str(make_launcher(apps_dir / "new.desktop"))
        engine = make_engine(
            store,
            make_backend(owners={path: ["newpkg"]}),
            visibility=lambda _p: False,
        )

        report = engine.refresh()

        assert store.get(path) == CacheEntry(path, "newpkg", False, compute_fingerprint(path) or "")
        assert report.discovered == [path]

    def test_unowned_launcher_is_not_inserted(
        self,
        make_engine: EngineFactory,
        fake_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Zero matches means no entry; the path is retried next cycle."""
        path = str(make_launcher(apps_dir / "new.desktop"))
        engine = make_engine(store, fake_backend)

        report = engine.refresh()
        engine.refresh()

        assert store.count() == 0
        assert report.skipped == [path]
        assert fake_backend.search_calls == [(path,), (path,)]

    def test_ambiguous_launcher_is_not_inserted(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Two owners for one path write nothing."""
        path = str(make_launcher(apps_dir / "new.desktop"))
        engine = make_engine(store, make_backend(owners={path: ["a", "b"]}))

        engine.refresh()

        assert store.get(path) is None

    def test_nested_directories_are_walked(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Launchers in subdirectories are discovered too."""
        path = str(make_launcher(apps_dir / "kde4" / "tool.desktop"))
        engine = make_engine(store, make_backend(owners={path: ["kdetool"]}))

        engine.refresh()

        assert store.package_for_file(path) == "kdetool"

    def test_revalidated_path_is_not_rediscovered(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A path handled in revalidation is skipped by discovery."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        store.upsert(CacheEntry(path, "foo", True, "H1"))
        # Resolution fails, so revalidation leaves it; discovery must not retry it
        backend = make_backend(owners={path: []})
        engine = make_engine(store, backend)

        report = engine.refresh()

        assert backend.search_calls == [(path,)]
        assert report.discovered == []

    def test_revalidation_completes_before_discovery(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Every revalidation query precedes every discovery query."""
        cached = str(make_launcher(apps_dir / "z-cached.desktop"))
        fresh = str(make_launcher(apps_dir / "a-fresh.desktop"))
        store.upsert(CacheEntry(cached, "old", True, "H1"))
        backend = make_backend(owners={cached: ["old"], fresh: ["new"]})
        engine = make_engine(store, backend)

        engine.refresh()

        assert backend.search_calls == [(cached,), (fresh,)]

    def test_timeout_skips_path_and_cycle_continues(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A query with no terminal event times out instead of hanging."""
        first = str(make_launcher(apps_dir / "a.desktop"))
        second = str(make_launcher(apps_dir / "b.desktop"))
        backend = make_backend(hang=True)
        engine = make_engine(store, backend, timeout=0.05)

        report = engine.refresh()

        assert report.skipped == [first, second]
        assert store.count() == 0

    def test_delimiter_in_file_name_skips_only_that_path(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A launcher name that cannot be queried is skipped; the cycle goes on."""
        odd = str(make_launcher(apps_dir / "a|||b.desktop"))
        normal = str(make_launcher(apps_dir / "z.desktop"))
        backend = make_backend(owners={normal: ["zed"]})
        engine = make_engine(store, backend)

        report = engine.refresh()

        assert report.skipped == [odd]
        assert report.discovered == [normal]
        assert store.get(odd) is None
        assert store.package_for_file(normal) == "zed"
        assert backend.search_calls == [(normal,)]


class TestCycleProperties:
    """Tests for whole-cycle guarantees."""

    def test_second_cycle_makes_no_mutations(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Running twice with no filesystem change writes nothing the second time."""
        a = str(make_launcher(apps_dir / "a.desktop"))
        b = str(make_launcher(apps_dir / "sub" / "b.desktop"))
        store.upsert(CacheEntry(str(apps_dir / "gone.desktop"), "gone", True, "H0"))
        backend = make_backend(owners={a: ["pa"], b: ["pb"]})
        engine = make_engine(store, backend)
        first = engine.refresh()
        assert first.mutations == 3

        spy = MagicMock(wraps=store)
        engine._store = spy
        backend.search_calls.clear()
        second = engine.refresh()

        assert second.mutations == 0
        assert second.unchanged == 2
        spy.upsert.assert_not_called()
        spy.delete.assert_not_called()
        assert backend.search_calls == []

    def test_progress_signals(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Status and percentage signals follow the cycle phases."""
        a = str(make_launcher(apps_dir / "a.desktop"))
        b = str(make_launcher(apps_dir / "b.desktop"))
        engine = make_engine(store, make_backend(owners={a: ["pa"], b: ["pb"]}))
        observer = RecordingObserver()
        engine.observer = observer

        engine.refresh()

        assert observer.statuses == [
            CycleStatus.SCANNING_APPLICATIONS,
            CycleStatus.GENERATING_PACKAGE_LIST,
            CycleStatus.FINISHED,
        ]
        assert observer.percentages == [PERCENTAGE_UNKNOWN, 0, 50, 100]

    def test_store_failure_aborts_cycle(
        self,
        make_engine: EngineFactory,
        make_backend,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """A store error mid-cycle propagates to the caller."""
        path = str(make_launcher(apps_dir / "a.desktop"))
        broken = MagicMock(spec=CacheStore)
        broken.scan_all.return_value = iter(())
        broken.upsert.side_effect = StoreUnavailableError("disk I/O error")
        engine = make_engine(broken, make_backend(owners={path: ["foo"]}))

        with pytest.raises(StoreUnavailableError):
            engine.refresh()


class TestIngestFromInstall:
    """Tests for ingest after an install operation."""

    def test_installing_package_launchers_are_added(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """Launchers from the manifest are written without ownership queries."""
        launcher = str(make_launcher(apps_dir / "bar.desktop"))
        manifest = [str(apps_dir), launcher, "/usr/bin/bar", str(apps_dir / "missing.desktop")]
        backend = make_backend(manifests={"bar": manifest})
        engine = make_engine(store, backend, visibility=lambda _p: True)

        report = engine.ingest_from_install(
            [PackageInfo("bar", "1.0", "amd64", "noble", PackageState.INSTALLING)]
        )

        assert store.get(launcher) == CacheEntry(
            launcher, "bar", True, compute_fingerprint(launcher) or ""
        )
        assert report.added == [launcher]
        assert backend.search_calls == []
        assert backend.files_calls == [("bar;1.0;amd64;installed",)]

    def test_only_incoming_packages_are_listed(
        self,
        make_engine: EngineFactory,
        fake_backend,
        store: CacheStore,
    ) -> None:
        """Packages in other states are ignored."""
        engine = make_engine(store, fake_backend)

        engine.ingest_from_install(
            [
                PackageInfo("a", state=PackageState.UPDATING),
                PackageInfo("b", state=PackageState.INSTALLED),
                PackageInfo("c", state=PackageState.REMOVING),
            ]
        )

        assert fake_backend.files_calls == [("a;;;installed",)]

    def test_no_incoming_packages_skips_query(
        self,
        make_engine: EngineFactory,
        fake_backend,
        store: CacheStore,
    ) -> None:
        """Without installing or updating packages no manifest is requested."""
        engine = make_engine(store, fake_backend)

        report = engine.ingest_from_install([PackageInfo("a", state=PackageState.INSTALLED)])

        assert report.skipped_reason == "no installing or updating packages"
        assert fake_backend.files_calls == []

    def test_backend_without_file_lists_skips(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
    ) -> None:
        """A backend that cannot list files skips the ingest."""
        backend = make_backend(roles=(QueryRole.SEARCH_FILE,))
        engine = make_engine(store, backend)

        report = engine.ingest_from_install([PackageInfo("a", state=PackageState.INSTALLING)])

        assert report.skipped_reason == "backend cannot list files"
        assert backend.files_calls == []

    def test_ingest_replaces_existing_row(
        self,
        make_engine: EngineFactory,
        make_backend,
        store: CacheStore,
        apps_dir: Path,
        make_launcher,
    ) -> None:
        """An existing row for the launcher is replaced, not merged."""
        launcher = str(make_launcher(apps_dir / "bar.desktop"))
        store.upsert(CacheEntry(launcher, "old-bar", True, "H1"))
        engine = make_engine(
            store,
            make_backend(manifests={"bar": [launcher]}),
            visibility=lambda _p: False,
        )

        engine.ingest_from_install([PackageInfo("bar", state=PackageState.INSTALLING)])

        assert store.get(launcher) == CacheEntry(
            launcher, "bar", False, compute_fingerprint(launcher) or ""
        )
        assert store.count() == 1

    def test_no_store_skips_ingest(self, make_engine: EngineFactory, fake_backend) -> None:
        """Without a store nothing is requested."""
        engine = make_engine(None, fake_backend)

        report = engine.ingest_from_install([PackageInfo("a", state=PackageState.INSTALLING)])

        assert report.skipped_reason == "cache disabled"
        assert fake_backend.files_calls == []


class TestFromConfig:
    """Tests for building an engine from configuration."""

    def test_query_timeout_bounds_backend_commands(self, make_backend) -> None:
        """The backend's commands are limited by the configured query timeout."""
        config = DeskctlConfig(enabled=False, query_timeout_seconds=7)

        with patch("deskctl.core.engine.get_backend", return_value=make_backend()) as mock_get:
            engine = ReconciliationEngine.from_config(config)
        engine.close()

        mock_get.assert_called_once_with("apt", command_timeout=7.0)
        assert engine.store is None
