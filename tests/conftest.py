"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from deskctl.core.engine import ReconciliationEngine
from deskctl.core.store import CacheStore
from deskctl.resolvers.base import OwnershipBackend
from deskctl.resolvers.client import ResolverClient
from fakes import FakeBackend


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Backend that owns nothing until a test scripts it."""
    return FakeBackend()


@pytest.fixture
def store() -> Iterator[CacheStore]:
    """Empty in-memory cache store."""
    cache = CacheStore.in_memory()
    yield cache
    cache.close()


@pytest.fixture
def apps_dir(tmp_path: Path) -> Path:
    """Empty applications directory."""
    path = tmp_path / "applications"
    path.mkdir()
    return path


@pytest.fixture
def make_launcher() -> Callable[..., Path]:
    """Factory writing a minimal application launcher file."""

    def _make(path: Path, name: str = "App", **keys: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = ["[Desktop Entry]", "Type=Application", f"Name={name}", "Exec=app"]
        lines.extend(f"{key}={value}" for key, value in keys.items())
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _make


@pytest.fixture
def make_engine(apps_dir: Path) -> Iterator[Callable[..., ReconciliationEngine]]:
    """Factory building an engine around a store and a backend.

    Visibility defaults to "always shown" so tests control it explicitly.
    """
    clients: list[ResolverClient] = []

    def _make(
        store: CacheStore | None,
        backend: OwnershipBackend,
        *,
        visibility: Callable[[str], bool] | None = None,
        timeout: float = 2.0,
    ) -> ReconciliationEngine:
        client = ResolverClient(backend, timeout=timeout)
        clients.append(client)
        return ReconciliationEngine(
            store,
            client,
            applications_dir=apps_dir,
            visibility=visibility if visibility is not None else (lambda _path: True),
        )

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    """The scripted backend class, for tests that configure it."""
    return FakeBackend


@pytest.fixture
def config_file(tmp_path: Path, apps_dir: Path) -> Path:
    """Config file pointing the cache at temporary locations."""
    path = tmp_path / "config.toml"
    path.write_text(
        f'applications_dir = "{apps_dir}"\n'
        f'database = "{tmp_path / "state" / "desktop-files.db"}"\n'
        "query_timeout_seconds = 2\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Database location used by config_file."""
    return tmp_path / "state" / "desktop-files.db"
