"""Unit tests for the owner command."""

from pathlib import Path

from deskctl.cli.main import app
from deskctl.core.store import CacheStore
from deskctl.models.cache import CacheEntry
from typer.testing import CliRunner

runner = CliRunner()


class TestOwnerCommand:
    """Tests for deskctl owner."""

    def test_cached_path(self, config_file: Path, database_path: Path) -> None:
        """The owning package of a cached launcher is printed."""
        with CacheStore.open(database_path) as store:
            store.upsert(CacheEntry("/apps/vim.desktop", "vim", True, "abc"))

        result = runner.invoke(app, ["--config", str(config_file), "owner", "/apps/vim.desktop"])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "vim"

    def test_unknown_path(self, config_file: Path, database_path: Path) -> None:
        """A path missing from the cache exits with code 1."""
        with CacheStore.open(database_path) as store:
            store.upsert(CacheEntry("/apps/vim.desktop", "vim", True, "abc"))

        result = runner.invoke(app, ["--config", str(config_file), "owner", "/apps/x.desktop"])

        assert result.exit_code == 1
        assert "not in the desktop file cache" in result.output

    def test_no_database(self, config_file: Path) -> None:
        """Without a database every lookup fails."""
        result = runner.invoke(app, ["--config", str(config_file), "owner", "/apps/x.desktop"])

        assert result.exit_code == 1
