"""APT/dpkg ownership backend.

Resolves file ownership with ``dpkg -S`` and lists package manifests
with ``dpkg -L``. dpkg only knows about installed packages, so every
answer is already restricted to installed packages.
"""

import logging
import subprocess
from collections.abc import Sequence

from deskctl.models.package import split_package_id
from deskctl.models.query import QueryStatus
from deskctl.resolvers.base import OwnershipBackend, QueryRole, QuerySink, ResolverError
from deskctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_NO_PATH_FOUND = "no path found matching pattern"
_DIVERSION_PREFIXES = ("diversion by", "local diversion")


class DpkgBackend(OwnershipBackend):
    """Ownership backend for dpkg-managed systems.

    Args:
        command_timeout: Seconds allowed for each dpkg invocation.
    """

    def __init__(self, *, command_timeout: float = 30.0) -> None:
        self._command_timeout = command_timeout

    @property
    def name(self) -> str:
        """Return the backend name."""
        return "apt"

    def supports(self, role: QueryRole) -> bool:
        """Both query roles need only the dpkg binary."""
        return command_exists("dpkg")

    def search_files(self, paths: Sequence[str], *, installed_only: bool, sink: QuerySink) -> None:
        """Run ``dpkg -S`` for paths and report each owning package.

        Each package is reported once, with the targets it owns.

        Raises:
            ResolverError: If dpkg cannot be run.
        """
        try:
            result = run_command(["dpkg", "-S", *paths], timeout=self._command_timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ResolverError(f"dpkg -S failed: {e}") from e

        owners = self._parse_search_output(result.stdout, paths)
        for package, owned in owners.items():
            sink.package(package, owned)

        if result.success or self._only_missing(result.stderr):
            sink.finished(QueryStatus.SUCCESS)
        else:
            sink.finished(QueryStatus.FAILED, result.stderr.strip() or f"exit code {result.returncode}")

    def get_files(self, package_ids: Sequence[str], *, sink: QuerySink) -> None:
        """Run ``dpkg -L`` for each package and report its manifest."""
        failures: list[str] = []

        for package_id in package_ids:
            try:
                name = split_package_id(package_id)[0]
            except ValueError as e:
                logger.warning("Skipping package id: %s", e)
                failures.append(package_id)
                continue

            try:
                result = run_command(["dpkg", "-L", name], timeout=self._command_timeout)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning("dpkg -L %s failed: %s", name, e)
                failures.append(package_id)
                continue

            if not result.success:
                logger.warning("dpkg -L %s failed: %s", name, result.stderr.strip())
                failures.append(package_id)
                continue

            paths = [line.strip() for line in result.stdout.splitlines() if line.startswith("/")]
            sink.files(package_id, paths)

        if failures:
            sink.finished(QueryStatus.FAILED, f"cannot list files of: {', '.join(failures)}")
        else:
            sink.finished(QueryStatus.SUCCESS)

    @staticmethod
    def _parse_search_output(stdout: str, targets: Sequence[str]) -> dict[str, list[str]]:
        """Map owning package names to the targets they own.

        Lines look like ``pkg-a, pkg-b:amd64: /path``; the architecture
        qualifier is dropped and diversion notices (``diversion by ...``,
        ``local diversion ...``) are ignored.

        Returns:
            Package names in first-seen order with their targets.
        """
        owners: dict[str, list[str]] = {}
        for line in stdout.splitlines():
            line = line.strip()
            if not line or line.startswith(_DIVERSION_PREFIXES):
                continue
            for target in targets:
                suffix = f": {target}"
                if not line.endswith(suffix):
                    continue
                for raw in line[: -len(suffix)].split(","):
                    package = raw.strip().split(":")[0]
                    if not package:
                        continue
                    owned = owners.setdefault(package, [])
                    if target not in owned:
                        owned.append(target)
        return owners

    @staticmethod
    def _only_missing(stderr: str) -> bool:
        lines = [line for line in stderr.splitlines() if line.strip()]
        return bool(lines) and all(_NO_PATH_FOUND in line for line in lines)
