"""Query and answer models for the package ownership subsystem.

An ownership query names one or more target paths; the answer is the
ordered list of package matches streamed back before the terminal event.
"""

from dataclasses import dataclass
from enum import Enum

# Joins targets into a single composite identifier; never valid inside a path.
TARGET_DELIMITER = "|||"


class QueryStatus(str, Enum):
    """Terminal status of a query."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class OwnershipQuery:
    """Request to resolve target paths to the package that installed them.

    Attributes:
        targets: Paths to resolve.
        installed_only: Only consider packages currently installed.
    """

    targets: tuple[str, ...]
    installed_only: bool = True

    def __post_init__(self) -> None:
        """Validate query targets after initialization."""
        if not self.targets:
            msg = "Ownership query needs at least one target"
            raise ValueError(msg)
        for target in self.targets:
            if not target:
                msg = "Ownership query target cannot be empty"
                raise ValueError(msg)
            if TARGET_DELIMITER in target:
                msg = f"Target contains reserved delimiter {TARGET_DELIMITER!r}: {target!r}"
                raise ValueError(msg)

    @property
    def identifier(self) -> str:
        """Composite identifier naming every target."""
        return TARGET_DELIMITER.join(self.targets)


@dataclass(frozen=True, slots=True)
class PackageMatch:
    """One match event: a package owning some of the query's targets."""

    package: str
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Resolution:
    """Collected answer to an ownership query.

    Attributes:
        query: The query this answers.
        matches: Match events in arrival order.
        status: Terminal status.
        detail: Error detail for non-success statuses.
    """

    query: OwnershipQuery
    matches: tuple[PackageMatch, ...] = ()
    status: QueryStatus = QueryStatus.SUCCESS
    detail: str = ""

    @property
    def owner(self) -> str | None:
        """The owning package name, or None unless exactly one match succeeded."""
        if self.status != QueryStatus.SUCCESS or len(self.matches) != 1:
            return None
        return self.matches[0].package

    def matches_for(self, path: str) -> tuple[PackageMatch, ...]:
        """Matches attributed to one target path.

        Matches that name no paths are attributed to every target.
        """
        return tuple(m for m in self.matches if not m.paths or path in m.paths)


@dataclass(frozen=True, slots=True)
class PackageFiles:
    """File manifest of one package."""

    package_id: str
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FileListing:
    """Collected answer to a list-files query."""

    package_ids: tuple[str, ...]
    manifests: tuple[PackageFiles, ...] = ()
    status: QueryStatus = QueryStatus.SUCCESS
    detail: str = ""
