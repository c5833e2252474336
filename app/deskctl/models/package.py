"""Package identity models.

Packages are addressed with PackageKit-style identifiers of the form
``name;version;arch;data`` where ``data`` names the repository or, for
packages already on the system, the literal ``installed``.
"""

from dataclasses import dataclass
from enum import Enum

PACKAGE_ID_SEPARATOR = ";"
INSTALLED_DATA = "installed"


class PackageState(str, Enum):
    """Transition state reported for a package by the install pipeline."""

    INSTALLING = "installing"
    UPDATING = "updating"
    INSTALLED = "installed"
    AVAILABLE = "available"
    REMOVING = "removing"
    DOWNGRADING = "downgrading"
    REINSTALLING = "reinstalling"

    @property
    def is_incoming(self) -> bool:
        """Check if the package is being written to disk by this operation."""
        return self in (PackageState.INSTALLING, PackageState.UPDATING)


def build_package_id(name: str, version: str = "", arch: str = "", data: str = "") -> str:
    """Build a package identifier from its components.

    Args:
        name: Package name.
        version: Package version.
        arch: Package architecture.
        data: Repository name or ``installed``.

    Returns:
        Identifier string ``name;version;arch;data``.

    Raises:
        ValueError: If the name is empty or any component contains the separator.
    """
    if not name:
        msg = "Package name cannot be empty"
        raise ValueError(msg)
    parts = (name, version, arch, data)
    if any(PACKAGE_ID_SEPARATOR in part for part in parts):
        msg = f"Package id components cannot contain {PACKAGE_ID_SEPARATOR!r}: {parts!r}"
        raise ValueError(msg)
    return PACKAGE_ID_SEPARATOR.join(parts)


def split_package_id(package_id: str) -> tuple[str, str, str, str]:
    """Split a package identifier into (name, version, arch, data).

    Bare package names are accepted and yield empty trailing components.

    Raises:
        ValueError: If the identifier is malformed.
    """
    parts = package_id.split(PACKAGE_ID_SEPARATOR)
    if len(parts) == 1:
        parts = [parts[0], "", "", ""]
    if len(parts) != 4 or not parts[0]:
        msg = f"Malformed package id: {package_id!r}"
        raise ValueError(msg)
    return parts[0], parts[1], parts[2], parts[3]


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """A package as reported by one install operation.

    Attributes:
        name: Package name (e.g., 'firefox').
        version: Version string, may be empty.
        arch: Architecture, may be empty.
        data: Repository or ``installed``.
        state: Transition state of the package in the operation.
    """

    name: str
    version: str = ""
    arch: str = ""
    data: str = ""
    state: PackageState = PackageState.INSTALLED

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    @classmethod
    def from_package_id(cls, package_id: str, state: PackageState) -> "PackageInfo":
        """Create a PackageInfo from a ``name;version;arch;data`` identifier."""
        name, version, arch, data = split_package_id(package_id)
        return cls(name=name, version=version, arch=arch, data=data, state=state)

    @property
    def package_id(self) -> str:
        """Identifier as reported by the install operation."""
        return build_package_id(self.name, self.version, self.arch, self.data)

    @property
    def installed_id(self) -> str:
        """Identifier re-keyed to the settled installed state."""
        return build_package_id(self.name, self.version, self.arch, INSTALLED_DATA)
