"""Cache entry model.

A cache entry ties one launcher file on disk to the installed package
that owns it, together with the visibility flag and the content
fingerprint recorded when the entry was written.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One row of the desktop file cache.

    Attributes:
        path: Absolute path of the launcher file (unique key).
        package: Name of the package that installed the file.
        visible: Whether the launcher should appear in user-facing menus.
        fingerprint: Content fingerprint at write time ("" if unknown).
    """

    path: str
    package: str
    visible: bool
    fingerprint: str = ""

    def __post_init__(self) -> None:
        """Validate cache entry data after initialization."""
        if not self.path:
            msg = "Cache entry path cannot be empty"
            raise ValueError(msg)
        if not self.package:
            msg = "Cache entry package cannot be empty"
            raise ValueError(msg)

    @property
    def has_fingerprint(self) -> bool:
        """Check if the entry carries a usable fingerprint."""
        return bool(self.fingerprint)
