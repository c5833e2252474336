"""Data models for deskctl.

This module exports the core data structures used throughout the application.
"""

from deskctl.models.cache import CacheEntry
from deskctl.models.package import (
    PackageInfo,
    PackageState,
    build_package_id,
    split_package_id,
)
from deskctl.models.query import (
    TARGET_DELIMITER,
    FileListing,
    OwnershipQuery,
    PackageFiles,
    PackageMatch,
    QueryStatus,
    Resolution,
)

__all__ = [
    "TARGET_DELIMITER",
    "CacheEntry",
    "FileListing",
    "OwnershipQuery",
    "PackageFiles",
    "PackageInfo",
    "PackageMatch",
    "PackageState",
    "QueryStatus",
    "Resolution",
    "build_package_id",
    "split_package_id",
]
