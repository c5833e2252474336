"""Content fingerprints for launcher files.

A fingerprint is the hex MD5 digest of the file bytes, the same format
stored by existing desktop file databases. It only detects changes; it
is not used for any security decision.
"""

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def compute_fingerprint(path: str | Path) -> str | None:
    """Compute the fingerprint of a file.

    Args:
        path: File to fingerprint.

    Returns:
        Hex digest of the file content, or None if the file does not
        exist or cannot be read.
    """
    file_path = Path(path)
    if not file_path.exists():
        return None

    digest = hashlib.md5(usedforsecurity=False)
    try:
        with file_path.open("rb") as f:
            while chunk := f.read(_CHUNK_SIZE):
                digest.update(chunk)
    except OSError as e:
        logger.warning("Failed to open file %s: %s", file_path, e)
        return None

    return digest.hexdigest()
