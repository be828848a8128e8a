"""Error types raised by vaultsync.

Catalog errors abort a reconciliation pass. Source and destination errors
are per item: the reconciler catches them and counts the item as not synced.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class VaultSyncError(Exception):
    """Base class for all vaultsync errors."""


class CatalogUnavailable(VaultSyncError):
    """The catalog API answered with a non-200 status or could not be reached."""

    def __init__(self, status: Optional[int], url: str, reason: str = "") -> None:
        self.status = status
        self.url = url
        self.reason = reason
        if status is None:
            message = f"Catalog unreachable at {url}"
        else:
            message = f"Catalog API error: HTTP {status} for {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SourceFileMissing(VaultSyncError):
    """An attachment record exists but its file is not in catalog storage."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Source file missing: {path}")


class DestinationWriteFailure(VaultSyncError):
    """Copying, renaming or writing a PDF into the library failed."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")


class WatchStartFailure(VaultSyncError):
    """The recursive filesystem watch on catalog storage could not be started."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Unable to watch {path}{detail}")
