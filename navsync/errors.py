"""Exception types for navsync.

Public LocalStore and SyncEngine operations report failure through their
return values. These exceptions travel between the storage layers and are
caught at those boundaries.
"""

from typing import Optional


class NavSyncError(Exception):
    """Base class for navsync errors."""


class StorageUnavailableError(NavSyncError):
    """No usable local key-value backend could be opened."""


class RemoteStoreError(NavSyncError):
    """A remote store operation failed (network, auth or server error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
