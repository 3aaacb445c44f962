"""
navsync - Local-first settings and shortcut links with cloud sync.

Records are kept in a timestamped envelope on the device and reconciled
with a remote store using last-write-wins.
"""

from .envelope import Envelope
from .storage import HttpRemoteStore, LocalStore, SyncEngine
from .types import Link, RecordKind, Settings

try:
    from importlib.metadata import version

    __version__ = version("navsync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "Envelope",
    "HttpRemoteStore",
    "Link",
    "LocalStore",
    "RecordKind",
    "Settings",
    "SyncEngine",
]
