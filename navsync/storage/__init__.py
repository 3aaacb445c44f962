"""navsync storage backends.

Local-first: records live in a key-value store on the device and are
mirrored to a remote store by the sync engine.
"""

from .cloud import HttpRemoteStore, load_credentials, validate_backend_url
from .kv import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    open_kv_store,
)
from .local import LocalStore
from .sync_engine import SyncEngine

__all__ = [
    "LocalStore",
    "SyncEngine",
    "HttpRemoteStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SQLiteKeyValueStore",
    "open_kv_store",
    "load_credentials",
    "validate_backend_url",
]
