"""Key-value store backends for navsync.

The local record store only needs string get/set. Three backends:
- MemoryKeyValueStore: process-local dict (tests, ephemeral sessions)
- JsonFileKeyValueStore: one JSON object on disk, human-inspectable
- SQLiteKeyValueStore: a single ``kv_store`` table (default)

Backends raise their native errors; callers decide whether to swallow them.
"""

import contextlib
import json
import logging
import os
import sqlite3
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from navsync.errors import StorageUnavailableError

if TYPE_CHECKING:
    from navsync.config import NavSyncConfig

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any, *, mode: int = 0o600) -> None:
    """Replace ``path`` with ``data`` as JSON via a temp file + ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except Exception:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


class MemoryKeyValueStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self):
        return list(self._data.keys())


class JsonFileKeyValueStore:
    """Store all keys in one JSON object file.

    Every ``set`` rewrites the file through a temp file + ``os.replace`` so a
    crash never leaves a half-written file behind. The file is created with
    owner-only permissions.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        write_json_atomic(self.path, data)


class SQLiteKeyValueStore:
    """Key-value pairs in a SQLite table, one connection per operation."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextlib.contextmanager
    def _connect(self):
        """Commit on success, roll back on exception, always close."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        with self._connect() as conn:
            conn.execute(
                """CREATE TABLE IF NOT EXISTS kv_store (
                       key TEXT PRIMARY KEY,
                       value TEXT NOT NULL,
                       updated_at TEXT NOT NULL
                   )"""
            )

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, datetime.now(timezone.utc).isoformat()),
            )


def open_kv_store(config: "NavSyncConfig"):
    """Open the backend named by ``config.storage_backend``.

    Raises:
        StorageUnavailableError: If the backend is unknown or cannot be opened.
    """
    backend = config.storage_backend
    if backend == "memory":
        return MemoryKeyValueStore()

    try:
        home = config.resolve_home()
        if backend == "sqlite":
            return SQLiteKeyValueStore(home / "navsync.db")
        if backend == "json":
            return JsonFileKeyValueStore(home / "store.json")
    except (OSError, sqlite3.Error) as e:
        raise StorageUnavailableError(f"Cannot open {backend} store: {e}") from e

    raise StorageUnavailableError(f"Unknown storage backend: {backend}")
