"""Local record store for navsync.

LocalStore persists Settings and the Link collection in a KeyValueStore,
each wrapped in a timestamped envelope. It is deliberately forgiving: a
missing backend, a corrupt value or a failing write never raises to the
caller. Reads fall back to the built-in defaults and writes are best effort.

Values stored before envelopes existed are migrated on first read.
"""

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional, Set, Union

from navsync.envelope import Envelope, PayloadFormat, StoredPayload, decode_payload
from navsync.protocols import KeyValueStore, RemoteStore
from navsync.types import (
    LINKS_KEY,
    REMOTE_SYNC_FLAG_KEY,
    SETTINGS_KEY,
    Link,
    RecordKind,
    Settings,
    default_links,
    default_settings,
    links_from_list,
    links_to_list,
    now_ms,
)

logger = logging.getLogger(__name__)

RecordValue = Union[Settings, List[Link]]


class LocalStore:
    """Envelope-aware reader/writer for the two record kinds.

    Args:
        store: Backing key-value store, or None when no storage is available
            (every operation is then a no-op returning defaults).
        remote: Remote store that saves are opportunistically pushed to.
        default_links: Link collection returned when nothing is stored.
        clock: Returns "now" in epoch milliseconds.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore],
        remote: Optional[RemoteStore] = None,
        *,
        settings_key: str = SETTINGS_KEY,
        links_key: str = LINKS_KEY,
        remote_flag_key: str = REMOTE_SYNC_FLAG_KEY,
        default_links: Optional[List[Link]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self.remote = remote
        self.clock = clock
        self._keys = {RecordKind.SETTINGS: settings_key, RecordKind.LINKS: links_key}
        self._remote_flag_key = remote_flag_key
        self._default_links = default_links
        self._pending_pushes: Set[asyncio.Task] = set()

    @property
    def available(self) -> bool:
        return self._store is not None

    # === Defaults and (de)serialization ===

    def defaults(self, kind: RecordKind) -> RecordValue:
        if kind is RecordKind.SETTINGS:
            return default_settings()
        if self._default_links is not None:
            return list(self._default_links)
        return default_links()

    @staticmethod
    def encode(kind: RecordKind, value: RecordValue) -> Any:
        """Record value -> JSON-compatible payload."""
        if kind is RecordKind.SETTINGS:
            return value.to_dict()
        return links_to_list(value)

    @staticmethod
    def decode(kind: RecordKind, data: Any) -> RecordValue:
        """JSON payload -> record value. Settings are layered over the defaults.

        Raises:
            ValueError: If ``data`` has the wrong shape for ``kind``.
        """
        if kind is RecordKind.SETTINGS:
            if not isinstance(data, dict):
                raise ValueError(f"settings must be an object, got {type(data).__name__}")
            return Settings.from_dict(data)
        return links_from_list(data)

    def _load(self, kind: RecordKind) -> StoredPayload:
        """Read and classify the stored value. Unreadable data counts as absent."""
        try:
            raw = self._store.get(self._keys[kind])
            if not raw:
                return StoredPayload(PayloadFormat.ABSENT)
            return decode_payload(json.loads(raw))
        except Exception as e:
            logger.debug(f"Ignoring unreadable stored {kind.value}: {e}")
            return StoredPayload(PayloadFormat.ABSENT)

    # === Read ===

    def read(self, kind: RecordKind) -> RecordValue:
        """Current value of ``kind``, migrating legacy data in place."""
        if not self.available:
            return self.defaults(kind)

        payload = self._load(kind)
        if payload.is_absent:
            return self.defaults(kind)

        try:
            value = self.decode(kind, payload.data)
        except (TypeError, ValueError) as e:
            logger.debug(f"Stored {kind.value} is malformed, using defaults: {e}")
            return self.defaults(kind)

        if payload.is_legacy:
            logger.info(f"Migrating legacy {kind.value} to timestamped format")
            self.write(kind, value, propagate=False)
        return value

    def read_timestamp(self, kind: RecordKind) -> int:
        """lastModified of the stored envelope; 0 for absent or legacy data."""
        if not self.available:
            return 0
        payload = self._load(kind)
        if payload.format is PayloadFormat.ENVELOPED:
            return payload.last_modified
        return 0

    # === Write ===

    def write(
        self,
        kind: RecordKind,
        value: RecordValue,
        *,
        timestamp: Optional[int] = None,
        propagate: bool = True,
    ) -> None:
        """Persist ``value`` in a fresh envelope. Never raises.

        Args:
            timestamp: lastModified to stamp; defaults to now.
            propagate: Push the bare value to the remote store in the
                background when remote sync is enabled.
        """
        if not self.available:
            return

        try:
            data = self.encode(kind, value)
            envelope = Envelope(data, self.clock() if timestamp is None else timestamp)
            self._store.set(self._keys[kind], json.dumps(envelope.to_dict(), ensure_ascii=False))
        except Exception as e:
            logger.warning(f"Failed to save {kind.value} locally: {e}")
            return

        if propagate and self.remote is not None and self.remote_sync_enabled():
            self._spawn_push(kind, data)

    # === Remote sync flag ===

    def remote_sync_enabled(self) -> bool:
        if not self.available:
            return False
        try:
            return self._store.get(self._remote_flag_key) == "true"
        except Exception as e:
            logger.debug(f"Could not read remote sync flag: {e}")
            return False

    def set_remote_sync_enabled(self, enabled: bool) -> None:
        if not self.available:
            return
        try:
            self._store.set(self._remote_flag_key, "true" if enabled else "false")
        except Exception as e:
            logger.warning(f"Failed to save remote sync flag: {e}")

    # === Fire-and-forget remote push ===

    def _spawn_push(self, kind: RecordKind, data: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, not pushing {kind.value} to remote")
            return
        task = loop.create_task(self._push_to_remote(kind, data))
        self._pending_pushes.add(task)
        task.add_done_callback(self._pending_pushes.discard)

    async def _push_to_remote(self, kind: RecordKind, data: Any) -> None:
        try:
            if not self.remote.is_logged_in():
                return
            if kind is RecordKind.SETTINGS:
                ok = await self.remote.save_settings(data)
            else:
                ok = await self.remote.save_links(data)
            if not ok:
                logger.warning(f"Background push of {kind.value} was rejected by remote")
        except Exception as e:
            logger.error(f"Background push of {kind.value} failed: {e}", exc_info=True)

    @property
    def pending_push_count(self) -> int:
        return len(self._pending_pushes)

    async def wait_for_pending_pushes(self) -> None:
        """Wait until every background push spawned so far has finished."""
        while self._pending_pushes:
            await asyncio.gather(*list(self._pending_pushes))

    # === Convenience accessors ===

    def get_settings(self) -> Settings:
        return self.read(RecordKind.SETTINGS)

    def save_settings(self, settings: Settings) -> None:
        self.write(RecordKind.SETTINGS, settings)

    def get_settings_timestamp(self) -> int:
        return self.read_timestamp(RecordKind.SETTINGS)

    def get_links(self) -> List[Link]:
        return self.read(RecordKind.LINKS)

    def save_links(self, links: List[Link]) -> None:
        self.write(RecordKind.LINKS, links)

    def get_links_timestamp(self) -> int:
        return self.read_timestamp(RecordKind.LINKS)
