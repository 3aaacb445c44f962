"""Sync engine for navsync.

SyncEngine moves Settings and Links between a LocalStore and a RemoteStore:
one-way pull, one-way push, and a bidirectional sync that resolves each
record kind independently with last-write-wins on envelope timestamps.

Every public operation returns a bool and never raises. A remote failure
invalidates the remote session so the next user action has to re-authenticate.
"""

import logging
from typing import Any, Callable, Dict, Optional

from navsync.envelope import Envelope, StoredPayload, decode_payload
from navsync.errors import RemoteStoreError
from navsync.protocols import RemoteStore
from navsync.types import RecordKind

from .local import LocalStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Pull/push/sync between local and remote record stores.

    Args:
        local: The local record store.
        remote: The remote store; owns session state.
        clock: "Now" in epoch milliseconds; defaults to the local store's clock.
    """

    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStore,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._local = local
        self._remote = remote
        self._clock = clock or local.clock

    # === Remote access ===

    async def _fetch(self, kind: RecordKind) -> StoredPayload:
        if kind is RecordKind.SETTINGS:
            raw = await self._remote.get_settings()
        else:
            raw = await self._remote.get_links()
        return decode_payload(raw)

    async def _send(self, kind: RecordKind, payload: Any) -> bool:
        if kind is RecordKind.SETTINGS:
            return bool(await self._remote.save_settings(payload))
        return bool(await self._remote.save_links(payload))

    async def _send_or_raise(self, kind: RecordKind, envelope: Envelope) -> None:
        if not await self._send(kind, envelope.to_dict()):
            raise RemoteStoreError(f"Remote rejected {kind.value} update")

    def _invalidate_session(self) -> None:
        try:
            self._remote.clear_user_token()
        except Exception as e:
            logger.warning(f"Failed to clear remote session: {e}")

    @staticmethod
    def _has_content(kind: RecordKind, payload: StoredPayload) -> bool:
        """Whether a remote payload is worth applying locally."""
        if payload.is_empty:
            return False
        if kind is RecordKind.SETTINGS:
            return isinstance(payload.data, dict)
        return isinstance(payload.data, list)

    # === One-way ===

    async def pull(self) -> bool:
        """Overwrite local records with non-empty remote ones.

        Empty or missing remote records never overwrite local data, so an
        uninitialized remote account cannot wipe a populated device.
        """
        if not self._remote.is_logged_in():
            logger.debug("Not logged in, skipping pull")
            return False

        try:
            for kind in (RecordKind.SETTINGS, RecordKind.LINKS):
                remote = await self._fetch(kind)
                if not self._has_content(kind, remote):
                    logger.debug(f"Remote {kind.value} empty, keeping local data")
                    continue
                value = self._local.decode(kind, remote.data)
                self._local.write(kind, value, propagate=False)
                logger.info(f"Pulled {kind.value} from remote")
            return True
        except Exception as e:
            logger.error(f"Pull from remote failed: {e}", exc_info=True)
            self._invalidate_session()
            return False

    async def push(self) -> bool:
        """Send local Settings and Links to the remote store.

        Both records are attempted. If either is rejected the session is
        treated as stale and cleared.
        """
        if not self._remote.is_logged_in():
            logger.debug("Not logged in, skipping push")
            return False

        try:
            results = {}
            for kind in (RecordKind.SETTINGS, RecordKind.LINKS):
                value = self._local.read(kind)
                envelope = Envelope(
                    self._local.encode(kind, value), self._local.read_timestamp(kind)
                )
                results[kind] = await self._send(kind, envelope.to_dict())

            if not all(results.values()):
                failed = [kind.value for kind, ok in results.items() if not ok]
                logger.warning(f"Push rejected for {', '.join(failed)}, clearing session")
                self._invalidate_session()
                return False

            logger.info("Pushed settings and links to remote")
            return True
        except Exception as e:
            logger.error(f"Push to remote failed: {e}", exc_info=True)
            self._invalidate_session()
            return False

    # === Bidirectional ===

    async def sync(self) -> bool:
        """Reconcile both record kinds by timestamp.

        Returns:
            True if either side was changed, False if nothing changed, the
            session is not authenticated, or the sync failed.
        """
        if not self._remote.is_logged_in():
            logger.debug("Not logged in, skipping sync")
            return False

        try:
            remote_settings = await self._fetch(RecordKind.SETTINGS)
            remote_links = await self._fetch(RecordKind.LINKS)

            changed = await self._reconcile(RecordKind.SETTINGS, remote_settings)
            changed = await self._reconcile(RecordKind.LINKS, remote_links) or changed

            logger.info(f"Sync complete, changed={changed}")
            return changed
        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True)
            self._invalidate_session()
            return False

    async def _reconcile(self, kind: RecordKind, remote: StoredPayload) -> bool:
        # Taken before read(), which stamps migrated legacy data with "now"
        local_ts = self._local.read_timestamp(kind)
        local_value = self._local.read(kind)

        if not self._has_content(kind, remote):
            # Only links are seeded into an empty remote; empty remote settings are left alone
            if kind is RecordKind.LINKS and local_value:
                logger.info("Remote has no links, pushing local links")
                stored_ts = self._local.read_timestamp(kind)
                await self._send_or_raise(
                    kind, Envelope(self._local.encode(kind, local_value), stored_ts)
                )
                return True
            return False

        remote_ts = remote.effective_timestamp(self._clock())
        logger.debug(f"Comparing {kind.value}: local={local_ts} remote={remote_ts}")

        if remote_ts > local_ts:
            value = self._local.decode(kind, remote.data)
            if remote.is_legacy:
                # Upgrade the remote copy before touching local
                await self._send_or_raise(
                    kind, Envelope(self._local.encode(kind, value), remote_ts)
                )
            self._local.write(kind, value, timestamp=remote_ts, propagate=False)
            logger.info(f"Remote {kind.value} newer, pulled to local")
            return True

        if local_ts > remote_ts:
            await self._send_or_raise(
                kind, Envelope(self._local.encode(kind, local_value), local_ts)
            )
            logger.info(f"Local {kind.value} newer, pushed to remote")
            return True

        logger.debug(f"{kind.value} unchanged")
        return False

    # === Status ===

    def get_sync_status(self) -> Dict[str, Any]:
        """Snapshot of session state and local timestamps."""
        try:
            logged_in = bool(self._remote.is_logged_in())
        except Exception as e:
            logger.debug(f"Login state check failed: {e}")
            logged_in = False
        return {
            "logged_in": logged_in,
            "remote_sync_enabled": self._local.remote_sync_enabled(),
            "settings_last_modified": self._local.read_timestamp(RecordKind.SETTINGS),
            "links_last_modified": self._local.read_timestamp(RecordKind.LINKS),
            "pending_pushes": self._local.pending_push_count,
        }
