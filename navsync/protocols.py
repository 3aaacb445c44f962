"""
navsync Protocol Definitions
============================

The two ports the sync core is written against:

- KeyValueStore: the local device store. Opaque string keys, string values.
- RemoteStore:   the cloud side. Owns authentication; getters may return
                 either a bare (legacy) payload or an envelope dict.

Error handling:
- KeyValueStore implementations raise their native errors (OSError,
  sqlite3.Error). LocalStore swallows them.
- RemoteStore getters raise on failure; savers return False. SyncEngine
  catches both and invalidates the session.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """String-keyed get/set store (browser localStorage equivalent)."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key has never been set."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...


@runtime_checkable
class RemoteStore(Protocol):
    """Remote record store with its own session state.

    Implementations: HttpRemoteStore.
    """

    def is_logged_in(self) -> bool:
        """Whether an authenticated session is currently available."""
        ...

    def clear_user_token(self) -> None:
        """Invalidate the cached session/credential."""
        ...

    async def get_settings(self) -> Any:
        """Settings as a bare dict, an envelope dict, or None."""
        ...

    async def save_settings(self, settings: Any) -> bool:
        """Store settings (bare dict or envelope dict). True on success."""
        ...

    async def get_links(self) -> Any:
        """Links as a bare list, an envelope dict, or None."""
        ...

    async def save_links(self, links: Any) -> bool:
        """Store links (bare list or envelope dict). True on success."""
        ...
