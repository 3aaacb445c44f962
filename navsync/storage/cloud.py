"""HTTP remote store for navsync.

Talks to a JSON blob backend that keeps one document per record kind:

    GET/PUT {backend_url}/settings
    GET/PUT {backend_url}/links

Documents are stored as sent, so the backend may hand back either a bare
(legacy) payload or an envelope. The sync engine normalizes both.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from navsync.errors import RemoteStoreError

from .kv import write_json_atomic

if TYPE_CHECKING:
    from navsync.config import NavSyncConfig

logger = logging.getLogger(__name__)

CREDENTIALS_FILENAME = "credentials.json"


def validate_backend_url(url: Optional[str]) -> Optional[str]:
    """Validate a backend URL for safe credential transmission.

    Only https is accepted, plus plain http to localhost/127.0.0.1.

    Returns:
        The URL unchanged if valid, or None if rejected.
    """
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme not in {"https", "http"}:
        logger.warning("Invalid backend_url scheme; only http/https allowed.")
        return None
    if not parsed.netloc:
        logger.warning("Invalid backend_url; missing host.")
        return None
    if parsed.scheme == "http" and (parsed.hostname or "") not in {"localhost", "127.0.0.1"}:
        logger.warning("Refusing non-local http backend_url for security.")
        return None
    return url


def load_credentials(credentials_path: Path) -> Dict[str, Optional[str]]:
    """Read backend_url/auth_token from a credentials file.

    Accepts "auth_token" (preferred) or "token" (legacy). A missing or
    unreadable file yields empty values.
    """
    creds: Dict[str, Optional[str]] = {"backend_url": None, "auth_token": None}
    if not credentials_path.exists():
        return creds
    try:
        with open(credentials_path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            creds["backend_url"] = data.get("backend_url")
            creds["auth_token"] = data.get("auth_token") or data.get("token")
    except (json.JSONDecodeError, OSError) as e:
        logger.debug(f"Failed to load credentials file: {e}")
    return creds


class HttpRemoteStore:
    """RemoteStore backed by an authenticated HTTP JSON endpoint.

    Args:
        backend_url: Base URL of the backend; rejected if unsafe.
        auth_token: Bearer token for the session.
        timeout: Per-request timeout in seconds.
        credentials_path: File the token was loaded from; cleared on logout.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        backend_url: Optional[str],
        auth_token: Optional[str],
        *,
        timeout: float = 10.0,
        credentials_path: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        validated = validate_backend_url(backend_url)
        self.backend_url = validated.rstrip("/") if validated else None
        self._auth_token = auth_token
        self.timeout = timeout
        self.credentials_path = credentials_path
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: "NavSyncConfig", transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "HttpRemoteStore":
        """Build from config, falling back to ``credentials.json`` in the home dir.

        Environment configuration wins over the credentials file.
        """
        credentials_path = config.resolve_home() / CREDENTIALS_FILENAME
        creds = load_credentials(credentials_path)
        return cls(
            config.backend_url or creds["backend_url"],
            config.auth_token or creds["auth_token"],
            timeout=config.request_timeout,
            credentials_path=credentials_path if creds["auth_token"] else None,
            transport=transport,
        )

    # === Session ===

    def is_logged_in(self) -> bool:
        return bool(self.backend_url and self._auth_token)

    def clear_user_token(self) -> None:
        """Forget the token in memory and in the credentials file it came from."""
        self._auth_token = None
        if self.credentials_path is None or not self.credentials_path.exists():
            return
        try:
            with open(self.credentials_path, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                data.pop("auth_token", None)
                data.pop("token", None)
                write_json_atomic(self.credentials_path, data)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to clear token from credentials file: {e}")

    # === HTTP helpers ===

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._auth_token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get_document(self, name: str) -> Any:
        if not self.is_logged_in():
            raise RemoteStoreError("Not logged in")

        url = f"{self.backend_url}/{name}"
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"GET {name} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RemoteStoreError(
                f"GET {name} returned HTTP {response.status_code}", response.status_code
            )
        if not response.content.strip():
            return None
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise RemoteStoreError(f"GET {name} returned invalid JSON: {e}") from e

    async def _put_document(self, name: str, payload: Any) -> bool:
        if not self.is_logged_in():
            return False

        url = f"{self.backend_url}/{name}"
        try:
            async with self._client() as client:
                response = await client.put(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"PUT {name} failed: {e}")
            return False

        if response.is_success:
            return True
        logger.warning(f"PUT {name} returned HTTP {response.status_code}")
        return False

    # === RemoteStore ===

    async def get_settings(self) -> Any:
        return await self._get_document("settings")

    async def save_settings(self, settings: Any) -> bool:
        return await self._put_document("settings", settings)

    async def get_links(self) -> Any:
        return await self._get_document("links")

    async def save_links(self, links: Any) -> bool:
        return await self._put_document("links", links)
