"""Tests for navsync/storage/cloud.py: HttpRemoteStore.

Covers:
- validate_backend_url: scheme/host validation
- load_credentials / from_config: credentials.json, legacy token key, env override
- is_logged_in / clear_user_token
- get_*: 200, 404, empty body, HTTP error, transport error, bad JSON
- save_*: success, HTTP error, transport error, request shape
- End to end with SyncEngine over a mock backend
"""

import json
import os
import stat

import httpx
import pytest

from navsync.config import NavSyncConfig
from navsync.errors import RemoteStoreError
from navsync.protocols import RemoteStore
from navsync.storage import HttpRemoteStore, LocalStore, MemoryKeyValueStore, SyncEngine
from navsync.storage.cloud import load_credentials, validate_backend_url
from navsync.types import Settings

BACKEND = "https://sync.example.com/api"


class MockBackend:
    """Serves /settings and /links documents from a dict."""

    def __init__(self):
        self.documents = {}
        self.requests = []
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with)
        name = request.url.path.rsplit("/", 1)[-1]
        if request.method == "GET":
            if name not in self.documents:
                return httpx.Response(404)
            return httpx.Response(200, json=self.documents[name])
        if request.method == "PUT":
            self.documents[name] = json.loads(request.content)
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def store(backend):
    return HttpRemoteStore(BACKEND, "tok123", transport=httpx.MockTransport(backend))


class TestValidateBackendUrl:
    def test_https(self):
        assert validate_backend_url(BACKEND) == BACKEND

    def test_http_localhost(self):
        assert validate_backend_url("http://localhost:8000") == "http://localhost:8000"
        assert validate_backend_url("http://127.0.0.1:8000/v1") == "http://127.0.0.1:8000/v1"

    @pytest.mark.parametrize(
        "url", ["http://evil.com/api", "ftp://files.example.com", "https://", "just-a-path", ""]
    )
    def test_rejected(self, url):
        assert validate_backend_url(url) is None

    def test_unsafe_url_means_logged_out(self):
        assert HttpRemoteStore("http://evil.com", "tok").is_logged_in() is False


class TestCredentials:
    def test_credentials_file(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"backend_url": BACKEND, "auth_token": "abc"}))
        assert load_credentials(path) == {"backend_url": BACKEND, "auth_token": "abc"}

    def test_legacy_token_key(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"backend_url": BACKEND, "token": "legacy"}))
        assert load_credentials(path)["auth_token"] == "legacy"

    def test_missing_or_malformed(self, tmp_path):
        path = tmp_path / "credentials.json"
        assert load_credentials(path) == {"backend_url": None, "auth_token": None}
        path.write_text("{nope")
        assert load_credentials(path) == {"backend_url": None, "auth_token": None}

    def test_from_config_uses_file(self, tmp_path):
        (tmp_path / "credentials.json").write_text(
            json.dumps({"backend_url": BACKEND, "auth_token": "file-tok"})
        )
        store = HttpRemoteStore.from_config(NavSyncConfig(home=tmp_path))
        assert store.backend_url == BACKEND
        assert store.is_logged_in()
        assert store.credentials_path == tmp_path / "credentials.json"

    def test_environment_wins(self, tmp_path, monkeypatch):
        (tmp_path / "credentials.json").write_text(
            json.dumps({"backend_url": BACKEND, "auth_token": "file-tok"})
        )
        monkeypatch.setenv("NAVSYNC_BACKEND_URL", "https://env.example.com/")
        monkeypatch.setenv("NAVSYNC_AUTH_TOKEN", "env-tok")
        store = HttpRemoteStore.from_config(NavSyncConfig(home=tmp_path))
        assert store.backend_url == "https://env.example.com"
        assert store._auth_token == "env-tok"

    def test_nothing_configured(self, tmp_path):
        store = HttpRemoteStore.from_config(NavSyncConfig(home=tmp_path))
        assert store.is_logged_in() is False


class TestSession:
    def test_clear_user_token_in_memory(self, store):
        assert store.is_logged_in()
        store.clear_user_token()
        assert store.is_logged_in() is False

    def test_clear_user_token_rewrites_credentials_file(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"backend_url": BACKEND, "auth_token": "abc", "user": "u1"}))
        store = HttpRemoteStore(BACKEND, "abc", credentials_path=path)

        store.clear_user_token()

        assert json.loads(path.read_text()) == {"backend_url": BACKEND, "user": "u1"}
        assert load_credentials(path)["auth_token"] is None

    def test_clear_user_token_replaces_file_atomically(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"backend_url": BACKEND, "auth_token": "abc"}))
        store = HttpRemoteStore(BACKEND, "abc", credentials_path=path)

        store.clear_user_token()

        assert [p.name for p in tmp_path.iterdir()] == ["credentials.json"]
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_failed_rewrite_keeps_credentials_file(self, tmp_path, monkeypatch):
        path = tmp_path / "credentials.json"
        original = json.dumps({"backend_url": BACKEND, "auth_token": "abc"})
        path.write_text(original)
        store = HttpRemoteStore(BACKEND, "abc", credentials_path=path)

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        store.clear_user_token()

        assert store.is_logged_in() is False
        assert path.read_text() == original
        assert [p.name for p in tmp_path.iterdir()] == ["credentials.json"]

    @pytest.mark.asyncio
    async def test_logged_out_requests(self, backend):
        store = HttpRemoteStore(BACKEND, None, transport=httpx.MockTransport(backend))
        with pytest.raises(RemoteStoreError):
            await store.get_settings()
        assert await store.save_links([]) is False
        assert backend.requests == []


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_document(self, store, backend):
        backend.documents["settings"] = {"data": {"darkMode": True}, "lastModified": 5}
        assert await store.get_settings() == {"data": {"darkMode": True}, "lastModified": 5}
        request = backend.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{BACKEND}/settings"
        assert request.headers["Authorization"] == "Bearer tok123"

    @pytest.mark.asyncio
    async def test_404_is_none(self, store):
        assert await store.get_links() is None

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b""))
        store = HttpRemoteStore(BACKEND, "tok", transport=transport)
        assert await store.get_links() is None

    @pytest.mark.asyncio
    async def test_http_error(self, store, backend):
        backend.fail_with = 401
        with pytest.raises(RemoteStoreError) as exc_info:
            await store.get_settings()
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store = HttpRemoteStore(BACKEND, "tok", transport=httpx.MockTransport(handler))
        with pytest.raises(RemoteStoreError, match="GET settings failed"):
            await store.get_settings()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"{oops"))
        store = HttpRemoteStore(BACKEND, "tok", transport=transport)
        with pytest.raises(RemoteStoreError, match="invalid JSON"):
            await store.get_links()


class TestSave:
    @pytest.mark.asyncio
    async def test_put_document(self, store, backend):
        assert await store.save_links([{"id": "1", "name": "a", "url": "b"}]) is True
        request = backend.requests[0]
        assert request.method == "PUT"
        assert str(request.url) == f"{BACKEND}/links"
        assert backend.documents["links"] == [{"id": "1", "name": "a", "url": "b"}]

    @pytest.mark.asyncio
    async def test_http_error_is_false(self, store, backend):
        backend.fail_with = 500
        assert await store.save_settings({"darkMode": True}) is False

    @pytest.mark.asyncio
    async def test_transport_error_is_false(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        store = HttpRemoteStore(BACKEND, "tok", transport=httpx.MockTransport(handler))
        assert await store.save_settings({}) is False


class TestWithSyncEngine:
    @pytest.mark.asyncio
    async def test_push_then_sync_is_stable(self, store, backend):
        local = LocalStore(MemoryKeyValueStore(), store, default_links=[], clock=lambda: 1000)
        local.save_settings(Settings(layout="list"))
        engine = SyncEngine(local, store)

        assert await engine.push() is True
        assert backend.documents["settings"]["lastModified"] == 1000
        assert await engine.sync() is False

    @pytest.mark.asyncio
    async def test_server_error_logs_out(self, store, backend):
        backend.fail_with = 503
        engine = SyncEngine(LocalStore(MemoryKeyValueStore(), store), store)

        assert await engine.sync() is False
        assert store.is_logged_in() is False


def test_http_store_satisfies_protocol(store):
    assert isinstance(store, RemoteStore)
