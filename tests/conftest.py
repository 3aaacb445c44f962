"""
Pytest fixtures and test configuration for navsync tests.
"""

from typing import Any, List, Optional, Tuple

import pytest

from navsync.storage import LocalStore, MemoryKeyValueStore, SyncEngine
from navsync.types import Link

T0 = 1_700_000_000_000  # 2023-11-14, epoch ms


class FakeClock:
    """Deterministic epoch-millisecond clock."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> int:
        self.now += ms
        return self.now


class FakeRemoteStore:
    """In-memory RemoteStore that records every call."""

    def __init__(self, logged_in: bool = True):
        self.logged_in = logged_in
        self.settings: Any = None
        self.links: Any = None
        self.save_settings_result = True
        self.save_links_result = True
        self.get_error: Optional[Exception] = None
        self.save_error: Optional[Exception] = None
        self.calls: List[Tuple[str, Any]] = []
        self.token_cleared = False

    def is_logged_in(self) -> bool:
        self.calls.append(("is_logged_in", None))
        return self.logged_in

    def clear_user_token(self) -> None:
        self.calls.append(("clear_user_token", None))
        self.token_cleared = True
        self.logged_in = False

    async def get_settings(self) -> Any:
        self.calls.append(("get_settings", None))
        if self.get_error:
            raise self.get_error
        return self.settings

    async def save_settings(self, settings: Any) -> bool:
        self.calls.append(("save_settings", settings))
        if self.save_error:
            raise self.save_error
        if self.save_settings_result:
            self.settings = settings
        return self.save_settings_result

    async def get_links(self) -> Any:
        self.calls.append(("get_links", None))
        if self.get_error:
            raise self.get_error
        return self.links

    async def save_links(self, links: Any) -> bool:
        self.calls.append(("save_links", links))
        if self.save_error:
            raise self.save_error
        if self.save_links_result:
            self.links = links
        return self.save_links_result

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def saves(self) -> List[Tuple[str, Any]]:
        return [(name, arg) for name, arg in self.calls if name.startswith("save_")]


def make_links(count: int) -> List[Link]:
    return [
        Link(id=str(i), name=f"Site {i}", url=f"https://site{i}.example", category="test")
        for i in range(1, count + 1)
    ]


@pytest.fixture
def link_factory():
    return make_links


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def local(kv, remote, clock):
    """LocalStore over an empty in-memory store, defaulting to no links."""
    return LocalStore(kv, remote, default_links=[], clock=clock)


@pytest.fixture
def engine(local, remote, clock):
    return SyncEngine(local, remote, clock=clock)
