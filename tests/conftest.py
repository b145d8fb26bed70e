"""Shared test fixtures for consulsync."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from consulsync.backends import BackendError, KVBackend
from consulsync.engine import SyncEngine
from consulsync.models import StoreConfig, SyncConfig


class FakeBackend(KVBackend):
    """In-memory KV store that can be told to fail on specific keys."""

    def __init__(self, name: str, data: Optional[dict[str, bytes]] = None):
        self._name = name
        self.data: dict[str, bytes] = dict(data or {})
        self.fail_get: set[str] = set()
        self.fail_put: set[str] = set()
        self.fail_list = False
        self.vanish: set[str] = set()
        self.puts: list[tuple[str, bytes]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    def list_keys(self) -> list[str]:
        if self.fail_list:
            raise BackendError("connection refused")
        return list(self.data)

    def get(self, key: str) -> Optional[bytes]:
        if key in self.fail_get:
            raise BackendError(f"GET {key}: 500 boom")
        if key in self.vanish:
            return None
        return self.data.get(key)

    def put(self, key: str, value: bytes) -> None:
        if key in self.fail_put:
            raise BackendError(f"PUT {key}: 500 boom")
        self.puts.append((key, value))
        self.data[key] = value

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sync_config() -> SyncConfig:
    """Config pointing at two fake clusters."""
    return SyncConfig(
        local=StoreConfig(name="local", address="http://local.test:8500"),
        staging=StoreConfig(name="staging", address="http://staging.test:8500"),
    )


@pytest.fixture
def stores() -> dict[str, FakeBackend]:
    """One fake backend per store name, shared across reconnects."""
    return {"local": FakeBackend("local"), "staging": FakeBackend("staging")}


@pytest.fixture
def engine(tmp_path: Path, sync_config: SyncConfig, stores: dict[str, FakeBackend]) -> SyncEngine:
    """A SyncEngine wired to the fake stores and a temp workdir."""
    return SyncEngine(
        sync_config,
        backend_factory=lambda store, timeout: stores[store.name],
        workdir=tmp_path,
    )
