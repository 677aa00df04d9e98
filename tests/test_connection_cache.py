from __future__ import annotations

import asyncio
import threading
import time
from typing import Any
from unittest.mock import MagicMock

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from data_claims.config import StorageSettings
from data_claims.errors import ConfigurationError, StorageError
from data_claims.storage.connection import ConnectionCache, database_name_from_uri

from conftest import MONGODB_URI


class CountingFactory:
    def __init__(self, failures: int = 0, delay: float = 0.0) -> None:
        self.failures = failures
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, uri: str, **kwargs: Any) -> mongomock.MongoClient:
        self.calls.append((uri, kwargs))
        if self.delay:
            time.sleep(self.delay)
        if self.failures:
            self.failures -= 1
            raise ServerSelectionTimeoutError("No servers available")
        return mongomock.MongoClient(uri, **kwargs)


@pytest.mark.parametrize(
    ("uri", "expected"),
    [
        ("mongodb+srv://user:pw@cluster.example.net/mern-blog?retryWrites=true&w=majority", "mern-blog"),
        ("mongodb://localhost:27017/claims", "claims"),
        ("mongodb://localhost:27017/", "test"),
        ("mongodb://localhost:27017", "test"),
        ("mongodb://localhost:27017/?replicaSet=rs0", "test"),
        ("mongodb://h1:27017,h2:27017/analytics?authSource=admin", "analytics"),
    ],
)
def test_database_name_from_uri(uri: str, expected: str) -> None:
    assert database_name_from_uri(uri) == expected


def test_database_name_uses_given_fallback() -> None:
    assert database_name_from_uri("mongodb://localhost", default="claims") == "claims"


@pytest.mark.asyncio
async def test_missing_uri_is_configuration_error() -> None:
    factory = CountingFactory()
    cache = ConnectionCache(StorageSettings(mongodb_uri=None), client_factory=factory)

    with pytest.raises(ConfigurationError, match="MONGODB_URI"):
        await cache.get_handle()

    assert factory.calls == []
    assert cache.is_connected is False


@pytest.mark.asyncio
async def test_handle_is_cached_after_first_call() -> None:
    factory = CountingFactory()
    cache = ConnectionCache(StorageSettings(mongodb_uri=MONGODB_URI), client_factory=factory)

    first = await cache.get_handle()
    second = await cache.get_handle()

    assert first is second
    assert first.database_name == "claims_test"
    assert len(factory.calls) == 1
    uri, kwargs = factory.calls[0]
    assert uri == MONGODB_URI
    assert kwargs["serverSelectionTimeoutMS"] == 5000
    assert kwargs["tz_aware"] is True
    assert cache.is_connected is True


def test_concurrent_cold_start_establishes_one_connection() -> None:
    factory = CountingFactory(delay=0.05)
    cache = ConnectionCache(StorageSettings(mongodb_uri=MONGODB_URI), client_factory=factory)

    async def main() -> list[Any]:
        return await asyncio.gather(*(cache.get_handle() for _ in range(10)))

    handles = asyncio.run(main())

    assert len(factory.calls) == 1
    assert all(handle is handles[0] for handle in handles)


@pytest.mark.asyncio
async def test_failed_establishment_does_not_poison_cache() -> None:
    factory = CountingFactory(failures=1)
    cache = ConnectionCache(StorageSettings(mongodb_uri=MONGODB_URI), client_factory=factory)

    with pytest.raises(StorageError) as exc_info:
        await cache.get_handle()

    assert "No servers available" in (exc_info.value.detail or "")
    assert cache.is_connected is False

    handle = await cache.get_handle()

    assert handle.database_name == "claims_test"
    assert len(factory.calls) == 2


@pytest.mark.asyncio
async def test_close_resets_cache(connections: ConnectionCache) -> None:
    await connections.get_handle()

    await connections.close()

    assert connections.is_connected is False
    await connections.close()


@pytest.mark.asyncio
async def test_cancelled_caller_closes_client_built_in_background() -> None:
    started = threading.Event()
    release = threading.Event()
    client = MagicMock()

    def factory(uri: str, **kwargs: Any) -> MagicMock:
        started.set()
        release.wait(5)
        return client

    cache = ConnectionCache(StorageSettings(mongodb_uri=MONGODB_URI), client_factory=factory)
    waiter = asyncio.create_task(cache.get_handle())
    await asyncio.to_thread(started.wait, 5)

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    release.set()

    for _ in range(200):
        if client.close.called:
            break
        await asyncio.sleep(0.01)

    client.close.assert_called_once()
    assert cache.is_connected is False
