from __future__ import annotations

import asyncio
import contextlib
import os

import mongomock
import pytest

from data_claims.app import AppContext, build_app_context
from data_claims.config import Settings, StorageSettings
from data_claims.storage.connection import ConnectionCache

MONGODB_URI = "mongodb://localhost:27017/claims_test"


def pytest_sessionstart(session: pytest.Session) -> None:
    # Keep a developer's real connection string out of unit test runs.
    os.environ.pop("MONGODB_URI", None)


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


@pytest.fixture
def storage_settings() -> StorageSettings:
    return StorageSettings(mongodb_uri=MONGODB_URI)


@pytest.fixture
def connections(storage_settings: StorageSettings) -> ConnectionCache:
    return ConnectionCache(storage_settings, client_factory=mongomock.MongoClient)


@pytest.fixture
def settings(storage_settings: StorageSettings) -> Settings:
    return Settings(storage=storage_settings)


@pytest.fixture
def context(settings: Settings) -> AppContext:
    return build_app_context(settings, client_factory=mongomock.MongoClient)
