"""Lazily established, process-wide MongoDB connection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from data_claims.config import StorageSettings
from data_claims.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


@dataclass(frozen=True)
class StoreHandle:
    client: Any
    database: Any
    database_name: str


def database_name_from_uri(uri: str, default: str = "test") -> str:
    """Return the trailing path segment of a connection string.

    ``mongodb+srv://u:p@host/claims?retryWrites=true`` yields ``claims``; a URI
    without a path (or with an empty one) yields ``default``.
    """
    remainder = uri.split("://", 1)[-1]
    remainder = remainder.split("?", 1)[0]
    if "/" not in remainder:
        return default
    path = remainder.split("/", 1)[1]
    return path.rstrip("/").rsplit("/", 1)[-1] or default


def _close_orphaned(task: asyncio.Future[StoreHandle]) -> None:
    # The caller went away while the client was being built; nobody owns it.
    if task.cancelled() or task.exception() is not None:
        return
    client = task.result().client
    asyncio.get_running_loop().run_in_executor(None, client.close)
    logger.info("Closed MongoDB client established for a cancelled caller")


class ConnectionCache:
    """Single-flight cache for the store connection.

    The first successful establishment is kept for the lifetime of the
    process. A failed attempt leaves the cache empty so the next caller
    starts over.
    """

    def __init__(
        self,
        settings: StorageSettings,
        client_factory: ClientFactory = MongoClient,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._handle: StoreHandle | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    async def get_handle(self) -> StoreHandle:
        handle = self._handle
        if handle is not None:
            return handle

        async with self._lock:
            if self._handle is None:
                uri = self._settings.mongodb_uri
                if not uri:
                    raise ConfigurationError("MONGODB_URI environment variable is not set")
                establishing = asyncio.ensure_future(asyncio.to_thread(self._establish, uri))
                try:
                    self._handle = await asyncio.shield(establishing)
                except asyncio.CancelledError:
                    establishing.add_done_callback(_close_orphaned)
                    raise
            return self._handle

    def _establish(self, uri: str) -> StoreHandle:
        client = None
        try:
            client = self._client_factory(
                uri,
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                tz_aware=True,
            )
            client.admin.command("ping")
        except PyMongoError as exc:
            logger.error("Failed to connect to MongoDB: %s", exc)
            if client is not None:
                client.close()
            raise StorageError.wrap("Failed to connect to the database", exc) from exc

        name = database_name_from_uri(uri, self._settings.default_database)
        logger.info("Connected to MongoDB database %s", name)
        return StoreHandle(client=client, database=client[name], database_name=name)

    async def close(self) -> None:
        async with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            await asyncio.to_thread(handle.client.close)
            logger.info("Closed MongoDB connection")
