"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from data_claims.config import Settings, load_settings
from data_claims.services.catalog import LocationCatalogService
from data_claims.services.claims import ClaimIngestionService
from data_claims.storage.connection import ClientFactory, ConnectionCache


@dataclass
class AppContext:
    """Application-wide dependency container.

    Owns the single store connection cache and the services sharing it.
    Initialized once and cached for the lifetime of the process.
    """

    settings: Settings
    connections: ConnectionCache
    claims: ClaimIngestionService
    catalog: LocationCatalogService


def build_app_context(
    settings: Settings,
    client_factory: ClientFactory | None = None,
) -> AppContext:
    if client_factory is None:
        connections = ConnectionCache(settings.storage)
    else:
        connections = ConnectionCache(settings.storage, client_factory=client_factory)

    return AppContext(
        settings=settings,
        connections=connections,
        claims=ClaimIngestionService(
            connections,
            collection=settings.claims.collection,
            recent_limit=settings.claims.recent_limit,
        ),
        catalog=LocationCatalogService(
            connections,
            collection=settings.catalog.collection,
            list_limit=settings.catalog.list_limit,
        ),
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the process-wide application context."""
    return build_app_context(load_settings())
