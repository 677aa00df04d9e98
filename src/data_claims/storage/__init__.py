"""Document store access."""

from data_claims.storage.connection import (
    ConnectionCache,
    StoreHandle,
    database_name_from_uri,
)

__all__ = ["ConnectionCache", "StoreHandle", "database_name_from_uri"]
