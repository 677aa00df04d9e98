"""Location catalog: list with bootstrap-on-empty, and add."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from pymongo.errors import PyMongoError

from data_claims.errors import StorageError, ValidationError
from data_claims.models import LocationPoint
from data_claims.storage.connection import ConnectionCache
from data_claims.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "locations"
DEFAULT_LIST_LIMIT = 10

# (name, latitude, longitude, description)
SEED_LOCATIONS: tuple[tuple[str, float, float, str], ...] = (
    ("Central Park", 40.7829, -73.9654, "A large public park in Manhattan"),
    ("Times Square", 40.7580, -73.9855, "A major commercial intersection in Manhattan"),
    (
        "Brooklyn Bridge",
        40.7061,
        -73.9969,
        "A hybrid cable-stayed/suspension bridge in New York City",
    ),
)


def _coerce_coordinate(value: Any, label: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be numeric")
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be numeric") from exc
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a finite number")
    return number


def _readable_points(documents: list[dict[str, Any]]) -> list[LocationPoint]:
    points = []
    for doc in documents:
        try:
            points.append(LocationPoint.from_document(doc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping unreadable location %s: %r", doc.get("_id"), exc)
    return points


class LocationCatalogService:
    """Read and write named points in the ``locations`` collection.

    Coordinates are not range checked.
    """

    def __init__(
        self,
        connections: ConnectionCache,
        collection: str = DEFAULT_COLLECTION,
        list_limit: int = DEFAULT_LIST_LIMIT,
    ) -> None:
        self._connections = connections
        self._collection_name = collection
        self._list_limit = list_limit
        self._bootstrap_lock = asyncio.Lock()

    async def _collection(self) -> Any:
        handle = await self._connections.get_handle()
        return handle.database[self._collection_name]

    async def list(self, limit: int | None = None) -> list[LocationPoint]:
        """Return up to ``limit`` points in store order, seeding an empty catalog."""
        points, _ = await self.fetch(limit)
        return points

    async def fetch(self, limit: int | None = None) -> tuple[list[LocationPoint], bool]:
        """Like ``list`` but also report whether this call seeded the catalog."""
        limit = limit or self._list_limit
        collection = await self._collection()
        try:
            documents = await self._find(collection, limit)
            seeded = False
            if not documents:
                async with self._bootstrap_lock:
                    documents = await self._find(collection, limit)
                    if not documents:
                        await self._seed(collection)
                        documents = await self._find(collection, limit)
                        seeded = True
        except PyMongoError as exc:
            logger.error("Error fetching locations: %s", exc)
            raise StorageError.wrap("Failed to fetch locations", exc) from exc

        return _readable_points(documents), seeded

    async def add(
        self,
        name: Any,
        latitude: Any,
        longitude: Any,
        description: Any = "",
    ) -> LocationPoint:
        if (
            not isinstance(name, str)
            or not name.strip()
            or latitude is None
            or longitude is None
        ):
            raise ValidationError("Missing required fields: name, latitude, longitude")
        if description is None:
            description = ""
        if not isinstance(description, str):
            raise ValidationError("Description must be a string")

        document = {
            "name": name,
            "latitude": _coerce_coordinate(latitude, "Latitude"),
            "longitude": _coerce_coordinate(longitude, "Longitude"),
            "description": description,
            "createdAt": utc_now(),
        }
        collection = await self._collection()
        try:
            result = await asyncio.to_thread(collection.insert_one, document)
        except PyMongoError as exc:
            logger.error("Error adding location: %s", exc)
            raise StorageError.wrap("Failed to add location", exc) from exc

        logger.info("Added location %s", result.inserted_id)
        return LocationPoint(
            id=str(result.inserted_id),
            name=document["name"],
            latitude=document["latitude"],
            longitude=document["longitude"],
            description=document["description"],
            created_at=document["createdAt"],
        )

    @staticmethod
    async def _find(collection: Any, limit: int) -> list[dict[str, Any]]:
        return await asyncio.to_thread(lambda: list(collection.find({}).limit(limit)))

    @staticmethod
    async def _seed(collection: Any) -> None:
        created_at = utc_now()
        documents = [
            {
                "name": name,
                "latitude": latitude,
                "longitude": longitude,
                "description": description,
                "createdAt": created_at,
            }
            for name, latitude, longitude, description in SEED_LOCATIONS
        ]
        await asyncio.to_thread(collection.insert_many, documents)
        logger.info("Seeded empty location catalog with %d points", len(documents))
