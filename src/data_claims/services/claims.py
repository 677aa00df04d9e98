"""Claim ingestion: validate a claim and persist it once."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from typing import Any, Mapping

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from data_claims.errors import StorageError, ValidationError
from data_claims.models import ClaimLocation, ClaimRecord
from data_claims.storage.connection import ConnectionCache
from data_claims.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "data_claims"
DEFAULT_RECENT_LIMIT = 100


def _require_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _parse_captured_at(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError as exc:
            raise ValidationError("Location timestamp must be an ISO 8601 string") from exc
    raise ValidationError("Location timestamp must be an ISO 8601 string")


def parse_location(location: Mapping[str, Any] | ClaimLocation | None) -> ClaimLocation | None:
    """Normalize a client-supplied location, rejecting non-finite coordinates."""
    if location is None or isinstance(location, ClaimLocation):
        return location
    if not isinstance(location, Mapping):
        raise ValidationError("Location must be an object")

    latitude = _finite_number(location.get("latitude"))
    longitude = _finite_number(location.get("longitude"))
    if latitude is None or longitude is None:
        raise ValidationError("Location requires numeric latitude and longitude")

    accuracy = location.get("accuracy")
    if accuracy is not None:
        accuracy = _finite_number(accuracy)
        if accuracy is None:
            raise ValidationError("Location accuracy must be numeric")

    captured_at = location.get("capturedAt", location.get("timestamp"))
    return ClaimLocation(
        latitude=latitude,
        longitude=longitude,
        accuracy=accuracy,
        captured_at=_parse_captured_at(captured_at),
    )


class ClaimIngestionService:
    """Validate and persist data claims."""

    def __init__(
        self,
        connections: ConnectionCache,
        collection: str = DEFAULT_COLLECTION,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        self._connections = connections
        self._collection_name = collection
        self._recent_limit = recent_limit

    async def submit(
        self,
        phone_number: Any,
        selected_tier: Any,
        location: Mapping[str, Any] | ClaimLocation | None = None,
        *,
        source_ip: str | None = None,
        user_agent: str | None = None,
    ) -> ClaimRecord:
        phone = _require_text(phone_number)
        tier = _require_text(selected_tier)
        if phone is None or tier is None:
            raise ValidationError("Phone number and GB selection are required")
        claim_location = parse_location(location)

        handle = await self._connections.get_handle()
        collection = handle.database[self._collection_name]

        submitted_at = utc_now()
        document = {
            "phoneNumber": phone,
            "selectedTier": tier,
            "location": claim_location.to_document() if claim_location else None,
            "submittedAt": submitted_at,
            "sourceIp": source_ip,
            "userAgent": user_agent,
        }
        try:
            result = await asyncio.to_thread(collection.insert_one, document)
        except PyMongoError as exc:
            logger.error("Error storing claim data: %s", exc)
            raise StorageError.wrap("Failed to store claim", exc) from exc

        record = ClaimRecord(
            id=str(result.inserted_id),
            phone_number=phone,
            selected_tier=tier,
            location=claim_location,
            submitted_at=submitted_at,
            source_ip=source_ip,
            user_agent=user_agent,
        )
        logger.info(
            "Stored data claim %s (tier=%s, has_location=%s)",
            record.id,
            tier,
            claim_location is not None,
        )
        return record

    async def recent(self, limit: int | None = None) -> list[ClaimRecord]:
        """Return the newest claims first, unfiltered."""
        limit = limit or self._recent_limit
        handle = await self._connections.get_handle()
        collection = handle.database[self._collection_name]

        def _fetch() -> list[dict[str, Any]]:
            cursor = (
                collection.find({})
                .sort([("submittedAt", DESCENDING), ("timestamp", DESCENDING)])
                .limit(limit)
            )
            return list(cursor)

        try:
            documents = await asyncio.to_thread(_fetch)
        except PyMongoError as exc:
            logger.error("Error fetching claims: %s", exc)
            raise StorageError.wrap("Failed to fetch claims", exc) from exc
        return _readable_claims(documents)


def _readable_claims(documents: list[dict[str, Any]]) -> list[ClaimRecord]:
    records = []
    for doc in documents:
        try:
            records.append(ClaimRecord.from_document(doc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping unreadable claim %s: %r", doc.get("_id"), exc)
    return records
