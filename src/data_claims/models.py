"""Persisted records for claims and catalog points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from data_claims.utils.time import ensure_utc


def _finite(value: Any, field: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{field} is not a finite number")
    return number


def _optional_finite(value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class ClaimLocation:
    latitude: float
    longitude: float
    accuracy: float | None = None
    captured_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "capturedAt": self.captured_at,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ClaimLocation":
        captured_at = doc.get("capturedAt", doc.get("timestamp"))
        return cls(
            latitude=_finite(doc["latitude"], "latitude"),
            longitude=_finite(doc["longitude"], "longitude"),
            accuracy=_optional_finite(doc.get("accuracy")),
            captured_at=ensure_utc(captured_at) if isinstance(captured_at, datetime) else None,
        )


@dataclass(frozen=True)
class ClaimRecord:
    id: str
    phone_number: str
    selected_tier: str
    location: ClaimLocation | None
    submitted_at: datetime
    source_ip: str | None = None
    user_agent: str | None = None

    def to_document(self) -> dict[str, Any]:
        """Store shape, without the store-assigned ``_id``."""
        return {
            "phoneNumber": self.phone_number,
            "selectedTier": self.selected_tier,
            "location": self.location.to_document() if self.location else None,
            "submittedAt": self.submitted_at,
            "sourceIp": self.source_ip,
            "userAgent": self.user_agent,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "ClaimRecord":
        """Build a record, also reading rows written under the older
        ``selectedGB`` / ``timestamp`` / ``ipAddress`` keys.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` for rows that
        cannot be read.
        """
        location = doc.get("location")
        submitted_at = doc.get("submittedAt", doc.get("timestamp"))
        if not isinstance(submitted_at, datetime):
            raise ValueError("claim has no submission time")
        return cls(
            id=str(doc["_id"]),
            phone_number=doc["phoneNumber"],
            selected_tier=doc["selectedTier"] if "selectedTier" in doc else doc["selectedGB"],
            location=ClaimLocation.from_document(location) if location else None,
            submitted_at=ensure_utc(submitted_at),
            source_ip=doc.get("sourceIp", doc.get("ipAddress")),
            user_agent=doc.get("userAgent"),
        )


@dataclass(frozen=True)
class LocationPoint:
    id: str
    name: str
    latitude: float
    longitude: float
    description: str
    created_at: datetime

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "description": self.description,
            "createdAt": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "LocationPoint":
        created_at = doc.get("createdAt")
        if not isinstance(created_at, datetime):
            raise ValueError("location has no creation time")
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            latitude=_finite(doc["latitude"], "latitude"),
            longitude=_finite(doc["longitude"], "longitude"),
            description=doc.get("description") or "",
            created_at=ensure_utc(created_at),
        )
