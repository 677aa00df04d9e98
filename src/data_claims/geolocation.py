"""Single-shot device position acquisition with typed failures.

The platform position API is callback based: a ``PositionSource`` is asked for
the current position and later invokes exactly one of the supplied callbacks,
possibly from another thread. ``GeolocationAcquirer`` bridges that into an
awaitable that either returns a ``Position`` or raises ``GeoError``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Callable, Protocol

from data_claims.utils.time import utc_now

logger = logging.getLogger(__name__)


class GeoErrorKind(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    POSITION_UNAVAILABLE = "PositionUnavailable"
    TIMEOUT = "Timeout"
    UNAVAILABLE = "Unavailable"


GEO_ERROR_MESSAGES: dict[GeoErrorKind, str] = {
    GeoErrorKind.PERMISSION_DENIED: "Location access denied by user",
    GeoErrorKind.POSITION_UNAVAILABLE: "Location information is unavailable",
    GeoErrorKind.TIMEOUT: "Location request timed out",
    GeoErrorKind.UNAVAILABLE: "Unable to retrieve your location",
}


class PositionErrorCode(IntEnum):
    """Native error codes reported by platform position sources."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


_CODE_TO_KIND = {
    PositionErrorCode.PERMISSION_DENIED: GeoErrorKind.PERMISSION_DENIED,
    PositionErrorCode.POSITION_UNAVAILABLE: GeoErrorKind.POSITION_UNAVAILABLE,
    PositionErrorCode.TIMEOUT: GeoErrorKind.TIMEOUT,
}


class GeoError(Exception):
    """Raised when a position could not be acquired."""

    def __init__(self, kind: GeoErrorKind) -> None:
        self.kind = kind
        self.message = GEO_ERROR_MESSAGES[kind]
        super().__init__(self.message)

    @classmethod
    def from_native(cls, error: Any) -> "GeoError":
        """Classify a native failure by its ``code`` attribute (or the value itself)."""
        code = getattr(error, "code", error)
        try:
            kind = _CODE_TO_KIND[PositionErrorCode(code)]
        except (ValueError, TypeError):
            kind = GeoErrorKind.UNAVAILABLE
        return cls(kind)


@dataclass(frozen=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout: float = 10.0
    maximum_age: float = 300.0


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: float
    captured_at: datetime = field(default_factory=utc_now)

    def to_payload(self) -> dict[str, object]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "capturedAt": self.captured_at.isoformat(),
        }


class PositionSource(Protocol):
    def get_current_position(
        self,
        on_success: Callable[[Any], None],
        on_error: Callable[[Any], None],
        options: PositionOptions,
    ) -> None: ...


class GeolocationAcquirer:
    """Await a single position fix from a callback-based source.

    Concurrent calls are not coalesced; callers are expected to hold off
    submitting while a request is outstanding.
    """

    def __init__(
        self,
        source: PositionSource | None,
        options: PositionOptions | None = None,
    ) -> None:
        self._source = source
        self._options = options or PositionOptions()

    @property
    def options(self) -> PositionOptions:
        return self._options

    async def acquire(self) -> Position:
        if self._source is None:
            raise GeoError(GeoErrorKind.UNAVAILABLE)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Position] = loop.create_future()

        def _settle(result: Position | None, error: GeoError | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def on_success(coords: Any) -> None:
            try:
                position = _position_from_native(coords)
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Position source returned malformed coordinates")
                loop.call_soon_threadsafe(_settle, None, GeoError(GeoErrorKind.UNAVAILABLE))
                return
            loop.call_soon_threadsafe(_settle, position, None)

        def on_error(error: Any) -> None:
            loop.call_soon_threadsafe(_settle, None, GeoError.from_native(error))

        try:
            self._source.get_current_position(on_success, on_error, self._options)
        except Exception as exc:
            logger.warning("Position source failed to start: %s", exc)
            raise GeoError(GeoErrorKind.UNAVAILABLE) from exc

        try:
            return await asyncio.wait_for(future, timeout=self._options.timeout)
        except asyncio.TimeoutError as exc:
            raise GeoError(GeoErrorKind.TIMEOUT) from exc


def _position_from_native(coords: Any) -> Position:
    if isinstance(coords, Position):
        return coords
    if isinstance(coords, dict):
        data = coords
    else:
        data = {
            "latitude": coords.latitude,
            "longitude": coords.longitude,
            "accuracy": getattr(coords, "accuracy", 0.0),
        }
    return Position(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        accuracy=float(data.get("accuracy") or 0.0),
    )
