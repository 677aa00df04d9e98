"""Async API client for the claim form and the locations page.

This is the presentation-layer side of the contract: it masks and validates
the phone number, captures the device position, and surfaces server
``message`` strings verbatim through ``ClaimSubmissionError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from data_claims.geolocation import GeoError, GeolocationAcquirer
from data_claims.phone import (
    COUNTRY_CODE,
    canonical_phone_number,
    format_phone_number,
    is_valid_phone_number,
)

logger = logging.getLogger(__name__)

# Tier value -> label sent to the server.
QUOTA_TIERS: dict[str, str] = {
    "1": "1 GB",
    "2": "2 GB",
    "5": "5 GB",
    "10": "10 GB",
    "20": "20 GB",
    "other": "Other",
}
DEFAULT_TIER = "5"


class ClaimSubmissionError(Exception):
    """User-facing failure; ``message`` is meant to be shown as-is."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClaimClient:
    def __init__(
        self,
        base_url: str,
        acquirer: GeolocationAcquirer | None = None,
        *,
        country_code: str = COUNTRY_CODE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._acquirer = acquirer or GeolocationAcquirer(None)
        self._country_code = country_code
        self._timeout = timeout
        self._transport = transport

    async def submit_claim(self, raw_phone: str, tier: str = DEFAULT_TIER) -> dict[str, Any]:
        """Validate the form, capture location, then post the claim.

        A location failure aborts the submission; nothing is sent.
        """
        masked = format_phone_number(raw_phone)
        if not is_valid_phone_number(masked):
            raise ClaimSubmissionError("Please enter a valid phone number")
        label = QUOTA_TIERS.get(tier)
        if label is None:
            raise ClaimSubmissionError("Please select a data amount")

        try:
            position = await self._acquirer.acquire()
        except GeoError as exc:
            logger.info("Location unavailable (%s); claim not submitted", exc.kind.value)
            raise ClaimSubmissionError(exc.message) from exc

        body = {
            "phoneNumber": canonical_phone_number(masked, self._country_code),
            "selectedGB": label,
            "location": position.to_payload(),
        }
        return await self._request("POST", "/claim-data", json=body)

    async def list_locations(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/locations")
        return list(data.get("data") or [])

    async def add_location(
        self,
        name: str,
        latitude: float | str,
        longitude: float | str,
        description: str = "",
    ) -> dict[str, Any]:
        if not name or latitude in (None, "") or longitude in (None, ""):
            raise ClaimSubmissionError("Please fill in all required fields")
        data = await self._request(
            "POST",
            "/locations",
            json={
                "name": name,
                "latitude": latitude,
                "longitude": longitude,
                "description": description,
            },
        )
        return dict(data.get("data") or {})

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.request(method, path, json=json)
            except httpx.HTTPError as exc:
                logger.warning("%s %s failed: %s", method, path, exc)
                raise ClaimSubmissionError("Unable to reach the server") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ClaimSubmissionError(
                f"Unexpected response from server (HTTP {resp.status_code})"
            ) from exc

        if not isinstance(data, dict) or not data.get("success"):
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            raise ClaimSubmissionError(message or f"Request failed (HTTP {resp.status_code})")
        return data
