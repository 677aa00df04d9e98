"""Request body schemas, validated before any business logic runs."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from data_claims.errors import ValidationError


class _RequestBody(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class LocationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    latitude: float
    longitude: float
    accuracy: float | None = None
    captured_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("capturedAt", "timestamp"),
        serialization_alias="capturedAt",
    )


class ClaimRequest(_RequestBody):
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    selected_gb: str | None = Field(default=None, alias="selectedGB")
    location: LocationPayload | None = None


class AddLocationRequest(_RequestBody):
    name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    description: str | None = None


def parse_body(model: type[_RequestBody], body: Any) -> Any:
    """Validate a decoded JSON body, raising a 400-mapped ``ValidationError``."""
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc


def describe_validation_error(exc: PydanticValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid request body: " + "; ".join(problems)
