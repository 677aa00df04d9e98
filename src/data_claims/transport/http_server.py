"""Starlette HTTP server assembly for the claims and catalog endpoints."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from data_claims.app import AppContext, get_app_context
from data_claims.errors import (
    ClaimServiceError,
    MethodNotAllowedError,
    StorageError,
    ValidationError,
)
from data_claims.transport.schemas import AddLocationRequest, ClaimRequest, parse_body
from data_claims.utils.http import get_client_ip
from data_claims.utils.serialization import dumps
from data_claims.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
}

API_PREFIX = "/api"


class ApiJSONResponse(JSONResponse):
    """JSON response that knows how to encode store values."""

    def render(self, content: Any) -> bytes:
        return dumps(content).encode("utf-8")


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """Answer every preflight with 200 and stamp CORS headers on all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc


def _error_payload(exc: ClaimServiceError) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": False, "message": exc.message}
    if isinstance(exc, StorageError) and exc.detail:
        payload["error"] = exc.detail
    return payload


async def _service_error_handler(request: Request, exc: ClaimServiceError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return ApiJSONResponse(_error_payload(exc), status_code=exc.status_code)


async def _http_exception_handler(request: Request, exc: HTTPException) -> Response:
    message = MethodNotAllowedError().message if exc.status_code == 405 else exc.detail
    return ApiJSONResponse(
        {"success": False, "message": message},
        status_code=exc.status_code,
        headers=exc.headers,
    )


def _build_routes(context: AppContext) -> list[Route]:
    trust_forwarded_headers = context.settings.server.trust_forwarded_headers

    async def claim_handler(request: Request) -> Response:
        payload = parse_body(ClaimRequest, await _read_json(request))
        location = (
            payload.location.model_dump(by_alias=True) if payload.location is not None else None
        )
        record = await context.claims.submit(
            payload.phone_number,
            payload.selected_gb,
            location,
            source_ip=get_client_ip(request, trust_forwarded_headers=trust_forwarded_headers),
            user_agent=request.headers.get("user-agent"),
        )
        return ApiJSONResponse(
            {
                "success": True,
                "message": "Data claim submitted successfully",
                "claimId": record.id,
                "data": record.to_dict(),
            }
        )

    async def claims_handler(request: Request) -> Response:
        records = await context.claims.recent()
        return ApiJSONResponse(
            {"success": True, "data": [record.to_dict() for record in records]}
        )

    async def health_handler(request: Request) -> Response:
        return ApiJSONResponse(
            {
                "success": True,
                "message": "Server is running",
                "timestamp": utc_now_iso(),
                "mongodb": "connected" if context.connections.is_connected else "disconnected",
            }
        )

    async def locations_handler(request: Request) -> Response:
        if request.method == "POST":
            return await _add_location(request)

        points, seeded = await context.catalog.fetch()
        message = (
            "Sample data inserted and retrieved" if seeded else "Locations retrieved successfully"
        )
        return ApiJSONResponse(
            {"success": True, "data": [point.to_dict() for point in points], "message": message}
        )

    async def _add_location(request: Request) -> Response:
        payload = parse_body(AddLocationRequest, await _read_json(request))
        point = await context.catalog.add(
            payload.name,
            payload.latitude,
            payload.longitude,
            payload.description,
        )
        return ApiJSONResponse(
            {"success": True, "data": point.to_dict(), "message": "Location added successfully"},
            status_code=201,
        )

    return [
        Route("/claim-data", endpoint=claim_handler, methods=["POST"]),
        Route("/claims", endpoint=claims_handler, methods=["GET"]),
        Route("/health", endpoint=health_handler, methods=["GET"]),
        Route("/locations", endpoint=locations_handler, methods=["GET", "POST"]),
    ]


def create_http_app(context: AppContext | None = None) -> Starlette:
    """Create the HTTP application around a (by default process-wide) context."""
    if context is None:
        context = get_app_context()

    routes = _build_routes(context)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Starting data claims HTTP server...")
        try:
            yield
        finally:
            logger.info("Stopping data claims HTTP server...")
            await context.connections.close()

    app = Starlette(
        routes=[*routes, Mount(API_PREFIX, routes=routes)],
        middleware=[Middleware(PermissiveCORSMiddleware)],
        exception_handlers={
            ClaimServiceError: _service_error_handler,
            HTTPException: _http_exception_handler,
        },
        lifespan=lifespan,
    )
    app.state.context = context
    return app
