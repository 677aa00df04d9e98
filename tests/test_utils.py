from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from starlette.requests import Request

from data_claims.utils.http import first_forwarded_value, get_client_ip
from data_claims.utils.serialization import dumps, json_default
from data_claims.utils.time import ensure_utc, utc_now


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("10.1.2.3", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_json_default_store_values() -> None:
    oid = ObjectId()
    assert json_default(oid) == str(oid)
    assert json_default(datetime(2026, 1, 2, tzinfo=timezone.utc)) == "2026-01-02T00:00:00+00:00"


def test_dumps_keeps_non_ascii() -> None:
    assert json.loads(dumps({"name": "Café"})) == {"name": "Café"}
    assert "Café" in dumps({"name": "Café"})


def test_dumps_rejects_nan() -> None:
    with pytest.raises(ValueError):
        dumps({"latitude": float("nan")})


def test_first_forwarded_value() -> None:
    assert first_forwarded_value(" 1.1.1.1 , 2.2.2.2") == "1.1.1.1"
    assert first_forwarded_value("") is None
    assert first_forwarded_value(None) is None


def test_client_ip_ignores_forwarded_headers_by_default() -> None:
    request = _request({"X-Forwarded-For": "203.0.113.9"})
    assert get_client_ip(request) == "10.1.2.3"


def test_client_ip_trusted_forwarded_headers() -> None:
    request = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
    assert get_client_ip(request, trust_forwarded_headers=True) == "203.0.113.9"

    request = _request({"X-Real-IP": " 203.0.113.10 "})
    assert get_client_ip(request, trust_forwarded_headers=True) == "203.0.113.10"


def test_client_ip_strips_control_characters() -> None:
    request = _request({"X-Real-IP": "203.0.113.10\tx"})
    assert get_client_ip(request, trust_forwarded_headers=True) == "203.0.113.10x"


def test_client_ip_unknown() -> None:
    assert get_client_ip(_request(client=None)) is None


def test_ensure_utc() -> None:
    naive = datetime(2026, 10, 18, 8, 30)
    assert ensure_utc(naive) == naive.replace(tzinfo=timezone.utc)

    offset = datetime(2026, 10, 18, 14, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    converted = ensure_utc(offset)
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 8 and converted.minute == 30


def test_utc_now_is_aware() -> None:
    assert utc_now().tzinfo is not None
