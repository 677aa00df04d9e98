"""JSON serialization utilities."""

from __future__ import annotations

import datetime
import json
from typing import Any

from bson import ObjectId


def json_default(obj: object) -> object:
    """JSON serializer for store values not serializable by default json code."""
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    return str(obj)


def dumps(payload: Any) -> str:
    return json.dumps(
        payload,
        default=json_default,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    )
