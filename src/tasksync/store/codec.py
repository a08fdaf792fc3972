# src/tasksync/store/codec.py

"""
JSON codec shared by the document store and local storage.

Timestamps are stored as tagged objects ({"$date": "<iso>"}) so that documents
round-trip with real datetime values instead of bare strings.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

_DATE_KEY = "$date"


def utcnow() -> datetime:
    return datetime.now(UTC)


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return {_DATE_KEY: value.isoformat()}
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _object_hook(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and _DATE_KEY in obj:
        try:
            return datetime.fromisoformat(obj[_DATE_KEY])
        except (TypeError, ValueError):
            return obj
    return obj


def dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=_default)


def loads(raw: str) -> Any:
    return json.loads(raw, object_hook=_object_hook)


def to_datetime(value: Any) -> datetime | None:
    """
    Coerce a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO strings and epoch seconds/milliseconds (older
    documents were written by clients that used numbers).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts > 1e11:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, UTC)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)
    if isinstance(value, dict) and _DATE_KEY in value:
        return to_datetime(value[_DATE_KEY])
    return None
