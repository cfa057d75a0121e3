"""
Schemas & Canonicalization
File: canonical.py

Purpose: Deterministic serialization utilities for artifact hashing and
Merkle leaves.

CRITICAL: All outputs from this module MUST be deterministic across runs and
byte-identical to the issuer-side serializer (sorted keys, no whitespace,
nulls kept, instants as `YYYY-MM-DDTHH:MM:SS.mmmZ`).
"""

import json
import math
import re
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from .errors import CanonicalizationException

# Canonical JSON separators - no whitespace
CANONICAL_JSON_SEPARATORS: tuple[str, str] = (",", ":")

# Epoch values above this are treated as milliseconds (ECMAScript Date semantics)
_MAX_EPOCH_MS = 8.64e15


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Rules:
        - If naive (no tzinfo): treat as UTC
        - If aware: convert to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    else:
        return dt.astimezone(timezone.utc)


def format_datetime_canonical(dt: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC instant with millisecond precision.

    Sub-millisecond precision is truncated, matching ECMAScript
    Date.prototype.toISOString().

    Returns:
        e.g. "2026-01-27T21:35:00.000Z"
    """
    utc_dt = ensure_utc(dt)
    millis = utc_dt.microsecond // 1000
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


# Extended ISO-8601 as emitted by ECMAScript and common databases. Parsed by
# hand so the accepted grammar does not depend on the interpreter version.
_ISO_DATETIME_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:[Tt ](?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?)?"
    r"(?P<offset>[Zz]|[+-]\d{2}(?::?\d{2})?)?)?$",
    re.ASCII,
)


def _parse_offset(text: str) -> timezone:
    if text in ("Z", "z"):
        return timezone.utc
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4]) if len(digits) > 2 else 0
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid UTC offset: {text}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _parse_datetime_string(text: str) -> Optional[datetime]:
    match = _ISO_DATETIME_RE.match(text.strip())
    if match is None:
        return None
    parts = match.groupdict()
    # Fractions are truncated to microseconds; output keeps milliseconds
    fraction = (parts["fraction"] or "")[:6].ljust(6, "0")
    tzinfo = _parse_offset(parts["offset"]) if parts["offset"] else None
    return datetime(
        int(parts["year"]),
        int(parts["month"]),
        int(parts["day"]),
        int(parts["hour"] or 0),
        int(parts["minute"] or 0),
        int(parts["second"] or 0),
        int(fraction),
        tzinfo=tzinfo,
    )


def normalize_date(value: Any) -> Optional[str]:
    """
    Normalize any date-like value to a canonical UTC instant string.

    Accepted inputs:
        - datetime (naive treated as UTC)
        - date (midnight UTC)
        - ISO-8601 strings, including a trailing "Z" and date-only forms
        - int/float epoch milliseconds (0 counts as absent)

    This function is total: absent, empty or unparsable values yield None
    instead of raising.
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)) and value == 0:
        return None

    dt: Optional[datetime] = None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, date):
            dt = datetime(value.year, value.month, value.day)
        elif isinstance(value, (int, float)):
            if not math.isfinite(value) or abs(value) > _MAX_EPOCH_MS:
                return None
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        elif isinstance(value, str):
            dt = _parse_datetime_string(value)
    except (ValueError, OverflowError, OSError):
        return None

    if dt is None:
        return None
    try:
        return format_datetime_canonical(dt)
    except (ValueError, OverflowError):
        return None


def _validate_float(value: float, path: str = "") -> None:
    """
    Validate that a float is finite (not NaN or Infinity).

    Raises:
        CanonicalizationException: If the float is NaN or Infinity.
    """
    if not math.isfinite(value):
        raise CanonicalizationException(
            message=f"Non-finite float value encountered: {value}",
            details={"path": path, "value": str(value)},
        )


def canonicalize_value(value: Any, path: str = "") -> Any:
    """
    Recursively canonicalize a value for deterministic JSON serialization.

    Mapping keys are sorted during serialization; None is preserved as null
    so that optional fields are explicit rather than omitted.

    Raises:
        CanonicalizationException: If the value cannot be canonicalized
            (e.g., contains NaN/Infinity floats).
    """
    if value is None:
        return None

    if isinstance(value, bool):
        # Must check bool before int since bool is subclass of int
        return value

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        _validate_float(value, path)
        return value

    if isinstance(value, str):
        return value

    if isinstance(value, datetime):
        return format_datetime_canonical(value)

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, BaseModel):
        dumped = value.model_dump(mode="json", by_alias=True)
        return canonicalize_value(dumped, path)

    if isinstance(value, Mapping):
        return {
            str(k): canonicalize_value(v, f"{path}.{k}" if path else str(k))
            for k, v in value.items()
        }

    if isinstance(value, (list, tuple)):
        return [
            canonicalize_value(item, f"{path}[{i}]")
            for i, item in enumerate(value)
        ]

    if isinstance(value, (set, frozenset)):
        # Unordered: order members by their own canonical form
        items = [canonicalize_value(item, f"{path}[]") for item in value]
        return sorted(
            items,
            key=lambda item: json.dumps(item, sort_keys=True, separators=CANONICAL_JSON_SEPARATORS),
        )

    if isinstance(value, bytes):
        return value.hex()

    try:
        return str(value)
    except Exception as e:
        raise CanonicalizationException(
            message=f"Cannot canonicalize value of type {type(value).__name__}",
            details={"path": path, "type": type(value).__name__, "error": str(e)},
        ) from e


def dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to canonical JSON string.

    Returns:
        A canonical JSON string with:
            - Keys sorted at every nesting level
            - No extra whitespace
            - None kept as null
            - Datetimes as ISO-8601 UTC instants with millisecond precision
            - Enums as their values
            - Non-ASCII characters emitted as-is (UTF-8 on encoding)

    Raises:
        CanonicalizationException: If serialization fails.

    Example:
        >>> dumps_canonical({"b": 2, "a": None})
        '{"a":null,"b":2}'
    """
    try:
        canonicalized = canonicalize_value(obj)
        return json.dumps(
            canonicalized,
            sort_keys=True,
            separators=CANONICAL_JSON_SEPARATORS,
            ensure_ascii=False,
        )
    except CanonicalizationException:
        raise
    except Exception as e:
        raise CanonicalizationException(
            message=f"Failed to serialize to canonical JSON: {e}",
            details={"type": type(obj).__name__, "error": str(e)},
        ) from e


def loads_canonical(json_str: str) -> Any:
    """
    Parse a canonical JSON string.

    Note: This does NOT restore datetime objects - they remain as strings.
    """
    return json.loads(json_str)


def canonical_equals(obj1: Any, obj2: Any) -> bool:
    """Check if two objects have identical canonical JSON representations."""
    try:
        return dumps_canonical(obj1) == dumps_canonical(obj2)
    except CanonicalizationException:
        return False
