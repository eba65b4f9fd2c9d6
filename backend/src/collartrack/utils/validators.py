# backend/src/collartrack/utils/validators.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional


# signed 64-bit range of a BIGINT column
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def to_number(value: Any) -> Optional[float]:
    """Coerce loosely typed input into a finite float, or None when absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def to_integer(value: Any) -> Optional[int]:
    number = to_number(value)
    if number is None:
        return None
    integer = int(round(number))
    if not BIGINT_MIN <= integer <= BIGINT_MAX:
        return None
    return integer


def to_text(value: Any) -> Optional[str]:
    """Strings are stripped, scalars stringified; blank or structured input is absent."""
    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return None
    text = value.strip() if isinstance(value, str) else str(value)
    return text or None


def to_timestamp(value: Any) -> Optional[datetime]:
    """ISO 8601 or RFC 2822 text -> aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            try:
                parsed = parsedate_to_datetime(raw)
            except (TypeError, ValueError):
                return None
    else:
        return None
    if parsed.tzinfo is None:
        # naive timestamps from collars are UTC
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_int(value: Any, default: int) -> int:
    """Lenient integer parse for query parameters such as limit/offset."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default
