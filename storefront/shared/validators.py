"""Shared validation utilities"""

import math
from datetime import datetime, timezone
from typing import Any, Optional


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse CMS/Stripe ISO-8601 strings ("...Z" included) into aware UTC datetimes.

    Empty, non-string or unparseable values give None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_number(value: Any) -> Optional[float]:
    """Coerce a CMS price field to float; None when it is not a finite number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
