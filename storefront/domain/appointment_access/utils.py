"""Time-window helpers for appointment access (pure functions, no I/O)"""

import math
from datetime import datetime, timezone
from typing import Optional

DEFAULT_ACCESS_DURATION_SECONDS = 600
MIN_ACCESS_DURATION_SECONDS = 60
MAX_ACCESS_DURATION_SECONDS = 7200

CRITICAL_THRESHOLD_SECONDS = 120
WARNING_THRESHOLD_SECONDS = 300
MINIMUM_USABLE_SECONDS = 60


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the ``timestamp without time zone`` columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def remaining_seconds(accessed_at: datetime, duration: Optional[int], now: Optional[datetime] = None) -> float:
    """Seconds left in the window that opened at ``accessed_at`` (negative once elapsed)"""
    now = now or utc_now()
    elapsed = (now - to_naive_utc(accessed_at)).total_seconds()
    return (duration or DEFAULT_ACCESS_DURATION_SECONDS) - elapsed


def minutes_label(seconds: int) -> str:
    """600 -> "10", 90 -> "1.5" """
    return f"{seconds / 60:g}"


def format_time(seconds: int) -> str:
    """Format seconds as M:SS (minutes are not padded)"""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def time_remaining_message(seconds: int) -> str:
    if seconds <= 0:
        return "Time expired"

    minutes, secs = divmod(int(seconds), 60)
    if minutes == 0:
        return f"{secs} second{'s' if secs != 1 else ''} remaining"
    if secs == 0:
        return f"{minutes} minute{'s' if minutes != 1 else ''} remaining"
    return f"{minutes}:{secs:02d} remaining"


def is_time_critical(seconds: int) -> bool:
    return 0 < seconds <= CRITICAL_THRESHOLD_SECONDS


def is_time_warning(seconds: int) -> bool:
    return CRITICAL_THRESHOLD_SECONDS < seconds <= WARNING_THRESHOLD_SECONDS


def has_sufficient_time(seconds: int) -> bool:
    return seconds >= MINIMUM_USABLE_SECONDS


def progress_percentage(remaining: float, total: float = DEFAULT_ACCESS_DURATION_SECONDS) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, remaining / total * 100))


def classify_access_error(message: Optional[str]) -> str:
    """Map an access error message to the follow-up the UI should offer"""
    if not message:
        return "retry"
    if "subscription" in message:
        return "subscribe"
    if "expired" in message or "time" in message:
        return "contact"
    return "retry"


def ceil_seconds(value: float) -> int:
    return int(math.ceil(value))


def is_valid_duration(duration: Optional[int]) -> bool:
    return (
        isinstance(duration, int)
        and not isinstance(duration, bool)
        and MIN_ACCESS_DURATION_SECONDS <= duration <= MAX_ACCESS_DURATION_SECONDS
    )
