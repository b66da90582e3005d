"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Timezone-aware "now" used as the default clock
- Wait-time rounding for rate-limit messages
- Timestamp utilities
"""

import math
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Returns the current UTC time (timezone-aware).
    """
    return datetime.now(timezone.utc)


def minutes_until(target: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole minutes left until target, rounded up. Never negative.
    """
    now = now or utc_now()
    seconds = (target - now).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """
    Formats a datetime as ISO-8601, or None.
    """
    if not dt:
        return None
    return dt.isoformat()
