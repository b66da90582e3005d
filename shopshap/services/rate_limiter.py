"""
shopshap/services/rate_limiter.py

Purpose: Throttle verification code requests

- Fixed window per normalized phone number (default 3 requests / 15 min)
- The window restarts on the first request after it has elapsed
- Blocked requests do not increment the count nor extend the window

The limiter owns its records; no other component mutates them.
try_consume never awaits, so a check and its increment cannot interleave
with another request on the same event loop.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, MutableMapping, Optional, Any

from shopshap.core.logging import get_logger, mask_phone
from utils.time_utils import utc_now, minutes_until

logger = get_logger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    reset_at: datetime


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Outcome of try_consume, reflecting the record after the call.
    """
    allowed: bool
    count: int
    reset_at: datetime

    def wait_minutes(self, now: Optional[datetime] = None) -> int:
        # A request at exactly reset_at is still blocked
        return max(1, minutes_until(self.reset_at, now))


class RateLimiter:
    """Fixed-window request counter keyed by normalized phone number."""

    def __init__(
        self,
        max_requests: int = 3,
        window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
        records: Optional[MutableMapping[str, RateLimitRecord]] = None
    ):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._records: MutableMapping[str, RateLimitRecord] = records if records is not None else {}

    def try_consume(self, phone: str) -> RateLimitDecision:
        """
        Checks the limit for a phone number and, if allowed, consumes a slot.

        Args:
            phone: Normalized phone number (+221701234567)

        Returns:
            RateLimitDecision; allowed=False carries the reset time
        """
        now = self._clock()
        record = self._records.get(phone)

        if record is None or now > record.reset_at:
            record = RateLimitRecord(count=1, reset_at=now + self.window)
            self._records[phone] = record
            return RateLimitDecision(allowed=True, count=record.count, reset_at=record.reset_at)

        if record.count >= self.max_requests:
            logger.warning(
                f"Rate limit reached for {mask_phone(phone)} "
                f"({record.count}/{self.max_requests}, resets {record.reset_at.isoformat()})"
            )
            return RateLimitDecision(allowed=False, count=record.count, reset_at=record.reset_at)

        record.count += 1
        return RateLimitDecision(allowed=True, count=record.count, reset_at=record.reset_at)

    def get(self, phone: str) -> Optional[RateLimitRecord]:
        return self._records.get(phone)

    def purge_expired(self) -> int:
        """
        Drops records whose window has elapsed.

        Returns:
            Number of records removed
        """
        now = self._clock()
        stale = [phone for phone, record in self._records.items() if now > record.reset_at]
        for phone in stale:
            del self._records[phone]
        return len(stale)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [
            {"phone": phone, "count": record.count, "reset_at": record.reset_at.isoformat()}
            for phone, record in self._records.items()
        ]

    def clear(self):
        self._records.clear()
