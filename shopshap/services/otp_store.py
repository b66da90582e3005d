"""
shopshap/services/otp_store.py

Purpose: One-time code lifecycle

- Generates 6-digit codes and stores one record per phone number
- Sending a new code overwrites (invalidates) the previous one
- Verifies submissions: expiry is checked lazily, wrong guesses are
  counted, and the record is deleted once it succeeds, expires or runs
  out of attempts

Per phone number:

    NoCode --create_code--> Active
    Active --correct code--> deleted, SUCCESS
    Active --wrong code, attempts left--> Active, INCORRECT(remaining)
    Active --wrong code, no attempts left--> deleted, TOO_MANY_ATTEMPTS
    Active --verify after expires_at--> deleted, EXPIRED
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, MutableMapping, Optional, Any

from shopshap.core.logging import get_logger, mask_phone
from utils.time_utils import utc_now

logger = get_logger(__name__)


def generate_verification_code() -> str:
    """
    Returns a random code in 100000-999999.

    Codes below 100000 are never produced, so the draw is uniform over
    900000 values rather than the full 6-digit space.
    """
    return str(100000 + secrets.randbelow(900000))


class VerifyStatus(str, Enum):
    NOT_FOUND = "CODE_NOT_FOUND"
    EXPIRED = "CODE_EXPIRED"
    TOO_MANY_ATTEMPTS = "TOO_MANY_ATTEMPTS"
    INCORRECT = "INCORRECT_CODE"
    SUCCESS = "SUCCESS"


@dataclass
class OtpRecord:
    code: str
    expires_at: datetime
    attempts: int
    created_at: datetime


@dataclass(frozen=True)
class VerifyOutcome:
    status: VerifyStatus
    remaining_attempts: Optional[int] = None
    verified_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status is VerifyStatus.SUCCESS


class OtpStore:
    """
    In-memory code store keyed by normalized phone number.

    At most one record exists per phone number. A record is live while
    now <= expires_at and attempts < max_attempts.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=10),
        max_attempts: int = 3,
        clock: Callable[[], datetime] = utc_now,
        records: Optional[MutableMapping[str, OtpRecord]] = None,
        code_factory: Callable[[], str] = generate_verification_code
    ):
        self.ttl = ttl
        self.max_attempts = max_attempts
        self._clock = clock
        self._records: MutableMapping[str, OtpRecord] = records if records is not None else {}
        self._code_factory = code_factory

    def create_code(self, phone: str) -> str:
        """
        Generates a code for phone, replacing any code issued before.

        Args:
            phone: Normalized phone number

        Returns:
            The new 6-digit code
        """
        now = self._clock()
        code = self._code_factory()

        replaced = phone in self._records
        self._records[phone] = OtpRecord(
            code=code,
            expires_at=now + self.ttl,
            attempts=0,
            created_at=now,
        )

        logger.info(
            f"Verification code issued for {mask_phone(phone)}"
            + (" (previous code invalidated)" if replaced else "")
        )
        return code

    def verify(self, phone: str, submitted_code: str) -> VerifyOutcome:
        """
        Checks a submitted code against the stored record.

        Args:
            phone: Normalized phone number
            submitted_code: Code typed by the user (surrounding spaces ignored)

        Returns:
            VerifyOutcome with the resulting status
        """
        record = self._records.get(phone)
        if record is None:
            return VerifyOutcome(VerifyStatus.NOT_FOUND)

        now = self._clock()

        if now > record.expires_at:
            del self._records[phone]
            logger.info(f"Expired code discarded for {mask_phone(phone)}")
            return VerifyOutcome(VerifyStatus.EXPIRED)

        if record.attempts >= self.max_attempts:
            del self._records[phone]
            return VerifyOutcome(VerifyStatus.TOO_MANY_ATTEMPTS, remaining_attempts=0)

        submitted = (submitted_code or "").strip()
        if not secrets.compare_digest(record.code.encode(), submitted.encode()):
            record.attempts += 1
            remaining = self.max_attempts - record.attempts

            if remaining <= 0:
                del self._records[phone]
                logger.warning(f"Attempts exhausted for {mask_phone(phone)}, code discarded")
                return VerifyOutcome(VerifyStatus.TOO_MANY_ATTEMPTS, remaining_attempts=0)

            logger.info(f"Incorrect code for {mask_phone(phone)} ({remaining} attempts remaining)")
            return VerifyOutcome(VerifyStatus.INCORRECT, remaining_attempts=remaining)

        del self._records[phone]
        return VerifyOutcome(VerifyStatus.SUCCESS, verified_at=now)

    def get(self, phone: str) -> Optional[OtpRecord]:
        return self._records.get(phone)

    def purge_expired(self) -> int:
        """
        Drops records past their expiry. Returns how many were removed.
        """
        now = self._clock()
        expired = [phone for phone, record in self._records.items() if now > record.expires_at]
        for phone in expired:
            del self._records[phone]
        return len(expired)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Development-only view of every stored code."""
        return [
            {
                "phone": phone,
                "code": record.code,
                "expires_at": record.expires_at.isoformat(),
                "attempts": record.attempts,
            }
            for phone, record in self._records.items()
        ]

    def clear(self):
        self._records.clear()
