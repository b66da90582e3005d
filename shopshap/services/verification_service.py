"""
shopshap/services/verification_service.py

Purpose: Phone verification orchestration

Send:   validate number -> rate limit -> new code -> compose -> Twilio
Verify: validate number -> check code against the store

- Every failure is raised internally as a ShopShapError and converted
  at this boundary into a SendResult / VerifyResult with a localized message
- A code created before a failed delivery is kept (a resend replaces it)
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Any, Optional, Sequence

from shopshap.core.config import settings
from shopshap.core.exceptions import (
    ShopShapError,
    ValidationError,
    RateLimitExceededError,
    CodeVerificationError,
    DeliveryError,
    DeliveryFailure,
)
from shopshap.core.logging import get_logger, LogContext, mask_phone
from shopshap.schemas.verification import SendResult, VerifyResult, VerifiedUser
from shopshap.services.otp_store import OtpStore, VerifyStatus
from shopshap.services.rate_limiter import RateLimiter
from shopshap.services.twilio_service import TwilioService
from utils.constants import (
    INVALID_PHONE_MESSAGE,
    INVALID_CODE_FORMAT_MESSAGE,
    RATE_LIMITED_MESSAGE,
    CODE_SENT_MESSAGE,
    GATEWAY_UNAVAILABLE_MESSAGE,
    CHANNEL_UNSUPPORTED_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    DELIVERY_FAILED_MESSAGE,
    CODE_NOT_FOUND_MESSAGE,
    CODE_EXPIRED_MESSAGE,
    ATTEMPTS_EXHAUSTED_MESSAGE,
    INCORRECT_CODE_MESSAGE,
    CODE_VERIFIED_MESSAGE,
)
from utils.time_utils import utc_now
from utils.validation_utils import (
    CountryProfile,
    PhoneValidation,
    SUPPORTED_COUNTRIES,
    validate_and_format_phone_number,
    validate_otp_format,
)
from utils.whatsapp_utils import build_verification_message

logger = get_logger(__name__)

DELIVERY_MESSAGES = {
    DeliveryFailure.UNCONFIGURED: GATEWAY_UNAVAILABLE_MESSAGE,
    DeliveryFailure.INVALID_NUMBER: INVALID_PHONE_MESSAGE,
    DeliveryFailure.CHANNEL_UNSUPPORTED: CHANNEL_UNSUPPORTED_MESSAGE,
    DeliveryFailure.PERMISSION_DENIED: PERMISSION_DENIED_MESSAGE,
    DeliveryFailure.GENERIC: DELIVERY_FAILED_MESSAGE,
}


class VerificationService:
    """Issues and checks WhatsApp verification codes."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        otp_store: OtpStore,
        gateway: TwilioService,
        countries: Sequence[CountryProfile] = SUPPORTED_COUNTRIES,
        clock: Callable[[], datetime] = utc_now
    ):
        self.rate_limiter = rate_limiter
        self.otp_store = otp_store
        self.gateway = gateway
        self.countries = countries
        self._clock = clock

    @property
    def expiry_minutes(self) -> int:
        return int(self.otp_store.ttl.total_seconds() // 60)

    def normalize(self, phone: str) -> PhoneValidation:
        """
        Shared normalizer for both flows.

        Raises:
            ValidationError: number matches no supported country
        """
        validation = validate_and_format_phone_number(phone, self.countries)
        if not validation.is_valid:
            raise ValidationError(validation.error or INVALID_PHONE_MESSAGE)
        return validation

    # ============================================================
    # SEND
    # ============================================================

    async def send_code(self, phone: str) -> SendResult:
        """
        Sends a fresh verification code to a WhatsApp number.

        Args:
            phone: Raw phone number as typed by the user

        Returns:
            SendResult; on failure success=False with reason and message
        """
        try:
            return await self._send(phone)
        except ShopShapError as e:
            return SendResult(success=False, message=e.message, reason=e.code)

    async def _send(self, phone: str) -> SendResult:
        validation = self.normalize(phone)
        formatted = validation.formatted
        country = validation.country

        with LogContext(phone=mask_phone(formatted), country=country.code):
            decision = self.rate_limiter.try_consume(formatted)
            if not decision.allowed:
                wait = decision.wait_minutes(self._clock())
                raise RateLimitExceededError(
                    RATE_LIMITED_MESSAGE.format(minutes=wait),
                    reset_at=decision.reset_at,
                    wait_minutes=wait
                )

            code = self.otp_store.create_code(formatted)
            body = build_verification_message(code, country, self.expiry_minutes)

            try:
                receipt = await self.gateway.send_message(formatted, body)
            except DeliveryError as e:
                logger.error(
                    f"Delivery failed ({e.reason.value}); issued code stays valid",
                    extra={"reason": e.reason.value}
                )
                raise DeliveryError(e.reason, DELIVERY_MESSAGES[e.reason], details=e.details) from e

            logger.info(f"Verification code sent, SID={receipt.message_sid}")

        return SendResult(
            success=True,
            message=CODE_SENT_MESSAGE.format(flag=country.flag, name=country.name),
            sid=receipt.message_sid,
            country=country.name,
            formatted_number=formatted
        )

    # ============================================================
    # VERIFY
    # ============================================================

    async def verify_code(self, phone: str, code: str) -> VerifyResult:
        """
        Checks a submitted code for a phone number.

        The phone number is normalized exactly as on send, so "+221 70 123 45 67"
        and "221701234567" reach the same stored code.

        Args:
            phone: Raw phone number
            code: Code typed by the user

        Returns:
            VerifyResult with user_data on success
        """
        try:
            return self._verify(phone, code)
        except CodeVerificationError as e:
            return VerifyResult(
                success=False,
                message=e.message,
                reason=e.code,
                remaining_attempts=e.remaining_attempts
            )
        except ShopShapError as e:
            return VerifyResult(success=False, message=e.message, reason=e.code)

    def _verify(self, phone: str, code: str) -> VerifyResult:
        try:
            validation = self.normalize(phone)
        except ValidationError:
            raise ValidationError(INVALID_PHONE_MESSAGE) from None

        if not validate_otp_format(code):
            raise ValidationError(INVALID_CODE_FORMAT_MESSAGE)

        formatted = validation.formatted
        outcome = self.otp_store.verify(formatted, code)

        if outcome.status is VerifyStatus.NOT_FOUND:
            raise CodeVerificationError(CODE_NOT_FOUND_MESSAGE, outcome.status.value)
        if outcome.status is VerifyStatus.EXPIRED:
            raise CodeVerificationError(CODE_EXPIRED_MESSAGE, outcome.status.value)
        if outcome.status is VerifyStatus.TOO_MANY_ATTEMPTS:
            raise CodeVerificationError(ATTEMPTS_EXHAUSTED_MESSAGE, outcome.status.value, remaining_attempts=0)
        if outcome.status is VerifyStatus.INCORRECT:
            raise CodeVerificationError(
                INCORRECT_CODE_MESSAGE.format(remaining=outcome.remaining_attempts),
                outcome.status.value,
                remaining_attempts=outcome.remaining_attempts
            )

        logger.info(
            f"Phone verified: {mask_phone(formatted)}",
            extra={"country": validation.country.code}
        )

        return VerifyResult(
            success=True,
            message=CODE_VERIFIED_MESSAGE,
            user_data=VerifiedUser(
                phone=formatted,
                country=validation.country.code,
                verified_at=outcome.verified_at
            )
        )

    # ============================================================
    # MAINTENANCE
    # ============================================================

    def purge_expired(self) -> Dict[str, int]:
        """Drops expired codes and elapsed rate-limit windows."""
        return {
            "codes": self.otp_store.purge_expired(),
            "rate_limits": self.rate_limiter.purge_expired(),
        }

    def debug_snapshot(self) -> Dict[str, Any]:
        return {
            "active_codes": self.otp_store.snapshot(),
            "rate_limits": self.rate_limiter.snapshot(),
        }


def build_verification_service(gateway: Optional[TwilioService] = None) -> VerificationService:
    """
    Creates a VerificationService wired from settings.
    """
    return VerificationService(
        rate_limiter=RateLimiter(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window=timedelta(minutes=settings.RATE_LIMIT_WINDOW_MINUTES)
        ),
        otp_store=OtpStore(
            ttl=timedelta(minutes=settings.OTP_CODE_EXPIRY_MINUTES),
            max_attempts=settings.OTP_MAX_ATTEMPTS
        ),
        gateway=gateway or TwilioService.from_settings()
    )


# Process-wide instance; state is local to this process
verification_service = build_verification_service()


def get_verification_service() -> VerificationService:
    """FastAPI dependency returning the process-wide service."""
    return verification_service
