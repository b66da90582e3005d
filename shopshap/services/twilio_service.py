"""
shopshap/services/twilio_service.py

Purpose: Twilio WhatsApp message sending

- Sends WhatsApp messages through the Twilio REST API
- Refuses to send when credentials are missing (no network call)
- Maps Twilio error codes to delivery failure categories
- One request per call, no retries
"""

import httpx
from dataclasses import dataclass
from typing import Optional

from shopshap.core.config import settings
from shopshap.core.exceptions import DeliveryError, DeliveryFailure
from shopshap.core.logging import get_logger, mask_phone
from utils.whatsapp_utils import to_whatsapp_address

logger = get_logger(__name__)

# https://www.twilio.com/docs/api/errors
TWILIO_ERROR_CATEGORIES = {
    21211: DeliveryFailure.INVALID_NUMBER,       # Invalid 'To' phone number
    21614: DeliveryFailure.CHANNEL_UNSUPPORTED,  # 'To' number cannot receive this channel
    21408: DeliveryFailure.PERMISSION_DENIED,    # Permission to send to this region denied
}


@dataclass(frozen=True)
class DeliveryReceipt:
    success: bool
    message_sid: Optional[str] = None
    status: Optional[str] = None


class TwilioService:
    """Service for sending WhatsApp messages via Twilio"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        whatsapp_from: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.whatsapp_from = to_whatsapp_address(whatsapp_from or settings.TWILIO_WHATSAPP_FROM)
        self.base_url = (base_url or settings.TWILIO_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TWILIO_TIMEOUT_SECONDS
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "TwilioService":
        return cls(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
        )

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(
            self.account_sid
            and self.auth_token
            and self.whatsapp_from
            and self.account_sid != "your_twilio_sid"
        )

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"

    async def send_message(self, to_phone: str, body: str) -> DeliveryReceipt:
        """
        Sends a WhatsApp message via Twilio.

        Args:
            to_phone: Recipient in E.164 form (+221701234567)
            body: Message text (WhatsApp markdown)

        Returns:
            DeliveryReceipt with the Twilio message SID

        Raises:
            DeliveryError: GATEWAY_UNCONFIGURED without credentials,
                INVALID_NUMBER / CHANNEL_UNSUPPORTED / PERMISSION_DENIED when
                Twilio rejects the recipient, DELIVERY_FAILED otherwise
        """
        if not self.is_configured():
            logger.error("Twilio credentials not configured")
            raise DeliveryError(DeliveryFailure.UNCONFIGURED, "Twilio credentials not configured")

        data = {
            "From": self.whatsapp_from,
            "To": to_whatsapp_address(to_phone),
            "Body": body,
        }

        logger.info(f"📤 Sending Twilio WhatsApp message to {mask_phone(to_phone)}")

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.messages_url,
                    data=data,
                    auth=(self.account_sid, self.auth_token),
                )
        except httpx.TimeoutException as e:
            logger.error("Twilio API timeout")
            raise DeliveryError(DeliveryFailure.GENERIC, "Twilio API timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"Twilio transport error: {e}")
            raise DeliveryError(DeliveryFailure.GENERIC, f"Twilio transport error: {e}") from e

        if response.status_code in (200, 201):
            try:
                result = response.json()
            except ValueError as e:
                logger.error(f"Twilio returned {response.status_code} with a non-JSON body")
                raise DeliveryError(
                    DeliveryFailure.GENERIC,
                    "Unreadable Twilio response",
                    details={"status_code": response.status_code}
                ) from e
            if not isinstance(result, dict):
                raise DeliveryError(DeliveryFailure.GENERIC, "Unexpected Twilio response")

            logger.info(f"✅ Message sent: SID={result.get('sid')}")
            return DeliveryReceipt(
                success=True,
                message_sid=result.get("sid"),
                status=result.get("status"),
            )

        raise self._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> DeliveryError:
        """
        Builds a DeliveryError from a non-2xx Twilio response.

        Twilio error bodies look like {"code": 21211, "message": "...", "status": 400}.
        """
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        error_code = payload.get("code") if isinstance(payload, dict) else None
        reason = TWILIO_ERROR_CATEGORIES.get(error_code, DeliveryFailure.GENERIC)

        logger.error(
            f"❌ Twilio API error: {response.status_code} (code={error_code})",
            extra={"reason": reason.value}
        )

        return DeliveryError(
            reason,
            f"Twilio API error: {response.status_code}",
            details={"status_code": response.status_code, "twilio_code": error_code}
        )
