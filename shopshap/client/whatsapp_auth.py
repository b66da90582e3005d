"""
shopshap/client/whatsapp_auth.py

Purpose: Client-side WhatsApp login flow

- Holds the phone number being typed and recomputes the formatted number
  and detected country on every change
- Wraps the send/verify endpoints, checking preconditions locally first
- Returns the same {success, message, data} shape whether a failure came
  from local validation, the server, or the network

Calls are not deduplicated: two overlapping send_code() calls both reach
the server. The UI is expected to disable its submit control while
is_loading is set.
"""

import httpx
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from shopshap.core.logging import get_logger
from utils.constants import (
    CODE_LENGTH,
    ENTER_VALID_NUMBER_MESSAGE,
    ENTER_CODE_MESSAGE,
    INVALID_CODE_FORMAT_MESSAGE,
    MISSING_PHONE_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    VERIFY_NETWORK_ERROR_MESSAGE,
    CODE_SENT_TITLE,
    CODE_SENT_NOTICE,
    CODE_VERIFIED_TITLE,
    WELCOME_TITLE,
    ERROR_TITLE,
)
from utils.validation_utils import (
    CountryProfile,
    SUPPORTED_COUNTRIES,
    validate_and_format_phone_number,
)

logger = get_logger(__name__)

# (level, title, text) -> None, e.g. a toast renderer
Notifier = Callable[[str, str, str], None]


@dataclass(frozen=True)
class AuthResult:
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None


class WhatsAppAuthClient:
    """
    State container for the phone login screen.

    Usage:
        async with WhatsAppAuthClient("https://shop.example") as auth:
            auth.phone_number = "+221 70 123 45 67"
            await auth.send_code()
            result = await auth.verify_code("123456")
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        countries: Sequence[CountryProfile] = SUPPORTED_COUNTRIES,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0
    ):
        self.countries = countries
        self.is_loading = False
        self._notifier = notifier
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

        self._phone_number = ""
        self.formatted_number = ""
        self.detected_country: Optional[CountryProfile] = None
        self.is_valid_number = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    # ============================================================
    # PHONE NUMBER STATE
    # ============================================================

    @property
    def phone_number(self) -> str:
        return self._phone_number

    @phone_number.setter
    def phone_number(self, number: str):
        self._phone_number = number

        validation = validate_and_format_phone_number(number, self.countries) if number.strip() else None
        if validation and validation.is_valid:
            self.formatted_number = validation.formatted
            self.detected_country = validation.country
            self.is_valid_number = True
        else:
            self.formatted_number = ""
            self.detected_country = None
            self.is_valid_number = False

    def supported_countries(self) -> Sequence[CountryProfile]:
        return self.countries

    def format_number_display(self, number: str) -> str:
        """Formatted number when valid, the input unchanged otherwise."""
        if not number:
            return ""
        validation = validate_and_format_phone_number(number, self.countries)
        return validation.formatted if validation.is_valid else number

    # ============================================================
    # NETWORK OPERATIONS
    # ============================================================

    async def send_code(self) -> AuthResult:
        """
        Requests a verification code for the current phone number.
        """
        if not self.is_valid_number or not self.formatted_number:
            return self._fail(ENTER_VALID_NUMBER_MESSAGE)

        ok, result = await self._post(
            "/verification/send",
            {"phoneNumber": self.formatted_number},
            NETWORK_ERROR_MESSAGE
        )
        if not ok:
            return result

        if result.success:
            flag, name = self._country_label()
            self._notify("success", CODE_SENT_TITLE, CODE_SENT_NOTICE.format(flag=flag, name=name))
            return AuthResult(success=True, message=result.message)

        return self._fail(result.message)

    async def verify_code(self, code: str) -> AuthResult:
        """
        Submits a code for the current phone number.

        Returns:
            AuthResult whose data is the server's user_data on success
        """
        if not code.strip():
            return self._fail(ENTER_CODE_MESSAGE)

        if len(code) != CODE_LENGTH:
            return self._fail(INVALID_CODE_FORMAT_MESSAGE)

        if not self.formatted_number:
            return self._fail(MISSING_PHONE_MESSAGE)

        ok, result = await self._post(
            "/verification/verify",
            {"phoneNumber": self.formatted_number, "code": code.strip()},
            VERIFY_NETWORK_ERROR_MESSAGE
        )
        if not ok:
            return result

        if result.success:
            self._notify("success", CODE_VERIFIED_TITLE, result.message)
            self._notify("success", WELCOME_TITLE, "")
            return result

        return self._fail(result.message)

    async def _post(self, path: str, body: Dict[str, str], network_message: str) -> Tuple[bool, AuthResult]:
        """
        Posts to the API with the loading flag raised for the call's duration.

        Returns:
            (reached_server, result); result carries the parsed payload, or
            the network error when the server could not be reached
        """
        self.is_loading = True
        try:
            response = await self._http.post(path, json=body)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Request to {path} failed: {e}")
            self._notify("error", ERROR_TITLE, network_message)
            return False, AuthResult(success=False, message=network_message)
        finally:
            self.is_loading = False

        return True, AuthResult(
            success=bool(payload.get("success")),
            message=payload.get("message") or payload.get("error") or "",
            data=payload.get("user_data"),
        )

    # ============================================================
    # HELPERS
    # ============================================================

    def _fail(self, message: str) -> AuthResult:
        self._notify("error", ERROR_TITLE, message)
        return AuthResult(success=False, message=message)

    def _country_label(self) -> Tuple[str, str]:
        if self.detected_country is None:
            return "", ""
        return self.detected_country.flag, self.detected_country.name

    def _notify(self, level: str, title: str, text: str):
        if self._notifier is not None:
            self._notifier(level, title, text)
