"""
utils/whatsapp_utils.py

Purpose: WhatsApp message builders

- Composes the verification code message (WhatsApp markdown)
- Formats sender/recipient addresses for the WhatsApp channel
"""

from typing import Optional

from utils.constants import (
    DEFAULT_FLAG,
    VERIFICATION_HEADER,
    VERIFICATION_INTRO,
    VERIFICATION_EXPIRY,
    VERIFICATION_WARNING,
    VERIFICATION_ORIGIN,
    VERIFICATION_FOOTER,
)
from utils.validation_utils import CountryProfile

WHATSAPP_SCHEME = "whatsapp:"


def build_verification_message(
    code: str,
    country: Optional[CountryProfile] = None,
    expiry_minutes: int = 10
) -> str:
    """
    Builds the WhatsApp message carrying a verification code.

    Args:
        code: 6-digit verification code, rendered in bold
        country: Detected country; adds its flag to the header and a
                 "connexion depuis" line. The globe flag is used without it.
        expiry_minutes: Code lifetime shown to the user

    Returns:
        Message body ready for the messaging gateway

    Example:
        🇸🇳 *ShopShap* - Code de vérification

        Votre code de vérification WhatsApp est :

        *123456*
        ...
    """
    flag = country.flag if country else DEFAULT_FLAG

    lines = [
        VERIFICATION_HEADER.format(flag=flag),
        "",
        VERIFICATION_INTRO,
        "",
        f"*{code}*",
        "",
        VERIFICATION_EXPIRY.format(minutes=expiry_minutes),
        VERIFICATION_WARNING,
        "",
    ]

    if country and country.name:
        lines.append(VERIFICATION_ORIGIN.format(country=country.name))

    lines.append(VERIFICATION_FOOTER)

    return "\n".join(lines)


def to_whatsapp_address(phone: str) -> str:
    """Prefixes an E.164 number with the whatsapp: channel scheme (idempotent)."""
    if phone.startswith(WHATSAPP_SCHEME):
        return phone
    return f"{WHATSAPP_SCHEME}{phone}"
