"""
utils/validation_utils.py

Purpose: Input validation

- Supported country profiles (first match wins, in declaration order)
- Phone number validation and normalization to +<prefix><number>
- OTP format validation

Both the send and the verify path call validate_and_format_phone_number,
so the same raw input always maps to the same lookup key.
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from utils.constants import UNSUPPORTED_NUMBER_MESSAGE, CODE_LENGTH


@dataclass(frozen=True)
class CountryProfile:
    """
    A country the storefront accepts phone numbers from.

    pattern is matched against the whole digit string, with or without the
    dialing prefix or a trunk 0.
    """
    code: str
    flag: str
    name: str
    pattern: Pattern[str]
    prefix: str
    example: str


SUPPORTED_COUNTRIES: Tuple[CountryProfile, ...] = (
    CountryProfile(
        code="MA",
        flag="🇲🇦",
        name="Maroc",
        pattern=re.compile(r"(?:212|0)?[67]\d{8}", re.ASCII),
        prefix="212",
        example="+212612345678",
    ),
    CountryProfile(
        code="CI",
        flag="🇨🇮",
        name="Côte d'Ivoire",
        pattern=re.compile(r"(?:225|0)?[0-9]\d{7,8}", re.ASCII),
        prefix="225",
        example="+22501234567",
    ),
    CountryProfile(
        code="SN",
        flag="🇸🇳",
        name="Sénégal",
        pattern=re.compile(r"(?:221|0)?7\d{8}", re.ASCII),
        prefix="221",
        example="+221701234567",
    ),
    CountryProfile(
        code="BF",
        flag="🇧🇫",
        name="Burkina Faso",
        pattern=re.compile(r"(?:226|0)?[567]\d{7}", re.ASCII),
        prefix="226",
        example="+22650123456",
    ),
    CountryProfile(
        code="ML",
        flag="🇲🇱",
        name="Mali",
        pattern=re.compile(r"(?:223|0)?[679]\d{7}", re.ASCII),
        prefix="223",
        example="+22360123456",
    ),
)

_SEPARATORS = re.compile(r"[\s\-\(\)]")


@dataclass(frozen=True)
class PhoneValidation:
    """Result of validate_and_format_phone_number."""
    is_valid: bool
    formatted: Optional[str] = None
    country: Optional[CountryProfile] = None
    error: Optional[str] = None


def clean_phone_number(phone: str) -> str:
    """
    Removes whitespace, hyphens, parentheses and one leading '+'.

    Example: "+221 (70) 123-45-67" -> "221701234567"
    """
    cleaned = _SEPARATORS.sub("", phone or "")
    if cleaned.startswith("+"):
        cleaned = cleaned[1:]
    return cleaned


def unsupported_number_message(countries: Sequence[CountryProfile] = SUPPORTED_COUNTRIES) -> str:
    return UNSUPPORTED_NUMBER_MESSAGE.format(
        countries=", ".join(country.name for country in countries)
    )


def validate_and_format_phone_number(
    phone: str,
    countries: Sequence[CountryProfile] = SUPPORTED_COUNTRIES
) -> PhoneValidation:
    """
    Validates a raw phone number and normalizes it to international form.

    Countries are tried in order and the first whose pattern matches wins.
    A number that does not already start with the country's prefix loses a
    single leading 0 and gets the prefix prepended; a country whose pattern
    rejects that result is skipped, so formatting is idempotent.

    Args:
        phone: Raw user input, e.g. "06 12 34 56 78" or "+221771234567"
        countries: Ordered country profiles to try

    Returns:
        PhoneValidation with formatted number and country, or an error
        listing the supported countries
    """
    digits = clean_phone_number(phone)

    for country in countries:
        if not country.pattern.fullmatch(digits):
            continue

        formatted = digits
        if not formatted.startswith(country.prefix):
            if formatted.startswith("0"):
                formatted = formatted[1:]
            formatted = country.prefix + formatted

            # The canonical form must itself be a number of this country
            if not country.pattern.fullmatch(formatted):
                continue

        return PhoneValidation(
            is_valid=True,
            formatted="+" + formatted,
            country=country,
        )

    return PhoneValidation(
        is_valid=False,
        error=unsupported_number_message(countries),
    )


def validate_otp_format(otp: str) -> bool:
    """
    Validates OTP format (must be 6 digits once surrounding spaces are trimmed).
    """
    if not otp:
        return False

    return bool(re.fullmatch(rf"\d{{{CODE_LENGTH}}}", otp.strip(), re.ASCII))
