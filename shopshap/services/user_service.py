"""
shopshap/services/user_service.py

Purpose: Link verified phone numbers to user profiles

- Upserts a profile keyed by normalized phone after a successful verification
- Never undoes a verification: callers treat failures as warnings
"""

from typing import Optional, Dict, Any

from pymongo import ReturnDocument

from shopshap.db.mongo import get_profiles_collection, is_connected
from shopshap.core.logging import get_logger, LogContext, mask_phone
from shopshap.schemas.verification import VerifiedUser

logger = get_logger(__name__)


async def upsert_verified_profile(user: VerifiedUser) -> Optional[Dict[str, Any]]:
    """
    Creates or refreshes the profile of a verified phone number.

    Args:
        user: Result of a successful verification

    Returns:
        The stored profile document, or None when no datastore is connected

    Raises:
        Any datastore error; the caller decides how to surface it
    """
    if not is_connected():
        logger.debug("No datastore connected, skipping profile upsert")
        return None

    with LogContext(phone=mask_phone(user.phone), country=user.country):
        profiles = get_profiles_collection()

        profile = await profiles.find_one_and_update(
            {"phone": user.phone},
            {
                "$set": {
                    "country": user.country,
                    "verified_at": user.verified_at,
                },
                "$setOnInsert": {
                    "created_via": "whatsapp",
                    "created_at": user.verified_at,
                },
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        logger.info("Verified profile upserted")
        return profile
