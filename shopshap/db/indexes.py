"""
shopshap/db/indexes.py

Purpose: Database index management

- Unique index on profiles.phone (one profile per verified number)
"""

from shopshap.db.mongo import get_profiles_collection
from shopshap.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates the profile indexes. Idempotent - safe to run multiple times.
    """
    profiles = get_profiles_collection()

    await profiles.create_index("phone", unique=True, name="phone_unique")
    logger.debug("Created unique index on profiles.phone")

    await profiles.create_index("verified_at", name="verified_at_idx")
    logger.debug("Created index on profiles.verified_at")

    logger.info("✅ Profile indexes ready")
