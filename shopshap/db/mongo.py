"""
shopshap/db/mongo.py

Purpose: Optional MongoDB connection for verified profiles

- Verification itself never needs the database; it only stores the
  profile of a number once it has been verified
- Without MONGODB_URL nothing connects and profile linking is skipped
- One Motor client per process, opened in the app lifespan
"""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from shopshap.core.config import settings
from shopshap.core.logging import get_logger

logger = get_logger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def is_database_configured() -> bool:
    return bool(settings.MONGODB_URL)


def is_connected() -> bool:
    return _database is not None


async def _ping(url: str) -> AsyncIOMotorClient:
    client = AsyncIOMotorClient(
        url,
        maxPoolSize=20,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
    )
    try:
        await client.admin.command("ping")
    except Exception:
        client.close()
        raise
    return client


async def connect_to_mongo(max_retries: int = 3, retry_delay: float = 2):
    """
    Opens the process-wide client, retrying with exponential backoff.

    Raises:
        ConnectionError: the server stayed unreachable after max_retries
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    delay = retry_delay
    for attempt in range(1, max_retries + 1):
        try:
            client = await _ping(settings.MONGODB_URL)
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"MongoDB unreachable (attempt {attempt}/{max_retries}): {e}")
            if attempt == max_retries:
                raise ConnectionError("Could not establish MongoDB connection") from e
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"✅ Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """Pings the server; False when disconnected or unreachable."""
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def get_profiles_collection() -> AsyncIOMotorCollection:
    """
    Returns the collection of verified profiles.

    Documents: phone (normalized, unique), country (ISO-2),
    created_via ("whatsapp"), created_at, verified_at.

    Raises:
        RuntimeError: connect_to_mongo() has not succeeded
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database[settings.PROFILES_COLLECTION]
