"""
app/db/mongo.py

Purpose: MongoDB connection setup

- Initializes a process-wide Motor client with connection pooling
- Connects lazily on first use and reuses the handle afterwards
- Collections: users, sessions, bookings
- Health checks, retry on connect, proper shutdown
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError
from contextlib import contextmanager
from typing import Optional
import asyncio
from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.logging import get_logger

logger = get_logger(__name__)

USERS_COLLECTION = "users"
SESSIONS_COLLECTION = "sessions"
BOOKINGS_COLLECTION = "bookings"

# Global MongoDB client
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None
_connect_lock = asyncio.Lock()


async def connect_to_mongo(max_retries: int = 3):
    """
    Establishes connection to MongoDB with retry logic.
    Safe to call more than once; later calls are no-ops.

    Args:
        max_retries: Connection attempts before giving up
    """
    global _client, _database

    async with _connect_lock:
        if _client is not None:
            return

        retry_delay = 2

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
                )

                client = AsyncIOMotorClient(
                    settings.MONGODB_URL,
                    maxPoolSize=50,
                    minPoolSize=0,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=False,
                )

                # Verify connection
                await client.admin.command("ping")

                _client = client
                _database = client[settings.MONGODB_DB_NAME]

                logger.info(
                    f"✅ Successfully connected to MongoDB: {settings.MONGODB_DB_NAME}"
                )
                return

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(
                    f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
                )

                if attempt < max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2
                else:
                    logger.critical("Failed to connect to MongoDB after all retries")
                    raise ConnectionError("Could not establish MongoDB connection") from e


async def close_mongo_connection():
    """
    Closes the MongoDB connection.
    Called during application shutdown.
    """
    global _client, _database

    if _client:
        logger.info("Closing MongoDB connection")
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Checks if the database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        if _client is None:
            logger.error("MongoDB client not initialized")
            return False

        await _client.admin.command("ping")
        return True

    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


async def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the MongoDB database instance, connecting on first use.

    Called from webhook requests: a single attempt, no retry.
    """
    if _database is None:
        await connect_to_mongo(max_retries=1)
    return _database


async def get_collection(name: str) -> AsyncIOMotorCollection:
    database = await get_database()
    return database[name]


@contextmanager
def store_errors(operation: str, **context):
    """
    Re-raises driver and connection failures as PersistenceError.

    Usage:
        with store_errors("save session", sender=sender):
            await sessions.update_one(...)
    """
    try:
        yield
    except (PyMongoError, ConnectionError) as e:
        logger.error(f"MongoDB error during {operation}: {e}", extra=context)
        raise PersistenceError(f"Failed to {operation}", details=str(e)) from e
