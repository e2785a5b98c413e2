"""
app/db/indexes.py

Purpose: Database index management

- Unique sender keys for users and sessions
- Newest-first booking history per sender
- Booking id lookups (not unique: ids are best-effort)
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_collection,
    USERS_COLLECTION,
    SESSIONS_COLLECTION,
    BOOKINGS_COLLECTION,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = await get_collection(USERS_COLLECTION)
        sessions = await get_collection(SESSIONS_COLLECTION)
        bookings = await get_collection(BOOKINGS_COLLECTION)

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS
        # ==============================================

        await users.create_index([("phone", ASCENDING)], unique=True, name="phone_unique")
        logger.debug("Created unique index on users.phone")

        # ==============================================
        # SESSIONS
        # ==============================================

        await sessions.create_index([("sender", ASCENDING)], unique=True, name="sender_unique")
        logger.debug("Created unique index on sessions.sender")

        # ==============================================
        # BOOKINGS
        # ==============================================

        await bookings.create_index(
            [("sender", ASCENDING), ("created_at", DESCENDING)],
            name="sender_history_idx"
        )
        logger.debug("Created compound index on bookings.sender + created_at")

        await bookings.create_index([("booking_id", ASCENDING)], name="booking_id_idx")
        logger.debug("Created index on bookings.booking_id")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Error creating indexes: {str(e)}", exc_info=True)
        raise
