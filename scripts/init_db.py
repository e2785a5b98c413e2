"""
Database initialization script

Run once to create collections and indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables before settings are read
load_dotenv()

from app.core.config import settings  # noqa: E402
from app.core.logging import setup_logging, get_logger  # noqa: E402
from app.db.mongo import (  # noqa: E402
    connect_to_mongo,
    close_mongo_connection,
    get_collection,
    USERS_COLLECTION,
    SESSIONS_COLLECTION,
    BOOKINGS_COLLECTION,
)
from app.db.indexes import create_indexes  # noqa: E402

setup_logging()
logger = get_logger("scripts.init_db")

COLLECTIONS = (USERS_COLLECTION, SESSIONS_COLLECTION, BOOKINGS_COLLECTION)


async def main():
    logger.info("=" * 60)
    logger.info(f"  CabBot Database Setup ({settings.MONGODB_DB_NAME})")
    logger.info("=" * 60)

    await connect_to_mongo()

    try:
        await create_indexes()

        logger.info("🔍 Verifying indexes...")
        for name in COLLECTIONS:
            collection = await get_collection(name)
            indexes = await collection.index_information()
            count = await collection.count_documents({})
            logger.info(f"  {name}: {count} documents")
            for index_name in indexes:
                if index_name != "_id_":
                    logger.info(f"    ✅ {index_name}")

        logger.info("✅ Database initialization complete!")

    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
