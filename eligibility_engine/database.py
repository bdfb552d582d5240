import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    client: AsyncIOMotorClient = None
    database: AsyncIOMotorDatabase = None


db = MongoDB()


async def connect_to_mongo(url: str = None, db_name: str = None):
    """Create database connection"""
    db.client = AsyncIOMotorClient(url or settings.mongodb_url)
    db.database = db.client[db_name or settings.mongodb_db_name]
    logger.info(f"Connected to MongoDB database {db.database.name}")


async def close_mongo_connection():
    """Close database connection"""
    if db.client:
        db.client.close()
        db.client = None
        db.database = None
        logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    if db.database is None:
        raise RuntimeError("MongoDB is not connected; call connect_to_mongo() first")
    return db.database
