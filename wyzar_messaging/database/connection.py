import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from wyzar_messaging.errors import TransientStoreError
from wyzar_messaging.repositories.conversation_repository import ConversationRepository
from wyzar_messaging.repositories.message_repository import MessageRepository
from wyzar_messaging.repositories.report_repository import ReportRepository


logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(url: str, db_name: str) -> AsyncIOMotorDatabase:
    global _client, _db
    _client = AsyncIOMotorClient(url, tz_aware=True)
    _db = _client[db_name]
    logger.info("Connected to MongoDB database %s", db_name)
    return _db


def use_database(db) -> None:
    """Install an already-built database handle (tests, embedding)."""
    global _db
    _db = db


async def close_mongo_connection() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _db = None


def get_database() -> AsyncIOMotorDatabase:
    if _db is None:
        raise TransientStoreError("Database is not connected")
    return _db


async def mongo_db_dependency() -> AsyncIOMotorDatabase:
    return get_database()


async def ensure_indexes(db) -> None:
    await ConversationRepository(db).ensure_indexes()
    await MessageRepository(db).ensure_indexes()
    await ReportRepository(db).ensure_indexes()
