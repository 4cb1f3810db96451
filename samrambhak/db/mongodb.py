"""
MongoDB Connection Utility

MongoDB stores the admin activity log:
- who did what to which entity, plus a free-form `details` document

WHY MongoDB for this?
- Schema-flexible: details differ per action (reasons, field diffs)
- Append-only: no joins, no updates
"""
import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from samrambhak.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None

# Collection name constants (avoid typos)
COLLECTIONS = {
    "activity_logs": "admin_activity_logs",
}


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        settings = get_settings()
        _client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=3000)
    return _client


def get_mongo_db() -> Database:
    """Get the activity log database"""
    global _db
    if _db is None:
        _db = get_mongo_client()[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    return get_mongo_db()[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        get_mongo_client().admin.command("ping")
        return True
    except Exception:
        logger.exception("MongoDB connection failed")
        return False


def init_mongo_indexes():
    """
    Create indexes for activity log queries.
    Call this once during app startup.
    """
    logs = get_collection(COLLECTIONS["activity_logs"])
    logs.create_index([("created_at", -1)])
    logs.create_index([("target_type", 1), ("target_id", 1)])
    logs.create_index("admin_id")
    logger.info("MongoDB indexes created")
