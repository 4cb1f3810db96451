"""
Activity Log Service - admin audit trail in MongoDB.

Every moderation/admin action appends one document:
    {admin_id, action, target_type, target_id, details, created_at}

WHY MongoDB for this?
- `details` differs per action (hide reason, changed fields, ...)
- Append-only, read newest-first; no joins with the relational data

A failed log write is logged and swallowed: the admin action itself has
already been committed and should still succeed.
"""

import logging
from typing import List, Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from samrambhak.db.mongodb import get_collection, COLLECTIONS
from samrambhak.utils.dates import utcnow

logger = logging.getLogger(__name__)


def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


class ActivityLogService:
    """Handles admin activity log storage."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["activity_logs"])

    def log(self, admin_id: int, action: str, target_type: str, target_id: int, details: dict = None) -> str:
        doc = {
            "admin_id": admin_id,
            "action": action,
            "target_type": target_type,
            "target_id": target_id,
            "details": details or {},
            "created_at": utcnow(),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def recent(self, limit: int = 100, target_type: Optional[str] = None) -> List[dict]:
        query = {"target_type": target_type} if target_type else {}
        cursor = self.collection.find(query).sort("created_at", -1).limit(limit)
        return [serialize_doc(doc) for doc in cursor]


# Singleton instance
_activity_log: Optional[ActivityLogService] = None


def get_activity_log() -> ActivityLogService:
    global _activity_log
    if _activity_log is None:
        _activity_log = ActivityLogService()
    return _activity_log


def log_admin_action(admin_id: int, action: str, target_type: str, target_id: int, details: dict = None) -> None:
    """Record an admin action; never fails the caller."""
    try:
        get_activity_log().log(admin_id, action, target_type, target_id, details)
    except PyMongoError:
        logger.exception("Failed to write activity log: %s %s/%s", action, target_type, target_id)
