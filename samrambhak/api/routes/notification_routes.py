"""
Notification Routes

POST /notifications  {action: ...}
    list           - Latest 50 notifications + unread count
    mark_read      - Mark one notification read
    mark_all_read  - Mark every notification read
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch, require_field
from samrambhak.core.auth import get_current_user
from samrambhak.db.postgres import get_db_session, fetch_all
from samrambhak.schemas.schemas import NotificationRequest, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])

PAGE_SIZE = 50


def list_notifications(body: NotificationRequest, user: dict) -> dict:
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT notification_id, user_id, type, title, body, data, is_read, created_at
            FROM notifications WHERE user_id = :uid
            ORDER BY created_at DESC, notification_id DESC
            LIMIT :limit
            """,
            {"uid": user["user_id"], "limit": PAGE_SIZE}
        )
        unread = db.execute(
            text("SELECT COUNT(*) FROM notifications WHERE user_id = :uid AND is_read = FALSE"),
            {"uid": user["user_id"]}
        ).scalar()
    return {
        "success": True,
        "notifications": [NotificationResponse(**r) for r in rows],
        "unread_count": unread,
    }


def mark_read(body: NotificationRequest, user: dict) -> dict:
    notification_id = require_field(body.notification_id, "Notification ID is required")
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE notifications SET is_read = TRUE WHERE notification_id = :nid AND user_id = :uid"),
            {"nid": notification_id, "uid": user["user_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}


def mark_all_read(body: NotificationRequest, user: dict) -> dict:
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE notifications SET is_read = TRUE WHERE user_id = :uid AND is_read = FALSE"),
            {"uid": user["user_id"]}
        )
    return {"success": True, "updated": result.rowcount}


ACTIONS = {
    "list": list_notifications,
    "mark_read": mark_read,
    "mark_all_read": mark_all_read,
}


@router.post("")
async def notifications(body: NotificationRequest, user: dict = Depends(get_current_user)):
    return dispatch(ACTIONS, body, user)
