"""
Notification Service - in-app notifications written alongside user actions.

Types: like, comment, job_application, job_reply.
Notifications are written in the caller's transaction and never sent to the
actor themselves.
"""

import json

from sqlalchemy import text


def notify(db, user_id: int, actor_id: int, type_: str, title: str, body: str = None, data: dict = None) -> None:
    if user_id is None or user_id == actor_id:
        return
    db.execute(
        text("""
            INSERT INTO notifications (user_id, type, title, body, data, is_read)
            VALUES (:uid, :type, :title, :body, :data, FALSE)
        """),
        {"uid": user_id, "type": type_, "title": title, "body": body,
         "data": json.dumps(data) if data else None}
    )


def actor_name(db, user_id: int) -> str:
    row = db.execute(
        text("SELECT full_name, username FROM profiles WHERE user_id = :uid"), {"uid": user_id}
    ).fetchone()
    if not row:
        return "Someone"
    return row[0] or row[1] or "Someone"
