"""
Promotion Routes

POST /promotions  {action: ...}
    list_active    - Public: active items inside their date window, by display_order
    list           - Admin: every item
    create         - Admin
    update         - Admin
    toggle_active  - Admin
    delete         - Admin
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch, require_field, clean_text, collect_updates, update_row
from samrambhak.core.auth import get_optional_user, is_admin
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import PromotionRequest, PromotionResponse
from samrambhak.services.activity_log_service import log_admin_action
from samrambhak.utils.dates import utcnow, to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/promotions", tags=["Promotions"])

UPDATABLE_FIELDS = [
    "title", "description", "content_type", "image_url", "video_url", "link_url",
    "link_text", "is_active", "display_order", "start_date", "end_date",
]

PROMOTION_SELECT = """
    SELECT promotion_id, title, description, content_type, image_url, video_url, link_url,
        link_text, is_active, display_order, start_date, end_date, created_at
    FROM promotional_content
"""


def _require_admin(user: Optional[dict]) -> dict:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No session token provided")
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized: Admin access required")
    return user


def _load(db, promotion_id: int) -> dict:
    row = fetch_one(db, PROMOTION_SELECT + " WHERE promotion_id = :pid", {"pid": promotion_id})
    if not row:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return row


def list_active(body: PromotionRequest, user: Optional[dict]) -> dict:
    with get_db_session() as db:
        rows = fetch_all(
            db,
            PROMOTION_SELECT + """
            WHERE is_active = TRUE
                AND (start_date IS NULL OR start_date <= :now)
                AND (end_date IS NULL OR end_date >= :now)
            ORDER BY display_order, promotion_id
            """,
            {"now": utcnow()}
        )
    return {"success": True, "promotions": [PromotionResponse(**r) for r in rows]}


def list_all(body: PromotionRequest, user: Optional[dict]) -> dict:
    _require_admin(user)
    with get_db_session() as db:
        rows = fetch_all(db, PROMOTION_SELECT + " ORDER BY display_order, created_at DESC, promotion_id DESC")
    return {"success": True, "promotions": [PromotionResponse(**r) for r in rows]}


def create_promotion(body: PromotionRequest, user: Optional[dict]) -> dict:
    user = _require_admin(user)
    title = clean_text(body.title)
    if not title or body.content_type is None:
        raise HTTPException(status_code=400, detail="Title and content type are required")

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO promotional_content (title, description, content_type, image_url, video_url,
                    link_url, link_text, is_active, display_order, start_date, end_date, created_by)
                VALUES (:title, :description, :content_type, :image_url, :video_url,
                    :link_url, :link_text, :is_active, :display_order, :start_date, :end_date, :uid)
                RETURNING promotion_id
            """),
            {
                "title": title, "description": clean_text(body.description),
                "content_type": body.content_type.value,
                "image_url": clean_text(body.image_url), "video_url": clean_text(body.video_url),
                "link_url": clean_text(body.link_url), "link_text": clean_text(body.link_text),
                "is_active": True if body.is_active is None else body.is_active,
                "display_order": body.display_order or 0,
                "start_date": to_naive_utc(body.start_date), "end_date": to_naive_utc(body.end_date),
                "uid": user["user_id"],
            }
        )
        promotion_id = result.fetchone()[0]
        row = _load(db, promotion_id)

    log_admin_action(user["user_id"], "create_promotion", "promotion", promotion_id, {"title": title})
    return {"success": True, "promotion": PromotionResponse(**row)}


def update_promotion(body: PromotionRequest, user: Optional[dict]) -> dict:
    user = _require_admin(user)
    promotion_id = require_field(body.promotion_id, "Promotion ID is required")
    values = collect_updates(body, UPDATABLE_FIELDS)
    if "title" in values:
        values["title"] = require_field(values["title"], "Title and content type are required")
    for field in ("start_date", "end_date"):
        if field in values:
            values[field] = to_naive_utc(values[field])

    with get_db_session() as db:
        _load(db, promotion_id)
        if not values:
            raise HTTPException(status_code=400, detail="No fields to update")
        update_row(db, "promotional_content", "promotion_id", promotion_id, values)
        row = _load(db, promotion_id)

    log_admin_action(user["user_id"], "update_promotion", "promotion", promotion_id, {"fields": sorted(values)})
    return {"success": True, "promotion": PromotionResponse(**row)}


def toggle_active(body: PromotionRequest, user: Optional[dict]) -> dict:
    user = _require_admin(user)
    promotion_id = require_field(body.promotion_id, "Promotion ID is required")
    with get_db_session() as db:
        current = _load(db, promotion_id)
        # explicit value wins, otherwise flip
        is_active = (not current["is_active"]) if body.is_active is None else body.is_active
        update_row(db, "promotional_content", "promotion_id", promotion_id, {"is_active": is_active})

    log_admin_action(user["user_id"], "toggle_promotion", "promotion", promotion_id, {"is_active": is_active})
    return {"success": True, "is_active": is_active}


def delete_promotion(body: PromotionRequest, user: Optional[dict]) -> dict:
    user = _require_admin(user)
    promotion_id = require_field(body.promotion_id, "Promotion ID is required")
    with get_db_session() as db:
        _load(db, promotion_id)
        db.execute(text("DELETE FROM promotional_content WHERE promotion_id = :pid"), {"pid": promotion_id})

    log_admin_action(user["user_id"], "delete_promotion", "promotion", promotion_id)
    return {"success": True, "message": "Promotion deleted"}


ACTIONS = {
    "list_active": list_active,
    "list": list_all,
    "create": create_promotion,
    "update": update_promotion,
    "toggle_active": toggle_active,
    "delete": delete_promotion,
}


@router.post("")
async def promotions(body: PromotionRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)
