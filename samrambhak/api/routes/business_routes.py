"""
Business Routes

POST /businesses  {action: ...}
    create         - New business listing (pending approval)
    list           - Approved listings, optional category / search filters
    get            - Single listing
    my_businesses  - Caller's listings, any status
    update         - Owner only
    delete         - Owner only
    follow         - Follow a listing
    unfollow       - Stop following
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from samrambhak.api.dispatch import dispatch, require_field, clean_text, update_row
from samrambhak.core.auth import get_optional_user, require_user
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import BusinessRequest, BusinessResponse, AuthorSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses", tags=["Businesses"])

DEFAULT_CATEGORY = "other"

# Optional text fields owners may set / change
DETAIL_FIELDS = [
    "description", "location", "logo_url", "cover_image_url",
    "website_url", "instagram_link", "youtube_link",
]

BUSINESS_SELECT = """
    SELECT b.business_id, b.owner_id, b.name, b.description, b.category, b.location,
        b.logo_url, b.cover_image_url, b.website_url, b.instagram_link, b.youtube_link,
        b.approval_status, b.is_featured, b.is_disabled, b.disabled_reason, b.created_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url,
        (SELECT COUNT(*) FROM business_follows f WHERE f.business_id = b.business_id) AS follower_count,
        EXISTS (SELECT 1 FROM business_follows v
                WHERE v.business_id = b.business_id AND v.user_id = :viewer) AS is_following
    FROM businesses b
    LEFT JOIN profiles a ON a.user_id = b.owner_id
"""


def to_business(row: dict) -> BusinessResponse:
    return BusinessResponse(**row, owner=AuthorSummary.from_row(row))


def _viewer_id(user: Optional[dict]):
    return user["user_id"] if user else None


def _is_public(row: dict) -> bool:
    return row["approval_status"] == "approved" and not row["is_disabled"]


def _load(db, business_id: int, viewer) -> Optional[dict]:
    return fetch_one(db, BUSINESS_SELECT + " WHERE b.business_id = :bid", {"bid": business_id, "viewer": viewer})


def _get_owned(db, business_id: int, user: dict, verb: str) -> dict:
    business = fetch_one(db, "SELECT owner_id FROM businesses WHERE business_id = :bid", {"bid": business_id})
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    if business["owner_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail=f"Not authorized to {verb} this business")
    return business


def delete_business_rows(db, business_id: int) -> None:
    """Remove a listing and its follows; posts made as the business stay, unlinked."""
    params = {"bid": business_id}
    db.execute(text("DELETE FROM business_follows WHERE business_id = :bid"), params)
    db.execute(text("UPDATE posts SET business_id = NULL WHERE business_id = :bid"), params)
    db.execute(text("DELETE FROM businesses WHERE business_id = :bid"), params)


def create_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    name = require_field(body.name, "Business name is required")
    params = {field: clean_text(getattr(body, field)) for field in DETAIL_FIELDS}
    params.update({
        "owner_id": user["user_id"],
        "name": name,
        "category": clean_text(body.category) or DEFAULT_CATEGORY,
    })
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO businesses (owner_id, name, category, description, location, logo_url,
                    cover_image_url, website_url, instagram_link, youtube_link, approval_status)
                VALUES (:owner_id, :name, :category, :description, :location, :logo_url,
                    :cover_image_url, :website_url, :instagram_link, :youtube_link, 'pending')
                RETURNING business_id
            """),
            params
        )
        business_id = result.fetchone()[0]
        row = _load(db, business_id, user["user_id"])

    logger.info("Business %s created by user_id=%s", business_id, user["user_id"])
    return {
        "success": True,
        "business": to_business(row),
        "message": "Business submitted! It will be visible after admin approval.",
    }


def list_businesses(body: BusinessRequest, user: Optional[dict]) -> dict:
    conditions = ["b.approval_status = 'approved'", "b.is_disabled = FALSE"]
    params = {"viewer": _viewer_id(user)}

    category = clean_text(body.category)
    if category:
        conditions.append("b.category = :category")
        params["category"] = category
    search = clean_text(body.search)
    if search:
        conditions.append("(LOWER(b.name) LIKE :search OR LOWER(b.description) LIKE :search)")
        params["search"] = f"%{search.lower()}%"

    with get_db_session() as db:
        rows = fetch_all(
            db,
            BUSINESS_SELECT + f"""
            WHERE {' AND '.join(conditions)}
            ORDER BY b.is_featured DESC, b.created_at DESC, b.business_id DESC
            """,
            params
        )
    return {"success": True, "businesses": [to_business(r) for r in rows]}


def get_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    business_id = require_field(body.business_id, "Business ID is required")
    viewer = _viewer_id(user)
    with get_db_session() as db:
        row = _load(db, business_id, viewer)
    if not row or (not _is_public(row) and row["owner_id"] != viewer):
        raise HTTPException(status_code=404, detail="Business not found")
    return {"success": True, "business": to_business(row)}


def my_businesses(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        rows = fetch_all(
            db,
            BUSINESS_SELECT + " WHERE b.owner_id = :viewer ORDER BY b.created_at DESC, b.business_id DESC",
            {"viewer": user["user_id"]}
        )
    return {"success": True, "businesses": [to_business(r) for r in rows]}


def update_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    business_id = require_field(body.business_id, "Business ID is required")

    values = {}
    if body.name is not None:
        values["name"] = require_field(body.name, "Business name is required")
    if body.category is not None:
        values["category"] = clean_text(body.category) or DEFAULT_CATEGORY
    for field in DETAIL_FIELDS:
        value = getattr(body, field)
        if value is not None:
            values[field] = clean_text(value)

    with get_db_session() as db:
        _get_owned(db, business_id, user, "update")
        if not values:
            raise HTTPException(status_code=400, detail="No fields to update")
        update_row(db, "businesses", "business_id", business_id, values)
        row = _load(db, business_id, user["user_id"])

    return {"success": True, "business": to_business(row)}


def delete_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    business_id = require_field(body.business_id, "Business ID is required")
    with get_db_session() as db:
        _get_owned(db, business_id, user, "delete")
        delete_business_rows(db, business_id)
    return {"success": True, "message": "Business deleted"}


def follow_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    business_id = require_field(body.business_id, "Business ID is required")
    with get_db_session() as db:
        row = _load(db, business_id, user["user_id"])
        if not row or not _is_public(row):
            raise HTTPException(status_code=404, detail="Business not found")
        if row["is_following"]:
            raise HTTPException(status_code=400, detail="You are already following this business")
        try:
            db.execute(
                text("INSERT INTO business_follows (business_id, user_id) VALUES (:bid, :uid)"),
                {"bid": business_id, "uid": user["user_id"]}
            )
        except IntegrityError:
            raise HTTPException(status_code=400, detail="You are already following this business")
        follower_count = db.execute(
            text("SELECT COUNT(*) FROM business_follows WHERE business_id = :bid"), {"bid": business_id}
        ).scalar()
    return {"success": True, "following": True, "follower_count": follower_count}


def unfollow_business(body: BusinessRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    business_id = require_field(body.business_id, "Business ID is required")
    with get_db_session() as db:
        db.execute(
            text("DELETE FROM business_follows WHERE business_id = :bid AND user_id = :uid"),
            {"bid": business_id, "uid": user["user_id"]}
        )
        follower_count = db.execute(
            text("SELECT COUNT(*) FROM business_follows WHERE business_id = :bid"), {"bid": business_id}
        ).scalar()
    return {"success": True, "following": False, "follower_count": follower_count}


ACTIONS = {
    "create": create_business,
    "list": list_businesses,
    "get": get_business,
    "my_businesses": my_businesses,
    "update": update_business,
    "delete": delete_business,
    "follow": follow_business,
    "unfollow": unfollow_business,
}


@router.post("")
async def businesses(body: BusinessRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)
