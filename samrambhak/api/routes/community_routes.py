"""
Community Routes

POST /manage-community  {action: ...}
    list               - Approved communities (+ caller's own pending ones)
    get                - Community detail with members and caller permissions
    create             - New community (pending approval, creator auto-joins as admin)
    update             - Creator or edit_community permission
    delete             - Creator only
    join / leave       - Membership
    create_discussion  - Members post to the community
    list_discussions   - Discussions, newest first
    delete_discussion  - Owner, creator or moderate_discussions permission
    remove_member      - Creator or manage_members permission
    grant_permission   - Creator only
    revoke_permission  - Creator only
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch, require_field, clean_text, update_row
from samrambhak.core.auth import get_optional_user, require_user
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import (
    CommunityRequest, CommunityResponse, MemberResponse, DiscussionResponse,
    AuthorSummary, CommunityPermission,
)
from samrambhak.services.moderation_service import ensure_clean

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manage-community", tags=["Communities"])

PERMISSIONS = {p.value for p in CommunityPermission}

COMMUNITY_SELECT = """
    SELECT c.community_id, c.name, c.description, c.cover_image_url, c.created_by,
        c.approval_status, c.is_disabled, c.disabled_reason, c.created_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url,
        (SELECT COUNT(*) FROM community_members m WHERE m.community_id = c.community_id) AS member_count,
        EXISTS (SELECT 1 FROM community_members v
                WHERE v.community_id = c.community_id AND v.user_id = :viewer) AS is_member
    FROM communities c
    LEFT JOIN profiles a ON a.user_id = c.created_by
"""

DISCUSSION_SELECT = """
    SELECT d.discussion_id, d.community_id, d.user_id, d.content, d.created_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url
    FROM community_discussions d
    LEFT JOIN profiles a ON a.user_id = d.user_id
"""


def to_community(row: dict) -> CommunityResponse:
    return CommunityResponse(**row, creator=AuthorSummary.from_row(row))


def to_discussion(row: dict) -> DiscussionResponse:
    return DiscussionResponse(**row, author=AuthorSummary.from_row(row))


def _viewer_id(user: Optional[dict]):
    return user["user_id"] if user else None


def _get_community(db, community_id: int) -> dict:
    community = fetch_one(
        db,
        "SELECT community_id, created_by, approval_status, is_disabled FROM communities WHERE community_id = :cid",
        {"cid": community_id}
    )
    if not community:
        raise HTTPException(status_code=404, detail="Community not found")
    return community


def _is_visible(community: Optional[dict], viewer) -> bool:
    """Approved and enabled communities are public, the rest only to their creator."""
    if not community:
        return False
    return (community["approval_status"] == "approved" and not community["is_disabled"]) or community["created_by"] == viewer


def _is_member(db, community_id: int, user_id: int) -> bool:
    return bool(fetch_one(
        db, "SELECT member_id FROM community_members WHERE community_id = :cid AND user_id = :uid",
        {"cid": community_id, "uid": user_id}
    ))


def has_permission(db, community_id: int, user_id: int, permission: str) -> bool:
    return bool(fetch_one(
        db,
        """
        SELECT permission_id FROM community_permissions
        WHERE community_id = :cid AND user_id = :uid AND permission = :perm
        """,
        {"cid": community_id, "uid": user_id, "perm": permission}
    ))


def _user_permissions(db, community_id: int, user_id: int) -> list:
    rows = fetch_all(
        db,
        "SELECT permission FROM community_permissions WHERE community_id = :cid AND user_id = :uid ORDER BY permission",
        {"cid": community_id, "uid": user_id}
    )
    return [r["permission"] for r in rows]


def delete_community_rows(db, community_id: int) -> None:
    """Remove a community and its members, permissions and discussions."""
    params = {"cid": community_id}
    db.execute(text("DELETE FROM community_permissions WHERE community_id = :cid"), params)
    db.execute(text("DELETE FROM community_discussions WHERE community_id = :cid"), params)
    db.execute(text("DELETE FROM community_members WHERE community_id = :cid"), params)
    db.execute(text("DELETE FROM communities WHERE community_id = :cid"), params)


def list_communities(body: CommunityRequest, user: Optional[dict]) -> dict:
    with get_db_session() as db:
        rows = fetch_all(
            db,
            COMMUNITY_SELECT + """
            WHERE (c.approval_status = 'approved' AND c.is_disabled = FALSE) OR c.created_by = :viewer
            ORDER BY c.created_at DESC, c.community_id DESC
            """,
            {"viewer": _viewer_id(user)}
        )
    return {"success": True, "communities": [to_community(r) for r in rows]}


def get_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    community_id = require_field(body.community_id, "Community ID is required")
    viewer = _viewer_id(user)
    with get_db_session() as db:
        row = fetch_one(db, COMMUNITY_SELECT + " WHERE c.community_id = :cid", {"cid": community_id, "viewer": viewer})
        if not _is_visible(row, viewer):
            raise HTTPException(status_code=404, detail="Community not found")

        members = fetch_all(
            db,
            """
            SELECT m.user_id, m.role, m.joined_at, p.full_name, p.username, p.avatar_url
            FROM community_members m
            LEFT JOIN profiles p ON p.user_id = m.user_id
            WHERE m.community_id = :cid
            ORDER BY m.joined_at, m.member_id
            """,
            {"cid": community_id}
        )
        permission_rows = fetch_all(
            db, "SELECT user_id, permission FROM community_permissions WHERE community_id = :cid", {"cid": community_id}
        )

    by_user = {}
    for p in permission_rows:
        by_user.setdefault(p["user_id"], []).append(p["permission"])

    return {
        "success": True,
        "community": to_community(row),
        "members": [MemberResponse(**m, permissions=sorted(by_user.get(m["user_id"], []))) for m in members],
        "is_creator": row["created_by"] == viewer,
        "my_permissions": sorted(by_user.get(viewer, [])),
    }


def create_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    name = require_field(body.name, "Community name is required")
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO communities (name, description, cover_image_url, created_by, approval_status)
                VALUES (:name, :description, :cover, :uid, 'pending')
                RETURNING community_id
            """),
            {"name": name, "description": clean_text(body.description),
             "cover": clean_text(body.cover_image_url), "uid": user["user_id"]}
        )
        community_id = result.fetchone()[0]

        # Creator is the first member and community admin
        db.execute(
            text("INSERT INTO community_members (community_id, user_id, role) VALUES (:cid, :uid, 'admin')"),
            {"cid": community_id, "uid": user["user_id"]}
        )
        row = fetch_one(db, COMMUNITY_SELECT + " WHERE c.community_id = :cid",
                        {"cid": community_id, "viewer": user["user_id"]})

    logger.info("Community %s created by user_id=%s", community_id, user["user_id"])
    return {
        "success": True,
        "community": to_community(row),
        "message": "Community created! It will be visible after admin approval.",
    }


def update_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    with get_db_session() as db:
        community = _get_community(db, community_id)
        allowed = (community["created_by"] == user["user_id"]
                   or has_permission(db, community_id, user["user_id"], "edit_community"))
        if not allowed:
            raise HTTPException(status_code=403, detail="Not authorized to update this community")

        values = {}
        if body.name is not None:
            values["name"] = require_field(body.name, "Community name is required")
        if body.description is not None:
            values["description"] = clean_text(body.description)
        if body.cover_image_url is not None:
            values["cover_image_url"] = clean_text(body.cover_image_url)
        if not values:
            raise HTTPException(status_code=400, detail="No fields to update")

        update_row(db, "communities", "community_id", community_id, values)
        row = fetch_one(db, COMMUNITY_SELECT + " WHERE c.community_id = :cid",
                        {"cid": community_id, "viewer": user["user_id"]})

    return {"success": True, "community": to_community(row)}


def delete_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    with get_db_session() as db:
        community = _get_community(db, community_id)
        if community["created_by"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="Not authorized to delete this community")
        delete_community_rows(db, community_id)
    return {"success": True, "message": "Community deleted"}


def join_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    with get_db_session() as db:
        community = _get_community(db, community_id)
        if community["approval_status"] != "approved" or community["is_disabled"]:
            raise HTTPException(status_code=400, detail="This community is not open for joining")
        if _is_member(db, community_id, user["user_id"]):
            raise HTTPException(status_code=400, detail="You are already a member of this community")
        db.execute(
            text("INSERT INTO community_members (community_id, user_id, role) VALUES (:cid, :uid, 'member')"),
            {"cid": community_id, "uid": user["user_id"]}
        )
    return {"success": True, "message": "Joined community"}


def leave_community(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    with get_db_session() as db:
        community = _get_community(db, community_id)
        if community["created_by"] == user["user_id"]:
            raise HTTPException(status_code=400, detail="Community creators cannot leave their own community")
        params = {"cid": community_id, "uid": user["user_id"]}
        db.execute(text("DELETE FROM community_permissions WHERE community_id = :cid AND user_id = :uid"), params)
        db.execute(text("DELETE FROM community_members WHERE community_id = :cid AND user_id = :uid"), params)
    return {"success": True, "message": "Left community"}


def create_discussion(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    content = require_field(body.content, "Discussion content is required")
    with get_db_session() as db:
        _get_community(db, community_id)
        if not _is_member(db, community_id, user["user_id"]):
            raise HTTPException(status_code=403, detail="Only members can post in this community")
        ensure_clean(db, content)
        result = db.execute(
            text("""
                INSERT INTO community_discussions (community_id, user_id, content)
                VALUES (:cid, :uid, :content)
                RETURNING discussion_id
            """),
            {"cid": community_id, "uid": user["user_id"], "content": content}
        )
        discussion_id = result.fetchone()[0]
        row = fetch_one(db, DISCUSSION_SELECT + " WHERE d.discussion_id = :did", {"did": discussion_id})
    return {"success": True, "discussion": to_discussion(row)}


def list_discussions(body: CommunityRequest, user: Optional[dict]) -> dict:
    community_id = require_field(body.community_id, "Community ID is required")
    with get_db_session() as db:
        community = fetch_one(
            db,
            "SELECT community_id, created_by, approval_status, is_disabled FROM communities WHERE community_id = :cid",
            {"cid": community_id}
        )
        if not _is_visible(community, _viewer_id(user)):
            raise HTTPException(status_code=404, detail="Community not found")
        rows = fetch_all(
            db,
            DISCUSSION_SELECT + " WHERE d.community_id = :cid ORDER BY d.created_at DESC, d.discussion_id DESC",
            {"cid": community_id}
        )
    return {"success": True, "discussions": [to_discussion(r) for r in rows]}


def delete_discussion(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    discussion_id = require_field(body.discussion_id, "Discussion ID is required")
    with get_db_session() as db:
        discussion = fetch_one(
            db,
            """
            SELECT d.user_id, d.community_id, c.created_by FROM community_discussions d
            JOIN communities c ON c.community_id = d.community_id
            WHERE d.discussion_id = :did
            """,
            {"did": discussion_id}
        )
        if not discussion:
            raise HTTPException(status_code=404, detail="Discussion not found")

        uid = user["user_id"]
        allowed = (discussion["user_id"] == uid or discussion["created_by"] == uid
                   or has_permission(db, discussion["community_id"], uid, "moderate_discussions"))
        if not allowed:
            raise HTTPException(status_code=403, detail="Not authorized to delete this discussion")
        db.execute(text("DELETE FROM community_discussions WHERE discussion_id = :did"), {"did": discussion_id})
    return {"success": True, "message": "Discussion deleted"}


def remove_member(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    community_id = require_field(body.community_id, "Community ID is required")
    member_user_id = require_field(body.member_user_id, "Member user ID is required")
    with get_db_session() as db:
        community = _get_community(db, community_id)
        uid = user["user_id"]
        allowed = community["created_by"] == uid or has_permission(db, community_id, uid, "manage_members")
        if not allowed:
            raise HTTPException(
                status_code=403,
                detail="Only community admins or members with manage permission can remove members"
            )
        if member_user_id == community["created_by"]:
            raise HTTPException(status_code=400, detail="Cannot remove the community creator")
        if member_user_id == uid:
            raise HTTPException(status_code=400, detail="Cannot remove yourself from your own community")

        params = {"cid": community_id, "uid": member_user_id}
        db.execute(text("DELETE FROM community_permissions WHERE community_id = :cid AND user_id = :uid"), params)
        db.execute(text("DELETE FROM community_members WHERE community_id = :cid AND user_id = :uid"), params)
    return {"success": True, "message": "Member removed"}


def _permission_request(body: CommunityRequest, user: Optional[dict]):
    user = require_user(user)
    if not body.community_id or not body.target_user_id or not body.permission:
        raise HTTPException(status_code=400, detail="Community ID, target user ID, and permission are required")
    if body.permission not in PERMISSIONS:
        raise HTTPException(status_code=400, detail="Invalid permission type")
    return user


def grant_permission(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = _permission_request(body, user)
    with get_db_session() as db:
        community = _get_community(db, body.community_id)
        if community["created_by"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="Only community creators can manage permissions")
        if not _is_member(db, body.community_id, body.target_user_id):
            raise HTTPException(status_code=400, detail="User is not a member of this community")
        if has_permission(db, body.community_id, body.target_user_id, body.permission):
            return {"success": True, "message": "Permission already granted"}
        db.execute(
            text("""
                INSERT INTO community_permissions (community_id, user_id, permission, granted_by)
                VALUES (:cid, :uid, :perm, :granted_by)
            """),
            {"cid": body.community_id, "uid": body.target_user_id,
             "perm": body.permission, "granted_by": user["user_id"]}
        )
    return {"success": True, "message": "Permission granted"}


def revoke_permission(body: CommunityRequest, user: Optional[dict]) -> dict:
    user = _permission_request(body, user)
    with get_db_session() as db:
        community = _get_community(db, body.community_id)
        if community["created_by"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="Only community creators can manage permissions")
        db.execute(
            text("""
                DELETE FROM community_permissions
                WHERE community_id = :cid AND user_id = :uid AND permission = :perm
            """),
            {"cid": body.community_id, "uid": body.target_user_id, "perm": body.permission}
        )
    return {"success": True, "message": "Permission revoked"}


ACTIONS = {
    "list": list_communities,
    "get": get_community,
    "create": create_community,
    "update": update_community,
    "delete": delete_community,
    "join": join_community,
    "leave": leave_community,
    "create_discussion": create_discussion,
    "list_discussions": list_discussions,
    "delete_discussion": delete_discussion,
    "remove_member": remove_member,
    "grant_permission": grant_permission,
    "revoke_permission": revoke_permission,
}


@router.post("")
async def manage_community(body: CommunityRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)
