"""
Admin Routes - admin panel handlers. Every endpoint needs an admin session.

POST /admin-manage  {action: ...}                       (any admin role)
    list           - communities / businesses / jobs with creator info and counts
    update         - Whitelisted moderation fields (approval, disable, feature, status)
    delete         - Entity and its dependent rows
    stats          - Dashboard counters
    activity_logs  - Recent admin activity

POST /admin-post-actions  {action: ...}                 (content_moderator)
    list, hide, unhide, feature, unfeature, delete, list_reports, resolve_report

POST /manage-blocked-words  {action: ...}               (content_moderator)
    list, add, update, delete
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch, require_field, clean_text, update_row
from samrambhak.api.routes.business_routes import delete_business_rows
from samrambhak.api.routes.community_routes import delete_community_rows
from samrambhak.api.routes.job_routes import delete_job_rows
from samrambhak.api.routes.post_routes import POST_SELECT, to_post, delete_post_rows
from samrambhak.core.auth import get_current_admin, require_admin_role
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import (
    AdminManageRequest, AdminPostRequest, BlockedWordsRequest,
    BlockedWordResponse, ReportResponse, AuthorSummary,
    ApprovalStatus, JobStatus, ReportStatus,
)
from samrambhak.services.activity_log_service import log_admin_action, get_activity_log
from samrambhak.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])

DEFAULT_HIDE_REASON = "Hidden by admin due to report"


# ============================================================
# ADMIN-MANAGE (communities / businesses / jobs)
# ============================================================

CREATOR_COLUMNS = """
    a.user_id AS author_user_id, a.full_name AS author_full_name,
    a.username AS author_username, a.avatar_url AS author_avatar_url
"""

# entity_type -> table, key column, list query, moderation fields admins may change
ENTITIES = {
    "communities": {
        "table": "communities",
        "key": "community_id",
        "target": "community",
        "list_sql": f"""
            SELECT c.community_id, c.name, c.description, c.cover_image_url, c.is_disabled,
                c.approval_status, c.created_at, c.created_by, c.disabled_at, c.disabled_reason,
                {CREATOR_COLUMNS},
                (SELECT COUNT(*) FROM community_members m WHERE m.community_id = c.community_id) AS member_count
            FROM communities c LEFT JOIN profiles a ON a.user_id = c.created_by
            ORDER BY c.created_at DESC, c.community_id DESC
        """,
        "fields": {"approval_status", "is_disabled", "disabled_reason"},
    },
    "businesses": {
        "table": "businesses",
        "key": "business_id",
        "target": "business",
        "list_sql": f"""
            SELECT b.business_id, b.name, b.category, b.location, b.is_featured, b.is_disabled,
                b.approval_status, b.created_at, b.owner_id, b.disabled_reason,
                {CREATOR_COLUMNS}
            FROM businesses b LEFT JOIN profiles a ON a.user_id = b.owner_id
            ORDER BY b.created_at DESC, b.business_id DESC
        """,
        "fields": {"approval_status", "is_disabled", "disabled_reason", "is_featured"},
    },
    "jobs": {
        "table": "jobs",
        "key": "job_id",
        "target": "job",
        "list_sql": f"""
            SELECT j.job_id, j.title, j.description, j.location, j.status, j.approval_status,
                j.created_at, j.creator_id,
                {CREATOR_COLUMNS},
                (SELECT COUNT(*) FROM job_applications c WHERE c.job_id = j.job_id) AS application_count
            FROM jobs j LEFT JOIN profiles a ON a.user_id = j.creator_id
            ORDER BY j.created_at DESC, j.job_id DESC
        """,
        "fields": {"approval_status", "status"},
    },
}

ENTITY_DELETERS = {
    "communities": delete_community_rows,
    "businesses": delete_business_rows,
    "jobs": delete_job_rows,
}

BOOLEAN_FIELDS = {"is_disabled", "is_featured"}
ALLOWED_VALUES = {
    "approval_status": {s.value for s in ApprovalStatus},
    "status": {s.value for s in JobStatus},
}


def _entity(entity_type) -> dict:
    entity = ENTITIES.get(entity_type or "")
    if entity is None:
        raise HTTPException(status_code=400, detail=f"Unknown entity type: {entity_type}")
    return entity


def _validate_updates(entity: dict, updates: dict) -> dict:
    values = {}
    for field, value in updates.items():
        if field not in entity["fields"]:
            raise HTTPException(status_code=400, detail=f"Field not allowed: {field}")
        if field in BOOLEAN_FIELDS:
            if not isinstance(value, bool):
                raise HTTPException(status_code=400, detail=f"{field} must be true or false")
        elif field in ALLOWED_VALUES:
            if value not in ALLOWED_VALUES[field]:
                raise HTTPException(status_code=400, detail=f"Invalid value for {field}: {value}")
        elif value is not None and not isinstance(value, str):
            raise HTTPException(status_code=400, detail=f"{field} must be text")
        values[field] = value

    if "is_disabled" in values:
        if entity["table"] == "communities":
            values["disabled_at"] = utcnow() if values["is_disabled"] else None
        # Re-enabling clears the reason
        if not values["is_disabled"]:
            values["disabled_reason"] = None
    return values


def manage_list(body: AdminManageRequest, admin: dict) -> dict:
    entity = _entity(body.entity_type)
    with get_db_session() as db:
        rows = fetch_all(db, entity["list_sql"])
    for row in rows:
        row["creator"] = AuthorSummary.from_row(row)
        for column in ("author_user_id", "author_full_name", "author_username", "author_avatar_url"):
            row.pop(column)
    return {"success": True, "data": rows}


def manage_update(body: AdminManageRequest, admin: dict) -> dict:
    entity = _entity(body.entity_type)
    if not body.entity_id or not body.updates:
        raise HTTPException(status_code=400, detail="Missing entity_id or updates")
    values = _validate_updates(entity, body.updates)

    with get_db_session() as db:
        if not fetch_one(db, f"SELECT {entity['key']} FROM {entity['table']} WHERE {entity['key']} = :id",
                         {"id": body.entity_id}):
            raise HTTPException(status_code=404, detail="Entity not found")
        update_row(db, entity["table"], entity["key"], body.entity_id, values)

    log_admin_action(admin["user_id"], f"update_{entity['target']}", entity["target"], body.entity_id,
                     {"updates": body.updates})
    logger.info("Admin %s updated %s %s: %s", admin["user_id"], entity["target"], body.entity_id, body.updates)
    return {"success": True}


def manage_delete(body: AdminManageRequest, admin: dict) -> dict:
    entity = _entity(body.entity_type)
    if not body.entity_id:
        raise HTTPException(status_code=400, detail="Missing entity_id")
    with get_db_session() as db:
        if not fetch_one(db, f"SELECT {entity['key']} FROM {entity['table']} WHERE {entity['key']} = :id",
                         {"id": body.entity_id}):
            raise HTTPException(status_code=404, detail="Entity not found")
        ENTITY_DELETERS[body.entity_type](db, body.entity_id)

    log_admin_action(admin["user_id"], f"delete_{entity['target']}", entity["target"], body.entity_id)
    logger.info("Admin %s deleted %s %s", admin["user_id"], entity["target"], body.entity_id)
    return {"success": True}


def manage_stats(body: AdminManageRequest, admin: dict) -> dict:
    with get_db_session() as db:
        def count(sql: str) -> int:
            return db.execute(text(sql)).scalar()

        stats = {
            "users": count("SELECT COUNT(*) FROM users"),
            "active_users": count("SELECT COUNT(*) FROM users WHERE is_active = TRUE"),
            "posts": count("SELECT COUNT(*) FROM posts"),
            "hidden_posts": count("SELECT COUNT(*) FROM posts WHERE is_hidden = TRUE"),
            "communities": count("SELECT COUNT(*) FROM communities"),
            "businesses": count("SELECT COUNT(*) FROM businesses"),
            "jobs": count("SELECT COUNT(*) FROM jobs"),
            "pending_approvals": {
                "communities": count("SELECT COUNT(*) FROM communities WHERE approval_status = 'pending'"),
                "businesses": count("SELECT COUNT(*) FROM businesses WHERE approval_status = 'pending'"),
                "jobs": count("SELECT COUNT(*) FROM jobs WHERE approval_status = 'pending'"),
            },
            "pending_reports": count("SELECT COUNT(*) FROM reports WHERE status = 'pending'"),
        }
    return {"success": True, "stats": stats}


def manage_activity_logs(body: AdminManageRequest, admin: dict) -> dict:
    try:
        logs = get_activity_log().recent(limit=body.limit)
    except PyMongoError:
        logger.exception("Activity log read failed")
        raise HTTPException(status_code=503, detail="Activity log unavailable")
    return {"success": True, "logs": logs}


MANAGE_ACTIONS = {
    "list": manage_list,
    "update": manage_update,
    "delete": manage_delete,
    "stats": manage_stats,
    "activity_logs": manage_activity_logs,
}


@router.post("/admin-manage")
async def admin_manage(body: AdminManageRequest, admin: dict = Depends(get_current_admin)):
    return dispatch(MANAGE_ACTIONS, body, admin)


# ============================================================
# ADMIN-POST-ACTIONS (moderation)
# ============================================================

def _require_post(db, post_id) -> int:
    post_id = require_field(post_id, "Post ID is required")
    if not fetch_one(db, "SELECT post_id FROM posts WHERE post_id = :pid", {"pid": post_id}):
        raise HTTPException(status_code=404, detail="Post not found")
    return post_id


def posts_list(body: AdminPostRequest, admin: dict) -> dict:
    with get_db_session() as db:
        rows = fetch_all(
            db, POST_SELECT + " ORDER BY p.created_at DESC, p.post_id DESC", {"viewer": admin["user_id"]}
        )
    return {"success": True, "posts": [to_post(r) for r in rows]}


def hide_post(body: AdminPostRequest, admin: dict) -> dict:
    reason = clean_text(body.reason) or DEFAULT_HIDE_REASON
    with get_db_session() as db:
        post_id = _require_post(db, body.post_id)
        update_row(db, "posts", "post_id", post_id,
                   {"is_hidden": True, "hidden_at": utcnow(), "hidden_reason": reason})
    log_admin_action(admin["user_id"], "hide_post", "post", post_id, {"reason": reason})
    return {"success": True, "message": "Post hidden successfully"}


def unhide_post(body: AdminPostRequest, admin: dict) -> dict:
    with get_db_session() as db:
        post_id = _require_post(db, body.post_id)
        update_row(db, "posts", "post_id", post_id, {"is_hidden": False, "hidden_at": None, "hidden_reason": None})
    log_admin_action(admin["user_id"], "unhide_post", "post", post_id)
    return {"success": True, "message": "Post unhidden successfully"}


def _set_featured(body: AdminPostRequest, admin: dict, featured: bool) -> dict:
    with get_db_session() as db:
        post_id = _require_post(db, body.post_id)
        update_row(db, "posts", "post_id", post_id, {"is_featured": featured})
    log_admin_action(admin["user_id"], "feature_post" if featured else "unfeature_post", "post", post_id)
    return {"success": True, "message": "Post featured" if featured else "Post unfeatured"}


def feature_post(body: AdminPostRequest, admin: dict) -> dict:
    return _set_featured(body, admin, True)


def unfeature_post(body: AdminPostRequest, admin: dict) -> dict:
    return _set_featured(body, admin, False)


def admin_delete_post(body: AdminPostRequest, admin: dict) -> dict:
    reason = clean_text(body.reason) or "Deleted by admin"
    with get_db_session() as db:
        post_id = _require_post(db, body.post_id)
        delete_post_rows(db, post_id)
    log_admin_action(admin["user_id"], "delete_post", "post", post_id, {"reason": reason})
    logger.info("Admin %s deleted post %s", admin["user_id"], post_id)
    return {"success": True, "message": "Post deleted successfully"}


def list_reports(body: AdminPostRequest, admin: dict) -> dict:
    params = {}
    where = ""
    if body.status is not None:
        where = "WHERE r.status = :status"
        params["status"] = body.status.value
    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"""
            SELECT r.report_id, r.reporter_id, r.reported_type, r.reported_id, r.reason, r.description,
                r.status, r.resolved_by, r.resolved_at, r.created_at,
                a.user_id AS author_user_id, a.full_name AS author_full_name,
                a.username AS author_username, a.avatar_url AS author_avatar_url,
                p.content AS post_content
            FROM reports r
            LEFT JOIN profiles a ON a.user_id = r.reporter_id
            LEFT JOIN posts p ON r.reported_type = 'post' AND p.post_id = r.reported_id
            {where}
            ORDER BY r.created_at DESC, r.report_id DESC
            """,
            params
        )
    return {"success": True, "reports": [ReportResponse(**r, reporter=AuthorSummary.from_row(r)) for r in rows]}


def resolve_report(body: AdminPostRequest, admin: dict) -> dict:
    report_id = require_field(body.report_id, "Report ID is required")
    new_status = body.status or ReportStatus.resolved
    if new_status == ReportStatus.pending:
        raise HTTPException(status_code=400, detail="Reports can only be resolved or dismissed")
    with get_db_session() as db:
        if not fetch_one(db, "SELECT report_id FROM reports WHERE report_id = :rid", {"rid": report_id}):
            raise HTTPException(status_code=404, detail="Report not found")
        db.execute(
            text("""
                UPDATE reports SET status = :status, resolved_by = :admin_id, resolved_at = :now
                WHERE report_id = :rid
            """),
            {"status": new_status.value, "admin_id": admin["user_id"], "now": utcnow(), "rid": report_id}
        )
    log_admin_action(admin["user_id"], "resolve_report", "report", report_id, {"status": new_status.value})
    return {"success": True, "message": f"Report {new_status.value}"}


POST_ACTIONS = {
    "list": posts_list,
    "hide": hide_post,
    "unhide": unhide_post,
    "feature": feature_post,
    "unfeature": unfeature_post,
    "delete": admin_delete_post,
    "list_reports": list_reports,
    "resolve_report": resolve_report,
}


@router.post("/admin-post-actions")
async def admin_post_actions(
    body: AdminPostRequest,
    admin: dict = Depends(require_admin_role("content_moderator")),
):
    return dispatch(POST_ACTIONS, body, admin)


# ============================================================
# MANAGE-BLOCKED-WORDS
# ============================================================

def _normalize_word(word) -> str:
    return (word or "").strip().lower()


def words_list(body: BlockedWordsRequest, admin: dict) -> dict:
    with get_db_session() as db:
        rows = fetch_all(
            db, "SELECT word_id, word, is_active, created_at, updated_at FROM blocked_words ORDER BY word"
        )
    return {"success": True, "words": [BlockedWordResponse(**r) for r in rows]}


def words_add(body: BlockedWordsRequest, admin: dict) -> dict:
    candidates = list(body.words or [])
    if body.word:
        candidates.append(body.word)
    words = []
    for word in map(_normalize_word, candidates):
        if word and word not in words:
            words.append(word)
    if not words:
        raise HTTPException(status_code=400, detail="At least one word is required")

    with get_db_session() as db:
        existing = fetch_all(db, "SELECT word FROM blocked_words")
        if {r["word"] for r in existing} & set(words):
            raise HTTPException(status_code=400, detail="One or more words already exist")
        for word in words:
            db.execute(
                text("INSERT INTO blocked_words (word, is_active) VALUES (:word, TRUE)"),
                {"word": word}
            )

    log_admin_action(admin["user_id"], "add_blocked_words", "blocked_word", None, {"words": words})
    return {"success": True, "added": words}


def words_update(body: BlockedWordsRequest, admin: dict) -> dict:
    word_id = require_field(body.word_id, "Word ID is required")
    values = {}
    if body.word is not None:
        values["word"] = require_field(_normalize_word(body.word), "Word cannot be empty")
    if body.is_active is not None:
        values["is_active"] = body.is_active
    if not values:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        if not fetch_one(db, "SELECT word_id FROM blocked_words WHERE word_id = :wid", {"wid": word_id}):
            raise HTTPException(status_code=404, detail="Word not found")
        if "word" in values:
            clash = fetch_one(
                db, "SELECT word_id FROM blocked_words WHERE word = :word AND word_id != :wid",
                {"word": values["word"], "wid": word_id}
            )
            if clash:
                raise HTTPException(status_code=400, detail="This word already exists")
        update_row(db, "blocked_words", "word_id", word_id, values)

    log_admin_action(admin["user_id"], "update_blocked_word", "blocked_word", word_id, values)
    return {"success": True, "message": "Blocked word updated"}


def words_delete(body: BlockedWordsRequest, admin: dict) -> dict:
    word_id = require_field(body.word_id, "Word ID is required")
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM blocked_words WHERE word_id = :wid"), {"wid": word_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Word not found")
    log_admin_action(admin["user_id"], "delete_blocked_word", "blocked_word", word_id)
    return {"success": True, "message": "Blocked word deleted"}


WORD_ACTIONS = {
    "list": words_list,
    "add": words_add,
    "update": words_update,
    "delete": words_delete,
}


@router.post("/manage-blocked-words")
async def manage_blocked_words(
    body: BlockedWordsRequest,
    admin: dict = Depends(require_admin_role("content_moderator")),
):
    return dispatch(WORD_ACTIONS, body, admin)
