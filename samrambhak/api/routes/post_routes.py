"""
Post Routes

POST /posts  {action: ...}
    create          - New post (text, image and/or YouTube link)
    feed            - Visible posts, newest first, paginated
    get             - Single post with comments
    delete          - Delete own post
    toggle_like     - Like / unlike a post
    add_comment     - Comment on a post
    delete_comment  - Delete a comment (comment author or post author)
    list_comments   - Comments of a post, oldest first
    report          - Report a post to the moderators
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from samrambhak.api.dispatch import dispatch, require_field, clean_text
from samrambhak.core.auth import get_optional_user, require_user
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import PostRequest, PostResponse, CommentResponse, AuthorSummary
from samrambhak.services.moderation_service import ensure_clean
from samrambhak.services.notification_service import notify, actor_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

POST_SELECT = """
    SELECT p.post_id, p.user_id, p.business_id, p.content, p.image_url, p.youtube_url,
        p.is_hidden, p.hidden_reason, p.is_featured, p.created_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url,
        b.name AS business_name,
        (SELECT COUNT(*) FROM post_likes l WHERE l.post_id = p.post_id) AS like_count,
        (SELECT COUNT(*) FROM comments c WHERE c.post_id = p.post_id) AS comment_count,
        EXISTS (SELECT 1 FROM post_likes v WHERE v.post_id = p.post_id AND v.user_id = :viewer) AS is_liked
    FROM posts p
    LEFT JOIN profiles a ON a.user_id = p.user_id
    LEFT JOIN businesses b ON b.business_id = p.business_id
"""

COMMENT_SELECT = """
    SELECT c.comment_id, c.post_id, c.user_id, c.content, c.created_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url
    FROM comments c
    LEFT JOIN profiles a ON a.user_id = c.user_id
"""


def to_post(row: dict) -> PostResponse:
    return PostResponse(**row, author=AuthorSummary.from_row(row))


def to_comment(row: dict) -> CommentResponse:
    return CommentResponse(**row, author=AuthorSummary.from_row(row))


def _viewer_id(user: Optional[dict]):
    return user["user_id"] if user else None


def _get_visible_post(db, post_id: int, user: Optional[dict]) -> dict:
    """Post row or 404; hidden posts are only visible to their author."""
    row = fetch_one(db, POST_SELECT + " WHERE p.post_id = :pid", {"pid": post_id, "viewer": _viewer_id(user)})
    if not row or (row["is_hidden"] and row["user_id"] != _viewer_id(user)):
        raise HTTPException(status_code=404, detail="Post not found")
    return row


def create_post(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    content = clean_text(body.content)
    image_url = clean_text(body.image_url)
    youtube_url = clean_text(body.youtube_url)
    if not (content or image_url or youtube_url):
        raise HTTPException(status_code=400, detail="Post must have content, image, or video")

    with get_db_session() as db:
        ensure_clean(db, content)
        if body.business_id is not None:
            business = fetch_one(db, "SELECT owner_id FROM businesses WHERE business_id = :bid", {"bid": body.business_id})
            if not business or business["owner_id"] != user["user_id"]:
                raise HTTPException(status_code=403, detail="You can only post as a business you own")

        result = db.execute(
            text("""
                INSERT INTO posts (user_id, business_id, content, image_url, youtube_url)
                VALUES (:uid, :bid, :content, :image_url, :youtube_url)
                RETURNING post_id
            """),
            {"uid": user["user_id"], "bid": body.business_id, "content": content,
             "image_url": image_url, "youtube_url": youtube_url}
        )
        post_id = result.fetchone()[0]
        row = _get_visible_post(db, post_id, user)

    return {"success": True, "post": to_post(row)}


def feed(body: PostRequest, user: Optional[dict]) -> dict:
    offset = (body.page - 1) * body.page_size
    with get_db_session() as db:
        rows = fetch_all(
            db,
            POST_SELECT + """
            WHERE p.is_hidden = FALSE
            ORDER BY p.created_at DESC, p.post_id DESC
            LIMIT :limit OFFSET :offset
            """,
            {"viewer": _viewer_id(user), "limit": body.page_size + 1, "offset": offset}
        )
    # one extra row tells us whether another page exists
    has_more = len(rows) > body.page_size
    return {
        "success": True,
        "posts": [to_post(r) for r in rows[:body.page_size]],
        "page": body.page,
        "page_size": body.page_size,
        "has_more": has_more,
    }


def get_post(body: PostRequest, user: Optional[dict]) -> dict:
    post_id = require_field(body.post_id, "Post ID required")
    with get_db_session() as db:
        row = _get_visible_post(db, post_id, user)
        comments = fetch_all(
            db, COMMENT_SELECT + " WHERE c.post_id = :pid ORDER BY c.created_at, c.comment_id", {"pid": post_id}
        )
    return {"success": True, "post": to_post(row), "comments": [to_comment(c) for c in comments]}


def delete_post(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    post_id = require_field(body.post_id, "Post ID required")
    with get_db_session() as db:
        post = fetch_one(db, "SELECT user_id FROM posts WHERE post_id = :pid", {"pid": post_id})
        if not post:
            raise HTTPException(status_code=404, detail="Post not found")
        if post["user_id"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="Not authorized to delete this post")
        delete_post_rows(db, post_id)
    return {"success": True, "message": "Post deleted"}


def delete_post_rows(db, post_id: int) -> None:
    """Remove a post and everything hanging off it."""
    db.execute(text("DELETE FROM post_likes WHERE post_id = :pid"), {"pid": post_id})
    db.execute(text("DELETE FROM comments WHERE post_id = :pid"), {"pid": post_id})
    db.execute(text("DELETE FROM reports WHERE reported_type = 'post' AND reported_id = :pid"), {"pid": post_id})
    db.execute(text("DELETE FROM posts WHERE post_id = :pid"), {"pid": post_id})


def toggle_like(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    post_id = require_field(body.post_id, "Post ID required")
    with get_db_session() as db:
        post = _get_visible_post(db, post_id, user)
        existing = fetch_one(
            db, "SELECT like_id FROM post_likes WHERE post_id = :pid AND user_id = :uid",
            {"pid": post_id, "uid": user["user_id"]}
        )
        if existing:
            db.execute(text("DELETE FROM post_likes WHERE like_id = :id"), {"id": existing["like_id"]})
            liked = False
        else:
            try:
                db.execute(
                    text("INSERT INTO post_likes (post_id, user_id) VALUES (:pid, :uid)"),
                    {"pid": post_id, "uid": user["user_id"]}
                )
            except IntegrityError:
                # a concurrent request liked it first
                raise HTTPException(status_code=400, detail="You have already liked this post")
            liked = True
            notify(
                db, post["user_id"], user["user_id"], "like",
                f"{actor_name(db, user['user_id'])} liked your post", data={"post_id": post_id}
            )
        like_count = db.execute(
            text("SELECT COUNT(*) FROM post_likes WHERE post_id = :pid"), {"pid": post_id}
        ).scalar()

    return {"success": True, "liked": liked, "like_count": like_count}


def add_comment(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    post_id = require_field(body.post_id, "Post ID required")
    content = require_field(body.content, "Comment cannot be empty")
    with get_db_session() as db:
        post = _get_visible_post(db, post_id, user)
        ensure_clean(db, content)
        result = db.execute(
            text("INSERT INTO comments (post_id, user_id, content) VALUES (:pid, :uid, :content) RETURNING comment_id"),
            {"pid": post_id, "uid": user["user_id"], "content": content}
        )
        comment_id = result.fetchone()[0]
        notify(
            db, post["user_id"], user["user_id"], "comment",
            f"{actor_name(db, user['user_id'])} commented on your post", body=content[:140],
            data={"post_id": post_id, "comment_id": comment_id}
        )
        row = fetch_one(db, COMMENT_SELECT + " WHERE c.comment_id = :cid", {"cid": comment_id})

    return {"success": True, "comment": to_comment(row)}


def delete_comment(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    comment_id = require_field(body.comment_id, "Comment ID required")
    with get_db_session() as db:
        comment = fetch_one(
            db,
            """
            SELECT c.user_id, p.user_id AS post_owner FROM comments c
            JOIN posts p ON p.post_id = c.post_id
            WHERE c.comment_id = :cid
            """,
            {"cid": comment_id}
        )
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if user["user_id"] not in (comment["user_id"], comment["post_owner"]):
            raise HTTPException(status_code=403, detail="Not authorized to delete this comment")
        db.execute(text("DELETE FROM comments WHERE comment_id = :cid"), {"cid": comment_id})
    return {"success": True, "message": "Comment deleted"}


def list_comments(body: PostRequest, user: Optional[dict]) -> dict:
    post_id = require_field(body.post_id, "Post ID required")
    with get_db_session() as db:
        _get_visible_post(db, post_id, user)
        rows = fetch_all(
            db, COMMENT_SELECT + " WHERE c.post_id = :pid ORDER BY c.created_at, c.comment_id", {"pid": post_id}
        )
    return {"success": True, "comments": [to_comment(r) for r in rows]}


def report_post(body: PostRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    post_id = require_field(body.post_id, "Post ID required")
    reason = require_field(body.reason, "Reason is required")
    with get_db_session() as db:
        if not fetch_one(db, "SELECT post_id FROM posts WHERE post_id = :pid", {"pid": post_id}):
            raise HTTPException(status_code=404, detail="Post not found")
        existing = fetch_one(
            db,
            """
            SELECT report_id FROM reports
            WHERE reporter_id = :uid AND reported_type = 'post' AND reported_id = :pid
            """,
            {"uid": user["user_id"], "pid": post_id}
        )
        if existing:
            raise HTTPException(status_code=400, detail="You have already reported this post")
        db.execute(
            text("""
                INSERT INTO reports (reporter_id, reported_type, reported_id, reason, description, status)
                VALUES (:uid, 'post', :pid, :reason, :description, 'pending')
            """),
            {"uid": user["user_id"], "pid": post_id, "reason": reason, "description": clean_text(body.description)}
        )

    logger.info("Post %s reported by user_id=%s", post_id, user["user_id"])
    return {"success": True, "message": "Report submitted. Our moderators will review it."}


ACTIONS = {
    "create": create_post,
    "feed": feed,
    "get": get_post,
    "delete": delete_post,
    "toggle_like": toggle_like,
    "add_comment": add_comment,
    "delete_comment": delete_comment,
    "list_comments": list_comments,
    "report": report_post,
}


@router.post("")
async def posts(body: PostRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)
