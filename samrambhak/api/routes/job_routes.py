"""
Job Routes

POST /manage-jobs  {action: ...}
    list                  - Approved open jobs + caller's own (expired jobs auto-closed first)
    my_jobs               - Caller's jobs with application counts
    get                   - Job detail (+ applications for the creator)
    create                - Post a job (pending approval)
    update                - Creator only
    delete                - Creator only
    apply                 - Apply to an approved open job
    reply                 - Creator replies to an application with a fixed message
    my_applications       - Caller's applications with job info
    get_all_applications  - Every application (admin only)
    check_business_owner  - Whether the caller owns an approved business
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from samrambhak.api.dispatch import dispatch, require_field, clean_text, collect_updates, update_row
from samrambhak.core.auth import get_optional_user, require_user, is_admin
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.schemas.schemas import (
    JobRequest, JobResponse, JobSummary, ApplicationResponse,
    AuthorSummary, ContactSummary, ReplyType,
)
from samrambhak.services.notification_service import notify, actor_name
from samrambhak.utils.dates import utcnow, to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manage-jobs", tags=["Jobs"])

UPDATABLE_FIELDS = ["title", "description", "conditions", "location", "max_applications", "expires_at", "status"]

REPLY_MESSAGES = {
    ReplyType.contact_soon.value: "We will contact you soon. Thank you for your interest!",
    ReplyType.shortlisted.value: "Congratulations! You have been shortlisted. We will contact you for further details.",
    ReplyType.not_selected.value: "Thank you for applying. Unfortunately, we have decided to move forward with other candidates.",
}

JOB_SELECT = """
    SELECT j.job_id, j.creator_id, j.title, j.description, j.conditions, j.location,
        j.max_applications, j.expires_at, j.status, j.approval_status, j.created_at, j.updated_at,
        a.user_id AS author_user_id, a.full_name AS author_full_name,
        a.username AS author_username, a.avatar_url AS author_avatar_url,
        (SELECT COUNT(*) FROM job_applications c WHERE c.job_id = j.job_id) AS application_count,
        EXISTS (SELECT 1 FROM job_applications v
                WHERE v.job_id = j.job_id AND v.applicant_id = :viewer) AS has_applied
    FROM jobs j
    LEFT JOIN profiles a ON a.user_id = j.creator_id
"""

APPLICATION_SELECT = """
    SELECT ja.application_id, ja.job_id, ja.applicant_id, ja.message, ja.education_qualification,
        ja.experience_details, ja.creator_reply, ja.replied_at, ja.created_at,
        ap.user_id AS applicant_user_id, ap.full_name AS applicant_full_name,
        ap.username AS applicant_username, ap.avatar_url AS applicant_avatar_url,
        ap.mobile_number AS applicant_mobile_number, ap.email AS applicant_email,
        j.title AS job_title, j.description AS job_description, j.location AS job_location,
        j.status AS job_status, j.approval_status AS job_approval_status, j.creator_id AS job_creator_id,
        cp.user_id AS creator_user_id, cp.full_name AS creator_full_name,
        cp.username AS creator_username, cp.avatar_url AS creator_avatar_url
    FROM job_applications ja
    JOIN jobs j ON j.job_id = ja.job_id
    LEFT JOIN profiles ap ON ap.user_id = ja.applicant_id
    LEFT JOIN profiles cp ON cp.user_id = j.creator_id
"""


def to_job(row: dict) -> JobResponse:
    return JobResponse(**row, creator=AuthorSummary.from_row(row))


def to_application(row: dict, with_applicant: bool = True, with_job: bool = False) -> ApplicationResponse:
    job = None
    if with_job:
        job = JobSummary(
            job_id=row["job_id"],
            title=row["job_title"],
            description=row["job_description"],
            location=row["job_location"],
            status=row["job_status"],
            approval_status=row["job_approval_status"],
            creator_id=row["job_creator_id"],
            creator=AuthorSummary.from_row(row, prefix="creator_"),
        )
    return ApplicationResponse(
        **row,
        applicant=ContactSummary.from_row(row) if with_applicant else None,
        job=job,
    )


def _viewer_id(user: Optional[dict]):
    return user["user_id"] if user else None


def close_expired_jobs(db) -> int:
    """Open jobs past their expires_at become closed. Returns how many changed."""
    now = utcnow()
    result = db.execute(
        text("""
            UPDATE jobs SET status = 'closed', updated_at = :now
            WHERE status = 'open' AND expires_at IS NOT NULL AND expires_at < :now
        """),
        {"now": now}
    )
    if result.rowcount:
        logger.info("Auto-closed %s expired job(s)", result.rowcount)
    return result.rowcount


def delete_job_rows(db, job_id: int) -> None:
    db.execute(text("DELETE FROM job_applications WHERE job_id = :jid"), {"jid": job_id})
    db.execute(text("DELETE FROM jobs WHERE job_id = :jid"), {"jid": job_id})


def _get_owned_job(db, job_id: int, user: dict, verb: str) -> dict:
    job = fetch_one(db, "SELECT job_id, creator_id FROM jobs WHERE job_id = :jid", {"jid": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job["creator_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail=f"Not authorized to {verb} this job")
    return job


def list_jobs(body: JobRequest, user: Optional[dict]) -> dict:
    with get_db_session() as db:
        close_expired_jobs(db)
        rows = fetch_all(
            db,
            JOB_SELECT + """
            WHERE (j.approval_status = 'approved' AND j.status = 'open') OR j.creator_id = :viewer
            ORDER BY j.created_at DESC, j.job_id DESC
            """,
            {"viewer": _viewer_id(user)}
        )
    return {"success": True, "jobs": [to_job(r) for r in rows]}


def my_jobs(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        rows = fetch_all(
            db,
            JOB_SELECT + " WHERE j.creator_id = :viewer ORDER BY j.created_at DESC, j.job_id DESC",
            {"viewer": user["user_id"]}
        )
    return {"success": True, "jobs": [to_job(r) for r in rows]}


def get_job(body: JobRequest, user: Optional[dict]) -> dict:
    job_id = require_field(body.job_id, "Job ID required")
    viewer = _viewer_id(user)
    with get_db_session() as db:
        row = fetch_one(db, JOB_SELECT + " WHERE j.job_id = :jid", {"jid": job_id, "viewer": viewer})
        is_owner = bool(row) and viewer is not None and row["creator_id"] == viewer
        if not row or not (is_owner or (row["approval_status"] == "approved" and row["status"] == "open")):
            raise HTTPException(status_code=404, detail="Job not found or access denied")

        applications = []
        if is_owner:
            applications = fetch_all(
                db,
                APPLICATION_SELECT + " WHERE ja.job_id = :jid ORDER BY ja.created_at DESC, ja.application_id DESC",
                {"jid": job_id}
            )

    return {
        "success": True,
        "job": to_job(row),
        "applications": [to_application(a) for a in applications],
    }


def create_job(body: JobRequest, user: Optional[dict]) -> dict:
    """Post a new job. It stays hidden from others until an admin approves it."""
    user = require_user(user)
    title = clean_text(body.title)
    description = clean_text(body.description)
    if not title or not description:
        raise HTTPException(status_code=400, detail="Title and description are required")

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO jobs (creator_id, title, description, conditions, location,
                    max_applications, expires_at, status, approval_status)
                VALUES (:uid, :title, :description, :conditions, :location,
                    :max_applications, :expires_at, 'open', 'pending')
                RETURNING job_id
            """),
            {
                "uid": user["user_id"], "title": title, "description": description,
                "conditions": clean_text(body.conditions), "location": clean_text(body.location),
                "max_applications": body.max_applications, "expires_at": to_naive_utc(body.expires_at),
            }
        )
        job_id = result.fetchone()[0]
        row = fetch_one(db, JOB_SELECT + " WHERE j.job_id = :jid", {"jid": job_id, "viewer": user["user_id"]})

    logger.info("Job %s created by user_id=%s", job_id, user["user_id"])
    return {"success": True, "job": to_job(row), "message": "Job created! It will be visible after admin approval."}


def update_job(body: JobRequest, user: Optional[dict]) -> dict:
    """Update job. Only provided fields are updated."""
    user = require_user(user)
    job_id = require_field(body.job_id, "Job ID required")
    values = collect_updates(body, UPDATABLE_FIELDS)
    for field in ("title", "description"):
        if field in values:
            values[field] = require_field(values[field], "Title and description are required")
    for field in ("conditions", "location"):
        if field in values:
            values[field] = clean_text(values[field])
    if "expires_at" in values:
        values["expires_at"] = to_naive_utc(values["expires_at"])

    with get_db_session() as db:
        _get_owned_job(db, job_id, user, "update")
        if not values:
            raise HTTPException(status_code=400, detail="No fields to update")
        update_row(db, "jobs", "job_id", job_id, values)
        row = fetch_one(db, JOB_SELECT + " WHERE j.job_id = :jid", {"jid": job_id, "viewer": user["user_id"]})

    return {"success": True, "job": to_job(row)}


def delete_job(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    job_id = require_field(body.job_id, "Job ID required")
    with get_db_session() as db:
        _get_owned_job(db, job_id, user, "delete")
        delete_job_rows(db, job_id)
    return {"success": True, "message": "Job deleted"}


def apply_to_job(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    job_id = require_field(body.job_id, "Job ID required")
    with get_db_session() as db:
        close_expired_jobs(db)
        job = fetch_one(
            db,
            """
            SELECT job_id, creator_id, title, status, approval_status, max_applications,
                (SELECT COUNT(*) FROM job_applications c WHERE c.job_id = jobs.job_id) AS application_count
            FROM jobs WHERE job_id = :jid
            """,
            {"jid": job_id}
        )
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job["status"] != "open" or job["approval_status"] != "approved":
            raise HTTPException(status_code=400, detail="Job is not open for applications")
        if job["creator_id"] == user["user_id"]:
            raise HTTPException(status_code=400, detail="Cannot apply to your own job")
        already = fetch_one(
            db, "SELECT application_id FROM job_applications WHERE job_id = :jid AND applicant_id = :uid",
            {"jid": job_id, "uid": user["user_id"]}
        )
        if already:
            raise HTTPException(status_code=400, detail="You have already applied to this job")
        limit = job["max_applications"]
        if limit is not None and job["application_count"] >= limit:
            raise HTTPException(status_code=400, detail="This job has reached the maximum number of applications")

        try:
            db.execute(
                text("""
                    INSERT INTO job_applications (job_id, applicant_id, message, education_qualification, experience_details)
                    VALUES (:jid, :uid, :message, :education, :experience)
                """),
                {
                    "jid": job_id, "uid": user["user_id"], "message": clean_text(body.message),
                    "education": clean_text(body.education_qualification),
                    "experience": clean_text(body.experience_details),
                }
            )
        except IntegrityError:
            raise HTTPException(status_code=400, detail="You have already applied to this job")
        # Last free slot taken
        if limit is not None and job["application_count"] + 1 >= limit:
            db.execute(
                text("UPDATE jobs SET status = 'filled', updated_at = :now WHERE job_id = :jid"),
                {"now": utcnow(), "jid": job_id}
            )
        notify(
            db, job["creator_id"], user["user_id"], "job_application",
            f"{actor_name(db, user['user_id'])} applied to {job['title']}", data={"job_id": job_id}
        )

    return {"success": True, "message": "Application submitted!"}


def reply_to_application(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    application_id = require_field(body.application_id, "Application ID required")
    with get_db_session() as db:
        application = fetch_one(
            db,
            """
            SELECT ja.application_id, ja.applicant_id, ja.job_id, j.creator_id, j.title
            FROM job_applications ja JOIN jobs j ON j.job_id = ja.job_id
            WHERE ja.application_id = :aid
            """,
            {"aid": application_id}
        )
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        if application["creator_id"] != user["user_id"]:
            raise HTTPException(status_code=403, detail="Not authorized to reply to this application")

        reply = REPLY_MESSAGES.get(body.reply_type or "", REPLY_MESSAGES[ReplyType.contact_soon.value])
        db.execute(
            text("UPDATE job_applications SET creator_reply = :reply, replied_at = :now WHERE application_id = :aid"),
            {"reply": reply, "now": utcnow(), "aid": application_id}
        )
        notify(
            db, application["applicant_id"], user["user_id"], "job_reply",
            f"Update on your application for {application['title']}", body=reply,
            data={"job_id": application["job_id"], "application_id": application_id}
        )

    return {"success": True, "message": "Reply sent!", "reply": reply}


def my_applications(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        rows = fetch_all(
            db,
            APPLICATION_SELECT + " WHERE ja.applicant_id = :uid ORDER BY ja.created_at DESC, ja.application_id DESC",
            {"uid": user["user_id"]}
        )
    return {"success": True, "applications": [to_application(r, with_applicant=False, with_job=True) for r in rows]}


def get_all_applications(body: JobRequest, user: Optional[dict]) -> dict:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin authentication required")
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized: Admin access required")
    with get_db_session() as db:
        rows = fetch_all(db, APPLICATION_SELECT + " ORDER BY ja.created_at DESC, ja.application_id DESC")
    return {"success": True, "applications": [to_application(r, with_job=True) for r in rows]}


def check_business_owner(body: JobRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        business = fetch_one(
            db,
            "SELECT business_id FROM businesses WHERE owner_id = :uid AND approval_status = 'approved' LIMIT 1",
            {"uid": user["user_id"]}
        )
    return {"success": True, "is_business_owner": business is not None}


ACTIONS = {
    "list": list_jobs,
    "my_jobs": my_jobs,
    "get": get_job,
    "create": create_job,
    "update": update_job,
    "delete": delete_job,
    "apply": apply_to_job,
    "reply": reply_to_application,
    "my_applications": my_applications,
    "get_all_applications": get_all_applications,
    "check_business_owner": check_business_owner,
}


@router.post("")
async def manage_jobs(body: JobRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)
