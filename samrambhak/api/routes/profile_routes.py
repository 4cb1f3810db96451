"""
Profile Routes

POST /profiles  {action: ...}
    get        - Own profile, or another user's public profile by user_id / username
    update     - Update own profile fields
    completion - Profile completion percentage and missing fields
POST /upload-avatar            - Multipart image upload (JPEG/PNG/GIF/WebP, max 5MB)
POST /send-verification-email  - Store email (unverified) and mail a verification link
POST /verify-email             - Confirm email with the signed link token
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch, collect_updates, update_row
from samrambhak.core.auth import (
    get_optional_user, get_current_user, require_user,
    create_email_verification_token, decode_email_verification_token,
)
from samrambhak.core.config import get_settings
from samrambhak.db.postgres import get_db_session
from samrambhak.schemas.schemas import ProfileRequest, SendVerificationRequest, VerifyEmailRequest
from samrambhak.services.email_client import get_email_client, EmailDeliveryError
from samrambhak.services.profile_service import (
    normalize_username, username_taken, get_profile_row,
    to_profile, to_public_profile, profile_completion,
)
from samrambhak.utils.dates import utcnow
from samrambhak.utils.file_upload import read_image_upload, save_avatar

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profiles"])

UPDATABLE_FIELDS = ["full_name", "bio", "location", "date_of_birth"]


def get_profile(body: ProfileRequest, user: Optional[dict]) -> dict:
    looking_up_other = body.user_id is not None or bool(body.username)
    with get_db_session() as db:
        if looking_up_other:
            row = get_profile_row(db, user_id=body.user_id, username=body.username)
        else:
            row = get_profile_row(db, user_id=require_user(user)["user_id"])

    if not row:
        raise HTTPException(status_code=404, detail="Profile not found")
    if user and row["user_id"] == user["user_id"]:
        return {"success": True, "profile": to_profile(row)}
    return {"success": True, "profile": to_public_profile(row)}


def update_profile(body: ProfileRequest, user: Optional[dict]) -> dict:
    """Update own profile. Only provided fields are updated."""
    user = require_user(user)
    values = collect_updates(body, UPDATABLE_FIELDS)
    for field in ("full_name", "bio", "location"):
        if field in values:
            values[field] = values[field].strip() or None

    with get_db_session() as db:
        if body.username is not None:
            username = normalize_username(body.username)
            if username_taken(db, username, exclude_user_id=user["user_id"]):
                raise HTTPException(status_code=400, detail="This username is already taken")
            values["username"] = username

        if not values:
            raise HTTPException(status_code=400, detail="No fields to update")

        update_row(db, "profiles", "user_id", user["user_id"], values)
        row = get_profile_row(db, user_id=user["user_id"])

    return {"success": True, "message": "Profile updated successfully", "profile": to_profile(row)}


def completion(body: ProfileRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        row = get_profile_row(db, user_id=user["user_id"])
    if not row:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, **profile_completion(row)}


ACTIONS = {
    "get": get_profile,
    "update": update_profile,
    "completion": completion,
}


@router.post("/profiles")
async def profiles(body: ProfileRequest, user: Optional[dict] = Depends(get_optional_user)):
    return dispatch(ACTIONS, body, user)


@router.post("/upload-avatar")
async def upload_avatar(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """
    Upload a profile picture for the current user.

    Stored as avatars/<user_id>/avatar.<ext>; replaces the previous avatar.
    """
    content, ext = await read_image_upload(file)
    avatar_url = save_avatar(user["user_id"], content, ext)

    with get_db_session() as db:
        result = db.execute(
            text("UPDATE profiles SET avatar_url = :url, updated_at = :now WHERE user_id = :uid"),
            {"url": avatar_url, "now": utcnow(), "uid": user["user_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")

    return {"success": True, "avatar_url": avatar_url}


@router.post("/send-verification-email")
async def send_verification_email(body: SendVerificationRequest, user: dict = Depends(get_current_user)):
    """Save the email as unverified and send a signed verification link."""
    settings = get_settings()
    if not settings.email_enabled:
        logger.error("RESEND_API_KEY not configured")
        raise HTTPException(status_code=500, detail="Email service not configured")
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")

    email = body.email.lower()
    with get_db_session() as db:
        db.execute(
            text("UPDATE profiles SET email = :email, email_verified = FALSE, updated_at = :now WHERE user_id = :uid"),
            {"email": email, "now": utcnow(), "uid": user["user_id"]}
        )
        profile = get_profile_row(db, user_id=user["user_id"])

    token = create_email_verification_token(user["user_id"], email)
    link = f"{settings.public_app_url.rstrip('/')}/verify-email?token={token}"
    try:
        get_email_client().send_verification_email(email, profile["full_name"] if profile else None, link)
    except EmailDeliveryError:
        raise HTTPException(status_code=502, detail="Failed to send verification email")

    logger.info("Verification email sent to user_id=%s", user["user_id"])
    return {"success": True, "message": "Verification email sent successfully"}


@router.post("/verify-email")
async def verify_email(body: VerifyEmailRequest):
    """Mark the email verified if the token is valid and still matches the profile."""
    payload = decode_email_verification_token(body.token)
    if not payload:
        raise HTTPException(status_code=400, detail="Invalid or expired verification link")

    user_id = int(payload["sub"])
    with get_db_session() as db:
        profile = get_profile_row(db, user_id=user_id)
        if not profile or (profile["email"] or "").lower() != payload.get("email", "").lower():
            raise HTTPException(status_code=400, detail="This verification link is no longer valid")
        db.execute(
            text("UPDATE profiles SET email_verified = TRUE, updated_at = :now WHERE user_id = :uid"),
            {"now": utcnow(), "uid": user_id}
        )

    return {"success": True, "message": "Email verified successfully"}
