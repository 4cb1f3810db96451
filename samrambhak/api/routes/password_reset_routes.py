"""
Password Reset Routes

POST /password-reset  {action: ...}
    verify_identity - Check mobile number + date of birth
    reset_password  - Re-verify identity, set new password, end all sessions

Identity is mobile number + date of birth; dates are compared on their
YYYY-MM-DD part only.
"""

import logging
import re

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from samrambhak.api.dispatch import dispatch
from samrambhak.core.auth import hash_password
from samrambhak.db.postgres import get_db_session, fetch_one
from samrambhak.schemas.schemas import PasswordResetRequest
from samrambhak.utils.dates import date_part, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/password-reset", tags=["Authentication"])

MOBILE_PATTERN = re.compile(r"^[0-9]{10}$")
MIN_PASSWORD_LENGTH = 6


def _find_identity(db, mobile_number: str):
    return fetch_one(
        db,
        """
        SELECT u.user_id, p.date_of_birth FROM users u
        LEFT JOIN profiles p ON p.user_id = u.user_id
        WHERE u.mobile_number = :m
        """,
        {"m": mobile_number}
    )


def verify_identity(body: PasswordResetRequest) -> dict:
    mobile_number = (body.mobile_number or "").strip()
    if not MOBILE_PATTERN.match(mobile_number):
        raise HTTPException(status_code=400, detail="Please enter a valid 10-digit mobile number")
    if not body.date_of_birth:
        raise HTTPException(status_code=400, detail="Date of birth is required")

    with get_db_session() as db:
        identity = _find_identity(db, mobile_number)

    if not identity:
        raise HTTPException(status_code=404, detail="No account found with this mobile number")
    if not identity["date_of_birth"]:
        raise HTTPException(status_code=400, detail="Password reset is not available. Please contact support.")
    if date_part(identity["date_of_birth"]) != date_part(body.date_of_birth):
        logger.info("Date of birth mismatch for user_id=%s", identity["user_id"])
        raise HTTPException(status_code=400, detail="Mobile number and date of birth do not match our records")

    return {
        "success": True,
        "message": "Identity verified successfully",
        "verified": True,
        "user_id": identity["user_id"],
    }


def reset_password(body: PasswordResetRequest) -> dict:
    mobile_number = (body.mobile_number or "").strip()
    if not mobile_number or not body.date_of_birth or not body.new_password:
        raise HTTPException(status_code=400, detail="Mobile number, date of birth, and new password are required")
    if len(body.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    with get_db_session() as db:
        identity = _find_identity(db, mobile_number)
        if (not identity or not identity["date_of_birth"]
                or date_part(identity["date_of_birth"]) != date_part(body.date_of_birth)):
            raise HTTPException(status_code=400, detail="Identity verification failed")

        db.execute(
            text("UPDATE users SET password_hash = :hash, updated_at = :now WHERE user_id = :uid"),
            {"hash": hash_password(body.new_password), "now": utcnow(), "uid": identity["user_id"]}
        )
        db.execute(
            text("UPDATE user_sessions SET is_active = FALSE WHERE user_id = :uid"),
            {"uid": identity["user_id"]}
        )

    logger.info("Password reset for user_id=%s", identity["user_id"])
    return {"success": True, "message": "Password reset successfully. Please sign in with your new password."}


ACTIONS = {
    "verify_identity": verify_identity,
    "reset_password": reset_password,
}


@router.post("")
async def password_reset(body: PasswordResetRequest):
    """Forgot-password flow (no session required)."""
    return dispatch(ACTIONS, body)
