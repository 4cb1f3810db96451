"""
Mobile Auth Routes

POST /mobile-auth  {action: ...}
    signup           - Register with mobile number + password, returns session token
    signin           - Login, returns session token and admin roles
    signout          - Deactivate the presented session
    validate_session - Profile for the presented session
    admin_validate   - Profile + roles for a session token (admin panel)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from samrambhak.api.dispatch import dispatch
from samrambhak.core.auth import (
    hash_password, verify_password, create_session, resolve_session,
    get_user_roles, get_optional_user, require_user, session_header,
)
from samrambhak.db.postgres import get_db_session, fetch_one
from samrambhak.schemas.schemas import MobileAuthRequest
from samrambhak.services.profile_service import (
    normalize_username, username_taken, get_profile_row, to_profile,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mobile-auth", tags=["Authentication"])


def _require_credentials(body: MobileAuthRequest):
    mobile_number = (body.mobile_number or "").strip()
    if not mobile_number or not body.password:
        raise HTTPException(status_code=400, detail="Mobile number and password are required")
    return mobile_number, body.password


def _duplicate_message(exc: IntegrityError) -> str:
    if "mobile_number" in str(exc.orig):
        return "This mobile number is already registered"
    return "This username is already taken"


def signup(body: MobileAuthRequest, user: Optional[dict]) -> dict:
    """
    Register a new user.

    Creates the credentials row, the profile and a first session.
    """
    mobile_number, password = _require_credentials(body)
    full_name = (body.full_name or "").strip()
    if not full_name or not (body.username or "").strip():
        raise HTTPException(status_code=400, detail="Full name and username are required for signup")
    username = normalize_username(body.username)

    with get_db_session() as db:
        if fetch_one(db, "SELECT user_id FROM users WHERE mobile_number = :m", {"m": mobile_number}):
            raise HTTPException(status_code=400, detail="This mobile number is already registered")
        if username_taken(db, username):
            raise HTTPException(status_code=400, detail="This username is already taken")

        try:
            result = db.execute(
                text("""
                    INSERT INTO users (mobile_number, password_hash, is_active)
                    VALUES (:mobile, :hash, TRUE)
                    RETURNING user_id
                """),
                {"mobile": mobile_number, "hash": hash_password(password)}
            )
            user_id = result.fetchone()[0]

            db.execute(
                text("""
                    INSERT INTO profiles (user_id, full_name, username, mobile_number, date_of_birth)
                    VALUES (:uid, :full_name, :username, :mobile, :dob)
                """),
                {"uid": user_id, "full_name": full_name, "username": username,
                 "mobile": mobile_number, "dob": body.date_of_birth}
            )
        except IntegrityError as exc:
            # lost a race with a concurrent signup
            raise HTTPException(status_code=400, detail=_duplicate_message(exc))
        token = create_session(db, user_id)

    logger.info("New user registered: user_id=%s", user_id)
    return {
        "success": True,
        "user": {"user_id": user_id, "mobile_number": mobile_number, "full_name": full_name, "username": username},
        "session_token": token,
    }


def signin(body: MobileAuthRequest, user: Optional[dict]) -> dict:
    """
    Login with mobile number + password.

    Other sessions of the same user stay valid (several devices / admin panel).
    """
    mobile_number, password = _require_credentials(body)

    with get_db_session() as db:
        credentials = fetch_one(
            db,
            "SELECT user_id, password_hash, is_active FROM users WHERE mobile_number = :m",
            {"m": mobile_number}
        )
        if not credentials or not verify_password(password, credentials["password_hash"]):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid mobile number or password")
        if not credentials["is_active"]:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")

        user_id = credentials["user_id"]
        token = create_session(db, user_id)
        db.execute(text("UPDATE profiles SET is_online = TRUE WHERE user_id = :uid"), {"uid": user_id})
        profile = get_profile_row(db, user_id=user_id)
        roles = get_user_roles(db, user_id)

    logger.info("User signed in: user_id=%s", user_id)
    return {
        "success": True,
        "user": to_profile(profile) if profile else {"user_id": user_id, "mobile_number": mobile_number},
        "session_token": token,
        "roles": roles,
    }


def signout(body: MobileAuthRequest, user: Optional[dict]) -> dict:
    user = require_user(user)
    with get_db_session() as db:
        db.execute(
            text("UPDATE user_sessions SET is_active = FALSE WHERE session_token = :token"),
            {"token": user["session_token"]}
        )
        db.execute(text("UPDATE profiles SET is_online = FALSE WHERE user_id = :uid"), {"uid": user["user_id"]})
    return {"success": True, "message": "Signed out"}


def validate_session(body: MobileAuthRequest, user: Optional[dict]) -> dict:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    with get_db_session() as db:
        profile = get_profile_row(db, user_id=user["user_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, "user": to_profile(profile), "roles": user["roles"]}


def admin_validate(body: MobileAuthRequest, user: Optional[dict], header_token: Optional[str]) -> dict:
    """Admin panel bootstrap: the token may come in the body or the header."""
    token = (body.session_token or header_token or "").strip()
    if not token:
        raise HTTPException(status_code=400, detail="Session token is required")
    session_row = resolve_session(token)
    if not session_row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    if not session_row["is_active"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")

    with get_db_session() as db:
        profile = get_profile_row(db, user_id=session_row["user_id"])
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        roles = get_user_roles(db, session_row["user_id"])
    return {"success": True, "user": to_profile(profile), "roles": roles}


ACTIONS = {
    "signup": signup,
    "signin": signin,
    "signout": signout,
    "validate_session": validate_session,
}


@router.post("")
async def mobile_auth(
    body: MobileAuthRequest,
    token: Optional[str] = Depends(session_header),
    user: Optional[dict] = Depends(get_optional_user),
):
    """Mobile number + password authentication."""
    if body.action == "admin_validate":
        return admin_validate(body, user, token)
    return dispatch(ACTIONS, body, user)
