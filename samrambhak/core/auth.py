"""
Authentication Utility - passwords, session tokens and access dependencies.

Provides:
- Password hashing with bcrypt
- Opaque session tokens stored in user_sessions (30 day lifetime)
- Signed email-verification tokens (JWT)
- FastAPI dependencies for protected handlers
"""

import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import text

from samrambhak.core.config import get_settings
from samrambhak.db.postgres import get_db_session, fetch_one, fetch_all
from samrambhak.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Session token extractor
session_header = APIKeyHeader(name="X-Session-Token", auto_error=False)

SUPER_ADMIN = "super_admin"
ADMIN_ROLES = ("super_admin", "content_moderator", "category_manager")

EMAIL_TOKEN_PURPOSE = "email_verification"


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unknown / malformed hash
        return False


def generate_session_token() -> str:
    return secrets.token_hex(32)


def create_session(db, user_id: int) -> str:
    """Insert a new active session for the user and return its token."""
    settings = get_settings()
    token = generate_session_token()
    db.execute(
        text("""
            INSERT INTO user_sessions (user_id, session_token, expires_at, is_active)
            VALUES (:uid, :token, :expires, TRUE)
        """),
        {"uid": user_id, "token": token, "expires": utcnow() + timedelta(days=settings.session_lifetime_days)}
    )
    return token


def resolve_session(token: Optional[str]) -> Optional[dict]:
    """
    Look up an active, unexpired session.
    Returns {"user_id", "is_active"} for the owning user, or None.
    """
    if not token:
        return None
    with get_db_session() as db:
        return fetch_one(
            db,
            """
            SELECT s.user_id, u.is_active FROM user_sessions s
            JOIN users u ON u.user_id = s.user_id
            WHERE s.session_token = :token AND s.is_active = TRUE AND s.expires_at > :now
            """,
            {"token": token, "now": utcnow()}
        )


def get_user_roles(db, user_id: int) -> List[str]:
    rows = fetch_all(db, "SELECT role FROM user_roles WHERE user_id = :uid ORDER BY role", {"uid": user_id})
    return [r["role"] for r in rows]


def _load_user(session_row: dict, token: str) -> dict:
    if not session_row["is_active"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")
    with get_db_session() as db:
        roles = get_user_roles(db, session_row["user_id"])
    return {"user_id": session_row["user_id"], "roles": roles, "session_token": token}


async def get_optional_user(token: Optional[str] = Depends(session_header)) -> Optional[dict]:
    """
    Dependency - caller if a valid session is presented, else None.
    Public handlers use this and tighten per action.
    A session of a deactivated account counts as anonymous here.
    """
    session_row = resolve_session(token)
    if not session_row or not session_row["is_active"]:
        return None
    return _load_user(session_row, token)


async def get_current_user(token: Optional[str] = Depends(session_header)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.post("")
        async def handler(user: dict = Depends(get_current_user)):
            return user
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No session token provided")
    session_row = resolve_session(token)
    if not session_row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    return _load_user(session_row, token)


def require_user(user: Optional[dict]) -> dict:
    """Per-action guard for handlers that mix public and private actions."""
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def is_admin(user: Optional[dict]) -> bool:
    return bool(user) and any(role in ADMIN_ROLES for role in user["roles"])


def has_admin_role(user: dict, role: str) -> bool:
    return role in user["roles"] or SUPER_ADMIN in user["roles"]


async def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require any admin role."""
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized: Admin access required")
    return user


def require_admin_role(role: str):
    """
    Dependency factory - Require a specific admin role (super_admin always passes).

    Usage:
        user: dict = Depends(require_admin_role("content_moderator"))
    """
    async def dependency(user: dict = Depends(get_current_admin)) -> dict:
        if not has_admin_role(user, role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unauthorized: {role} role required")
        return user
    return dependency


def create_email_verification_token(user_id: int, email: str) -> str:
    """Signed, expiring token embedded in the verification link."""
    settings = get_settings()
    payload = {
        "sub": str(user_id),
        "email": email,
        "purpose": EMAIL_TOKEN_PURPOSE,
        "exp": utcnow() + timedelta(hours=settings.email_token_expire_hours),
    }
    return jwt.encode(payload, settings.email_token_secret, algorithm=settings.email_token_algorithm)


def decode_email_verification_token(token: str) -> Optional[dict]:
    """Decode and verify the token. Returns None if invalid, expired or not a verification token."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.email_token_secret, algorithms=[settings.email_token_algorithm])
    except JWTError:
        return None
    if payload.get("purpose") != EMAIL_TOKEN_PURPOSE or not payload.get("sub"):
        return None
    return payload
