"""
Profile Service - shared profile lookups and username rules.
"""

import re
from typing import Optional

from fastapi import HTTPException

from samrambhak.db.postgres import fetch_one
from samrambhak.schemas.schemas import ProfileResponse, PublicProfileResponse

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,30}$")
USERNAME_RULES = "Username must be 3-30 characters and only contain letters, numbers, and underscores"

PROFILE_COLUMNS = """
    user_id, full_name, username, mobile_number, date_of_birth, email, email_verified,
    avatar_url, bio, location, is_online, created_at, updated_at
"""

# Fields counted by the profile completion banner
COMPLETION_FIELDS = ["full_name", "username", "avatar_url", "bio", "location", "date_of_birth", "email"]


def normalize_username(username: str) -> str:
    """Validate format and return the stored (lower-cased) form."""
    username = (username or "").strip()
    if not USERNAME_PATTERN.match(username):
        raise HTTPException(status_code=400, detail=USERNAME_RULES)
    return username.lower()


def username_taken(db, username: str, exclude_user_id: int = None) -> bool:
    row = fetch_one(
        db,
        "SELECT user_id FROM profiles WHERE username = :username",
        {"username": username}
    )
    return bool(row) and row["user_id"] != exclude_user_id


def get_profile_row(db, user_id: int = None, username: str = None) -> Optional[dict]:
    if user_id is not None:
        return fetch_one(db, f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE user_id = :uid", {"uid": user_id})
    if username:
        return fetch_one(
            db, f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE username = :username",
            {"username": username.strip().lower()}
        )
    return None


def to_profile(row: dict) -> ProfileResponse:
    return ProfileResponse(**row)


def to_public_profile(row: dict) -> PublicProfileResponse:
    return PublicProfileResponse(**{k: row[k] for k in PublicProfileResponse.model_fields})


def profile_completion(row: dict) -> dict:
    """Percentage of completion fields filled plus the missing ones."""
    missing = [field for field in COMPLETION_FIELDS if not row.get(field)]
    filled = len(COMPLETION_FIELDS) - len(missing)
    return {
        "percentage": round(filled * 100 / len(COMPLETION_FIELDS)),
        "missing_fields": missing,
        "is_complete": not missing,
    }
