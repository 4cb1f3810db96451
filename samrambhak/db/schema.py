"""
Relational schema - SQLAlchemy Core table definitions.

Handlers talk to these tables with text() SQL; the definitions here exist so
the schema can be created (scripts/init_db.py, tests) and so the constraints
live in one place:
- unique mobile number and username
- one like / report / application / membership per user
- approval_status defaults to 'pending'
"""

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, MetaData, String,
    Table, Text, UniqueConstraint, true, false,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

metadata = MetaData()


class utc_now(FunctionElement):
    """Current time as naive UTC, matching the timestamps handlers write."""
    type = DateTime()
    inherit_cache = True


@compiles(utc_now)
def _utc_now_default(element, compiler, **kw):
    # SQLite CURRENT_TIMESTAMP is already UTC
    return "CURRENT_TIMESTAMP"


@compiles(utc_now, "postgresql")
def _utc_now_postgresql(element, compiler, **kw):
    return "TIMEZONE('utc', CURRENT_TIMESTAMP)"


def _timestamps():
    return [
        Column("created_at", DateTime, nullable=False, server_default=utc_now()),
        Column("updated_at", DateTime, nullable=False, server_default=utc_now()),
    ]


# ============================================================
# USERS, PROFILES, SESSIONS, ROLES
# ============================================================

users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True),
    Column("mobile_number", String(15), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    *_timestamps(),
)

profiles = Table(
    "profiles", metadata,
    Column("user_id", Integer, ForeignKey("users.user_id"), primary_key=True),
    Column("full_name", String(100)),
    Column("username", String(30), unique=True),
    Column("mobile_number", String(15)),
    Column("date_of_birth", Date),
    Column("email", String(255)),
    Column("email_verified", Boolean, nullable=False, server_default=false()),
    Column("avatar_url", String(500)),
    Column("bio", Text),
    Column("location", String(200)),
    Column("is_online", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)

user_sessions = Table(
    "user_sessions", metadata,
    Column("session_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("session_token", String(64), nullable=False, unique=True),
    Column("expires_at", DateTime, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
)

user_roles = Table(
    "user_roles", metadata,
    Column("role_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("role", String(30), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("user_id", "role"),
)


# ============================================================
# POSTS, LIKES, COMMENTS, REPORTS, BLOCKED WORDS
# ============================================================

posts = Table(
    "posts", metadata,
    Column("post_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("business_id", Integer, ForeignKey("businesses.business_id")),
    Column("content", Text),
    Column("image_url", String(500)),
    Column("youtube_url", String(500)),
    Column("is_hidden", Boolean, nullable=False, server_default=false()),
    Column("hidden_at", DateTime),
    Column("hidden_reason", Text),
    Column("is_featured", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)

post_likes = Table(
    "post_likes", metadata,
    Column("like_id", Integer, primary_key=True),
    Column("post_id", Integer, ForeignKey("posts.post_id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("post_id", "user_id"),
)

comments = Table(
    "comments", metadata,
    Column("comment_id", Integer, primary_key=True),
    Column("post_id", Integer, ForeignKey("posts.post_id"), nullable=False, index=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
)

reports = Table(
    "reports", metadata,
    Column("report_id", Integer, primary_key=True),
    Column("reporter_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("reported_type", String(20), nullable=False),
    Column("reported_id", Integer, nullable=False),
    Column("reason", String(50), nullable=False),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("resolved_by", Integer, ForeignKey("users.user_id")),
    Column("resolved_at", DateTime),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("reporter_id", "reported_type", "reported_id"),
)

blocked_words = Table(
    "blocked_words", metadata,
    Column("word_id", Integer, primary_key=True),
    Column("word", String(100), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    *_timestamps(),
)


# ============================================================
# COMMUNITIES
# ============================================================

communities = Table(
    "communities", metadata,
    Column("community_id", Integer, primary_key=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("cover_image_url", String(500)),
    Column("created_by", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("approval_status", String(20), nullable=False, server_default="pending"),
    Column("is_disabled", Boolean, nullable=False, server_default=false()),
    Column("disabled_at", DateTime),
    Column("disabled_reason", Text),
    *_timestamps(),
)

community_members = Table(
    "community_members", metadata,
    Column("member_id", Integer, primary_key=True),
    Column("community_id", Integer, ForeignKey("communities.community_id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("role", String(20), nullable=False, server_default="member"),
    Column("joined_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("community_id", "user_id"),
)

community_permissions = Table(
    "community_permissions", metadata,
    Column("permission_id", Integer, primary_key=True),
    Column("community_id", Integer, ForeignKey("communities.community_id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("permission", String(40), nullable=False),
    Column("granted_by", Integer, ForeignKey("users.user_id")),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("community_id", "user_id", "permission"),
)

community_discussions = Table(
    "community_discussions", metadata,
    Column("discussion_id", Integer, primary_key=True),
    Column("community_id", Integer, ForeignKey("communities.community_id"), nullable=False, index=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
)


# ============================================================
# BUSINESSES
# ============================================================

businesses = Table(
    "businesses", metadata,
    Column("business_id", Integer, primary_key=True),
    Column("owner_id", Integer, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("category", String(50), nullable=False, server_default="other"),
    Column("location", String(200)),
    Column("logo_url", String(500)),
    Column("cover_image_url", String(500)),
    Column("website_url", String(500)),
    Column("instagram_link", String(500)),
    Column("youtube_link", String(500)),
    Column("approval_status", String(20), nullable=False, server_default="pending"),
    Column("is_featured", Boolean, nullable=False, server_default=false()),
    Column("is_disabled", Boolean, nullable=False, server_default=false()),
    Column("disabled_reason", Text),
    *_timestamps(),
)

business_follows = Table(
    "business_follows", metadata,
    Column("follow_id", Integer, primary_key=True),
    Column("business_id", Integer, ForeignKey("businesses.business_id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("business_id", "user_id"),
)


# ============================================================
# JOBS
# ============================================================

jobs = Table(
    "jobs", metadata,
    Column("job_id", Integer, primary_key=True),
    Column("creator_id", Integer, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False),
    Column("conditions", Text),
    Column("location", String(200)),
    Column("max_applications", Integer),
    Column("expires_at", DateTime),
    Column("status", String(20), nullable=False, server_default="open"),
    Column("approval_status", String(20), nullable=False, server_default="pending"),
    *_timestamps(),
)

job_applications = Table(
    "job_applications", metadata,
    Column("application_id", Integer, primary_key=True),
    Column("job_id", Integer, ForeignKey("jobs.job_id"), nullable=False, index=True),
    Column("applicant_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("message", Text),
    Column("education_qualification", Text),
    Column("experience_details", Text),
    Column("creator_reply", Text),
    Column("replied_at", DateTime),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
    UniqueConstraint("job_id", "applicant_id"),
)


# ============================================================
# PROMOTIONS, NOTIFICATIONS
# ============================================================

promotional_content = Table(
    "promotional_content", metadata,
    Column("promotion_id", Integer, primary_key=True),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("content_type", String(20), nullable=False),
    Column("image_url", String(500)),
    Column("video_url", String(500)),
    Column("link_url", String(500)),
    Column("link_text", String(100)),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("display_order", Integer, nullable=False, server_default="0"),
    Column("start_date", DateTime),
    Column("end_date", DateTime),
    Column("created_by", Integer, ForeignKey("users.user_id")),
    *_timestamps(),
)

notifications = Table(
    "notifications", metadata,
    Column("notification_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("type", String(40), nullable=False),
    Column("title", String(200), nullable=False),
    Column("body", Text),
    Column("data", Text),  # JSON-encoded payload
    Column("is_read", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime, nullable=False, server_default=utc_now()),
)


def init_schema(engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
