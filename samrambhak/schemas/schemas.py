"""
Pydantic Schemas - Request/Response Validation

All handler request bodies and response shapes in one file for simplicity.
Request bodies carry an `action` string; every other field is optional at the
schema level and the handler for that action decides what is required.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


# ============================================================
# ENUMS
# ============================================================

class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class JobStatus(str, Enum):
    open = "open"
    closed = "closed"
    filled = "filled"


class AdminRole(str, Enum):
    super_admin = "super_admin"
    content_moderator = "content_moderator"
    category_manager = "category_manager"


class CommunityPermission(str, Enum):
    edit_community = "edit_community"
    create_polls = "create_polls"
    moderate_discussions = "moderate_discussions"
    manage_members = "manage_members"


class PromotionType(str, Enum):
    banner = "banner"
    poster = "poster"
    image = "image"
    video = "video"
    offer = "offer"


class ReplyType(str, Enum):
    contact_soon = "contact_soon"
    shortlisted = "shortlisted"
    not_selected = "not_selected"


class ReportStatus(str, Enum):
    pending = "pending"
    resolved = "resolved"
    dismissed = "dismissed"


class ActionRequest(BaseModel):
    action: str = Field(..., min_length=1)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class MobileAuthRequest(ActionRequest):
    mobile_number: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    date_of_birth: Optional[date] = None
    session_token: Optional[str] = None


class PasswordResetRequest(ActionRequest):
    mobile_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    new_password: Optional[str] = None


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileRequest(ActionRequest):
    user_id: Optional[int] = None
    username: Optional[str] = None
    full_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=200)
    date_of_birth: Optional[date] = None


class SendVerificationRequest(BaseModel):
    email: Optional[EmailStr] = None


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class AuthorSummary(BaseModel):
    user_id: int
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict, prefix: str = "author_") -> Optional["AuthorSummary"]:
        """Build from prefixed columns of a joined row, e.g. author_user_id, author_full_name."""
        user_id = row.get(f"{prefix}user_id")
        if user_id is None:
            return None
        return cls(
            user_id=user_id,
            full_name=row.get(f"{prefix}full_name"),
            username=row.get(f"{prefix}username"),
            avatar_url=row.get(f"{prefix}avatar_url"),
        )


class ContactSummary(AuthorSummary):
    mobile_number: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict, prefix: str = "applicant_") -> Optional["ContactSummary"]:
        base = AuthorSummary.from_row(row, prefix)
        if base is None:
            return None
        return cls(
            **base.model_dump(),
            mobile_number=row.get(f"{prefix}mobile_number"),
            email=row.get(f"{prefix}email"),
        )


class PublicProfileResponse(BaseModel):
    user_id: int
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    is_online: bool = False
    created_at: datetime


class ProfileResponse(PublicProfileResponse):
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    email: Optional[str] = None
    email_verified: bool = False
    updated_at: Optional[datetime] = None


# ============================================================
# POST SCHEMAS
# ============================================================

class PostRequest(ActionRequest):
    post_id: Optional[int] = None
    comment_id: Optional[int] = None
    business_id: Optional[int] = None
    content: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=50)


class PostResponse(BaseModel):
    post_id: int
    user_id: int
    business_id: Optional[int] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    is_hidden: bool = False
    hidden_reason: Optional[str] = None
    is_featured: bool = False
    created_at: datetime
    author: Optional[AuthorSummary] = None
    business_name: Optional[str] = None
    like_count: int = 0
    comment_count: int = 0
    is_liked: bool = False


class CommentResponse(BaseModel):
    comment_id: int
    post_id: int
    user_id: int
    content: str
    created_at: datetime
    author: Optional[AuthorSummary] = None


# ============================================================
# COMMUNITY SCHEMAS
# ============================================================

class CommunityRequest(ActionRequest):
    community_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    discussion_id: Optional[int] = None
    member_user_id: Optional[int] = None
    target_user_id: Optional[int] = None
    permission: Optional[str] = None
    content: Optional[str] = Field(None, max_length=5000)


class CommunityResponse(BaseModel):
    community_id: int
    name: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    created_by: int
    approval_status: str
    is_disabled: bool = False
    disabled_reason: Optional[str] = None
    created_at: datetime
    creator: Optional[AuthorSummary] = None
    member_count: int = 0
    is_member: bool = False


class MemberResponse(BaseModel):
    user_id: int
    role: str
    joined_at: datetime
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    permissions: List[str] = []


class DiscussionResponse(BaseModel):
    discussion_id: int
    community_id: int
    user_id: int
    content: str
    created_at: datetime
    author: Optional[AuthorSummary] = None


# ============================================================
# BUSINESS SCHEMAS
# ============================================================

class BusinessRequest(ActionRequest):
    business_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    website_url: Optional[str] = None
    instagram_link: Optional[str] = None
    youtube_link: Optional[str] = None
    search: Optional[str] = None


class BusinessResponse(BaseModel):
    business_id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    category: str
    location: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    website_url: Optional[str] = None
    instagram_link: Optional[str] = None
    youtube_link: Optional[str] = None
    approval_status: str
    is_featured: bool = False
    is_disabled: bool = False
    disabled_reason: Optional[str] = None
    created_at: datetime
    owner: Optional[AuthorSummary] = None
    follower_count: int = 0
    is_following: bool = False


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobRequest(ActionRequest):
    job_id: Optional[int] = None
    application_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    conditions: Optional[str] = None
    location: Optional[str] = None
    max_applications: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    status: Optional[JobStatus] = None
    message: Optional[str] = None
    education_qualification: Optional[str] = None
    experience_details: Optional[str] = None
    reply_type: Optional[str] = None


class JobResponse(BaseModel):
    job_id: int
    creator_id: int
    title: str
    description: str
    conditions: Optional[str] = None
    location: Optional[str] = None
    max_applications: Optional[int] = None
    expires_at: Optional[datetime] = None
    status: str
    approval_status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    creator: Optional[AuthorSummary] = None
    application_count: int = 0
    has_applied: bool = False


class JobSummary(BaseModel):
    job_id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: str
    approval_status: str
    creator_id: int
    creator: Optional[AuthorSummary] = None


class ApplicationResponse(BaseModel):
    application_id: int
    job_id: int
    applicant_id: int
    message: Optional[str] = None
    education_qualification: Optional[str] = None
    experience_details: Optional[str] = None
    creator_reply: Optional[str] = None
    replied_at: Optional[datetime] = None
    created_at: datetime
    applicant: Optional[ContactSummary] = None
    job: Optional[JobSummary] = None


# ============================================================
# PROMOTION SCHEMAS
# ============================================================

class PromotionRequest(ActionRequest):
    promotion_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    content_type: Optional[PromotionType] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PromotionResponse(BaseModel):
    promotion_id: int
    title: str
    description: Optional[str] = None
    content_type: str
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None
    is_active: bool
    display_order: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class AdminManageRequest(ActionRequest):
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    updates: Optional[dict] = None
    limit: int = Field(100, ge=1, le=500)


class AdminPostRequest(ActionRequest):
    post_id: Optional[int] = None
    report_id: Optional[int] = None
    reason: Optional[str] = None
    status: Optional[ReportStatus] = None


class BlockedWordsRequest(ActionRequest):
    word_id: Optional[int] = None
    word: Optional[str] = Field(None, max_length=100)
    words: Optional[List[str]] = None
    is_active: Optional[bool] = None


class BlockedWordResponse(BaseModel):
    word_id: int
    word: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ReportResponse(BaseModel):
    report_id: int
    reporter_id: int
    reported_type: str
    reported_id: int
    reason: str
    description: Optional[str] = None
    status: str
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    reporter: Optional[AuthorSummary] = None
    post_content: Optional[str] = None


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationRequest(ActionRequest):
    notification_id: Optional[int] = None


class NotificationResponse(BaseModel):
    notification_id: int
    user_id: int
    type: str
    title: str
    body: Optional[str] = None
    data: Optional[dict] = None
    is_read: bool
    created_at: datetime

    @field_validator("data", mode="before")
    @classmethod
    def decode_data(cls, value: Any):
        if isinstance(value, str):
            return json.loads(value) if value else None
        return value
