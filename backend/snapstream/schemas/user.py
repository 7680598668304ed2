"""
Snapstream Backend — Account & Profile Schemas
================================================

What:  Request DTOs for register/login/password/profile updates and the
       response models that project a User.
Why:   The User row holds a password hash and an email address; these models
       decide exactly which fields leave the server for which viewer.

Projections:
    UserSummary      → embedded in posts, search results, chat participants
    PublicProfile    → GET /api/profile/{username} (any viewer)
    OwnProfile       → GET /api/profile/me (adds email)

Request rules:
    username  3-30 characters, letters, digits and underscore; not a
              fixed /api/profile path segment such as "search"
    password  at least 6 characters with an upper-case letter, a lower-case
              letter and a digit
    Unknown body fields are rejected (extra="forbid").
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")
PASSWORD_MIN_LENGTH = 6

# Path segments under /api/profile that would shadow a profile at /api/profile/{username}
RESERVED_USERNAMES = frozenset({"search", "update", "picture", "me", "follow", "follow-status"})


def check_password_strength(value: str) -> str:
    """Shared by registration and password change."""
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", value) or not re.search(r"[A-Z]", value) or not re.search(r"\d", value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(description="3-30 letters, digits or underscores")
    email: EmailStr = Field(description="Login identifier")
    password: str = Field(description="At least 6 characters, mixed case and a digit")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be 3-30 characters and contain only letters, numbers, and underscores"
            )
        if v.lower() in RESERVED_USERNAMES:
            raise ValueError("This username is reserved")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class ProfileUpdateRequest(BaseModel):
    """
    Only bio and the private-account flag are editable. Omitted fields are
    left unchanged, so the client can flip privacy without resending the bio.
    """
    model_config = ConfigDict(extra="forbid")

    bio: Optional[str] = Field(default=None, max_length=500)
    is_private_account: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(BaseModel):
    id: uuid.UUID = Field(description="User identifier")
    username: str
    profile_picture_url: Optional[str] = Field(
        default=None, description="URL of the profile picture, null when none is set"
    )


class PublicProfile(UserSummary):
    bio: str = ""
    is_private_account: bool = False
    created_at: datetime
    follower_count: int = 0
    following_count: int = 0
    post_count: int = 0
    is_following: bool = Field(default=False, description="Whether the viewer follows this user")


class OwnProfile(PublicProfile):
    email: str


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserSummary


class TokenResponse(BaseModel):
    token: str = Field(description="Bearer token; send as 'Authorization: Bearer <token>'")
    username: str
    user_id: uuid.UUID


class MeResponse(BaseModel):
    user: OwnProfile


class ProfileUpdateResponse(BaseModel):
    message: str = "Profile updated successfully"
    user: OwnProfile


class FollowResponse(BaseModel):
    message: str
    is_following: bool


class FollowStatusResponse(BaseModel):
    is_following: bool


class UserSearchResponse(BaseModel):
    users: List[UserSummary]


class ProfilePictureResponse(BaseModel):
    message: str = "Profile picture updated successfully"
    profile_picture_url: str
