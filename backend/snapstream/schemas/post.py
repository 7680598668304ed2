"""
Snapstream Backend — Post, Comment & Explore Schemas
======================================================

What:  Response models for feed items, comments, likes, trending and search,
       plus the comment request body.
Why:   A post never carries its image bytes; clients load `image_url`
       separately, which keeps feed pages small and cacheable.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapstream.schemas.common import PageMeta
from snapstream.schemas.user import PublicProfile, UserSummary

COMMENT_MAX_LENGTH = 500
CAPTION_MAX_LENGTH = 1000


class CommentRequest(BaseModel):
    """
    Text is trimmed here; the empty-after-trim case is rejected by
    InteractionService so the error carries a specific message.
    """
    model_config = ConfigDict(extra="forbid")

    text: str = Field(default="", description="Comment body, 1-500 characters after trimming")

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if len(v) > COMMENT_MAX_LENGTH:
            raise ValueError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters")
        return v


class CommentResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    username: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    """
    What:  A feed item.
    Who:   Returned by every feed, profile, upload and explore listing.

    Why counts instead of arrays:
        Like lists grow without bound; the client only needs the number and
        whether the viewer is one of them.
    """
    id: uuid.UUID = Field(description="Post identifier")
    image_url: str = Field(description="URL path serving the stored image")
    original_name: str = Field(description="File name as uploaded")
    content_type: str
    size: int = Field(description="Image size in bytes")
    caption: str
    tags: List[str]
    is_private: bool
    upload_time: datetime
    uploader: UserSummary
    like_count: int
    comment_count: int
    is_liked: bool = Field(default=False, description="Whether the viewer likes this post")


class PostDetailResponse(PostResponse):
    comments: List[CommentResponse] = Field(description="Oldest first")


class FeedResponse(PageMeta):
    posts: List[PostResponse]


class UploadResponse(BaseModel):
    message: str = "File uploaded successfully"
    post: PostResponse


class LikeResponse(BaseModel):
    message: str = Field(description="'Post liked' or 'Post unliked'")
    likes: int = Field(description="Like count after the toggle")
    is_liked: bool


class AddCommentResponse(BaseModel):
    message: str = "Comment added successfully"
    comment: CommentResponse
    total_comments: int


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total_comments: int


class DeleteCommentResponse(BaseModel):
    message: str = "Comment deleted successfully"
    total_comments: int


class ProfileResponse(BaseModel):
    """
    GET /api/profile/{username}. When the viewer may not see the account,
    `posts` is empty and `can_view` is false; the profile card still renders.
    """
    user: PublicProfile
    posts: List[PostResponse]
    can_view: bool
    is_own_profile: bool


# ══════════════════════════════════════════════════════════════════════════
# Explore
# ══════════════════════════════════════════════════════════════════════════


class TrendingPost(PostResponse):
    engagement_score: int = Field(description="likes + 2 x comments")


class TrendingResponse(BaseModel):
    posts: List[TrendingPost]


class PopularUser(UserSummary):
    bio: str = ""
    follower_count: int
    following_count: int
    post_count: int = Field(description="Public posts only")
    popularity_score: int = Field(description="followers + 5 x public posts")


class PopularUsersResponse(BaseModel):
    users: List[PopularUser]


class SearchResponse(BaseModel):
    query: str
    type: str
    posts: List[PostResponse] = Field(default_factory=list)
    users: List[UserSummary] = Field(default_factory=list)
