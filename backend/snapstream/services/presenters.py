"""
Snapstream Backend — ORM → Response Projections
=================================================

What:  Functions that turn User/Post/Comment rows into response models.
Why:   Several services render the same objects (a post looks the same in the
       feed, on a profile and in explore); one projection keeps them in sync
       and guarantees no password hash or binary payload leaks into a response.
"""

import uuid
from typing import Optional

from snapstream.models.post import Comment, Post
from snapstream.models.user import User
from snapstream.schemas.post import CommentResponse, PostDetailResponse, PostResponse
from snapstream.schemas.user import UserSummary


def image_url(post: Post) -> str:
    return f"/api/upload/{post.id}"


def profile_picture_url(user: User) -> Optional[str]:
    if not user.profile_picture:
        return None
    return f"/api/profile/{user.username}/picture"


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        username=user.username,
        profile_picture_url=profile_picture_url(user),
    )


def post_response(post: Post, viewer_id: Optional[uuid.UUID] = None) -> PostResponse:
    return PostResponse(**_post_fields(post, viewer_id))


def post_detail_response(post: Post, viewer_id: Optional[uuid.UUID] = None) -> PostDetailResponse:
    return PostDetailResponse(
        **_post_fields(post, viewer_id),
        comments=[comment_response(c) for c in post.comments],
    )


def comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse.model_validate(comment)


def _post_fields(post: Post, viewer_id: Optional[uuid.UUID]) -> dict:
    return {
        "id": post.id,
        "image_url": image_url(post),
        "original_name": post.original_name,
        "content_type": post.content_type,
        "size": post.size,
        "caption": post.caption,
        "tags": list(post.tags or []),
        "is_private": post.is_private,
        "upload_time": post.upload_time,
        "uploader": user_summary(post.uploader),
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "is_liked": post.is_liked_by(viewer_id),
    }
