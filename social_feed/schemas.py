"""
Pydantic request / response schemas.
Kept separate from ORM models to avoid coupling transport to storage.
Service modules return these view types; routers serialise them as-is.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ──────────────────────────── Pagination ──────────────────────────────────

class Pagination(BaseModel):
    page: int
    limit: int
    has_more: bool
    # Only listings that already count their rows report a total
    total: Optional[int] = None


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    full_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class FollowCounts(BaseModel):
    followers_count: int
    following_count: int


class UserSummary(BaseModel):
    """A user as seen by a viewer: search results and profiles."""
    id: int
    username: str
    full_name: Optional[str]
    created_at: datetime
    is_following: bool = False
    followers_count: int = 0
    following_count: int = 0


class FollowEntry(BaseModel):
    user: UserResponse
    created_at: datetime


class FollowResponse(BaseModel):
    id: int
    follower_id: int
    following_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class UserPage(BaseModel):
    users: list[UserSummary]
    pagination: Pagination


class FollowPage(BaseModel):
    users: list[FollowEntry]
    pagination: Pagination


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    media_url: Optional[str] = Field(None, max_length=500)
    comments_enabled: bool = True


class PostCounts(BaseModel):
    like_count: int = 0
    comment_count: int = 0


class PostView(BaseModel):
    """A post joined with its author and interaction counts."""
    id: int
    user_id: int
    username: Optional[str]
    full_name: Optional[str]
    content: str
    media_url: Optional[str]
    comments_enabled: bool
    created_at: datetime
    is_deleted: bool = False
    like_count: int = 0
    comment_count: int = 0
    user_has_liked: bool = False


class PostPage(BaseModel):
    posts: list[PostView]
    pagination: Pagination


# ──────────────────────────── Likes ───────────────────────────────────────

class LikeResponse(BaseModel):
    id: int
    user_id: int
    post_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class LikeResult(BaseModel):
    like: Optional[LikeResponse] = None
    like_count: int


class LikeEntry(BaseModel):
    id: int
    user: UserResponse
    created_at: datetime


class LikePage(BaseModel):
    likes: list[LikeEntry]
    user_has_liked: bool
    pagination: Pagination


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentView(BaseModel):
    id: int
    post_id: int
    user_id: int
    username: Optional[str] = None
    full_name: Optional[str] = None
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class CommentResult(BaseModel):
    comment: Optional[CommentView] = None
    comment_count: int


class CommentPage(BaseModel):
    comments: list[CommentView]
    pagination: Pagination
