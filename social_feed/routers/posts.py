"""
Post endpoints:
  POST   /posts                 — create a post
  GET    /posts/search?q=       — content search, newest first
  GET    /posts/my              — the caller's posts
  GET    /posts/user/{user_id}  — one author's posts
  GET    /posts/{post_id}       — fetch a single post (deleted rows flagged)
  DELETE /posts/{post_id}       — soft-delete, owner only
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.auth import optional_viewer, require_viewer
from social_feed.database import get_db
from social_feed.pagination import page_request
from social_feed.posts import PostService
from social_feed.schemas import PostCreate, PostPage, PostView
from social_feed.search import SearchRanker

router = APIRouter()


@router.post("/", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await PostService(db).create_post(
        author_id=viewer_id,
        content=body.content,
        media_url=body.media_url,
        comments_enabled=body.comments_enabled,
    )


@router.get("/search", response_model=PostPage)
async def search_posts(
    q: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: Optional[int] = Depends(optional_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await SearchRanker(db).search_posts(q, viewer_id, page, limit)


@router.get("/my", response_model=PostPage)
async def my_posts(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await PostService(db).list_user_posts(viewer_id, viewer_id, page_request(page, limit))


@router.get("/user/{user_id}", response_model=PostPage)
async def user_posts(
    user_id: int,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: Optional[int] = Depends(optional_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await PostService(db).list_user_posts(user_id, viewer_id, page_request(page, limit))


@router.get("/{post_id}", response_model=PostView)
async def get_post(
    post_id: int,
    viewer_id: Optional[int] = Depends(optional_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await PostService(db).get_post(post_id, viewer_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    await PostService(db).delete_post(post_id, viewer_id)
