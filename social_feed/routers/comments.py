"""
Comment endpoints:
  POST   /comments/post/{post_id} — comment on a post
  GET    /comments/post/{post_id} — list a post's comments
  PUT    /comments/{comment_id}   — edit own comment
  DELETE /comments/{comment_id}   — delete own comment
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.auth import require_viewer
from social_feed.comments import CommentService
from social_feed.database import get_db
from social_feed.pagination import page_request
from social_feed.schemas import CommentCreate, CommentPage, CommentResult, CommentView

router = APIRouter()


@router.post("/post/{post_id}", response_model=CommentResult, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    body: CommentCreate,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await CommentService(db).create_comment(viewer_id, post_id, body.content)


@router.get("/post/{post_id}", response_model=CommentPage)
async def list_comments(
    post_id: int,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await CommentService(db).list_comments(post_id, page_request(page, limit))


@router.put("/{comment_id}", response_model=CommentView)
async def update_comment(
    comment_id: int,
    body: CommentCreate,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await CommentService(db).update_comment(comment_id, viewer_id, body.content)


@router.delete("/{comment_id}", response_model=CommentResult)
async def delete_comment(
    comment_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await CommentService(db).delete_comment(comment_id, viewer_id)
