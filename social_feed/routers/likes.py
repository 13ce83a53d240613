"""
Like endpoints:
  POST   /likes/post/{post_id} — like a post
  DELETE /likes/post/{post_id} — remove the caller's like
  GET    /likes/post/{post_id} — who liked a post (auth optional)
  GET    /likes/my             — posts the caller liked
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.auth import optional_viewer, require_viewer
from social_feed.database import get_db
from social_feed.interactions import InteractionAggregator
from social_feed.pagination import page_request
from social_feed.posts import PostService
from social_feed.schemas import LikePage, LikeResponse, LikeResult, Pagination, PostPage

router = APIRouter()


@router.post("/post/{post_id}", response_model=LikeResult, status_code=status.HTTP_201_CREATED)
async def like_post(
    post_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    aggregator = InteractionAggregator(db)
    like = await aggregator.like(viewer_id, post_id)
    return LikeResult(
        like=LikeResponse.model_validate(like),
        like_count=await aggregator.like_count(post_id),
    )


@router.delete("/post/{post_id}", response_model=LikeResult)
async def unlike_post(
    post_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    aggregator = InteractionAggregator(db)
    await aggregator.unlike(viewer_id, post_id)
    return LikeResult(like_count=await aggregator.like_count(post_id))


@router.get("/post/{post_id}", response_model=LikePage)
async def post_likes(
    post_id: int,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: Optional[int] = Depends(optional_viewer),
    db: AsyncSession = Depends(get_db),
):
    request = page_request(page, limit)
    aggregator = InteractionAggregator(db)
    likes = await aggregator.list_post_likes(post_id, request)
    user_has_liked = viewer_id is not None and await aggregator.has_liked(viewer_id, post_id)
    return LikePage(
        likes=likes,
        user_has_liked=user_has_liked,
        pagination=Pagination(
            page=request.page,
            limit=request.page_size,
            has_more=request.has_more(len(likes)),
            total=await aggregator.like_count(post_id),
        ),
    )


@router.get("/my", response_model=PostPage)
async def my_likes(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await PostService(db).list_liked_posts(viewer_id, viewer_id, page_request(page, limit))
