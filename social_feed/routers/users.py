"""
User and social-graph endpoints:
  POST   /users                    — register a user
  GET    /users/search?q=          — tiered user search
  GET    /users/following          — who the caller follows
  GET    /users/followers          — who follows the caller
  GET    /users/stats              — the caller's follower / following counts
  GET    /users/stats/{user_id}    — follower / following counts
  GET    /users/{user_id}          — profile with counts
  POST   /users/follow/{user_id}   — follow
  DELETE /users/unfollow/{user_id} — unfollow
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.auth import optional_viewer, require_viewer
from social_feed.database import get_db
from social_feed.graph import SocialGraph
from social_feed.pagination import page_request
from social_feed.schemas import (
    FollowCounts,
    FollowPage,
    FollowResponse,
    Pagination,
    UserCreate,
    UserPage,
    UserResponse,
    UserSummary,
)
from social_feed.search import SearchRanker
from social_feed.users import UserService

router = APIRouter()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    return await UserService(db).create_user(
        username=body.username,
        password=body.password,
        full_name=body.full_name,
        email=body.email,
    )


@router.get("/search", response_model=UserPage)
async def search_users(
    q: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await SearchRanker(db).search_users(q, viewer_id, page, limit)


@router.get("/following", response_model=FollowPage)
async def list_following(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    request = page_request(page, limit)
    graph = SocialGraph(db)
    entries = await graph.list_following(viewer_id, request)
    counts = await graph.follow_counts(viewer_id)
    return FollowPage(
        users=entries,
        pagination=Pagination(
            page=request.page,
            limit=request.page_size,
            has_more=request.has_more(len(entries)),
            total=counts.following_count,
        ),
    )


@router.get("/followers", response_model=FollowPage)
async def list_followers(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    request = page_request(page, limit)
    graph = SocialGraph(db)
    entries = await graph.list_followers(viewer_id, request)
    counts = await graph.follow_counts(viewer_id)
    return FollowPage(
        users=entries,
        pagination=Pagination(
            page=request.page,
            limit=request.page_size,
            has_more=request.has_more(len(entries)),
            total=counts.followers_count,
        ),
    )


@router.get("/stats", response_model=FollowCounts)
async def my_follow_stats(
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await _follow_stats(db, viewer_id)


@router.get("/stats/{user_id}", response_model=FollowCounts)
async def follow_stats(
    user_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await _follow_stats(db, user_id)


async def _follow_stats(db: AsyncSession, user_id: int) -> FollowCounts:
    await UserService(db).get_user(user_id)
    return await SocialGraph(db).follow_counts(user_id)


@router.get("/{user_id}", response_model=UserSummary)
async def get_user(
    user_id: int,
    viewer_id: Optional[int] = Depends(optional_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).get_profile(user_id, viewer_id)


@router.post(
    "/follow/{user_id}", response_model=FollowResponse, status_code=status.HTTP_201_CREATED
)
async def follow_user(
    user_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await SocialGraph(db).follow(viewer_id, user_id)


@router.delete("/unfollow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: int,
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    await SocialGraph(db).unfollow(viewer_id, user_id)
