"""
Feed retrieval endpoint — GET /feed?page=&limit=

Own posts plus posts from followed users, newest first. See
social_feed.feed for the composition steps.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.auth import require_viewer
from social_feed.database import get_db
from social_feed.feed import FeedComposer
from social_feed.schemas import PostPage

router = APIRouter()


@router.get("/", response_model=PostPage)
async def get_feed(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    viewer_id: int = Depends(require_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await FeedComposer(db).feed(viewer_id, page, limit)
