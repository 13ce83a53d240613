"""
Feed composer — the viewer's reverse-chronological home feed.

  Step 1 │ Visibility
  ───────┼──────────────────────────────────────────────────────────────
         │  visible authors = {viewer} ∪ following_set(viewer)

  Step 2 │ Selection
  ───────┼──────────────────────────────────────────────────────────────
         │  live posts by live visible authors, joined with the author,
         │  ORDER BY created_at DESC, id DESC, OFFSET/LIMIT from the page

  Step 3 │ Hydration
  ───────┼──────────────────────────────────────────────────────────────
         │  one grouped like count, one grouped comment count and one
         │  has-liked lookup for the whole page

The number of store round trips is fixed (five) regardless of page size.
has_more is the page-full heuristic from social_feed.pagination.
"""
import logging
import time
from typing import Optional

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import translate_store_errors
from social_feed.graph import SocialGraph
from social_feed.models import Post
from social_feed.pagination import page_request
from social_feed.posts import build_post_views, newest_first, post_page, visible_posts
from social_feed.schemas import PostPage
from social_feed.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class FeedComposer:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.graph = SocialGraph(session)

    @translate_store_errors
    async def feed(
        self, viewer_id: int, page: int = 1, page_size: Optional[int] = None
    ) -> PostPage:
        request = page_request(page, page_size)
        start_time = time.perf_counter()

        with tracer.start_as_current_span("get_feed") as span:
            span.set_attribute("user.id", viewer_id)
            span.set_attribute("feed.page", request.page)

            visible_authors = await self.graph.following_set(viewer_id)
            visible_authors.add(viewer_id)
            span.set_attribute("feed.visible_authors", len(visible_authors))

            rows = await self.session.execute(
                newest_first(visible_posts().where(Post.user_id.in_(visible_authors)))
                .offset(request.offset)
                .limit(request.limit)
            )
            page_rows = [tuple(r) for r in rows.all()]

            views = await build_post_views(self.session, page_rows, viewer_id)

            elapsed = time.perf_counter() - start_time
            FEED_LATENCY.observe(elapsed)
            span.set_attribute("feed.posts_returned", len(views))

        logger.debug(
            "Feed for user %s page %s: %d posts (%.1fms)",
            viewer_id, request.page, len(views), elapsed * 1000,
        )
        return post_page(views, request)
