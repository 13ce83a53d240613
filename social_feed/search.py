"""
Search ranker — free-text search over posts and users.

Posts match on content and are ordered by recency only.

Users match on username or full_name and are ordered by relevance tier,
then username ascending:

  tier 0 │ username starts with the query
  tier 1 │ username contains the query
  tier 2 │ full_name starts with the query
  tier 3 │ anything else that matched (full_name contains the query)

Matching is case-insensitive and literal: % and _ in the query are escaped.
The viewer never appears in their own user search results.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import InvalidQuery, translate_store_errors
from social_feed.graph import SocialGraph
from social_feed.models import Post, User
from social_feed.pagination import page_request
from social_feed.posts import build_post_views, newest_first, post_page, visible_posts
from social_feed.schemas import Pagination, PostPage, UserPage, UserSummary
from social_feed.telemetry import SEARCH_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def normalise_query(text: Optional[str]) -> str:
    query = (text or "").strip()
    if not query:
        raise InvalidQuery("Search query is required")
    return query


def user_relevance_tier(query: str):
    """SQL CASE expression implementing the four relevance tiers."""
    return case(
        (User.username.istartswith(query, autoescape=True), 0),
        (User.username.icontains(query, autoescape=True), 1),
        (User.full_name.istartswith(query, autoescape=True), 2),
        else_=3,
    )


class SearchRanker:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.graph = SocialGraph(session)

    @translate_store_errors
    async def search_posts(
        self,
        text: Optional[str],
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> PostPage:
        query = normalise_query(text)
        request = page_request(page, page_size)

        with SEARCH_LATENCY.labels(kind="posts").time():
            with tracer.start_as_current_span("search_posts") as span:
                span.set_attribute("search.query_length", len(query))
                rows = await self.session.execute(
                    newest_first(
                        visible_posts().where(Post.content.icontains(query, autoescape=True))
                    )
                    .offset(request.offset)
                    .limit(request.limit)
                )
                views = await build_post_views(
                    self.session, [tuple(r) for r in rows.all()], viewer_id
                )

        logger.debug("Post search %r page %s: %d hits", query, request.page, len(views))
        return post_page(views, request)

    @translate_store_errors
    async def search_users(
        self,
        text: Optional[str],
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> UserPage:
        query = normalise_query(text)
        request = page_request(page, page_size)

        with SEARCH_LATENCY.labels(kind="users").time():
            with tracer.start_as_current_span("search_users") as span:
                span.set_attribute("search.query_length", len(query))

                stmt = select(User).where(
                    User.is_deleted.is_(False),
                    or_(
                        User.username.icontains(query, autoescape=True),
                        User.full_name.icontains(query, autoescape=True),
                    ),
                )
                if viewer_id is not None:
                    stmt = stmt.where(User.id != viewer_id)

                rows = await self.session.execute(
                    stmt.order_by(user_relevance_tier(query), User.username.asc())
                    .offset(request.offset)
                    .limit(request.limit)
                )
                users = list(rows.scalars().all())

                user_ids = [u.id for u in users]
                counts = await self.graph.follow_counts_for_users(user_ids)
                followed = await self.graph.following_subset(viewer_id, user_ids)

        summaries = [
            UserSummary(
                id=u.id,
                username=u.username,
                full_name=u.full_name,
                created_at=u.created_at,
                is_following=u.id in followed,
                followers_count=counts[u.id].followers_count,
                following_count=counts[u.id].following_count,
            )
            for u in users
        ]
        logger.debug("User search %r page %s: %d hits", query, request.page, len(summaries))
        return UserPage(
            users=summaries,
            pagination=Pagination(
                page=request.page,
                limit=request.page_size,
                has_more=request.has_more(len(summaries)),
            ),
        )
