"""
Post lifecycle and PostView hydration.

build_post_views is the one place a page of (Post, User) rows becomes API
output: it asks the interaction aggregator for counts and the viewer's likes
in one batch each, never per row. Feed, search and profile listings all go
through it.
"""
import logging
from typing import Optional, Sequence

from opentelemetry import trace
from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import Forbidden, InvalidContent, NotFound, translate_store_errors
from social_feed.interactions import InteractionAggregator
from social_feed.models import Post, User
from social_feed.pagination import PageRequest
from social_feed.schemas import Pagination, PostCounts, PostPage, PostView
from social_feed.telemetry import INTERACTIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def visible_posts() -> Select:
    """Live posts by live authors, joined with the author row."""
    return (
        select(Post, User)
        .join(User, User.id == Post.user_id)
        .where(Post.is_deleted.is_(False), User.is_deleted.is_(False))
    )


def newest_first(stmt: Select) -> Select:
    # id breaks created_at ties so pages never overlap
    return stmt.order_by(Post.created_at.desc(), Post.id.desc())


def _to_view(post: Post, author: Optional[User], counts: PostCounts, liked: bool) -> PostView:
    return PostView(
        id=post.id,
        user_id=post.user_id,
        username=author.username if author else None,
        full_name=author.full_name if author else None,
        content=post.content,
        media_url=post.media_url,
        comments_enabled=post.comments_enabled,
        created_at=post.created_at,
        is_deleted=post.is_deleted,
        like_count=counts.like_count,
        comment_count=counts.comment_count,
        user_has_liked=liked,
    )


async def build_post_views(
    session: AsyncSession,
    rows: Sequence[tuple[Post, User]],
    viewer_id: Optional[int],
) -> list[PostView]:
    """Attach counts and has-liked status to an ordered page of rows."""
    if not rows:
        return []
    aggregator = InteractionAggregator(session)
    post_ids = [post.id for post, _ in rows]
    counts = await aggregator.counts_for_posts(post_ids)
    liked = await aggregator.viewer_liked_set(viewer_id, post_ids)
    return [
        _to_view(post, author, counts.get(post.id, PostCounts()), post.id in liked)
        for post, author in rows
    ]


def post_page(posts: list[PostView], page: PageRequest) -> PostPage:
    return PostPage(
        posts=posts,
        pagination=Pagination(
            page=page.page, limit=page.page_size, has_more=page.has_more(len(posts))
        ),
    )


class PostService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_store_errors
    async def create_post(
        self,
        author_id: int,
        content: str,
        media_url: Optional[str] = None,
        comments_enabled: bool = True,
    ) -> PostView:
        content = (content or "").strip()
        if not content:
            raise InvalidContent("Post content is required")

        author = await self.session.get(User, author_id)
        if author is None or author.is_deleted:
            raise NotFound("Author not found")

        post = Post(
            user_id=author_id,
            content=content,
            media_url=media_url,
            comments_enabled=comments_enabled,
        )
        self.session.add(post)
        await self.session.flush()  # materialise post.id

        INTERACTIONS_TOTAL.labels(action="post").inc()
        logger.info("Post created: %s by user %s", post.id, author_id)
        return _to_view(post, author, PostCounts(), False)

    @translate_store_errors
    async def get_post(self, post_id: int, viewer_id: Optional[int] = None) -> PostView:
        """
        Resolve a post by id. Soft-deleted rows still resolve, flagged with
        is_deleted, so links to removed content can be told apart from
        links that never existed.
        """
        row = await self.session.execute(
            select(Post, User).join(User, User.id == Post.user_id).where(Post.id == post_id)
        )
        found = row.one_or_none()
        if found is None:
            raise NotFound("Post not found")
        views = await build_post_views(self.session, [tuple(found)], viewer_id)
        return views[0]

    @translate_store_errors
    async def list_user_posts(
        self, user_id: int, viewer_id: Optional[int], page: PageRequest
    ) -> PostPage:
        rows = await self.session.execute(
            newest_first(visible_posts().where(Post.user_id == user_id))
            .offset(page.offset)
            .limit(page.limit)
        )
        views = await build_post_views(self.session, [tuple(r) for r in rows.all()], viewer_id)
        return post_page(views, page)

    @translate_store_errors
    async def list_liked_posts(
        self, user_id: int, viewer_id: Optional[int], page: PageRequest
    ) -> PostPage:
        """Posts `user_id` liked, most recent like first."""
        post_ids = await InteractionAggregator(self.session).liked_post_ids(user_id, page)
        if not post_ids:
            return post_page([], page)
        rows = await self.session.execute(visible_posts().where(Post.id.in_(post_ids)))
        by_id = {post.id: (post, author) for post, author in rows.all()}
        ordered = [by_id[pid] for pid in post_ids if pid in by_id]
        views = await build_post_views(self.session, ordered, viewer_id)
        # has_more follows the like page, not the posts that survived the join
        return PostPage(
            posts=views,
            pagination=Pagination(
                page=page.page,
                limit=page.page_size,
                has_more=page.has_more(len(post_ids)),
            ),
        )

    @translate_store_errors
    async def delete_post(self, post_id: int, actor_id: int) -> None:
        with tracer.start_as_current_span("delete_post") as span:
            span.set_attribute("post.id", post_id)

            post = await self.session.execute(
                select(Post.user_id).where(Post.id == post_id, Post.is_deleted.is_(False))
            )
            owner_id = post.scalar_one_or_none()
            if owner_id is None:
                raise NotFound("Post not found")
            if owner_id != actor_id:
                raise Forbidden("Not authorized to delete this post")

            result = await self.session.execute(
                update(Post)
                .where(
                    Post.id == post_id,
                    Post.user_id == actor_id,
                    Post.is_deleted.is_(False),
                )
                .values(is_deleted=True)
            )
            if result.rowcount == 0:
                # Deleted by a concurrent request between the check and the update
                raise NotFound("Post not found")

            INTERACTIONS_TOTAL.labels(action="delete_post").inc()
            logger.info("Post %s soft-deleted by user %s", post_id, actor_id)
