"""
Interaction aggregator — like and comment counts, per-viewer like status,
and the like/unlike writes.

The batch reads are the hot path of feed and search hydration. Each one is
a single grouped query whatever the number of posts, so a page of N posts
costs the same number of round trips as a page of one.

Counting predicates are deliberately asymmetric: comments are soft-deleted,
so comment counts filter on is_deleted; likes are physically removed on
unlike, so like counts have no such filter.
"""
import logging
from typing import Iterable, Optional

from opentelemetry import trace
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import AlreadyLiked, NotFound, translate_store_errors
from social_feed.graph import require_live_user
from social_feed.models import Comment, Like, Post, User
from social_feed.pagination import PageRequest
from social_feed.schemas import LikeEntry, PostCounts, UserResponse
from social_feed.telemetry import INTERACTIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class InteractionAggregator:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ─────────────────────────── Batch reads ─────────────────────────────

    @translate_store_errors
    async def counts_for_posts(self, post_ids: Iterable[int]) -> dict[int, PostCounts]:
        ids = list(set(post_ids))
        if not ids:
            return {}

        with tracer.start_as_current_span("counts_for_posts") as span:
            span.set_attribute("posts.count", len(ids))

            like_rows = await self.session.execute(
                select(Like.post_id, func.count(Like.id))
                .where(Like.post_id.in_(ids))
                .group_by(Like.post_id)
            )
            comment_rows = await self.session.execute(
                select(Comment.post_id, func.count(Comment.id))
                .where(Comment.post_id.in_(ids), Comment.is_deleted.is_(False))
                .group_by(Comment.post_id)
            )

        likes = dict(like_rows.all())
        comments = dict(comment_rows.all())
        return {
            pid: PostCounts(
                like_count=likes.get(pid, 0),
                comment_count=comments.get(pid, 0),
            )
            for pid in ids
        }

    @translate_store_errors
    async def viewer_liked_set(
        self, viewer_id: Optional[int], post_ids: Iterable[int]
    ) -> set[int]:
        ids = list(set(post_ids))
        if viewer_id is None or not ids:
            return set()
        rows = await self.session.execute(
            select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(ids))
        )
        return set(rows.scalars().all())

    # ─────────────────────────── Single-post reads ───────────────────────

    @translate_store_errors
    async def like_count(self, post_id: int) -> int:
        row = await self.session.execute(
            select(func.count(Like.id)).where(Like.post_id == post_id)
        )
        return row.scalar_one()

    @translate_store_errors
    async def comment_count(self, post_id: int) -> int:
        row = await self.session.execute(
            select(func.count(Comment.id)).where(
                Comment.post_id == post_id, Comment.is_deleted.is_(False)
            )
        )
        return row.scalar_one()

    @translate_store_errors
    async def has_liked(self, user_id: int, post_id: int) -> bool:
        row = await self.session.execute(
            select(Like.id).where(Like.user_id == user_id, Like.post_id == post_id).limit(1)
        )
        return row.scalar_one_or_none() is not None

    @translate_store_errors
    async def list_post_likes(self, post_id: int, page: PageRequest) -> list[LikeEntry]:
        rows = await self.session.execute(
            select(Like.id, Like.created_at, User)
            .join(User, User.id == Like.user_id)
            .where(Like.post_id == post_id)
            .order_by(Like.created_at.desc(), Like.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return [
            LikeEntry(id=like_id, created_at=created_at, user=UserResponse.model_validate(user))
            for like_id, created_at, user in rows.all()
        ]

    @translate_store_errors
    async def liked_post_ids(self, user_id: int, page: PageRequest) -> list[int]:
        """Live posts a user liked, most recent like first."""
        rows = await self.session.execute(
            select(Like.post_id)
            .join(Post, Post.id == Like.post_id)
            .where(Like.user_id == user_id, Post.is_deleted.is_(False))
            .order_by(Like.created_at.desc(), Like.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return list(rows.scalars().all())

    # ─────────────────────────── Writes ──────────────────────────────────

    @translate_store_errors
    async def like(self, user_id: int, post_id: int) -> Like:
        """
        Like a post as a live user. The has_liked pre-check is only a fast
        path: a request racing past it hits uq_likes_user_post and gets the
        same AlreadyLiked. Any other integrity violation is a store failure.
        """
        with tracer.start_as_current_span("like_post") as span:
            span.set_attribute("like.user_id", user_id)
            span.set_attribute("like.post_id", post_id)

            await require_live_user(self.session, user_id)
            post = await self.session.execute(
                select(Post.id).where(Post.id == post_id, Post.is_deleted.is_(False))
            )
            if post.scalar_one_or_none() is None:
                raise NotFound("Post not found")

            if await self.has_liked(user_id, post_id):
                raise AlreadyLiked("Already liked this post")

            like = Like(user_id=user_id, post_id=post_id)
            self.session.add(like)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                await self.session.rollback()
                if await self.has_liked(user_id, post_id):
                    raise AlreadyLiked("Already liked this post") from exc
                raise

            INTERACTIONS_TOTAL.labels(action="like").inc()
            logger.info("User %s liked post %s", user_id, post_id)
            return like

    @translate_store_errors
    async def unlike(self, user_id: int, post_id: int) -> None:
        result = await self.session.execute(
            delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        if result.rowcount == 0:
            raise NotFound("Like not found")

        INTERACTIONS_TOTAL.labels(action="unlike").inc()
        logger.info("User %s unliked post %s", user_id, post_id)
