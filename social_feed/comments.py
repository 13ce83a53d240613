"""
Comment create / update / delete / list.

Existence is checked before ownership, and both before any mutation, so a
rejected request leaves no partial write behind.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import (
    CommentsDisabled,
    Forbidden,
    InvalidContent,
    NotFound,
    translate_store_errors,
)
from social_feed.interactions import InteractionAggregator
from social_feed.models import Comment, Post, User
from social_feed.pagination import PageRequest
from social_feed.schemas import CommentPage, CommentResult, CommentView, Pagination
from social_feed.telemetry import INTERACTIONS_TOTAL

logger = logging.getLogger(__name__)


def _clean(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise InvalidContent("Comment content is required")
    return content


def _to_view(comment: Comment, author: Optional[User] = None) -> CommentView:
    return CommentView(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        username=author.username if author else None,
        full_name=author.full_name if author else None,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


class CommentService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.aggregator = InteractionAggregator(session)

    async def _live_comment(self, comment_id: int) -> Comment:
        row = await self.session.execute(
            select(Comment).where(Comment.id == comment_id, Comment.is_deleted.is_(False))
        )
        comment = row.scalar_one_or_none()
        if comment is None:
            raise NotFound("Comment not found")
        return comment

    @translate_store_errors
    async def create_comment(self, user_id: int, post_id: int, content: str) -> CommentResult:
        content = _clean(content)

        row = await self.session.execute(
            select(Post.comments_enabled).where(Post.id == post_id, Post.is_deleted.is_(False))
        )
        comments_enabled = row.scalar_one_or_none()
        if comments_enabled is None:
            raise NotFound("Post not found")
        if not comments_enabled:
            raise CommentsDisabled("Comments are disabled for this post")

        comment = Comment(user_id=user_id, post_id=post_id, content=content)
        self.session.add(comment)
        await self.session.flush()

        INTERACTIONS_TOTAL.labels(action="comment").inc()
        logger.info("User %s commented on post %s", user_id, post_id)
        author = await self.session.get(User, user_id)
        return CommentResult(
            comment=_to_view(comment, author),
            comment_count=await self.aggregator.comment_count(post_id),
        )

    @translate_store_errors
    async def update_comment(self, comment_id: int, user_id: int, content: str) -> CommentView:
        content = _clean(content)
        comment = await self._live_comment(comment_id)
        if comment.user_id != user_id:
            raise Forbidden("Not authorized to edit this comment")

        comment.content = content
        comment.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
        await self.session.flush()

        logger.info("User %s updated comment %s", user_id, comment_id)
        author = await self.session.get(User, user_id)
        return _to_view(comment, author)

    @translate_store_errors
    async def delete_comment(self, comment_id: int, user_id: int) -> CommentResult:
        comment = await self._live_comment(comment_id)
        if comment.user_id != user_id:
            raise Forbidden("Not authorized to delete this comment")

        result = await self.session.execute(
            update(Comment)
            .where(
                Comment.id == comment_id,
                Comment.user_id == user_id,
                Comment.is_deleted.is_(False),
            )
            .values(is_deleted=True)
        )
        if result.rowcount == 0:
            raise NotFound("Comment not found")

        INTERACTIONS_TOTAL.labels(action="delete_comment").inc()
        logger.info("User %s deleted comment %s", user_id, comment_id)
        return CommentResult(comment_count=await self.aggregator.comment_count(comment.post_id))

    @translate_store_errors
    async def list_comments(self, post_id: int, page: PageRequest) -> CommentPage:
        rows = await self.session.execute(
            select(Comment, User)
            .join(User, User.id == Comment.user_id)
            .where(Comment.post_id == post_id, Comment.is_deleted.is_(False))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        comments = [_to_view(comment, author) for comment, author in rows.all()]
        total = await self.aggregator.comment_count(post_id)
        return CommentPage(
            comments=comments,
            pagination=Pagination(
                page=page.page,
                limit=page.page_size,
                has_more=page.has_more(len(comments)),
                total=total,
            ),
        )
