"""
Social graph accessor — follow edges between users.

Reads:
  • is_following      — existence check on one edge
  • follow_counts     — two independent COUNTs, one per direction
  • following_set     — visibility boundary used by the feed composer
  • list_followers / list_following — paginated edge listings

Writes:
  • follow / unfollow — single-statement insert / delete

Soft-deleted users are invisible here: edges pointing at them are neither
counted nor listed, and they cannot be followed. Self-follows are rejected
at this layer; the store itself does not forbid them.
"""
import logging
from typing import Iterable, Optional

from opentelemetry import trace
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import (
    DuplicateRelationship,
    InvalidRelationship,
    NotFound,
    translate_store_errors,
)
from social_feed.models import Follow, User
from social_feed.pagination import PageRequest
from social_feed.schemas import FollowCounts, FollowEntry, UserResponse
from social_feed.telemetry import INTERACTIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def require_live_user(session: AsyncSession, user_id: int) -> None:
    """Raise NotFound unless `user_id` names a user that is not soft-deleted."""
    row = await session.execute(
        select(User.id).where(User.id == user_id, User.is_deleted.is_(False))
    )
    if row.scalar_one_or_none() is None:
        raise NotFound(f"User {user_id} not found")


class SocialGraph:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ─────────────────────────── Reads ───────────────────────────────────

    @translate_store_errors
    async def is_following(self, follower_id: int, following_id: int) -> bool:
        row = await self.session.execute(
            select(Follow.id)
            .where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
            .limit(1)
        )
        return row.scalar_one_or_none() is not None

    @translate_store_errors
    async def follow_counts(self, user_id: int) -> FollowCounts:
        followers = await self.session.execute(
            select(func.count(Follow.id))
            .join(User, User.id == Follow.follower_id)
            .where(Follow.following_id == user_id, User.is_deleted.is_(False))
        )
        following = await self.session.execute(
            select(func.count(Follow.id))
            .join(User, User.id == Follow.following_id)
            .where(Follow.follower_id == user_id, User.is_deleted.is_(False))
        )
        return FollowCounts(
            followers_count=followers.scalar_one(),
            following_count=following.scalar_one(),
        )

    @translate_store_errors
    async def following_set(self, user_id: int) -> set[int]:
        """
        Ids of live users that `user_id` follows. The user itself is not
        included; callers that need self-visibility add it.
        """
        rows = await self.session.execute(
            select(Follow.following_id)
            .join(User, User.id == Follow.following_id)
            .where(Follow.follower_id == user_id, User.is_deleted.is_(False))
        )
        return set(rows.scalars().all())

    @translate_store_errors
    async def follow_counts_for_users(
        self, user_ids: Iterable[int]
    ) -> dict[int, FollowCounts]:
        """Batch variant of follow_counts: two grouped queries for any N."""
        ids = list(set(user_ids))
        if not ids:
            return {}

        follower = User.__table__.alias("follower_user")
        followee = User.__table__.alias("followee_user")

        followers_rows = await self.session.execute(
            select(Follow.following_id, func.count(Follow.id))
            .join(follower, follower.c.id == Follow.follower_id)
            .where(Follow.following_id.in_(ids), follower.c.is_deleted.is_(False))
            .group_by(Follow.following_id)
        )
        following_rows = await self.session.execute(
            select(Follow.follower_id, func.count(Follow.id))
            .join(followee, followee.c.id == Follow.following_id)
            .where(Follow.follower_id.in_(ids), followee.c.is_deleted.is_(False))
            .group_by(Follow.follower_id)
        )
        followers = dict(followers_rows.all())
        following = dict(following_rows.all())
        return {
            uid: FollowCounts(
                followers_count=followers.get(uid, 0),
                following_count=following.get(uid, 0),
            )
            for uid in ids
        }

    @translate_store_errors
    async def following_subset(
        self, viewer_id: Optional[int], user_ids: Iterable[int]
    ) -> set[int]:
        """Which of `user_ids` the viewer follows, in one query."""
        ids = list(set(user_ids))
        if viewer_id is None or not ids:
            return set()
        rows = await self.session.execute(
            select(Follow.following_id).where(
                Follow.follower_id == viewer_id,
                Follow.following_id.in_(ids),
            )
        )
        return set(rows.scalars().all())

    async def list_followers(self, user_id: int, page: PageRequest) -> list[FollowEntry]:
        return await self._list_edges(
            match=Follow.following_id, other=Follow.follower_id, user_id=user_id, page=page
        )

    async def list_following(self, user_id: int, page: PageRequest) -> list[FollowEntry]:
        return await self._list_edges(
            match=Follow.follower_id, other=Follow.following_id, user_id=user_id, page=page
        )

    @translate_store_errors
    async def _list_edges(self, match, other, user_id: int, page: PageRequest) -> list[FollowEntry]:
        rows = await self.session.execute(
            select(User, Follow.created_at)
            .join(Follow, other == User.id)
            .where(match == user_id, User.is_deleted.is_(False))
            .order_by(Follow.created_at.desc(), Follow.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return [
            FollowEntry(user=UserResponse.model_validate(user), created_at=created_at)
            for user, created_at in rows.all()
        ]

    # ─────────────────────────── Writes ──────────────────────────────────

    @translate_store_errors
    async def follow(self, follower_id: int, following_id: int) -> Follow:
        """
        Create a follower → following edge.

        Both ends must be live users. The duplicate pre-check only gives a
        friendlier error on the common path. Two concurrent requests can both
        pass it; the unique constraint on (follower_id, following_id) then
        rejects the loser. Any other integrity violation is a store failure.
        """
        with tracer.start_as_current_span("follow_user") as span:
            span.set_attribute("follow.follower_id", follower_id)
            span.set_attribute("follow.following_id", following_id)

            if follower_id == following_id:
                raise InvalidRelationship("Cannot follow yourself")

            await require_live_user(self.session, follower_id)
            await require_live_user(self.session, following_id)

            if await self.is_following(follower_id, following_id):
                raise DuplicateRelationship("Already following this user")

            edge = Follow(follower_id=follower_id, following_id=following_id)
            self.session.add(edge)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                await self.session.rollback()
                if await self.is_following(follower_id, following_id):
                    raise DuplicateRelationship("Already following this user") from exc
                raise

            INTERACTIONS_TOTAL.labels(action="follow").inc()
            logger.info("User %s followed user %s", follower_id, following_id)
            return edge

    @translate_store_errors
    async def unfollow(self, follower_id: int, following_id: int) -> None:
        result = await self.session.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        if result.rowcount == 0:
            raise NotFound("Follow relationship not found")

        INTERACTIONS_TOTAL.labels(action="unfollow").inc()
        logger.info("User %s unfollowed user %s", follower_id, following_id)
