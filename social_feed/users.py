"""
User registration and profile lookup.

Password handling is kept to this module; the rest of the service treats
password_hash as opaque.
"""
import logging
from typing import Optional

from argon2 import PasswordHasher
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_feed.errors import DuplicateUser, NotFound, translate_store_errors
from social_feed.graph import SocialGraph
from social_feed.models import User
from social_feed.schemas import UserSummary

logger = logging.getLogger(__name__)

PASSWORD_HASHER = PasswordHasher()


def hash_password(password: str) -> str:
    return PASSWORD_HASHER.hash(password)


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @translate_store_errors
    async def create_user(
        self,
        username: str,
        password: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        username = username.strip()
        conditions = [User.username == username]
        if email:
            conditions.append(User.email == email)
        existing = await self.session.execute(select(User.id).where(or_(*conditions)).limit(1))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateUser("Username or email already taken")

        user = User(
            username=username,
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
        )
        self.session.add(user)
        try:
            await self.session.flush()  # get user.id before commit
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateUser("Username or email already taken") from exc

        logger.info("Created user %s (id=%s)", user.username, user.id)
        return user

    @translate_store_errors
    async def get_user(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None or user.is_deleted:
            raise NotFound("User not found")
        return user

    async def get_profile(self, user_id: int, viewer_id: Optional[int] = None) -> UserSummary:
        user = await self.get_user(user_id)
        graph = SocialGraph(self.session)
        counts = await graph.follow_counts(user_id)
        is_following = (
            viewer_id is not None
            and viewer_id != user_id
            and await graph.is_following(viewer_id, user_id)
        )
        return UserSummary(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            created_at=user.created_at,
            is_following=is_following,
            followers_count=counts.followers_count,
            following_count=counts.following_count,
        )
