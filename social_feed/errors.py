"""
Error taxonomy shared by every service module.

Each error carries the HTTP status and a stable machine-readable code so the
exception handler in main.py can render it without a lookup table. Existence
is always checked before ownership: a missing entity raises NotFound, never
Forbidden.
"""
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

from social_feed.telemetry import STORE_ERRORS_TOTAL

logger = logging.getLogger(__name__)


class SocialFeedError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(SocialFeedError):
    status_code = 404
    code = "not_found"


class Forbidden(SocialFeedError):
    status_code = 403
    code = "forbidden"


class CommentsDisabled(Forbidden):
    code = "comments_disabled"


class DuplicateRelationship(SocialFeedError):
    status_code = 409
    code = "duplicate_relationship"


class AlreadyLiked(DuplicateRelationship):
    code = "already_liked"


class DuplicateUser(SocialFeedError):
    status_code = 409
    code = "duplicate_user"


class InvalidQuery(SocialFeedError):
    status_code = 400
    code = "invalid_query"


class InvalidPagination(SocialFeedError):
    status_code = 400
    code = "invalid_pagination"


class InvalidRelationship(SocialFeedError):
    status_code = 400
    code = "invalid_relationship"


class InvalidContent(SocialFeedError):
    status_code = 400
    code = "invalid_content"


class StoreFailure(SocialFeedError):
    status_code = 503
    code = "store_failure"


def translate_store_errors(func):
    """
    Wrap an async service method so raw SQLAlchemy errors surface as
    StoreFailure. Errors from our own taxonomy pass through untouched.
    Uniqueness violations that carry meaning are translated by the caller
    before they reach this layer.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            STORE_ERRORS_TOTAL.inc()
            logger.error("Store failure in %s: %s", func.__qualname__, exc)
            raise StoreFailure(f"storage error in {func.__name__}") from exc

    return wrapper
