import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

import social_feed.interactions
from social_feed.errors import AlreadyLiked, DuplicateRelationship, NotFound, StoreFailure
from social_feed.interactions import InteractionAggregator
from social_feed.models import Like
from social_feed.pagination import page_request

pytestmark = pytest.mark.asyncio


async def _users(seed, *names):
    return [await seed.user(name) for name in names]


async def test_counts_for_posts_ignores_deleted_comments(session, seed):
    author, a, b, c = await _users(seed, "author", "a", "b", "c")
    post = await seed.post(author)
    quiet = await seed.post(author, minutes=1)
    for liker in (a, b, c):
        await seed.like(liker, post)
    await seed.comment(a, post)
    await seed.comment(b, post)
    await seed.comment(c, post, is_deleted=True)

    counts = await InteractionAggregator(session).counts_for_posts([post, quiet])

    assert counts[post].like_count == 3
    assert counts[post].comment_count == 2
    assert counts[quiet].like_count == 0
    assert counts[quiet].comment_count == 0


async def test_counts_for_posts_round_trips_do_not_grow(session, seed, statements):
    author, fan = await _users(seed, "author", "fan")
    post_ids = [await seed.post(author, minutes=i) for i in range(12)]
    for pid in post_ids:
        await seed.like(fan, pid)
        await seed.comment(fan, pid)

    aggregator = InteractionAggregator(session)

    statements.clear()
    await aggregator.counts_for_posts(post_ids[:1])
    single = len(statements)

    statements.clear()
    await aggregator.counts_for_posts(post_ids)
    assert len(statements) == single == 2


async def test_counts_for_posts_empty_input_skips_store(session, statements):
    statements.clear()
    assert await InteractionAggregator(session).counts_for_posts([]) == {}
    assert statements == []


async def test_viewer_liked_set(session, seed):
    author, viewer = await _users(seed, "author", "viewer")
    liked = await seed.post(author)
    other = await seed.post(author, minutes=1)
    await seed.like(viewer, liked)

    aggregator = InteractionAggregator(session)
    assert await aggregator.viewer_liked_set(viewer, [liked, other]) == {liked}
    assert await aggregator.viewer_liked_set(None, [liked, other]) == set()


async def test_single_post_counts(session, seed):
    author, a, b = await _users(seed, "author", "a", "b")
    post = await seed.post(author)
    await seed.like(a, post)
    await seed.like(b, post)
    await seed.comment(a, post)
    await seed.comment(b, post, is_deleted=True)

    aggregator = InteractionAggregator(session)
    assert await aggregator.like_count(post) == 2
    assert await aggregator.comment_count(post) == 1


async def test_like_then_duplicate_like(database, session, seed):
    author, fan = await _users(seed, "author", "fan")
    post = await seed.post(author)
    await seed.like(fan, post)

    with pytest.raises(AlreadyLiked):
        await InteractionAggregator(session).like(fan, post)


async def test_racing_duplicate_like_leaves_one_row(database, session, seed, monkeypatch):
    author, fan = await _users(seed, "author", "fan")
    post = await seed.post(author)
    await seed.like(fan, post)

    # The second request checked before the first one committed
    real_has_liked = InteractionAggregator.has_liked
    checks = []

    async def stale_first_check(self, user_id, post_id):
        checks.append(post_id)
        if len(checks) == 1:
            return False
        return await real_has_liked(self, user_id, post_id)

    monkeypatch.setattr(InteractionAggregator, "has_liked", stale_first_check)

    with pytest.raises(DuplicateRelationship) as exc_info:
        await InteractionAggregator(session).like(fan, post)
    assert isinstance(exc_info.value, AlreadyLiked)

    async with database.session() as s:
        rows = await s.execute(select(func.count(Like.id)).where(Like.post_id == post))
        assert rows.scalar_one() == 1


async def test_like_deleted_post_not_found(session, seed):
    author, fan = await _users(seed, "author", "fan")
    post = await seed.post(author, is_deleted=True)
    with pytest.raises(NotFound):
        await InteractionAggregator(session).like(fan, post)


async def test_unlike(session, seed):
    author, fan = await _users(seed, "author", "fan")
    post = await seed.post(author)
    await seed.like(fan, post)

    aggregator = InteractionAggregator(session)
    await aggregator.unlike(fan, post)
    assert await aggregator.like_count(post) == 0

    with pytest.raises(NotFound):
        await aggregator.unlike(fan, post)


async def test_list_post_likes(session, seed):
    author, a, b = await _users(seed, "author", "a", "b")
    post = await seed.post(author)
    await seed.like(a, post)
    await seed.like(b, post)

    likes = await InteractionAggregator(session).list_post_likes(post, page_request(1, 1))
    assert [entry.user.username for entry in likes] == ["b"]


async def test_like_by_unknown_user_not_found(session, seed):
    author = await seed.user("author")
    post = await seed.post(author)

    with pytest.raises(NotFound) as exc_info:
        await InteractionAggregator(session).like(4242, post)
    assert not isinstance(exc_info.value, AlreadyLiked)


async def test_like_by_deleted_user_not_found(session, seed):
    author = await seed.user("author")
    gone = await seed.user("gone", is_deleted=True)
    post = await seed.post(author)

    with pytest.raises(NotFound):
        await InteractionAggregator(session).like(gone, post)


async def test_foreign_key_violation_is_store_failure_not_duplicate(session, seed, monkeypatch):
    author = await seed.user("author")
    post = await seed.post(author)

    # The actor row vanished between the existence check and the insert
    async def actor_checked(session, user_id):
        return None

    monkeypatch.setattr(social_feed.interactions, "require_live_user", actor_checked)

    with pytest.raises(StoreFailure) as exc_info:
        await InteractionAggregator(session).like(4242, post)
    assert isinstance(exc_info.value.__cause__, IntegrityError)
