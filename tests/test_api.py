import pytest

pytestmark = pytest.mark.asyncio


def as_user(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_register_user(api_client):
    response = await api_client.post(
        "/users/",
        json={"username": "testuser", "full_name": "Test User", "password": "password123"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "testuser"
    assert "password" not in body and "password_hash" not in body

    again = await api_client.post(
        "/users/", json={"username": "testuser", "password": "password456"}
    )
    assert again.status_code == 409
    assert again.json()["error"] == "duplicate_user"


async def test_feed_requires_viewer(api_client):
    response = await api_client.get("/feed/")
    assert response.status_code == 401


async def test_follow_post_like_feed_flow(api_client, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")

    followed = await api_client.post(f"/users/follow/{bob}", headers=as_user(alice))
    assert followed.status_code == 201
    assert followed.json()["following_id"] == bob

    created = await api_client.post(
        "/posts/", json={"content": "bob's first post"}, headers=as_user(bob)
    )
    assert created.status_code == 201
    post_id = created.json()["id"]

    liked = await api_client.post(f"/likes/post/{post_id}", headers=as_user(alice))
    assert liked.status_code == 201
    assert liked.json()["like_count"] == 1

    duplicate = await api_client.post(f"/likes/post/{post_id}", headers=as_user(alice))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "already_liked"

    commented = await api_client.post(
        f"/comments/post/{post_id}", json={"content": "welcome!"}, headers=as_user(alice)
    )
    assert commented.status_code == 201
    assert commented.json()["comment_count"] == 1

    feed = await api_client.get("/feed/", params={"page": 1, "limit": 10}, headers=as_user(alice))
    assert feed.status_code == 200
    posts = feed.json()["posts"]
    assert [p["id"] for p in posts] == [post_id]
    assert posts[0]["like_count"] == 1
    assert posts[0]["comment_count"] == 1
    assert posts[0]["user_has_liked"] is True
    assert feed.json()["pagination"] == {"page": 1, "limit": 10, "has_more": False, "total": None}


async def test_invalid_pagination_is_400(api_client, seed):
    viewer = await seed.user("viewer")
    response = await api_client.get("/feed/", params={"page": 0}, headers=as_user(viewer))
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_pagination"


async def test_unfollow_without_edge_is_404(api_client, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    response = await api_client.delete(f"/users/unfollow/{bob}", headers=as_user(alice))
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_self_follow_is_400(api_client, seed):
    alice = await seed.user("alice")
    response = await api_client.post(f"/users/follow/{alice}", headers=as_user(alice))
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_relationship"


async def test_delete_post_ownership(api_client, seed):
    author = await seed.user("author")
    stranger = await seed.user("stranger")
    post = await seed.post(author)

    forbidden = await api_client.delete(f"/posts/{post}", headers=as_user(stranger))
    assert forbidden.status_code == 403

    deleted = await api_client.delete(f"/posts/{post}", headers=as_user(author))
    assert deleted.status_code == 204

    fetched = await api_client.get(f"/posts/{post}")
    assert fetched.status_code == 200
    assert fetched.json()["is_deleted"] is True


async def test_search_endpoints(api_client, seed):
    viewer = await seed.user("viewer")
    await seed.user("jo_smith", full_name="Joanna Smith")
    anna = await seed.user("anna")
    await seed.post(anna, content="Annual report is out")

    users = await api_client.get("/users/search", params={"q": "ann"}, headers=as_user(viewer))
    assert users.status_code == 200
    assert [u["username"] for u in users.json()["users"]] == ["anna", "jo_smith"]

    blank = await api_client.get("/users/search", params={"q": "  "}, headers=as_user(viewer))
    assert blank.status_code == 400
    assert blank.json()["error"] == "invalid_query"

    posts = await api_client.get("/posts/search", params={"q": "annual"})
    assert posts.status_code == 200
    assert len(posts.json()["posts"]) == 1


async def test_follow_stats_and_listings(api_client, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    carol = await seed.user("carol")
    await seed.follow(bob, alice)
    await seed.follow(carol, alice)
    await seed.follow(alice, bob)

    stats = await api_client.get(f"/users/stats/{alice}", headers=as_user(alice))
    assert stats.json() == {"followers_count": 2, "following_count": 1}

    followers = await api_client.get("/users/followers", headers=as_user(alice))
    body = followers.json()
    assert {entry["user"]["username"] for entry in body["users"]} == {"bob", "carol"}
    assert body["pagination"]["total"] == 2


async def test_follow_stats_default_to_caller_and_reject_unknown_users(api_client, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    gone = await seed.user("gone", is_deleted=True)
    await seed.follow(bob, alice)

    mine = await api_client.get("/users/stats", headers=as_user(alice))
    assert mine.status_code == 200
    assert mine.json() == {"followers_count": 1, "following_count": 0}

    missing = await api_client.get("/users/stats/4242", headers=as_user(alice))
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"

    deleted = await api_client.get(f"/users/stats/{gone}", headers=as_user(alice))
    assert deleted.status_code == 404


async def test_like_by_unknown_caller_is_404_not_409(api_client, seed):
    author = await seed.user("author")
    post = await seed.post(author)

    response = await api_client.post(f"/likes/post/{post}", headers=as_user(4242))
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
