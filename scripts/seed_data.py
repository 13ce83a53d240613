#!/usr/bin/env python3
"""
Seed script: builds a small social graph through the public API.

Creates:
  • 10 users
  • A follow graph (each user follows 4 others)
  • 5 posts per user (50 total)
  • Random likes and a few comments

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

Every write carries the acting user's id in the X-User-Id header.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional


BASE_USERS = [
    ("alice_ai", "Alice Chen"),
    ("bob_builder", "Bob Martinez"),
    ("carol_codes", "Carol Singh"),
    ("dave_designs", "Dave Kim"),
    ("eve_engineer", "Eve Johnson"),
    ("frank_feeds", "Frank Williams"),
    ("grace_graphs", "Grace Li"),
    ("henry_hpc", "Henry Brown"),
    ("iris_infra", "Iris Davis"),
    ("jack_ml", "Jack Wilson"),
]

SAMPLE_POSTS = [
    "Just shipped a new feature to production 🚀 Zero downtime deploys are beautiful.",
    "Distributed SQL with TiDB: horizontal scaling without changing your SQL dialect.",
    "Fan-out on write vs pull-on-read, the eternal debate in feed architecture.",
    "Batching the like and comment counts turned 41 queries into 5. N+1 is sneaky.",
    "OpenTelemetry traces finally connected to Jaeger. The waterfall diagram is so satisfying.",
    "Prometheus metrics: the difference between knowing and guessing in production.",
    "FastAPI async endpoints are a joy.",
    "Social graph traversal at scale: 900M nodes, 50B edges. Mind-blowing.",
    "Content moderation at scale is a harder problem than the ranking model.",
    "Soft deletes keep the audit trail, but remember to filter them everywhere.",
    "Grafana dashboards are the first thing I build for any new service.",
    "A/B testing your ranking model: always ship with a control group.",
    "100% of my bugs this week were off-by-one pagination errors.",
    "Unique constraints are the only dedup that survives a race.",
    "The feed latency histogram shows p99 at 120ms. Time to look at the indexes.",
]

SAMPLE_COMMENTS = ["Great point!", "Totally agree.", "Bookmarking this.", "Interesting take."]


@dataclass
class ApiClient:
    base_url: str

    def _send(self, method: str, path: str, data: Optional[dict], user_id: Optional[int]) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if user_id is not None:
            headers["X-User-Id"] = str(user_id)
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: Optional[dict] = None, user_id: Optional[int] = None) -> dict:
        return self._send("POST", path, data, user_id)

    def get(self, path: str, user_id: Optional[int] = None) -> dict:
        return self._send("GET", path, None, user_id)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.get("/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except urllib.error.URLError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids: list[int] = []
    for username, full_name in BASE_USERS:
        result = client.post(
            "/users/",
            {
                "username": username,
                "full_name": full_name,
                "email": f"{username}@example.com",
                "password": f"{username}-password",
            },
        )
        uid = result.get("id")
        if uid:
            user_ids.append(uid)
            print(f"  ✓ {username} ({uid})")
        else:
            print(f"  ✗ Failed to create {username}")

    if not user_ids:
        print("No users created, aborting")
        return

    # ── Create follow graph ───────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id in user_ids:
        others = [u for u in user_ids if u != follower_id]
        for followee_id in random.sample(others, k=min(4, len(others))):
            client.post(f"/users/follow/{followee_id}", user_id=follower_id)
    print("  ✓ Follow graph created")

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[int] = []
    pool = SAMPLE_POSTS * 4
    random.shuffle(pool)
    for i, user_id in enumerate(user_ids):
        for content in pool[i * 5:(i + 1) * 5]:
            pid = client.post("/posts/", {"content": content}, user_id=user_id).get("id")
            if pid:
                post_ids.append(pid)
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Likes and comments ────────────────────────────────────────────────
    print("\nAdding likes and comments...")
    likes = comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 5)):
            if client.post(f"/likes/post/{post_id}", user_id=user_id):
                likes += 1
        if random.random() < 0.3:
            commenter = random.choice(user_ids)
            body = {"content": random.choice(SAMPLE_COMMENTS)}
            if client.post(f"/comments/post/{post_id}", body, user_id=commenter):
                comments += 1
    print(f"  ✓ {likes} likes, {comments} comments added")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Get the feed for user '{BASE_USERS[0][0]}':")
    print(f"  curl -s -H 'X-User-Id: {u}' '{api_url}/feed/?page=1&limit=10' | python3 -m json.tool\n")
    print("# Search users:")
    print(f"  curl -s -H 'X-User-Id: {u}' '{api_url}/users/search?q=an' | python3 -m json.tool\n")
    print("# Search posts:")
    print(f"  curl -s '{api_url}/posts/search?q=feed' | python3 -m json.tool\n")
    print(f"# Metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the social feed API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
