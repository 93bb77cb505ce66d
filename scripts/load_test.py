"""Load test: race mutual likes against a running Scotch API.

Creates synthetic users, pairs them up and fires both likes of every pair at
the same time.  Afterwards every pair must be matched exactly once.
Usage: python -m scripts.load_test [--count 100] [--base-url http://localhost:8000]
"""
import argparse
import asyncio
import random
import statistics
import sys
import time
import uuid
from typing import Any

import httpx


DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_COUNT = 100
USER_HEADER = "X-User-Id"

CITIES = ["London", "Manchester", "Edinburgh", "Bristol"]


async def create_user(client: httpx.AsyncClient, base_url: str, index: int) -> dict[str, Any] | None:
    """Create a single user via the API."""
    payload = {
        "login": f"loadtest_{index}_{uuid.uuid4().hex[:8]}",
        "name": f"Load Test User {index}",
        "age": random.randint(21, 45),
        "gender": random.choice(["male", "female"]),
        "city": random.choice(CITIES),
    }
    try:
        resp = await client.post(f"{base_url}/api/v1/users", json=payload)
        if resp.status_code == 201:
            return resp.json()
        print(f"  [WARN] User {index}: status {resp.status_code}")
        return None
    except httpx.HTTPError as e:
        print(f"  [ERROR] User {index}: {e}")
        return None


async def send_like(
    client: httpx.AsyncClient, base_url: str, from_user: int, to_user: int
) -> tuple[int, float]:
    """POST one like and return (status, seconds)."""
    t0 = time.monotonic()
    resp = await client.post(
        f"{base_url}/api/v1/likes",
        json={"liked_user": to_user},
        headers={USER_HEADER: str(from_user)},
    )
    return resp.status_code, time.monotonic() - t0


async def fetch_matches(client: httpx.AsyncClient, base_url: str, user_id: int) -> list[int]:
    resp = await client.get(
        f"{base_url}/api/v1/users/matches",
        headers={USER_HEADER: str(user_id)},
    )
    resp.raise_for_status()
    return [item["id"] for item in resp.json()]


async def run_load_test(base_url: str, count: int) -> dict[str, Any]:
    """Run the full load test pipeline."""
    print(f"\n{'='*60}")
    print(f"Scotch Load Test — {count} users")
    print(f"Target: {base_url}")
    print(f"{'='*60}\n")

    results = {
        "total_pairs": 0,
        "users_created": 0,
        "likes_accepted": 0,
        "pairs_verified": 0,
        "errors": [],
        "timings": {"user_creation": [], "like": []},
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Phase 1: Create users
        print(f"[1/3] Creating {count} users...")
        user_ids = []
        for i in range(count):
            t0 = time.monotonic()
            user = await create_user(client, base_url, i)
            results["timings"]["user_creation"].append(time.monotonic() - t0)
            if user and "id" in user:
                user_ids.append(user["id"])
                results["users_created"] += 1
            if (i + 1) % 20 == 0:
                print(f"  Created {i + 1}/{count} users")

        print(f"  -> {results['users_created']} users created\n")

        # Phase 2: Fire both likes of each pair concurrently
        random.shuffle(user_ids)
        pairs = list(zip(user_ids[0::2], user_ids[1::2]))
        results["total_pairs"] = len(pairs)

        print(f"[2/3] Racing {len(pairs)} mutual likes...")
        calls = []
        for a, b in pairs:
            calls.append(send_like(client, base_url, a, b))
            calls.append(send_like(client, base_url, b, a))
        outcomes = await asyncio.gather(*calls, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                results["errors"].append(f"Like: {outcome}")
                continue
            status, dt = outcome
            results["timings"]["like"].append(dt)
            if status == 201:
                results["likes_accepted"] += 1
            else:
                results["errors"].append(f"Like: status {status}")

        print(f"  -> {results['likes_accepted']}/{len(calls)} likes accepted\n")

        # Phase 3: Every pair matched exactly once, from both sides
        print(f"[3/3] Verifying {len(pairs)} matches...")
        for a, b in pairs:
            try:
                a_matches = await fetch_matches(client, base_url, a)
                b_matches = await fetch_matches(client, base_url, b)
            except httpx.HTTPError as e:
                results["errors"].append(f"Verify {a}x{b}: {e}")
                continue
            if a_matches == [b] and b_matches == [a]:
                results["pairs_verified"] += 1
            else:
                results["errors"].append(
                    f"Verify {a}x{b}: {a} sees {a_matches}, {b} sees {b_matches}"
                )

        print(f"  -> {results['pairs_verified']} pairs verified\n")

    # Summary
    print(f"{'='*60}")
    print("LOAD TEST RESULTS")
    print(f"{'='*60}")
    print(f"Users created:  {results['users_created']}/{count}")
    print(f"Likes accepted: {results['likes_accepted']}/{2 * results['total_pairs']}")
    print(f"Pairs matched:  {results['pairs_verified']}/{results['total_pairs']}")

    for phase, timings in results["timings"].items():
        if timings:
            print(f"\n{phase} latency:")
            print(f"  mean:   {statistics.mean(timings) * 1000:.1f}ms")
            print(f"  median: {statistics.median(timings) * 1000:.1f}ms")
            print(f"  p95:    {sorted(timings)[int(len(timings)*0.95)] * 1000:.1f}ms")
            print(f"  max:    {max(timings) * 1000:.1f}ms")

    if results["errors"]:
        print(f"\nErrors ({len(results['errors'])}):")
        for e in results["errors"][:10]:
            print(f"  - {e}")

    print(f"\n{'='*60}\n")
    return results


def main():
    parser = argparse.ArgumentParser(description="Scotch Load Test")
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT, help="Number of users to create")
    parser.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")
    args = parser.parse_args()

    results = asyncio.run(run_load_test(args.base_url, args.count))

    if results["total_pairs"] == 0 or results["pairs_verified"] != results["total_pairs"]:
        print(f"FAIL: {results['pairs_verified']}/{results['total_pairs']} pairs matched exactly once")
        sys.exit(1)
    print(f"PASS: all {results['total_pairs']} pairs matched exactly once")


if __name__ == "__main__":
    main()
