#!/usr/bin/env python3
"""Simple CLI for trying the feed ranking locally"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional

import httpx

from feedrank.services.personalization import (
    Article,
    InteractionRecord,
    PortfolioHolding,
    RelevanceRanker,
    SortMode,
    UserInterest,
)

DEFAULT_BASE_URL = "http://localhost:8000"


def print_feed(data: Dict[str, Any], headers: httpx.Headers) -> None:
    """Pretty print a feed response"""
    articles = data.get("articles", [])
    pagination = data.get("pagination", {})
    personalization = data.get("personalization", {})
    scores = personalization.get("relevanceScores", {})

    cache_indicator = "💾" if headers.get("x-cache-status") == "HIT" else "🔄"
    print(f"\n{cache_indicator} Feed ({headers.get('x-sort-mode', 'n/a')})")
    print("=" * 60)

    if not articles:
        print("❌ No articles")

    for i, article in enumerate(articles, 1):
        score = scores.get(article["id"])
        score_str = f"{score:.3f}" if score is not None else "  -  "
        bookmark = "🔖" if article.get("is_bookmarked") else "  "
        print(f"{i:2d}. [{score_str}] {bookmark} {article.get('title', '')[:70]}")
        print(f"    {article.get('source', '')} · {article.get('published_at') or 'undated'}")

    print("-" * 60)
    print(
        f"Page {pagination.get('page')} · {len(articles)}/{pagination.get('total')} "
        f"· more: {'yes' if pagination.get('hasMore') else 'no'}"
    )
    print(f"Filters: {', '.join(personalization.get('appliedFilters', []))}")
    print(f"Processing: {headers.get('x-processing-time', 'n/a')} ({headers.get('x-performance-target', 'n/a')})")
    if headers.get("x-algorithms-used"):
        print(f"Signals: {headers['x-algorithms-used']}")


async def cli_feed(
    base_url: str,
    token: Optional[str],
    page: int,
    limit: int,
    sort_by: Optional[str],
    include_bookmarks: bool,
    min_sentiment: Optional[float],
    max_age: Optional[int],
) -> int:
    """Call a feed endpoint and print the page"""
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if sort_by:
        params["sortBy"] = sort_by
    if include_bookmarks:
        params["includeBookmarks"] = "true"
    if min_sentiment is not None:
        params["minSentiment"] = min_sentiment
    if max_age is not None:
        params["maxAge"] = max_age

    path = "/news/personalized" if token else "/news"
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    print(f"🔍 Fetching {path}...")
    async with httpx.AsyncClient(base_url=base_url, timeout=30) as client:
        response = await client.get(path, params=params, headers=headers)

    if response.status_code != 200:
        detail = response.json().get("detail") if response.headers.get("content-type", "").startswith("application/json") else response.text
        print(f"❌ {response.status_code}: {detail}")
        return 1

    print_feed(response.json(), response.headers)
    return 0


async def cli_health(base_url: str) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        response = await client.get("/healthz")
    data = response.json()
    print(f"Status: {data.get('status')}")
    print(f"Database: {data.get('services', {}).get('database', {}).get('status')}")
    cache = data.get("cache", {})
    print(f"Cache: {cache.get('size')}/{cache.get('max_size')} (hits {cache.get('hits')}, misses {cache.get('misses')})")
    return 0 if response.status_code == 200 else 1


def cli_rank(path: str, sort_by: str, max_age: int, min_score: float, top: int) -> int:
    """Rank a local JSON fixture without a server or store"""
    with open(path, encoding="utf-8") as fh:
        fixture = json.load(fh)

    articles = [Article.from_record(row) for row in fixture.get("articles", [])]
    interests = [UserInterest.from_record(row) for row in fixture.get("interests", [])]
    portfolio = [PortfolioHolding.from_record(row) for row in fixture.get("portfolio", [])]
    history = [InteractionRecord.from_record(row) for row in fixture.get("history", [])]

    ranker = RelevanceRanker()
    options = ranker.default_options(
        sort_by=SortMode(sort_by),
        max_age_hours=max_age,
        min_relevance_score=min_score,
    )
    ranked = ranker.rank(articles, interests, portfolio, history, options=options, now=fixture.get("now"))

    print(f"\n📊 {len(ranked)}/{len(articles)} articles ranked ({sort_by})")
    print("=" * 60)
    for i, item in enumerate(ranked[:top], 1):
        score_str = f"{item.relevance_score:.3f}" if item.relevance_score is not None else "  -  "
        print(f"{i:2d}. [{score_str}] {item.article.title[:70]}")
        if item.breakdown:
            parts = ", ".join(f"{k}={v:.2f}" for k, v in item.breakdown.items())
            print(f"    {parts}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Feedrank CLI")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API base URL")
    subparsers = parser.add_subparsers(dest="command")

    feed_parser = subparsers.add_parser("feed", help="Fetch a feed page (personalized when --token is given)")
    feed_parser.add_argument("--token", help="Bearer token for the personalized feed")
    feed_parser.add_argument("--page", type=int, default=1)
    feed_parser.add_argument("--limit", type=int, default=20)
    feed_parser.add_argument("--sort", choices=[m.value for m in SortMode], help="Sort mode")
    feed_parser.add_argument("--include-bookmarks", action="store_true", help="Flag bookmarked articles")
    feed_parser.add_argument("--min-sentiment", type=float, help="Minimum sentiment (-1 to 1)")
    feed_parser.add_argument("--max-age", type=int, help="Maximum article age in hours")

    subparsers.add_parser("health", help="Check service health")

    rank_parser = subparsers.add_parser("rank", help="Rank a local JSON fixture")
    rank_parser.add_argument("fixture", help="JSON file with articles, interests, portfolio, history and optional now")
    rank_parser.add_argument("--sort", choices=[m.value for m in SortMode], default=SortMode.RELEVANCE.value)
    rank_parser.add_argument("--max-age", type=int, default=168)
    rank_parser.add_argument("--min-score", type=float, default=0.05)
    rank_parser.add_argument("--top", type=int, default=20)

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "feed":
            return await cli_feed(
                args.base_url,
                args.token,
                args.page,
                args.limit,
                args.sort,
                args.include_bookmarks,
                args.min_sentiment,
                args.max_age,
            )
        if args.command == "health":
            return await cli_health(args.base_url)
        if args.command == "rank":
            return cli_rank(args.fixture, args.sort, args.max_age, args.min_score, args.top)
    except httpx.HTTPError as e:
        print(f"❌ Request failed: {e}")
        return 1
    except (OSError, ValueError) as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"❌ Unknown command: {args.command}")
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
