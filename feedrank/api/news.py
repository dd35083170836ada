"""
News API Endpoints

Personalized and anonymous news feeds.
"""

import asyncio
import logging
from typing import Awaitable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import ValidationError

from ..auth import AuthenticatedUser, optional_auth, require_auth
from ..cache import CacheStats
from ..config import settings
from ..services.personalization import (
    FeedResult,
    PersonalizationService,
    PersonalizedFeedQuery,
    SortMode,
    get_personalization_service,
    validation_error_detail,
)
from ..services.personalization.pagination import DEFAULT_LIMIT
from ..services.personalization.query import DEFAULT_PAGE
from ..types import PersonalizedFeed

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/news")

# Edge cache lifetimes (seconds) per sort mode: (s-maxage, stale-while-revalidate)
EDGE_CACHE_POLICY = {
    SortMode.LATEST: (60, 300),
    SortMode.RELEVANCE: (300, 900),
}

# Feed headers browsers may read cross-origin
FEED_HEADERS = (
    "X-Cache-Status",
    "X-Cache-Stats",
    "X-Processing-Time",
    "X-Articles-Analyzed",
    "X-User-Interests",
    "X-Portfolio-Holdings",
    "X-Algorithms-Used",
    "X-Performance-Target",
    "X-Sort-Mode",
)

DISCONNECT_POLL_SECONDS = 0.1


class ClientDisconnected(Exception):
    """The client went away before the feed was ready."""


# =============================================================================
# Helpers
# =============================================================================


def _build_query(**params) -> PersonalizedFeedQuery:
    """Clamp and validate; parameters left out keep the model defaults."""
    try:
        return PersonalizedFeedQuery(**{k: v for k, v in params.items() if v is not None})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=validation_error_detail(e.errors()))


async def personalized_feed_query(
    page: int = Query(DEFAULT_PAGE, description="Page number (clamped to >= 1)"),
    limit: int = Query(DEFAULT_LIMIT, description="Items per page (clamped to 1-100)"),
    sort_by: SortMode = Query(SortMode.RELEVANCE, alias="sortBy", description="relevance or latest"),
    include_bookmarks: bool = Query(False, alias="includeBookmarks", description="Flag bookmarked articles"),
    min_sentiment: Optional[float] = Query(None, alias="minSentiment", description="Minimum sentiment score (-1 to 1)"),
    max_age: Optional[int] = Query(None, alias="maxAge", description="Maximum article age in hours (1-720)"),
) -> PersonalizedFeedQuery:
    return _build_query(
        page=page,
        limit=limit,
        sort_by=sort_by,
        include_bookmarks=include_bookmarks,
        min_sentiment=min_sentiment,
        max_age_hours=max_age if max_age is not None else settings.default_max_age_hours,
    )


async def news_feed_query(
    page: int = Query(DEFAULT_PAGE, description="Page number (clamped to >= 1)"),
    limit: int = Query(DEFAULT_LIMIT, description="Items per page (clamped to 1-100)"),
    sort_by: SortMode = Query(SortMode.LATEST, alias="sortBy", description="latest or relevance"),
    min_sentiment: Optional[float] = Query(None, alias="minSentiment", description="Minimum sentiment score (-1 to 1)"),
    max_age: Optional[int] = Query(None, alias="maxAge", description="Maximum article age in hours (1-720)"),
) -> PersonalizedFeedQuery:
    return _build_query(
        page=page,
        limit=limit,
        sort_by=sort_by,
        min_sentiment=min_sentiment,
        max_age_hours=max_age if max_age is not None else settings.default_max_age_hours,
    )


def _feed_headers(result: FeedResult, cache_stats: CacheStats) -> Dict[str, str]:
    max_age, stale = EDGE_CACHE_POLICY[result.sort_by]
    return {
        "Cache-Control": f"public, s-maxage={max_age}, stale-while-revalidate={stale}",
        "Vary": "Authorization, Accept-Encoding",
        "X-Cache-Status": result.cache_status,
        "X-Cache-Stats": cache_stats.to_header(),
        "X-Processing-Time": f"{round(result.processing_time_ms)}ms",
        "X-Articles-Analyzed": str(result.articles_analyzed),
        "X-User-Interests": str(result.interests_count),
        "X-Portfolio-Holdings": str(result.holdings_count),
        "X-Algorithms-Used": ",".join(result.algorithms_used),
        "X-Performance-Target": "PASS" if result.passes_performance_target else "FAIL",
        "X-Sort-Mode": result.sort_by.value,
    }


async def _wait_for_disconnect(request: Request) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def _run_feed(request: Request, work: Awaitable[FeedResult]) -> FeedResult:
    """Await the feed, cancelling it if the client disconnects first (when enabled)."""
    if not settings.cancel_fetches_on_disconnect:
        return await work

    feed_task = asyncio.ensure_future(work)
    watcher = asyncio.create_task(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait({feed_task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if feed_task in done:
            return feed_task.result()

        feed_task.cancel()
        try:
            await feed_task
        except asyncio.CancelledError:
            pass
        raise ClientDisconnected()
    finally:
        # Also reached when the handler itself is cancelled
        for task in (watcher, feed_task):
            if not task.done():
                task.cancel()


async def _serve_feed(
    request: Request,
    response: Response,
    service: PersonalizationService,
    user_id: Optional[str],
    query: PersonalizedFeedQuery,
) -> PersonalizedFeed:
    try:
        result = await _run_feed(request, service.get_personalized_feed(user_id, query))
    except ClientDisconnected:
        logger.info(f"Client disconnected, feed for {user_id or 'anonymous'} cancelled")
        raise HTTPException(status_code=499, detail="Client closed request")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building feed for {user_id or 'anonymous'}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build news feed")

    response.headers.update(_feed_headers(result, service.cache.stats()))
    return result.feed


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/personalized", response_model=PersonalizedFeed)
async def get_personalized_news(
    request: Request,
    response: Response,
    query: PersonalizedFeedQuery = Depends(personalized_feed_query),
    user: AuthenticatedUser = Depends(require_auth),
    service: PersonalizationService = Depends(get_personalization_service),
):
    """Feed ranked for the authenticated user."""
    return await _serve_feed(request, response, service, user.user_id, query)


@router.get("", response_model=PersonalizedFeed)
async def get_news(
    request: Request,
    response: Response,
    query: PersonalizedFeedQuery = Depends(news_feed_query),
    user: Optional[AuthenticatedUser] = Depends(optional_auth),
    service: PersonalizationService = Depends(get_personalization_service),
):
    """General feed, not personalized; a token is accepted but not required."""
    return await _serve_feed(request, response, service, None, query)
