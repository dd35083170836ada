"""
Personalization Service

Request orchestration for personalized feeds: cache-checked parallel
fetches, context assembly, ranking, pagination and bookmark enrichment.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from ...config import Settings, settings
from ...telemetry.performance import PerformanceMonitor, PerformanceThresholds, RequestMetrics
from ...types.feed import PersonalizedFeed
from ...db.supabase_client import get_supabase_client
from ..cache import FeedCache, articles_cache_key, get_feed_cache, interests_cache_key, portfolio_cache_key
from .accessors import PersonalizationRepository
from .context import build_context
from .models import ArticleFilters, RankingWeights, SortMode
from .pagination import applied_filters, build_feed_response, paginate
from .query import PersonalizedFeedQuery
from .scorer import RelevanceRanker

logger = logging.getLogger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


@dataclass
class FeedResult:
    """A feed page plus the request facts the HTTP layer reports in headers."""
    feed: PersonalizedFeed
    cache_status: str
    articles_analyzed: int
    interests_count: int
    holdings_count: int
    sort_by: SortMode
    processing_time_ms: float
    passes_performance_target: bool
    algorithms_used: List[str] = field(default_factory=list)


class PersonalizationService:
    """
    Builds personalized feeds.

    Interests, portfolio and the candidate pool are cache-backed; the
    interaction history is read fresh on every request.
    """

    def __init__(
        self,
        repository: PersonalizationRepository,
        cache: FeedCache,
        ranker: Optional[RelevanceRanker] = None,
        monitor: Optional[PerformanceMonitor] = None,
        min_relevance_score: float = 0.05,
        candidate_pool_multiplier: int = 10,
        candidate_pool_cap: int = 500,
        history_limit: int = 1000,
    ):
        self._repository = repository
        self._cache = cache
        self._ranker = ranker or RelevanceRanker(min_score_threshold=min_relevance_score)
        self._monitor = monitor or PerformanceMonitor()
        self._min_relevance_score = min_relevance_score
        self._pool_multiplier = candidate_pool_multiplier
        self._pool_cap = candidate_pool_cap
        self._history_limit = history_limit

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: PersonalizationRepository,
        cache: FeedCache,
    ) -> "PersonalizationService":
        weights = RankingWeights(
            keyword_match=settings.weight_keyword_match,
            symbol_match=settings.weight_symbol_match,
            sentiment=settings.weight_sentiment,
            time_decay=settings.weight_time_decay,
        )
        monitor = PerformanceMonitor(
            PerformanceThresholds(
                target_ms=settings.performance_target_ms,
                critical_ms=settings.performance_critical_ms,
            )
        )
        return cls(
            repository=repository,
            cache=cache,
            ranker=RelevanceRanker(weights=weights, min_score_threshold=settings.min_relevance_score),
            monitor=monitor,
            min_relevance_score=settings.min_relevance_score,
            candidate_pool_multiplier=settings.candidate_pool_multiplier,
            candidate_pool_cap=settings.candidate_pool_cap,
            history_limit=settings.history_limit,
        )

    @property
    def cache(self) -> FeedCache:
        return self._cache

    def article_filters(self, query: PersonalizedFeedQuery) -> ArticleFilters:
        return ArticleFilters(
            limit=min(self._pool_cap, query.limit * self._pool_multiplier),
            max_age_hours=query.max_age_hours,
            min_sentiment=query.min_sentiment,
        )

    async def _cached(self, key: str, fetcher: Callable[[], Awaitable[Any]]) -> Tuple[Any, bool]:
        """Return ``(value, from_cache)``, fetching and storing on a miss."""
        cached = await self._cache.get(key)
        if cached is not None:
            return cached, True

        if self._cache.coalesce:
            return await self._cache.get_or_fetch(key, fetcher), False

        value = await fetcher()
        await self._cache.set(key, value)
        return value, False

    async def get_personalized_feed(
        self,
        user_id: Optional[str],
        query: PersonalizedFeedQuery,
        now: Optional[datetime] = None,
    ) -> FeedResult:
        """
        Build one page of a feed.

        Args:
            user_id: Authenticated user, or None for an anonymous feed
            query: Validated request parameters
            now: Reference time for age checks (defaults to current UTC)

        Returns:
            FeedResult with the response payload and request facts
        """
        started = time.perf_counter()
        filters = self.article_filters(query)
        articles_lookup = self._cached(
            articles_cache_key(filters.fingerprint()),
            lambda: self._repository.fetch_articles(filters, now=now),
        )

        if user_id is None:
            articles, articles_cached = await articles_lookup
            interests, portfolio, history = [], [], []
            from_cache = [articles_cached]
        else:
            (
                (interests, interests_cached),
                (portfolio, portfolio_cached),
                (articles, articles_cached),
                history,
            ) = await asyncio.gather(
                self._cached(
                    interests_cache_key(user_id),
                    lambda: self._repository.fetch_interests(user_id),
                ),
                self._cached(
                    portfolio_cache_key(user_id),
                    lambda: self._repository.fetch_portfolio(user_id),
                ),
                articles_lookup,
                self._repository.fetch_history(user_id, self._history_limit),
            )
            from_cache = [interests_cached, portfolio_cached, articles_cached]

        context = build_context(user_id, interests, portfolio, history, articles)
        if context.is_anonymous and query.sort_by != SortMode.LATEST:
            # No personalization inputs to score against; recency only
            query = query.model_copy(update={"sort_by": SortMode.LATEST})

        options = self._ranker.default_options(
            min_relevance_score=self._min_relevance_score,
            max_age_hours=query.max_age_hours,
            include_bookmarks=query.include_bookmarks,
            sort_by=query.sort_by,
        )
        ranked = self._ranker.rank(
            articles, interests, portfolio, history,
            options=options, context=context, now=now,
        )

        page = paginate(ranked, query.page, query.limit)

        if query.include_bookmarks and user_id is not None and page.items:
            bookmarked = await self._repository.fetch_bookmarks(user_id, [item.id for item in page.items])
            for item in page.items:
                item.is_bookmarked = item.id in bookmarked

        processing_time_ms = (time.perf_counter() - started) * 1000
        feed = build_feed_response(page, user_id, applied_filters(query), processing_time_ms)

        cache_status = CACHE_HIT if all(from_cache) else CACHE_MISS
        algorithms = list(context.performance_metrics.algorithms_used)
        passes_target = self._monitor.validate(context)

        self._monitor.track(
            RequestMetrics(
                processing_time_ms=round(processing_time_ms, 3),
                articles_analyzed=len(articles),
                articles_returned=len(page.items),
                cache_hit=cache_status == CACHE_HIT,
                algorithms_used=algorithms,
                user_id=user_id,
                sort_by=query.sort_by.value,
            )
        )

        return FeedResult(
            feed=feed,
            cache_status=cache_status,
            articles_analyzed=len(articles),
            interests_count=len(interests),
            holdings_count=len(portfolio),
            sort_by=query.sort_by,
            processing_time_ms=processing_time_ms,
            passes_performance_target=passes_target,
            algorithms_used=algorithms,
        )


_personalization_service: Optional[PersonalizationService] = None


def get_personalization_service() -> PersonalizationService:
    """Get the singleton personalization service instance."""
    global _personalization_service
    if _personalization_service is None:
        repository = PersonalizationRepository(
            get_supabase_client(),
            history_limit=settings.history_limit,
        )
        _personalization_service = PersonalizationService.from_settings(
            settings, repository, get_feed_cache()
        )
    return _personalization_service
