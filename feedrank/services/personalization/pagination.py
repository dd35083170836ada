"""
Pagination & Response Assembly

Slices the ranked list into a page and shapes it into the external
payload. Runs after ranking, so min-score filtering has already happened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from ...types.feed import FeedArticle, PaginationMeta, PersonalizationMeta, PersonalizedFeed
from .models import RankedArticle

if TYPE_CHECKING:
    from .query import PersonalizedFeedQuery

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class PageResult:
    items: List[RankedArticle] = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_LIMIT
    total: int = 0
    has_more: bool = False


def normalize_pagination(page: int, limit: int) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to [1, MAX_LIMIT]."""
    return max(1, page), max(1, min(MAX_LIMIT, limit))


def paginate(ranked: Sequence[RankedArticle], page: int, limit: int) -> PageResult:
    """Select one page of an already ranked list."""
    page, limit = normalize_pagination(page, limit)
    total = len(ranked)
    start = (page - 1) * limit
    end = start + limit
    return PageResult(
        items=list(ranked[start:end]),
        page=page,
        limit=limit,
        total=total,
        has_more=end < total,
    )


def format_article(ranked: RankedArticle) -> FeedArticle:
    article = ranked.article
    return FeedArticle(
        id=article.id,
        title=article.title,
        summary=article.summary,
        content=article.content,
        url=article.url,
        source=article.source,
        published_at=article.published_at.isoformat() if article.published_at else None,
        keywords=list(article.keywords),
        image_url=article.image_url,
        sentiment_score=article.sentiment_score,
        sentiment_label=article.sentiment_label,
        is_bookmarked=ranked.is_bookmarked,
    )


def _format_number(value: float) -> str:
    """Whole numbers without the trailing ``.0`` (``-1``, not ``-1.0``)."""
    return str(int(value)) if float(value).is_integer() else str(value)


def applied_filters(query: "PersonalizedFeedQuery") -> List[str]:
    """Descriptors of the filters in effect, e.g. ``maxAge:168``."""
    filters = []
    if query.min_sentiment is not None:
        filters.append(f"minSentiment:{_format_number(query.min_sentiment)}")
    filters.append(f"maxAge:{query.max_age_hours}")
    filters.append(f"sortBy:{query.sort_by.value}")
    if query.include_bookmarks:
        filters.append("includeBookmarks")
    return filters


def build_feed_response(
    page: PageResult,
    user_id: Optional[str],
    filters: List[str],
    processing_time_ms: float,
) -> PersonalizedFeed:
    # Latest mode leaves scores unset; those articles are left out of the map
    scores = {
        item.id: item.relevance_score
        for item in page.items
        if item.relevance_score is not None
    }
    return PersonalizedFeed(
        articles=[format_article(item) for item in page.items],
        pagination=PaginationMeta(
            page=page.page,
            limit=page.limit,
            total=page.total,
            has_more=page.has_more,
        ),
        personalization=PersonalizationMeta(
            user_id=user_id,
            relevance_scores=scores,
            applied_filters=filters,
            processing_time=round(processing_time_ms, 3),
        ),
    )
