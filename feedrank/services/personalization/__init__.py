"""
Personalization Engine

Ranks news articles for a user from their declared interests, portfolio
holdings and interaction history, and pages the result.
"""

from .accessors import PersonalizationRepository
from .context import PersonalizationContext, build_context
from .models import (
    Article,
    ArticleFilters,
    InteractionRecord,
    PerformanceMetrics,
    PortfolioHolding,
    RankedArticle,
    RankingOptions,
    RankingWeights,
    SignalComponent,
    SortMode,
    UserInterest,
)
from .pagination import PageResult, applied_filters, build_feed_response, format_article, normalize_pagination, paginate
from .query import PersonalizedFeedQuery, validation_error_detail
from .scorer import RelevanceRanker
from .service import FeedResult, PersonalizationService, get_personalization_service

__all__ = [
    # Models
    "Article",
    "ArticleFilters",
    "InteractionRecord",
    "PerformanceMetrics",
    "PortfolioHolding",
    "RankedArticle",
    "RankingOptions",
    "RankingWeights",
    "SignalComponent",
    "SortMode",
    "UserInterest",
    # Pipeline
    "PersonalizationRepository",
    "PersonalizationContext",
    "build_context",
    "RelevanceRanker",
    "PageResult",
    "applied_filters",
    "build_feed_response",
    "format_article",
    "normalize_pagination",
    "paginate",
    # Requests
    "PersonalizedFeedQuery",
    "validation_error_detail",
    # Service
    "FeedResult",
    "PersonalizationService",
    "get_personalization_service",
]
