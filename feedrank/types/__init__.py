from .feed import FeedArticle, PaginationMeta, PersonalizationMeta, PersonalizedFeed

__all__ = [
    "FeedArticle",
    "PaginationMeta",
    "PersonalizationMeta",
    "PersonalizedFeed",
]
