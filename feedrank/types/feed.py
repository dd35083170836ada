from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class FeedArticle(BaseModel):
    id: str = Field(description="Article identifier")
    title: str = Field(description="Headline")
    summary: str = Field(default="", description="Short summary")
    content: str = Field(default="", description="Article body")
    url: str = Field(default="", description="Link to the original article")
    source: str = Field(default="Unknown", description="Publisher or source domain")
    published_at: Optional[str] = Field(default=None, description="Publication time (ISO 8601, UTC)")
    keywords: List[str] = Field(default_factory=list, description="Keyword tags")
    image_url: Optional[str] = Field(default=None, description="Lead image URL")
    sentiment_score: Optional[float] = Field(default=None, description="Sentiment score from -1 to 1")
    sentiment_label: str = Field(default="neutral", description="Sentiment label")
    is_bookmarked: bool = Field(default=False, description="Whether the user bookmarked this article")


class PaginationMeta(BaseModel):
    page: int = Field(description="1-based page number")
    limit: int = Field(description="Page size")
    total: int = Field(description="Number of ranked articles across all pages")
    has_more: bool = Field(alias="hasMore", description="Whether a further page exists")

    class Config:
        populate_by_name = True


class PersonalizationMeta(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId", description="User the feed was ranked for")
    relevance_scores: Dict[str, float] = Field(
        default_factory=dict,
        alias="relevanceScores",
        description="Relevance score per article id on this page",
    )
    applied_filters: List[str] = Field(
        default_factory=list,
        alias="appliedFilters",
        description="Filter descriptors such as maxAge:168",
    )
    processing_time: float = Field(alias="processingTime", description="Processing time in milliseconds")

    class Config:
        populate_by_name = True


class PersonalizedFeed(BaseModel):
    articles: List[FeedArticle] = Field(default_factory=list, description="Articles on this page")
    pagination: PaginationMeta = Field(description="Pagination metadata")
    personalization: PersonalizationMeta = Field(description="Personalization metadata")
