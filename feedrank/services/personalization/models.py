"""
Personalization Models

Records loaded from the store and the value types passed between the
accessors, the ranking engine and pagination.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class SortMode(str, Enum):
    """Feed ordering modes."""
    RELEVANCE = "relevance"
    LATEST = "latest"


class SignalComponent(str, Enum):
    """Scoring components, reported in ``algorithms_used``."""
    KEYWORD_MATCH = "keywordMatch"
    SYMBOL_MATCH = "symbolMatch"
    SENTIMENT = "sentiment"
    TIME_DECAY = "timeDecay"
    RECENCY = "recency"  # latest mode: publish time only


# Store rows carry a sentiment label; these are the scores it maps to
SENTIMENT_LABEL_SCORES: Dict[str, float] = {
    "positive": 0.7,
    "negative": -0.3,
    "neutral": 0.0,
}

MIN_PRIORITY = 1
MAX_PRIORITY = 5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coerce_tags(value: Any) -> Tuple[str, ...]:
    """Accept a list, a comma separated string or nothing."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = []
        for item in value:
            if isinstance(item, Mapping):
                item = item.get("code") or item.get("symbol") or item.get("name")
            if item is not None:
                items.append(str(item))
    else:
        return ()
    return tuple(t.strip() for t in items if t and t.strip())


def _merge_tags(*groups: Tuple[str, ...]) -> Tuple[str, ...]:
    """Concatenate tag tuples, dropping case-insensitive repeats."""
    seen = set()
    merged = []
    for tag in (t for group in groups for t in group):
        if tag.casefold() not in seen:
            seen.add(tag.casefold())
            merged.append(tag)
    return tuple(merged)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def sentiment_label_to_score(label: Optional[str]) -> float:
    if not label:
        return 0.0
    return SENTIMENT_LABEL_SCORES.get(label.strip().lower(), 0.0)


@dataclass(frozen=True)
class Article:
    """A candidate news article. Read-only to the ranking engine."""
    id: str
    title: str = ""
    summary: str = ""
    content: str = ""
    url: str = ""
    source: str = "Unknown"
    published_at: Optional[datetime] = None
    keywords: Tuple[str, ...] = ()
    related_stocks: Tuple[str, ...] = ()
    category: Optional[str] = None
    sentiment_score: Optional[float] = None  # -1 to 1, None when the row has no sentiment
    sentiment_label: str = "neutral"
    image_url: Optional[str] = None

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "Article":
        """Create from a ``news_articles`` row."""
        article_id = row.get("id")
        if article_id in (None, ""):
            raise ValueError("Article row is missing 'id'")

        label = row.get("sentiment_label") or row.get("sentiment")
        score = _coerce_float(row.get("sentiment_score"))
        if score is not None:
            score = _clamp(score, -1.0, 1.0)
        elif isinstance(label, str):
            score = sentiment_label_to_score(label)

        return cls(
            id=str(article_id),
            title=row.get("title") or "",
            summary=row.get("summary") or "",
            content=row.get("content") or "",
            url=row.get("url") or "",
            source=row.get("source") or row.get("source_domain") or row.get("category") or "Unknown",
            published_at=parse_timestamp(row.get("published_at")),
            keywords=_merge_tags(_coerce_tags(row.get("keywords")), _coerce_tags(row.get("tags"))),
            related_stocks=tuple(s.upper() for s in _coerce_tags(row.get("related_stocks"))),
            category=row.get("category"),
            sentiment_score=score,
            sentiment_label=label.lower() if isinstance(label, str) and label else "neutral",
            image_url=row.get("image_url"),
        )


@dataclass(frozen=True)
class UserInterest:
    """A declared interest; higher priority weighs more in keyword matching."""
    user_id: str
    category: str
    keywords: Tuple[str, ...] = ()
    priority: int = MIN_PRIORITY

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "UserInterest":
        category = row.get("interest_category") or row.get("category")
        if not category:
            raise ValueError("Interest row is missing 'interest_category'")

        priority = _coerce_float(row.get("priority_level", row.get("priority")))
        priority_int = int(priority) if priority is not None else MIN_PRIORITY

        return cls(
            user_id=str(row.get("user_id") or ""),
            category=str(category),
            keywords=_coerce_tags(row.get("interest_keywords", row.get("keywords"))),
            priority=int(_clamp(priority_int, MIN_PRIORITY, MAX_PRIORITY)),
        )

    @property
    def terms(self) -> frozenset:
        """Case-folded keywords plus the category label."""
        terms = {k.casefold() for k in self.keywords}
        terms.add(self.category.casefold())
        return frozenset(terms)


@dataclass(frozen=True)
class PortfolioHolding:
    """A stock position in the user's portfolio."""
    user_id: str
    stock_code: str
    stock_name: str = ""
    weight: Optional[float] = None
    purchase_price: Optional[float] = None
    quantity: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "stock_code", self.stock_code.strip().upper())

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "PortfolioHolding":
        code = row.get("stock_code") or row.get("symbol")
        if not code:
            raise ValueError("Portfolio row is missing 'stock_code'")

        weight = _coerce_float(row.get("weight"))
        return cls(
            user_id=str(row.get("user_id") or ""),
            stock_code=str(code),
            stock_name=row.get("stock_name") or "",
            weight=weight if weight is not None and weight >= 0 else None,
            purchase_price=_coerce_float(row.get("purchase_price")),
            quantity=_coerce_float(row.get("quantity")),
        )


@dataclass(frozen=True)
class InteractionRecord:
    """A past interaction with an article. Historical signal only."""
    user_id: str
    article_id: str
    relevance_score: Optional[float] = None
    is_read: bool = False
    is_bookmarked: bool = False
    is_liked: bool = False
    matched_keywords: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> "InteractionRecord":
        article_id = row.get("news_article_id") or row.get("article_id")
        if not article_id:
            raise ValueError("History row is missing 'news_article_id'")

        metadata = row.get("interaction_metadata")
        return cls(
            user_id=str(row.get("user_id") or ""),
            article_id=str(article_id),
            relevance_score=_coerce_float(row.get("relevance_score")),
            is_read=bool(row.get("is_read")),
            is_bookmarked=bool(row.get("is_bookmarked")),
            is_liked=bool(row.get("is_liked")),
            matched_keywords=_coerce_tags(row.get("interest_match_keywords")),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )

    @property
    def is_positive(self) -> bool:
        """Liked or bookmarked; used to infer sentiment affinity."""
        return self.is_liked or self.is_bookmarked


@dataclass(frozen=True)
class ArticleFilters:
    """Candidate pool query. Identical filters share one cache entry."""
    limit: int
    max_age_hours: int
    min_sentiment: Optional[float] = None

    def fingerprint(self) -> str:
        return json.dumps(
            {
                "limit": self.limit,
                "maxAge": self.max_age_hours,
                "minSentiment": self.min_sentiment,
            },
            sort_keys=True,
            separators=(",", ":"),
        )


@dataclass(frozen=True)
class RankingWeights:
    """Signal weights. Used as given; the engine never renormalizes them."""
    keyword_match: float = 0.4
    symbol_match: float = 0.3
    sentiment: float = 0.2
    time_decay: float = 0.1

    def __post_init__(self):
        for name in ("keyword_match", "symbol_match", "sentiment", "time_decay"):
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValueError(f"Weight '{name}' must be non-negative, got {value}")

    def for_component(self, component: SignalComponent) -> float:
        return {
            SignalComponent.KEYWORD_MATCH: self.keyword_match,
            SignalComponent.SYMBOL_MATCH: self.symbol_match,
            SignalComponent.SENTIMENT: self.sentiment,
            SignalComponent.TIME_DECAY: self.time_decay,
        }.get(component, 0.0)


@dataclass
class RankingOptions:
    min_relevance_score: float = 0.05
    max_age_hours: int = 168
    include_bookmarks: bool = False
    weights: RankingWeights = field(default_factory=RankingWeights)
    sort_by: SortMode = SortMode.RELEVANCE


@dataclass
class RankedArticle:
    """An article annotated with its relevance score."""
    article: Article
    relevance_score: Optional[float] = None  # None in latest mode
    breakdown: Dict[str, float] = field(default_factory=dict)
    is_bookmarked: bool = False

    @property
    def id(self) -> str:
        return self.article.id

    @property
    def published_at(self) -> Optional[datetime]:
        return self.article.published_at


@dataclass
class PerformanceMetrics:
    """Mutable telemetry slot carried by the personalization context."""
    processing_time_ms: float = 0.0
    algorithms_used: List[str] = field(default_factory=list)
