"""
Relevance Ranker

Four-signal scoring of candidate articles against a user's interests,
portfolio and interaction history, followed by threshold filtering and a
deterministic sort.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .context import PersonalizationContext
from .models import (
    Article,
    InteractionRecord,
    PortfolioHolding,
    RankedArticle,
    RankingOptions,
    RankingWeights,
    SignalComponent,
    SortMode,
    UserInterest,
    parse_timestamp,
    sentiment_label_to_score,
)

logger = logging.getLogger(__name__)

# Sentiment component value when the user has no usable history
NEUTRAL_SENTIMENT_SCORE = 0.5

SCORED_COMPONENTS: Tuple[SignalComponent, ...] = (
    SignalComponent.KEYWORD_MATCH,
    SignalComponent.SYMBOL_MATCH,
    SignalComponent.SENTIMENT,
    SignalComponent.TIME_DECAY,
)


@dataclass
class UserProfile:
    """Per-request lookups derived once from the personalization inputs."""
    interest_terms: List[Tuple[FrozenSet[str], int]] = field(default_factory=list)
    total_priority: int = 0
    holding_weights: Dict[str, float] = field(default_factory=dict)
    total_holding_weight: float = 0.0
    sentiment_affinity: Optional[float] = None  # None when history gives no signal

    @property
    def has_interests(self) -> bool:
        return self.total_priority > 0

    @property
    def has_portfolio(self) -> bool:
        return self.total_holding_weight > 0


def _relevance_sort_key(item: RankedArticle) -> tuple:
    published = item.published_at
    return (
        -(item.relevance_score or 0.0),
        published is None,
        -published.timestamp() if published else 0.0,
        item.id,
    )


def _latest_sort_key(item: RankedArticle) -> tuple:
    published = item.published_at
    return (
        published is None,
        -published.timestamp() if published else 0.0,
        item.id,
    )


class RelevanceRanker:
    """
    Ranks candidate articles for one user.

    Signals:
    - Keyword match (priority-weighted overlap of interests and article tags)
    - Symbol match (allocation share of held stocks the article mentions)
    - Sentiment (closeness to the sentiment of articles the user liked)
    - Time decay (linear decay across the max-age window)
    """

    def __init__(
        self,
        weights: Optional[RankingWeights] = None,
        min_score_threshold: float = 0.05,
    ):
        """
        Initialize the ranker.

        Args:
            weights: Default signal weights (used when options carry none)
            min_score_threshold: Default minimum relevance score
        """
        self._weights = weights or RankingWeights()
        self._min_threshold = min_score_threshold

    def default_options(self, **overrides) -> RankingOptions:
        options = RankingOptions(
            min_relevance_score=self._min_threshold,
            weights=self._weights,
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options

    def rank(
        self,
        articles: Sequence[Article],
        interests: Sequence[UserInterest],
        portfolio: Sequence[PortfolioHolding],
        history: Sequence[InteractionRecord],
        options: Optional[RankingOptions] = None,
        context: Optional[PersonalizationContext] = None,
        now: Optional[datetime] = None,
    ) -> List[RankedArticle]:
        """
        Score, filter and order candidate articles.

        Args:
            articles: Candidate pool
            interests: User's declared interests
            portfolio: User's holdings
            history: User's past interactions
            options: Threshold, age window, weights and sort mode
            context: Receives elapsed time and the components used
            now: Reference time for age computations (defaults to current UTC)

        Returns:
            Ranked articles, best first
        """
        started = time.perf_counter()
        options = options or self.default_options()
        now = parse_timestamp(now) or datetime.now(timezone.utc)

        in_window = [a for a in articles if not self._is_expired(a, now, options.max_age_hours)]

        if options.sort_by == SortMode.LATEST:
            ranked = self.sort_latest(in_window)
            algorithms = [SignalComponent.RECENCY.value]
        else:
            profile = self.build_profile(interests, portfolio, history, articles)
            algorithms = self._algorithms_used(profile, options.weights)
            ranked = []
            for article in in_window:
                breakdown = self.score_components(article, profile, now, options.max_age_hours)
                score = round(
                    sum(options.weights.for_component(c) * breakdown[c.value] for c in SCORED_COMPONENTS),
                    6,
                )
                if score < options.min_relevance_score:
                    continue
                ranked.append(RankedArticle(article=article, relevance_score=score, breakdown=breakdown))
            ranked.sort(key=_relevance_sort_key)

        elapsed_ms = (time.perf_counter() - started) * 1000
        if context is not None:
            context.record_algorithms(algorithms)
            context.record_processing_time(elapsed_ms)

        logger.debug(
            f"Ranked {len(ranked)}/{len(articles)} articles "
            f"(mode={options.sort_by.value}, {elapsed_ms:.1f}ms)"
        )
        return ranked

    def sort_latest(self, articles: Sequence[Article]) -> List[RankedArticle]:
        """Order by publish time only; scoring is skipped entirely."""
        ranked = [RankedArticle(article=a) for a in articles]
        ranked.sort(key=_latest_sort_key)
        return ranked

    def score_article(
        self,
        article: Article,
        interests: Sequence[UserInterest],
        portfolio: Sequence[PortfolioHolding],
        history: Sequence[InteractionRecord],
        weights: Optional[RankingWeights] = None,
        max_age_hours: int = 168,
        now: Optional[datetime] = None,
    ) -> float:
        """Composite relevance of a single article."""
        weights = weights or self._weights
        profile = self.build_profile(interests, portfolio, history, [article])
        breakdown = self.score_components(
            article, profile, parse_timestamp(now) or datetime.now(timezone.utc), max_age_hours
        )
        return round(sum(weights.for_component(c) * breakdown[c.value] for c in SCORED_COMPONENTS), 6)

    # =========================================================================
    # Profile
    # =========================================================================

    def build_profile(
        self,
        interests: Sequence[UserInterest],
        portfolio: Sequence[PortfolioHolding],
        history: Sequence[InteractionRecord],
        articles: Sequence[Article],
    ) -> UserProfile:
        profile = UserProfile()

        for interest in interests:
            profile.interest_terms.append((interest.terms, interest.priority))
            profile.total_priority += interest.priority

        known = [h.weight for h in portfolio if h.weight]
        # Unweighted holdings get the mean of the weighted ones (equal shares if none)
        fallback = sum(known) / len(known) if known else 1.0
        for holding in portfolio:
            share = holding.weight if holding.weight else fallback
            profile.holding_weights[holding.stock_code] = (
                profile.holding_weights.get(holding.stock_code, 0.0) + share
            )
        profile.total_holding_weight = sum(profile.holding_weights.values())

        profile.sentiment_affinity = self._sentiment_affinity(history, articles)
        return profile

    def _sentiment_affinity(
        self,
        history: Sequence[InteractionRecord],
        articles: Sequence[Article],
    ) -> Optional[float]:
        """Mean sentiment of articles the user liked or bookmarked."""
        by_id = {a.id: a for a in articles}
        values: List[float] = []

        for record in history:
            if not record.is_positive:
                continue
            article = by_id.get(record.article_id)
            if article is not None and article.sentiment_score is not None:
                values.append(article.sentiment_score)
                continue
            stored = record.metadata.get("sentiment_score")
            if isinstance(stored, (int, float)) and not isinstance(stored, bool):
                values.append(max(-1.0, min(1.0, float(stored))))
            elif isinstance(record.metadata.get("sentiment"), str):
                values.append(sentiment_label_to_score(record.metadata["sentiment"]))

        if not values:
            return None
        return max(-1.0, min(1.0, sum(values) / len(values)))

    def _algorithms_used(self, profile: UserProfile, weights: RankingWeights) -> List[str]:
        used = []
        if profile.has_interests and weights.keyword_match > 0:
            used.append(SignalComponent.KEYWORD_MATCH.value)
        if profile.has_portfolio and weights.symbol_match > 0:
            used.append(SignalComponent.SYMBOL_MATCH.value)
        if weights.sentiment > 0:
            used.append(SignalComponent.SENTIMENT.value)
        if weights.time_decay > 0:
            used.append(SignalComponent.TIME_DECAY.value)
        return used

    # =========================================================================
    # Components
    # =========================================================================

    def score_components(
        self,
        article: Article,
        profile: UserProfile,
        now: datetime,
        max_age_hours: int,
    ) -> Dict[str, float]:
        """Unweighted value of each signal, each in [0, 1]."""
        scorers = (
            (SignalComponent.KEYWORD_MATCH, lambda: self._score_keyword_match(article, profile)),
            (SignalComponent.SYMBOL_MATCH, lambda: self._score_symbol_match(article, profile)),
            (SignalComponent.SENTIMENT, lambda: self._score_sentiment(article, profile)),
            (SignalComponent.TIME_DECAY, lambda: self._score_time_decay(article, now, max_age_hours)),
        )

        breakdown: Dict[str, float] = {}
        for component, scorer in scorers:
            try:
                value = scorer()
            except Exception as e:  # noqa: BLE001 - one bad field must not abort the pass
                logger.debug(f"Scoring {component.value} failed for article {article.id}: {e}")
                value = 0.0
            breakdown[component.value] = max(0.0, min(1.0, value))
        return breakdown

    def _score_keyword_match(self, article: Article, profile: UserProfile) -> float:
        """Share of interest priority whose terms overlap the article's tags."""
        if not profile.has_interests:
            return 0.0

        article_terms = {k.casefold() for k in article.keywords}
        if article.category:
            article_terms.add(article.category.casefold())
        if not article_terms:
            return 0.0

        matched_priority = sum(
            priority for terms, priority in profile.interest_terms
            if terms & article_terms
        )
        return matched_priority / profile.total_priority

    def _score_symbol_match(self, article: Article, profile: UserProfile) -> float:
        """Portfolio allocation share of the stocks the article mentions."""
        if not profile.has_portfolio or not article.related_stocks:
            return 0.0

        mentioned = set(article.related_stocks)
        matched = sum(
            weight for code, weight in profile.holding_weights.items()
            if code in mentioned
        )
        return matched / profile.total_holding_weight

    def _score_sentiment(self, article: Article, profile: UserProfile) -> float:
        """1.0 when the article's tone equals the user's affinity, 0.0 at opposite ends."""
        if article.sentiment_score is None:
            return 0.0
        if profile.sentiment_affinity is None:
            return NEUTRAL_SENTIMENT_SCORE
        return 1.0 - abs(article.sentiment_score - profile.sentiment_affinity) / 2.0

    def _score_time_decay(self, article: Article, now: datetime, max_age_hours: int) -> float:
        """Linear decay from 1.0 (just published) to 0.0 at the window edge."""
        published = parse_timestamp(article.published_at)
        if published is None or max_age_hours <= 0:
            return 0.0
        age_hours = max(0.0, (now - published).total_seconds() / 3600)
        return max(0.0, 1.0 - age_hours / max_age_hours)

    @staticmethod
    def _is_expired(article: Article, now: datetime, max_age_hours: int) -> bool:
        published = parse_timestamp(article.published_at)
        if published is None or max_age_hours <= 0:
            return False
        age_hours = (now - published).total_seconds() / 3600
        return age_hours > max_age_hours
